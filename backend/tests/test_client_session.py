import json

import pytest

from arena.client import ClientSession, LocalState, RemoteInterpolator, Role
from arena.protocol import encode


class FakeClock:
    def __init__(self, now):
        self.now = now

    def __call__(self):
        return self.now


def _lobby(session, host_id='ME', me='ME', others=('YOU',)):
    players = [{'id': me, 'name': 'Me', 'ready': False, 'alive': True}]
    players += [{'id': o, 'name': o, 'ready': False, 'alive': True} for o in others]
    session.apply(encode('room_state', roomId='ABC234', hostId=host_id, status='lobby',
                         options={'difficulty': 'normal', 'playerCollision': False}, players=players))
    session.apply(encode('hello', id=me))


def test_interpolator_snaps_then_smooths():
    remote = RemoteInterpolator(0.4)
    assert remote.update(100) == 100
    assert remote.update(200) == pytest.approx(140)
    assert remote.update(200) == pytest.approx(164)


def test_interpolator_drops_out_of_order_samples():
    remote = RemoteInterpolator(0.5)
    remote.update(100, t=10)
    assert remote.update(200, t=20) == pytest.approx(150)
    assert remote.update(0, t=15) == pytest.approx(150)
    assert remote.last_sample_t == 20
    assert remote.update(250, t=20) == pytest.approx(200)


def test_roles_follow_host_id():
    session = ClientSession(clock=FakeClock(0))
    assert session.role == Role.NONE
    assert session.state == LocalState.DISCONNECTED
    _lobby(session)
    assert session.role == Role.HOST
    assert session.start_round() == '{"type":"start_round"}'

    _lobby(session, host_id='YOU')
    assert session.role == Role.GUEST
    assert session.start_round() is None
    assert session.set_options(difficulty='hard') is None


def test_round_lifecycle_states():
    clock = FakeClock(10_000)
    session = ClientSession(clock=clock)
    _lobby(session)
    assert session.state == LocalState.LOBBY

    # Client clock 300ms behind the server
    session.apply(encode('round_start', seed=7, startTime=11_800, serverTime=10_300,
                         options={'difficulty': 'hard', 'playerCollision': False}))
    assert session.round_clock.skew == -300
    assert session.state == LocalState.COUNTDOWN
    assert session.died() is None
    # Elapsed is clamped at zero, so only the t=0 hazard exists before the start
    assert [h.spawn_time for h in session.tick()] == [0.0]
    assert session.tick() == []

    # 0.9s into the round; hard spaces the first two hazards 720ms apart
    clock.now = 12_400
    assert session.state == LocalState.ALIVE
    assert [h.spawn_time for h in session.tick()] == [pytest.approx(0.72)]
    assert len(session.hazards) == 2

    assert json.loads(session.died()) == {'type': 'dead'}
    assert session.state == LocalState.SPECTATING
    assert session.died() is None

    session.apply(encode('round_end', winnerId='YOU', ranks=[{'id': 'YOU', 'rank': 1}, {'id': 'ME', 'rank': 2}]))
    assert session.state == LocalState.LOBBY
    assert session.last_round_end['winnerId'] == 'YOU'


def test_remote_positions_smoothed_per_message():
    clock = FakeClock(0)
    session = ClientSession(clock=clock)
    _lobby(session, others=('YOU', 'THEM'))
    session.apply(encode('positions', positions=[{'id': 'YOU', 'x': 100, 't': 1}]))
    session.apply(encode('positions', positions=[{'id': 'YOU', 'x': 200, 't': 2}]))
    session.apply(encode('positions', positions=[{'id': 'ME', 'x': 300, 't': 2}]))
    assert session.remote_positions() == {'YOU': pytest.approx(140)}

    session.apply(encode('player_dead', id='YOU'))
    assert session.remote_positions() == {}

    _lobby(session, others=('THEM',))
    assert 'YOU' not in session.remotes


def test_position_frames_are_rate_limited():
    clock = FakeClock(0)
    session = ClientSession(clock=clock)
    _lobby(session)
    assert session.position(100) is None

    session.apply(encode('round_start', seed=1, startTime=0, serverTime=0, options={}))
    assert json.loads(session.position(100)) == {'type': 'pos', 'x': 100}
    clock.now = 30
    assert session.position(110) is None
    clock.now = 50
    assert session.position(120) is not None


def test_errors_are_recorded():
    session = ClientSession(clock=FakeClock(0))
    session.apply(encode('error', code='full', msg='Room full'))
    assert session.last_error['code'] == 'full'


def test_outbound_frames():
    session = ClientSession(clock=FakeClock(0))
    assert json.loads(session.join_room('ABC234', 'Zed')) == {'type': 'join_room', 'roomId': 'ABC234', 'name': 'Zed'}
    assert json.loads(session.set_ready(True)) == {'type': 'set_ready', 'ready': True}
    assert json.loads(session.leave()) == {'type': 'leave'}
