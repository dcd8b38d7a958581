import json

import pytest

from arena.protocol import (
    COMMANDS,
    COMMAND_TYPES,
    CreateRoom,
    JoinRoom,
    Position,
    ProtocolError,
    SetOptions,
    SetReady,
    StartRound,
    encode,
    parse,
)


@pytest.mark.parametrize('frame', ['{oops', '[1, 2]', '"text"', b'\xff\xfe', 12, None])
def test_malformed_frames_are_bad_json(frame):
    with pytest.raises(ProtocolError) as exc:
        parse(frame)
    assert exc.value.code == 'bad_json'


def test_unknown_or_missing_type_is_none():
    assert parse('{"type": "warp"}') is None
    assert parse('{"x": 1}') is None
    assert parse('{"type": ["pos"]}') is None


def test_parses_each_command():
    assert parse('{"type": "create_room", "name": "Ann"}') == CreateRoom(name='Ann')
    assert parse('{"type": "join_room", "roomId": "ABC234", "name": "Bo"}') == JoinRoom(room_id='ABC234', name='Bo')
    assert parse('{"type": "join_room"}') == JoinRoom(room_id='', name=None)
    assert parse('{"type": "set_ready", "ready": 1}') == SetReady(ready=True)
    assert parse({'type': 'set_options', 'playerCollision': True}) == SetOptions(player_collision=True)
    assert parse('{"type": "start_round"}') == StartRound()
    assert parse(b'{"type": "pos", "x": 12.5}') == Position(x=12.5)


def test_command_tables_cover_the_same_types():
    assert set(COMMANDS) == set(COMMAND_TYPES.values())


def test_encode_puts_type_first():
    text = encode('player_dead', id='P1')
    assert text.startswith('{"type":"player_dead"')
    assert json.loads(text) == {'type': 'player_dead', 'id': 'P1'}
