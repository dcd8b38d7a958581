"""Client-side session model.

Folds server messages into the state a renderer needs (own role, local
play state, room snapshot, remote positions, the round's hazard stream) and
builds the frames a client sends back. Transport is left to the caller.
"""

from enum import Enum
from typing import Dict, List, Optional

from arena.protocol import decode, encode
from arena.services.rooms.sync import Hazard, HazardSpawner, RoundClock, now_ms

INTERPOLATION_FACTOR = 0.4
POSITION_SEND_INTERVAL_MS = 50


class Role(str, Enum):
    NONE = 'none'
    GUEST = 'guest'
    HOST = 'host'


class LocalState(str, Enum):
    DISCONNECTED = 'disconnected'
    LOBBY = 'lobby'
    COUNTDOWN = 'countdown'
    ALIVE = 'alive'
    SPECTATING = 'spectating'


class RemoteInterpolator:
    """Exponential smoothing of one remote player's x, stepped per sample."""

    def __init__(self, factor: float = INTERPOLATION_FACTOR):
        self.factor = factor
        self.x: Optional[float] = None
        self.last_sample_t: Optional[int] = None

    def update(self, sample: float, t: Optional[int] = None) -> float:
        # A sample stamped earlier than the last one applied is stale
        if t is not None and self.last_sample_t is not None and t < self.last_sample_t:
            return self.x
        if self.x is None:
            self.x = float(sample)
        else:
            self.x += (float(sample) - self.x) * self.factor
        if t is not None:
            self.last_sample_t = t
        return self.x


class ClientSession:
    def __init__(self, clock=now_ms, factor: float = INTERPOLATION_FACTOR):
        self.clock = clock
        self.factor = factor
        self.player_id: Optional[str] = None
        self.room: Optional[dict] = None
        self.round_clock: Optional[RoundClock] = None
        self.spawner: Optional[HazardSpawner] = None
        self.hazards: List[Hazard] = []
        self.remotes: Dict[str, RemoteInterpolator] = {}
        self.dead_ids = set()
        self.last_round_end: Optional[dict] = None
        self.last_error: Optional[dict] = None
        self._last_pos_sent: Optional[int] = None

    # ---- derived state ----

    @property
    def role(self) -> Role:
        if not self.room or self.player_id is None:
            return Role.NONE
        return Role.HOST if self.room.get('hostId') == self.player_id else Role.GUEST

    @property
    def state(self) -> LocalState:
        if not self.room or self.player_id is None:
            return LocalState.DISCONNECTED
        if self.round_clock is None:
            return LocalState.LOBBY
        if self.player_id in self.dead_ids:
            return LocalState.SPECTATING
        if self.round_clock.server_now(self.clock()) < self.round_clock.start_time:
            return LocalState.COUNTDOWN
        return LocalState.ALIVE

    def elapsed(self) -> float:
        if self.round_clock is None:
            return 0.0
        return self.round_clock.elapsed(self.clock())

    def remote_positions(self) -> Dict[str, float]:
        return {pid: r.x for pid, r in self.remotes.items() if r.x is not None and pid not in self.dead_ids}

    # ---- inbound ----

    def apply(self, frame) -> dict:
        """Fold one server frame into the session and return it decoded."""
        msg = decode(frame)
        type_ = msg.get('type')
        if type_ == 'hello':
            self.player_id = msg.get('id')
        elif type_ == 'room_state':
            self.room = msg
            members = {p.get('id') for p in msg.get('players', [])}
            for pid in list(self.remotes):
                if pid not in members:
                    del self.remotes[pid]
        elif type_ == 'round_start':
            self._begin_round(msg)
        elif type_ == 'positions':
            for sample in msg.get('positions', []):
                pid = sample.get('id')
                if pid is None or pid == self.player_id:
                    continue
                remote = self.remotes.setdefault(pid, RemoteInterpolator(self.factor))
                remote.update(sample.get('x', 0.0), sample.get('t'))
        elif type_ == 'player_dead':
            self.dead_ids.add(msg.get('id'))
        elif type_ == 'round_end':
            self.last_round_end = msg
            self._end_round()
        elif type_ == 'error':
            self.last_error = msg
        return msg

    def _begin_round(self, msg: dict) -> None:
        self.round_clock = RoundClock(msg['serverTime'], msg['startTime'], received_at=self.clock())
        difficulty = (msg.get('options') or {}).get('difficulty', 'normal')
        self.spawner = HazardSpawner(msg['seed'], difficulty)
        self.hazards = []
        self.dead_ids = set()
        self.last_round_end = None
        self._last_pos_sent = None

    def _end_round(self) -> None:
        self.round_clock = None
        self.spawner = None
        self.hazards = []
        self.dead_ids = set()

    def tick(self) -> List[Hazard]:
        """Spawn whatever the shared clock says is due; call once per frame."""
        if self.spawner is None:
            return []
        spawned = self.spawner.advance(self.elapsed())
        self.hazards.extend(spawned)
        return spawned

    # ---- outbound ----

    def create_room(self, name) -> str:
        return encode('create_room', name=name)

    def join_room(self, room_id, name) -> str:
        return encode('join_room', roomId=room_id, name=name)

    def set_ready(self, ready: bool) -> str:
        return encode('set_ready', ready=bool(ready))

    def set_options(self, difficulty=None, player_collision=None) -> Optional[str]:
        if self.role != Role.HOST:
            return None
        fields = {}
        if difficulty is not None:
            fields['difficulty'] = difficulty
        if player_collision is not None:
            fields['playerCollision'] = player_collision
        return encode('set_options', **fields)

    def start_round(self) -> Optional[str]:
        if self.role != Role.HOST:
            return None
        return encode('start_round')

    def should_send_position(self) -> bool:
        if self.state != LocalState.ALIVE:
            return False
        now = self.clock()
        return self._last_pos_sent is None or now - self._last_pos_sent >= POSITION_SEND_INTERVAL_MS

    def position(self, x: float) -> Optional[str]:
        """Build a pos frame if one is due on the send interval."""
        if not self.should_send_position():
            return None
        self._last_pos_sent = self.clock()
        return encode('pos', x=x)

    def died(self) -> Optional[str]:
        if self.state != LocalState.ALIVE:
            return None
        self.dead_ids.add(self.player_id)
        return encode('dead')

    def leave(self) -> str:
        return encode('leave')
