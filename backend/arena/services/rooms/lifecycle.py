import math
from dataclasses import dataclass, field
from typing import Callable, List, Optional, Tuple

from arena.models import DIFFICULTIES, Player, Room, RoomStatus, sanitize_name
from .registry import RoomRegistry
from .sync import generate_seed, now_ms, schedule_start


class RoomError(Exception):
    """A rejected command. Raised before any room state is touched."""

    def __init__(self, code: str, msg: str):
        super().__init__(msg)
        self.code = code
        self.msg = msg

    def to_dict(self):
        return {'type': 'error', 'code': self.code, 'msg': self.msg}


@dataclass
class Outbound:
    recipients: List[str]
    message: dict = field(default_factory=dict)


def _event(type_: str, **fields) -> dict:
    message = {'type': type_}
    message.update(fields)
    return message


def broadcast(room: Room, type_: str, **fields) -> Outbound:
    return Outbound(list(room.players), _event(type_, **fields))


def send_to(player_id: str, type_: str, **fields) -> Outbound:
    return Outbound([player_id], _event(type_, **fields))


def room_state(room: Room) -> Outbound:
    return broadcast(room, 'room_state', **room.to_dict())


def _as_coordinate(x) -> Optional[float]:
    """A finite float, or None for anything that is not a usable number."""
    if isinstance(x, bool) or not isinstance(x, (int, float)):
        return None
    try:
        value = float(x)
    except (OverflowError, ValueError):
        return None
    return value if math.isfinite(value) else None


def build_ranks(room: Room) -> List[dict]:
    """Alive players first, then the dead by ascending death time.

    A missing death time sorts after every recorded one. Ties keep join order.
    """
    def key(player: Player):
        return (
            0 if player.alive else 1,
            player.death_time if player.death_time is not None else math.inf,
        )

    ordered = sorted(room.players.values(), key=key)
    return [{'id': p.id, 'rank': i + 1} for i, p in enumerate(ordered)]


class RoomService:
    """Room state machine: membership, host authority, readiness and rounds.

    Every method expects the caller to hold ``room.lock`` for the room it
    touches, and returns the messages to deliver in order.
    """

    def __init__(
        self,
        registry: Optional[RoomRegistry] = None,
        max_players: int = 4,
        round_lead_ms: int = 1500,
        name_max_length: int = 16,
        min_x: float = 21.0,
        max_x: float = 459.0,
        clock: Callable[[], int] = now_ms,
        seed_source: Callable[[], int] = generate_seed,
    ):
        self.registry = registry or RoomRegistry()
        self.max_players = max_players
        self.round_lead_ms = round_lead_ms
        self.name_max_length = name_max_length
        self.min_x = min_x
        self.max_x = max_x
        self.clock = clock
        self.seed_source = seed_source

    @classmethod
    def from_config(cls, config, registry: Optional[RoomRegistry] = None):
        return cls(
            registry=registry or RoomRegistry(code_length=int(config.get('ROOM_CODE_LENGTH', 6))),
            max_players=int(config.get('MAX_PLAYERS', 4)),
            round_lead_ms=int(config.get('ROUND_LEAD_MS', 1500)),
            name_max_length=int(config.get('NAME_MAX_LENGTH', 16)),
            min_x=float(config.get('ARENA_MIN_X', 21)),
            max_x=float(config.get('ARENA_MAX_X', 459)),
        )

    # ---- membership ----

    def _new_player(self, name, sid=None) -> Player:
        player = Player(self.registry.new_player_id(), sanitize_name(name, self.name_max_length))
        player.sid = sid
        return player

    def create_room(self, name, sid=None) -> Tuple[Room, Player, List[Outbound]]:
        room = self.registry.create()
        with room.lock:
            player = self._new_player(name, sid)
            room.players[player.id] = player
            room.host_id = player.id
            events = [
                send_to(player.id, 'room_state', **room.to_dict()),
                send_to(player.id, 'hello', id=player.id),
            ]
        return room, player, events

    def join_room(self, room: Optional[Room], name, sid=None) -> Tuple[Player, List[Outbound]]:
        if room is None or room.closed:
            raise RoomError('no_room', 'Room not found')
        if room.is_playing:
            raise RoomError('in_progress', 'Round in progress')
        if len(room.players) >= self.max_players:
            raise RoomError('full', 'Room full')
        player = self._new_player(name, sid)
        room.players[player.id] = player
        if room.host_id is None:
            room.host_id = player.id
        return player, [room_state(room), send_to(player.id, 'hello', id=player.id)]

    def member(self, room: Optional[Room], player_id: Optional[str]) -> Player:
        if room is None or room.closed:
            raise RoomError('no_room', 'Not in room')
        player = room.players.get(player_id)
        if player is None:
            raise RoomError('no_player', 'Player not found')
        return player

    def remove_player(self, room: Room, player_id: str) -> List[Outbound]:
        """Drop a member after leave or disconnect."""
        player = room.players.get(player_id)
        if player is None:
            return []
        was_host = room.host_id == player.id
        was_alive_playing = room.is_playing and player.alive
        del room.players[player.id]
        self.registry.release_player_id(player.id)
        if not room.players:
            room.host_id = None
            self.registry.destroy_if_empty(room.id)
            return []
        if was_host:
            room.host_id = next(iter(room.players))
        events = []
        if was_alive_playing:
            player.alive = False
            player.death_time = self.clock()
            events.append(broadcast(room, 'player_dead', id=player.id))
            events.extend(self.evaluate_round_end(room))
        events.append(room_state(room))
        return events

    # ---- lobby ----

    def set_ready(self, room: Room, player_id: str, ready) -> List[Outbound]:
        player = self.member(room, player_id)
        player.ready = bool(ready)
        return [room_state(room)]

    def set_options(self, room: Room, player_id: str, difficulty=None, player_collision=None) -> List[Outbound]:
        player = self.member(room, player_id)
        if room.host_id != player.id:
            raise RoomError('not_host', 'Only host can change options')
        if room.is_playing:
            raise RoomError('in_progress', 'Round in progress')
        if isinstance(difficulty, str) and difficulty in DIFFICULTIES:
            room.options['difficulty'] = difficulty
        if isinstance(player_collision, bool):
            room.options['playerCollision'] = player_collision
        return [room_state(room)]

    # ---- rounds ----

    def start_round(self, room: Room, player_id: str) -> List[Outbound]:
        player = self.member(room, player_id)
        if room.host_id != player.id:
            raise RoomError('not_host', 'Only host can start')
        if room.is_playing:
            raise RoomError('in_progress', 'Round in progress')
        if not all(p.ready for p in room.players.values()):
            raise RoomError('not_ready', 'All players must be ready')

        now = self.clock()
        room.status = RoomStatus.PLAYING
        room.seed = int(self.seed_source()) & 0xFFFFFFFF
        room.start_time = schedule_start(now, self.round_lead_ms)
        for p in room.players.values():
            p.alive = True
            p.death_time = None
        return [
            broadcast(
                room, 'round_start',
                seed=room.seed, startTime=room.start_time, serverTime=now, options=dict(room.options),
            ),
            room_state(room),
        ]

    def relay_position(self, room: Room, player_id: str, x) -> List[Outbound]:
        """Clamp and forward one sample to every other member, one message each."""
        player = self.member(room, player_id)
        if not room.is_playing or not player.alive:
            return []
        value = _as_coordinate(x)
        if value is not None:
            player.x = max(self.min_x, min(self.max_x, value))
        sample = {'id': player.id, 'x': player.x, 't': self.clock()}
        return [
            send_to(other, 'positions', positions=[dict(sample)])
            for other in room.players if other != player.id
        ]

    def player_death(self, room: Room, player_id: str) -> List[Outbound]:
        player = self.member(room, player_id)
        if not room.is_playing or not player.alive:
            return []
        player.alive = False
        player.death_time = self.clock()
        events = [broadcast(room, 'player_dead', id=player.id)]
        events.extend(self.evaluate_round_end(room))
        return events

    def evaluate_round_end(self, room: Room) -> List[Outbound]:
        if not room.is_playing:
            return []
        alive = room.alive_players()
        if len(alive) > 1:
            return []
        winner_id = alive[0].id if alive else None
        events = [broadcast(room, 'round_end', winnerId=winner_id, ranks=build_ranks(room))]
        room.status = RoomStatus.LOBBY
        room.seed = None
        room.start_time = None
        for p in room.players.values():
            p.ready = False
            p.alive = True
        events.append(room_state(room))
        return events
