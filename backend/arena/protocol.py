"""Wire codec: one JSON object per frame, discriminated by ``type``."""

import json
from dataclasses import dataclass
from typing import Any, Dict, Optional, Type


class ProtocolError(Exception):
    def __init__(self, code: str, msg: str):
        super().__init__(msg)
        self.code = code
        self.msg = msg


@dataclass(frozen=True)
class CreateRoom:
    name: Any = None


@dataclass(frozen=True)
class JoinRoom:
    room_id: str = ''
    name: Any = None


@dataclass(frozen=True)
class SetReady:
    ready: bool = False


@dataclass(frozen=True)
class SetOptions:
    difficulty: Any = None
    player_collision: Any = None


@dataclass(frozen=True)
class StartRound:
    pass


@dataclass(frozen=True)
class Position:
    x: Any = None


@dataclass(frozen=True)
class Dead:
    pass


@dataclass(frozen=True)
class Leave:
    pass


def _create_room(msg):
    return CreateRoom(name=msg.get('name'))


def _join_room(msg):
    room_id = msg.get('roomId')
    return JoinRoom(room_id='' if room_id is None else str(room_id), name=msg.get('name'))


def _set_ready(msg):
    return SetReady(ready=bool(msg.get('ready')))


def _set_options(msg):
    return SetOptions(difficulty=msg.get('difficulty'), player_collision=msg.get('playerCollision'))


def _position(msg):
    return Position(x=msg.get('x'))


COMMANDS: Dict[str, Any] = {
    'create_room': _create_room,
    'join_room': _join_room,
    'set_ready': _set_ready,
    'set_options': _set_options,
    'start_round': lambda msg: StartRound(),
    'pos': _position,
    'dead': lambda msg: Dead(),
    'leave': lambda msg: Leave(),
}

COMMAND_TYPES: Dict[Type, str] = {
    CreateRoom: 'create_room',
    JoinRoom: 'join_room',
    SetReady: 'set_ready',
    SetOptions: 'set_options',
    StartRound: 'start_round',
    Position: 'pos',
    Dead: 'dead',
    Leave: 'leave',
}


def decode(frame) -> Dict[str, Any]:
    if isinstance(frame, dict):
        return frame
    if isinstance(frame, (bytes, bytearray)):
        try:
            frame = frame.decode('utf-8')
        except UnicodeDecodeError:
            raise ProtocolError('bad_json', 'Invalid JSON')
    if not isinstance(frame, str):
        raise ProtocolError('bad_json', 'Invalid JSON')
    try:
        msg = json.loads(frame)
    except ValueError:
        raise ProtocolError('bad_json', 'Invalid JSON')
    if not isinstance(msg, dict):
        raise ProtocolError('bad_json', 'Invalid JSON')
    return msg


def parse(frame) -> Optional[Any]:
    """Decode a frame into a command object.

    Returns None for a well-formed object whose type is not a known command.
    """
    msg = decode(frame)
    type_ = msg.get('type')
    builder = COMMANDS.get(type_) if isinstance(type_, str) else None
    if builder is None:
        return None
    return builder(msg)


def encode(type_: str, **fields) -> str:
    message = {'type': type_}
    message.update(fields)
    return encode_message(message)


def encode_message(message: dict) -> str:
    return json.dumps(message, separators=(',', ':'))
