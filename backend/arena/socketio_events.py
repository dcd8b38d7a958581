from dataclasses import dataclass
from typing import Dict, Optional

from flask import current_app, request
from flask_socketio import disconnect

from arena import socketio
from arena.models import Room
from arena.protocol import (
    COMMAND_TYPES,
    CreateRoom,
    Dead,
    JoinRoom,
    Leave,
    Position,
    ProtocolError,
    SetOptions,
    SetReady,
    StartRound,
    encode,
    encode_message,
    parse,
)
from arena.services.rooms import RoomError, RoomService


@dataclass
class Session:
    """Binding of one connection to its room and player for its lifetime."""
    room_code: str
    player_id: str
    namespace: str


def _service() -> RoomService:
    return current_app.extensions['arena']['rooms']


def _sessions() -> Dict[str, Session]:
    return current_app.extensions['arena']['sessions']


def _get_sid() -> str:
    return request.sid  # type: ignore[attr-defined]


def _send_error(code: str, msg: str) -> None:
    socketio.send(encode('error', code=code, msg=msg), to=_get_sid(), namespace=request.namespace)


def _deliver(room: Room, events, namespace: str) -> None:
    """Send each event to its recipients in order. Caller holds room.lock."""
    for out in events:
        payload = encode_message(out.message)
        for pid in out.recipients:
            player = room.players.get(pid)
            if player is None or player.sid is None:
                continue
            socketio.send(payload, to=player.sid, namespace=namespace)


def _bound_room(session: Optional[Session]) -> Optional[Room]:
    if session is None:
        return None
    return _service().registry.lookup(session.room_code)


# ---- command handlers ----

def _claim_session() -> Session:
    """Reserve this connection's single room binding, or refuse if it has one."""
    claim = Session('', '', request.namespace)
    if _sessions().setdefault(_get_sid(), claim) is not claim:
        raise RoomError('in_progress', 'Already in a room')
    return claim


def _on_create_room(command: CreateRoom) -> None:
    sid = _get_sid()
    claim = _claim_session()
    room, player, events = _service().create_room(command.name, sid=sid)
    with room.lock:
        claim.room_code, claim.player_id = room.id, player.id
        _deliver(room, events, request.namespace)
    current_app.logger.info(f"[room-create] room={room.id} host={player.id} name={player.name!r}")


def _on_join_room(command: JoinRoom) -> None:
    sid = _get_sid()
    claim = _claim_session()
    try:
        room = _service().registry.lookup(command.room_id)
        if room is None:
            raise RoomError('no_room', 'Room not found')
        with room.lock:
            player, events = _service().join_room(room, command.name, sid=sid)
            claim.room_code, claim.player_id = room.id, player.id
            _deliver(room, events, request.namespace)
    except RoomError:
        _sessions().pop(sid, None)
        raise
    current_app.logger.info(f"[room-join] room={room.id} player={player.id} size={len(room.players)}")


def _in_room(action):
    """Run ``action(service, room, player_id)`` under the bound room's lock."""
    session = _sessions().get(_get_sid())
    room = _bound_room(session)
    if room is None:
        raise RoomError('no_room', 'Not in room')
    with room.lock:
        events = action(_service(), room, session.player_id)
        _deliver(room, events, session.namespace)
    return room


def _on_set_ready(command: SetReady) -> None:
    _in_room(lambda svc, room, pid: svc.set_ready(room, pid, command.ready))


def _on_set_options(command: SetOptions) -> None:
    room = _in_room(lambda svc, room, pid: svc.set_options(
        room, pid, difficulty=command.difficulty, player_collision=command.player_collision,
    ))
    current_app.logger.info(f"[room-options] room={room.id} options={room.options}")


def _on_start_round(command: StartRound) -> None:
    room = _in_room(lambda svc, room, pid: svc.start_round(room, pid))
    current_app.logger.info(
        f"[round-start] room={room.id} seed={room.seed} start={room.start_time} players={len(room.players)}"
    )


def _on_position(command: Position) -> None:
    _in_room(lambda svc, room, pid: svc.relay_position(room, pid, command.x))


def _on_dead(command: Dead) -> None:
    _in_room(lambda svc, room, pid: svc.player_death(room, pid))


def _on_leave(command: Leave) -> None:
    _leave_current_room('leave')
    disconnect()


_HANDLERS = {
    CreateRoom: _on_create_room,
    JoinRoom: _on_join_room,
    SetReady: _on_set_ready,
    SetOptions: _on_set_options,
    StartRound: _on_start_round,
    Position: _on_position,
    Dead: _on_dead,
    Leave: _on_leave,
}

_unhandled = set(COMMAND_TYPES) - set(_HANDLERS)
if _unhandled:
    raise RuntimeError(f"no gateway handler for {sorted(c.__name__ for c in _unhandled)}")


def _leave_current_room(reason: str) -> None:
    session = _sessions().pop(_get_sid(), None)
    room = _bound_room(session)
    if room is None:
        return
    with room.lock:
        events = _service().remove_player(room, session.player_id)
        _deliver(room, events, session.namespace)
        remaining = len(room.players)
    if remaining:
        current_app.logger.info(
            f"[room-leave] room={room.id} player={session.player_id} reason={reason} host={room.host_id}"
        )
    else:
        current_app.logger.info(f"[room-destroy] room={room.id} reason={reason}")


# ---- Socket.IO events ----

def handle_connect():
    current_app.logger.debug(f"[connect] sid={_get_sid()}")


def handle_disconnect(reason=None):
    _leave_current_room('disconnect')


def handle_message(data):
    try:
        command = parse(data)
    except ProtocolError as exc:
        _send_error(exc.code, exc.msg)
        return
    if command is None:
        current_app.logger.debug(f"[message-ignored] sid={_get_sid()} unknown type")
        return
    try:
        _HANDLERS[type(command)](command)
    except RoomError as exc:
        _send_error(exc.code, exc.msg)


def register_socketio_handlers(testing: bool = False) -> None:
    """Register Socket.IO event handlers.

    Always register on namespace '/ws'. When testing is True, also mirror
    handlers on the default namespace '/' to accommodate the test harness.
    """
    namespaces = ['/ws', '/'] if testing else ['/ws']
    for namespace in namespaces:
        socketio.on_event('connect', handle_connect, namespace=namespace)
        socketio.on_event('disconnect', handle_disconnect, namespace=namespace)
        # Text frames arrive as 'message'; dict payloads sent with json=True as 'json'
        socketio.on_event('message', handle_message, namespace=namespace)
        socketio.on_event('json', handle_message, namespace=namespace)
