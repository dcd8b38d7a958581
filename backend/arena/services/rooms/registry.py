import random
import threading
from typing import Dict, List, Optional, Set

from arena.models import Room, generate_room_code

PLAYER_ID_LENGTH = 8


class RoomRegistry:
    """Owns the live code -> Room map.

    Codes are unique among live rooms only; a destroyed room's code may be
    handed out again straight away.
    """

    def __init__(self, code_length: int = 6, rng=None):
        self.code_length = code_length
        self._rng = rng or random.SystemRandom()
        self._rooms: Dict[str, Room] = {}
        self._player_ids: Set[str] = set()
        self._lock = threading.Lock()

    def __len__(self):
        with self._lock:
            return len(self._rooms)

    def codes(self) -> List[str]:
        with self._lock:
            return list(self._rooms)

    def create(self) -> Room:
        with self._lock:
            while True:
                code = generate_room_code(self.code_length, self._rng)
                if code not in self._rooms:
                    break
            room = Room(code)
            self._rooms[code] = room
            return room

    def lookup(self, code) -> Optional[Room]:
        if not code:
            return None
        with self._lock:
            return self._rooms.get(str(code).strip().upper())

    def destroy_if_empty(self, code) -> bool:
        """Drop the room if nobody is left in it. Returns True when removed."""
        with self._lock:
            room = self._rooms.get(code)
            if room is None or room.players:
                return False
            room.closed = True
            del self._rooms[code]
            return True

    def new_player_id(self) -> str:
        with self._lock:
            while True:
                pid = generate_room_code(PLAYER_ID_LENGTH, self._rng)
                if pid not in self._player_ids:
                    self._player_ids.add(pid)
                    return pid

    def release_player_id(self, pid: str) -> None:
        with self._lock:
            self._player_ids.discard(pid)

    def clear(self) -> None:
        with self._lock:
            for room in self._rooms.values():
                room.closed = True
            self._rooms.clear()
            self._player_ids.clear()
