import random
import threading
from enum import Enum
from typing import Dict, List, Optional

ROOM_CODE_ALPHABET = 'ABCDEFGHJKLMNPQRSTUVWXYZ23456789'
DIFFICULTIES = ('easy', 'normal', 'hard')
DEFAULT_NAME = 'Player'
DEFAULT_X = 240.0


class RoomStatus(str, Enum):
    LOBBY = 'lobby'
    PLAYING = 'playing'


def generate_room_code(length=6, rng=None):
    """Generate a short code with no 0/O/1/I to keep it typeable."""
    rng = rng or random
    return ''.join(rng.choice(ROOM_CODE_ALPHABET) for _ in range(length))


def sanitize_name(name, max_length=16):
    text = '' if name is None else str(name)
    text = text.strip()[:max_length]
    return text or DEFAULT_NAME


class Player:
    def __init__(self, id: str, name: str):
        self.id = id
        self.name = name
        self.ready = False
        self.alive = True
        self.x = DEFAULT_X
        self.death_time: Optional[int] = None
        # Socket.IO sid the gateway delivers to
        self.sid: Optional[str] = None

    def to_dict(self):
        return {
            'id': self.id,
            'name': self.name,
            'ready': bool(self.ready),
            'alive': bool(self.alive),
        }


class Room:
    """One isolated session. Membership order is join order."""

    def __init__(self, id: str):
        self.id = id
        self.status = RoomStatus.LOBBY
        self.host_id: Optional[str] = None
        self.players: Dict[str, Player] = {}
        self.options = {'difficulty': 'normal', 'playerCollision': False}
        self.seed: Optional[int] = None
        self.start_time: Optional[int] = None
        # Set once the registry has dropped the room; late commands see no_room
        self.closed = False
        self.lock = threading.RLock()

    @property
    def is_playing(self) -> bool:
        return self.status == RoomStatus.PLAYING

    def alive_players(self) -> List[Player]:
        return [p for p in self.players.values() if p.alive]

    def to_dict(self):
        return {
            'roomId': self.id,
            'hostId': self.host_id,
            'status': self.status.value,
            'options': dict(self.options),
            'players': [p.to_dict() for p in self.players.values()],
        }
