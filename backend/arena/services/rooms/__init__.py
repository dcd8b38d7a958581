"""Room domain services: registry, state machine and round sync.

This package holds the room logic imported by the Socket.IO gateway and the
HTTP routes, keeping transport concerns apart from session mechanics.
"""

from .lifecycle import Outbound, RoomError, RoomService, build_ranks
from .registry import RoomRegistry
from .sync import HazardSpawner, Mulberry32, RoundClock, generate_seed, spawn_interval

__all__ = [
    'HazardSpawner',
    'Mulberry32',
    'Outbound',
    'RoomError',
    'RoomRegistry',
    'RoomService',
    'RoundClock',
    'build_ranks',
    'generate_seed',
    'spawn_interval',
]
