"""Round synchronisation: seeds, start times and the shared hazard stream.

Clients never exchange hazard state. Each one derives simulation time from
the server's start instant (corrected for its own clock skew) and replays a
seeded generator against that time, so every client draws the same hazards
in the same order no matter how often it renders.
"""

import random
import time
from dataclasses import dataclass
from typing import List, Optional

UINT32_MASK = 0xFFFFFFFF

ARENA_WIDTH = 480
SPAWN_INTERVAL_START_MS = 900.0
SPAWN_INTERVAL_FLOOR_MS = 280.0
SPAWN_INTERVAL_DECAY_MS = 25.0  # per elapsed second
DIFFICULTY_INTERVAL_FACTOR = {'easy': 1.25, 'normal': 1.0, 'hard': 0.8}

HAZARD_MIN_SIZE = 26.0
HAZARD_MAX_SIZE = 44.0
HAZARD_MIN_SPEED = 130.0
HAZARD_MAX_SPEED = 220.0
HAZARD_SPEED_RAMP = 6.0  # px/s added per elapsed second
HAZARD_MAX_ROTATION = 0.8


def now_ms() -> int:
    return int(time.time() * 1000)


def generate_seed(rng=None) -> int:
    rng = rng or random.SystemRandom()
    return rng.getrandbits(32)


def schedule_start(now: int, lead_ms: int = 1500) -> int:
    return int(now) + int(lead_ms)


def _imul(a: int, b: int) -> int:
    return (a * b) & UINT32_MASK


class Mulberry32:
    """Small 32-bit PRNG; identical output for identical seeds on any client."""

    def __init__(self, seed: int):
        self.state = int(seed) & UINT32_MASK

    def next_uint32(self) -> int:
        self.state = (self.state + 0x6D2B79F5) & UINT32_MASK
        t = self.state
        t = _imul(t ^ (t >> 15), t | 1)
        t ^= (t + _imul(t ^ (t >> 7), t | 61)) & UINT32_MASK
        return (t ^ (t >> 14)) & UINT32_MASK

    def random(self) -> float:
        return self.next_uint32() / 4294967296.0

    def uniform(self, lo: float, hi: float) -> float:
        return lo + (hi - lo) * self.random()


class RoundClock:
    """Skew-corrected simulation clock for one round.

    skew is fixed when round_start arrives; elapsed() is recomputed from the
    wall clock on every call rather than summed from frame deltas.
    """

    def __init__(self, server_time: int, start_time: int, received_at: Optional[int] = None):
        if received_at is None:
            received_at = now_ms()
        self.start_time = int(start_time)
        self.skew = int(received_at) - int(server_time)

    def server_now(self, local_now: Optional[int] = None) -> float:
        if local_now is None:
            local_now = now_ms()
        return local_now - self.skew

    def elapsed(self, local_now: Optional[int] = None) -> float:
        """Seconds since the round's start instant, clamped at zero."""
        return max(0.0, (self.server_now(local_now) - self.start_time) / 1000.0)


def spawn_interval(elapsed: float, difficulty: str = 'normal') -> float:
    """Milliseconds until the next hazard; shrinks with time down to the floor."""
    factor = DIFFICULTY_INTERVAL_FACTOR.get(difficulty, 1.0)
    base = SPAWN_INTERVAL_START_MS - SPAWN_INTERVAL_DECAY_MS * elapsed
    return max(SPAWN_INTERVAL_FLOOR_MS, base * factor)


@dataclass(frozen=True)
class Hazard:
    index: int
    spawn_time: float
    x: float
    size: float
    speed: float
    rotation: float

    def y_at(self, elapsed: float) -> float:
        return -self.size + self.speed * max(0.0, elapsed - self.spawn_time)


class HazardSpawner:
    """Catch-up spawner driven only by elapsed time.

    Intervals are taken at the spawn cursor, not at the sampled elapsed
    value, so the number of draws for a given elapsed time does not depend
    on how the caller slices time into frames.
    """

    def __init__(self, seed: int, difficulty: str = 'normal', width: float = ARENA_WIDTH):
        self.seed = int(seed) & UINT32_MASK
        self.difficulty = difficulty
        self.width = width
        self.rng = Mulberry32(self.seed)
        self.next_spawn = 0.0
        self.count = 0

    def _spawn(self, at: float) -> Hazard:
        size = self.rng.uniform(HAZARD_MIN_SIZE, HAZARD_MAX_SIZE)
        x = self.rng.uniform(size / 2, self.width - size / 2)
        speed = self.rng.uniform(HAZARD_MIN_SPEED, HAZARD_MAX_SPEED) + at * HAZARD_SPEED_RAMP
        rotation = self.rng.uniform(-HAZARD_MAX_ROTATION, HAZARD_MAX_ROTATION)
        hazard = Hazard(self.count, at, x, size, speed, rotation)
        self.count += 1
        return hazard

    def advance(self, elapsed: float) -> List[Hazard]:
        spawned = []
        while elapsed >= self.next_spawn:
            at = self.next_spawn
            spawned.append(self._spawn(at))
            self.next_spawn = at + spawn_interval(at, self.difficulty) / 1000.0
        return spawned
