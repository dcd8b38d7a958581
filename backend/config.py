import os

class Config:
    SECRET_KEY = os.environ.get('SECRET_KEY') or 'you-will-never-guess'
    # Comma separated list of browser origins allowed to open a socket
    CORS_ORIGINS = [o.strip() for o in os.environ.get(
        'CORS_ORIGINS',
        'http://localhost:5173,http://127.0.0.1:5173,http://localhost:8080,http://127.0.0.1:8080',
    ).split(',') if o.strip()]
    LOG_LEVEL = os.environ.get('LOG_LEVEL', 'INFO')
    # Room capacity and code shape
    MAX_PLAYERS = int(os.environ.get('MAX_PLAYERS', '4'))
    ROOM_CODE_LENGTH = int(os.environ.get('ROOM_CODE_LENGTH', '6'))
    NAME_MAX_LENGTH = int(os.environ.get('NAME_MAX_LENGTH', '16'))
    # Delay between accepting start_round and simulation time zero (ms)
    ROUND_LEAD_MS = int(os.environ.get('ROUND_LEAD_MS', '1500'))
    # Horizontal arena bounds for relayed positions
    ARENA_MIN_X = float(os.environ.get('ARENA_MIN_X', '21'))
    ARENA_MAX_X = float(os.environ.get('ARENA_MAX_X', '459'))
