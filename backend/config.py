import os

def _env_bool(name, default):
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in ('1', 'true', 'yes', 'on')

class Config:
    SECRET_KEY = os.environ.get('SECRET_KEY') or 'you-will-never-guess'
    HOST = os.environ.get('HOST', '0.0.0.0')
    PORT = int(os.environ.get('PORT', '3000'))
    CORS_ORIGINS = os.environ.get('CORS_ORIGINS', '*')
    # Socket.IO namespace used by the push transport
    PUSH_NAMESPACE = os.environ.get('PUSH_NAMESPACE', '/ws')
    # Empty-room sweep period (seconds)
    SWEEP_INTERVAL_SEC = int(os.environ.get('SWEEP_INTERVAL_SEC', '60'))
    # Per-player pending queue cap for the poll transport. 0 disables.
    POLL_QUEUE_MAX = int(os.environ.get('POLL_QUEUE_MAX', '1000'))
    # Reap poll players that stopped polling (seconds). 0 disables.
    POLL_IDLE_TIMEOUT_SEC = int(os.environ.get('POLL_IDLE_TIMEOUT_SEC', '0'))
    # Only the player holding the turn may shoot
    ENFORCE_TURN_ORDER = _env_bool('ENFORCE_TURN_ORDER', True)
    # Let socketio.run serve on the Werkzeug dev server outside debug mode
    ALLOW_UNSAFE_WERKZEUG = _env_bool('ALLOW_UNSAFE_WERKZEUG', False)
