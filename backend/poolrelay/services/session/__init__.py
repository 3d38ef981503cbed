"""Session services: the room coordinator and the background sweeper.

Transport adapters (Socket.IO handlers and the poll blueprint) decode
requests into protocol actions and hand them here; nothing in this package
knows which transport a player is using.
"""

from .coordinator import Relay, RoomCoordinator, get_relay  # noqa: F401
