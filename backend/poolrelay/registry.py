import logging
import threading
from typing import Callable, Dict, List, Optional

from .codes import generate_room_code
from .delivery import Delivery
from .models import Room

logger = logging.getLogger(__name__)


class RoomRegistry:
    """In-memory code -> Room map plus a player -> code index.

    Lock order is room lock first, then registry lock. The registry never
    takes a room lock while holding its own.
    """

    def __init__(self, code_factory: Callable[[], str] = generate_room_code):
        self._code_factory = code_factory
        self._rooms: Dict[str, Room] = {}
        self._player_rooms: Dict[str, str] = {}
        self._lock = threading.RLock()

    def create(self, host_id: str, host_name: str, delivery: Delivery) -> Room:
        """Register a new room with its host already seated in slot 1."""
        with self._lock:
            code = self._code_factory()
            while code in self._rooms:
                code = self._code_factory()
            room = Room(code)
            room.add_player(host_id, host_name, delivery)
            self._rooms[code] = room
            self._player_rooms[host_id] = code
        logger.info(f"[room-created] code={code} name={host_name}")
        return room

    def get(self, code: str) -> Optional[Room]:
        with self._lock:
            return self._rooms.get(code)

    def delete(self, code: str) -> Optional[Room]:
        with self._lock:
            room = self._rooms.pop(code, None)
            if room is None:
                return None
            for pid in [pid for pid, c in self._player_rooms.items() if c == code]:
                del self._player_rooms[pid]
        logger.info(f"[room-deleted] code={code}")
        return room

    def discard(self, room: Room) -> bool:
        """Delete ``room`` only if its code still maps to this very room."""
        with self._lock:
            if self._rooms.get(room.code) is not room:
                return False
            self.delete(room.code)
            return True

    def bind_player(self, player_id: str, code: str) -> None:
        with self._lock:
            self._player_rooms[player_id] = code

    def unbind_player(self, player_id: str) -> None:
        with self._lock:
            self._player_rooms.pop(player_id, None)

    def room_for(self, player_id: str) -> Optional[Room]:
        with self._lock:
            code = self._player_rooms.get(player_id)
            return self._rooms.get(code) if code else None

    def sweep_empty(self) -> List[str]:
        """Remove rooms that currently have no players. Returns removed codes."""
        with self._lock:
            snapshot = list(self._rooms.values())
        removed = []
        for room in snapshot:
            with room.lock:
                if room.is_empty() and self.discard(room):
                    removed.append(room.code)
        return removed

    def __contains__(self, code):
        with self._lock:
            return code in self._rooms

    def __len__(self):
        with self._lock:
            return len(self._rooms)
