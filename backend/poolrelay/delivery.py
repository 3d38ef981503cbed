"""Outbound delivery: hand an event to one player, whatever carries it.

Each seated player is bound to the Delivery of the transport it arrived on,
so room fan-out never needs to know which transport a player uses.
"""

import logging
import threading
import time
from collections import deque
from typing import Any, Deque, Dict, List

logger = logging.getLogger(__name__)


class Delivery:
    """Base delivery. Subclasses implement ``deliver``."""

    def deliver(self, player_id: str, event: Dict[str, Any]) -> None:
        raise NotImplementedError

    def acknowledge(self, player_id: str, event: Dict[str, Any]) -> None:
        """Reply to the caller of create/join. Defaults to a normal delivery."""
        self.deliver(player_id, event)

    def attach(self, player_id: str) -> None:
        """Called when the player takes a seat."""

    def discard(self, player_id: str) -> None:
        """Called when the player leaves; release anything held for it."""


class SocketDelivery(Delivery):
    """Push transport: emit straight to the player's Socket.IO session.

    Fire and forget. A closed session simply never sees the event.
    """

    def __init__(self, socketio, namespace='/ws'):
        self.socketio = socketio
        self.namespace = namespace

    def deliver(self, player_id, event):
        try:
            self.socketio.emit(event['type'], event, to=player_id, namespace=self.namespace)
        except Exception as exc:
            logger.debug(f"[deliver-drop] sid={player_id} type={event.get('type')} error={exc}")


class PendingQueues:
    """Per-player FIFO of undelivered events for the poll transport."""

    def __init__(self, max_depth: int = 0):
        self.max_depth = max_depth
        self._queues: Dict[str, Deque[Dict[str, Any]]] = {}
        self._last_polled: Dict[str, float] = {}
        self._lock = threading.Lock()

    def open(self, player_id: str) -> None:
        with self._lock:
            self._queues.setdefault(player_id, deque())
            self._last_polled[player_id] = time.time()

    def push(self, player_id: str, event: Dict[str, Any]) -> None:
        with self._lock:
            queue = self._queues.setdefault(player_id, deque())
            if self.max_depth and len(queue) >= self.max_depth:
                dropped = queue.popleft()
                logger.warning(f"[queue-overflow] player={player_id} dropped={dropped.get('type')} depth={len(queue)}")
            queue.append(event)

    def drain(self, player_id: str) -> List[Dict[str, Any]]:
        """Return and clear everything queued for the player."""
        with self._lock:
            queue = self._queues.get(player_id)
            if queue is None:
                return []
            self._last_polled[player_id] = time.time()
            messages = list(queue)
            queue.clear()
            return messages

    def discard(self, player_id: str) -> None:
        with self._lock:
            self._queues.pop(player_id, None)
            self._last_polled.pop(player_id, None)

    def idle_players(self, timeout: float, now: float = None) -> List[str]:
        now = time.time() if now is None else now
        with self._lock:
            return [pid for pid, last in self._last_polled.items() if now - last >= timeout]

    def depth(self, player_id: str) -> int:
        with self._lock:
            return len(self._queues.get(player_id, ()))

    def __contains__(self, player_id):
        with self._lock:
            return player_id in self._queues

    def __len__(self):
        with self._lock:
            return len(self._queues)


class QueueDelivery(Delivery):
    """Poll transport: buffer events until the player's next ``GET /poll``."""

    def __init__(self, queues: PendingQueues):
        self.queues = queues

    def deliver(self, player_id, event):
        self.queues.push(player_id, event)

    def acknowledge(self, player_id, event):
        # The HTTP response to /create or /join is the acknowledgement
        pass

    def attach(self, player_id):
        self.queues.open(player_id)

    def discard(self, player_id):
        self.queues.discard(player_id)


def send_to_room(room, event):
    for player in list(room.players):
        player.delivery.deliver(player.id, event)


def send_to_room_except(room, excluded_id, event):
    for player in list(room.players):
        if player.id != excluded_id:
            player.delivery.deliver(player.id, event)
