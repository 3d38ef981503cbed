import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional

from flask import current_app

from poolrelay.delivery import Delivery, PendingQueues, send_to_room, send_to_room_except
from poolrelay.errors import RoomFull, RoomNotFound
from poolrelay.models import Player, Room
from poolrelay.protocol import (
    AimUpdate, BallPocketed, Chat, CreateRoom, EventType, GameOver, JoinRoom,
    Leave, Rematch, Shoot, TurnEnd, make_event,
)
from poolrelay.registry import RoomRegistry

logger = logging.getLogger(__name__)


class RoomCoordinator:
    """Applies protocol actions to rooms and fans out the resulting events.

    All state changes for a room happen under ``room.lock`` and before the
    deliveries they trigger, so the order of state transitions is fixed even
    though delivery order across the two players is not.
    """

    def __init__(self, registry: RoomRegistry, enforce_turn_order: bool = True):
        self.registry = registry
        self.enforce_turn_order = enforce_turn_order
        self._handlers = {
            AimUpdate: self._aim,
            Shoot: self._shoot,
            TurnEnd: self._turn_end,
            BallPocketed: self._ball_pocketed,
            GameOver: self._game_over,
            Rematch: self._rematch,
            Chat: self._chat,
        }

    def dispatch(self, player_id: str, action, delivery: Delivery, room_code: Optional[str] = None):
        """Entry point for adapters.

        Returns the reply event for create/join, otherwise whether the
        action reached a room the caller sits in.
        """
        if isinstance(action, CreateRoom):
            return self.create_room(player_id, action.name, delivery)
        if isinstance(action, JoinRoom):
            return self.join_room(action.room_code, player_id, action.name, delivery)
        if isinstance(action, Leave):
            return self.leave(player_id, room_code=room_code)
        return self.handle(player_id, action, room_code=room_code)

    def create_room(self, player_id: str, name: str, delivery: Delivery) -> Dict[str, Any]:
        if self.registry.room_for(player_id) is not None:
            self.leave(player_id)
        room = self.registry.create(player_id, name, delivery)
        delivery.attach(player_id)
        reply = make_event(EventType.ROOM_CREATED, code=room.code, playerNumber=1)
        delivery.acknowledge(player_id, reply)
        return reply

    def join_room(self, code: str, player_id: str, name: str, delivery: Delivery) -> Dict[str, Any]:
        room = self.registry.get(code)
        if room is None:
            raise RoomNotFound()
        # Refuse before touching the caller's current seat
        with room.lock:
            if room.is_empty():
                raise RoomNotFound()
            seated = room.player(player_id)
            if seated is not None:
                opponent = room.opponent_of(player_id)
                reply = make_event(
                    EventType.ROOM_JOINED,
                    code=room.code,
                    playerNumber=seated.slot,
                    opponentName=opponent.name if opponent else None,
                )
                delivery.acknowledge(player_id, reply)
                return reply
            if room.is_full():
                raise RoomFull()
        current = self.registry.room_for(player_id)
        if current is not None and current is not room:
            self.leave(player_id)
        with room.lock:
            # Emptied and deleted while we waited for the lock
            if room.is_empty():
                raise RoomNotFound()
            player = room.add_player(player_id, name, delivery)
            room.start()
            self.registry.bind_player(player_id, room.code)
            delivery.attach(player_id)
            opponent = room.opponent_of(player_id)
            reply = make_event(
                EventType.ROOM_JOINED,
                code=room.code,
                playerNumber=player.slot,
                opponentName=opponent.name,
            )
            delivery.acknowledge(player_id, reply)
            opponent.delivery.deliver(opponent.id, make_event(EventType.OPPONENT_JOINED, opponentName=name))
            send_to_room(room, make_event(
                EventType.GAME_START,
                currentTurn=room.current_turn,
                player1Name=self._name_in_slot(room, 1),
                player2Name=self._name_in_slot(room, 2),
            ))
        logger.info(f"[room-joined] code={room.code} name={name} slot={player.slot}")
        return reply

    def handle(self, player_id: str, action, room_code: Optional[str] = None) -> bool:
        handler = self._handlers.get(type(action))
        if handler is None:
            raise TypeError(f"No room handler for {type(action).__name__}")
        room = self._room_of(player_id, room_code)
        if room is None:
            return False
        with room.lock:
            player = room.player(player_id)
            if player is None:
                return False
            handler(room, player, action)
        return True

    def leave(self, player_id: str, room_code: Optional[str] = None) -> bool:
        room = self._room_of(player_id, room_code)
        if room is None:
            self.registry.unbind_player(player_id)
            return False
        with room.lock:
            player = room.remove_player(player_id)
            if player is None:
                return False
            self.registry.unbind_player(player_id)
            player.delivery.discard(player_id)
            send_to_room(room, make_event(EventType.OPPONENT_LEFT))
            if room.is_empty():
                self.registry.discard(room)
        logger.info(f"[player-left] code={room.code} slot={player.slot} remaining={len(room.players)}")
        return True

    def reap_idle(self, queues: PendingQueues, timeout: float) -> int:
        """Treat poll players that stopped polling as having left."""
        reaped = 0
        for player_id in queues.idle_players(timeout):
            self.leave(player_id)
            queues.discard(player_id)
            reaped += 1
        if reaped:
            logger.info(f"[reap-idle] players={reaped} timeout={timeout}s")
        return reaped

    # ---- room actions (called with room.lock held) ----

    def _aim(self, room: Room, player: Player, action: AimUpdate) -> None:
        send_to_room_except(room, player.id, make_event(
            EventType.OPPONENT_AIM,
            aiming=action.aiming,
            direction=action.direction,
            power=action.power,
        ))

    def _shoot(self, room: Room, player: Player, action: Shoot) -> None:
        if self.enforce_turn_order and room.current_turn != player.slot:
            logger.debug(f"[shoot-ignored] code={room.code} slot={player.slot} turn={room.current_turn}")
            return
        send_to_room_except(room, player.id, make_event(
            EventType.OPPONENT_SHOT,
            direction=action.direction,
            power=action.power,
        ))

    def _turn_end(self, room: Room, player: Player, action: TurnEnd) -> None:
        if not room.started:
            return
        if action.turn is not None and action.turn != room.current_turn:
            logger.debug(f"[turn-end-stale] code={room.code} claimed={action.turn} turn={room.current_turn}")
            return
        room.flip_turn()
        send_to_room(room, make_event(
            EventType.TURN_CHANGE,
            currentTurn=room.current_turn,
            ballPositions=action.ball_positions,
            scores=action.scores,
            pocketed=action.pocketed,
        ))

    def _ball_pocketed(self, room: Room, player: Player, action: BallPocketed) -> None:
        send_to_room_except(room, player.id, make_event(EventType.BALL_POCKETED, ballNumber=action.ball_number))

    def _game_over(self, room: Room, player: Player, action: GameOver) -> None:
        room.finished = True
        send_to_room(room, make_event(EventType.GAME_OVER, winner=action.winner))
        logger.info(f"[game-over] code={room.code} winner={action.winner}")

    def _rematch(self, room: Room, player: Player, action: Rematch) -> None:
        if room.vote_rematch(player.slot):
            send_to_room(room, make_event(EventType.REMATCH_START, currentTurn=room.current_turn))
            logger.info(f"[rematch] code={room.code}")
        else:
            send_to_room_except(room, player.id, make_event(EventType.REMATCH_REQUEST, **{'from': player.slot}))

    def _chat(self, room: Room, player: Player, action: Chat) -> None:
        send_to_room_except(room, player.id, make_event(EventType.CHAT, message=action.message, **{'from': player.slot}))

    # ---- helpers ----

    def _room_of(self, player_id: str, room_code: Optional[str]) -> Optional[Room]:
        if room_code is not None:
            return self.registry.get(room_code)
        return self.registry.room_for(player_id)

    @staticmethod
    def _name_in_slot(room: Room, slot: int) -> Optional[str]:
        player = room.player_in_slot(slot)
        return player.name if player else None


@dataclass
class Relay:
    """Everything one application instance needs to run the relay."""

    registry: RoomRegistry
    queues: PendingQueues
    coordinator: RoomCoordinator
    push: Delivery
    poll: Delivery


def get_relay() -> Relay:
    return current_app.extensions['poolrelay']
