import threading
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Set

from .delivery import Delivery
from .errors import RoomFull


class RoomState(str, Enum):
    WAITING = 'waiting'    # one player, not started
    ACTIVE = 'active'      # two players have joined; turns alternate
    FINISHED = 'finished'  # game_over broadcast, waiting on rematch votes


@dataclass
class Player:
    id: str
    name: str
    slot: int
    delivery: Delivery = field(repr=False, compare=False)


class Room:
    """Two-seat session. Callers hold ``room.lock`` around every mutation."""

    MAX_PLAYERS = 2

    def __init__(self, code: str):
        self.code = code
        self.players: List[Player] = []
        self.current_turn: Optional[int] = None
        self.started = False
        self.finished = False
        self.rematch_votes: Set[int] = set()
        self.lock = threading.RLock()

    @property
    def state(self) -> RoomState:
        if not self.started:
            return RoomState.WAITING
        return RoomState.FINISHED if self.finished else RoomState.ACTIVE

    def is_empty(self) -> bool:
        return not self.players

    def is_full(self) -> bool:
        return len(self.players) >= self.MAX_PLAYERS

    def player(self, player_id: str) -> Optional[Player]:
        for p in self.players:
            if p.id == player_id:
                return p
        return None

    def opponent_of(self, player_id: str) -> Optional[Player]:
        for p in self.players:
            if p.id != player_id:
                return p
        return None

    def player_in_slot(self, slot: int) -> Optional[Player]:
        for p in self.players:
            if p.slot == slot:
                return p
        return None

    def add_player(self, player_id: str, name: str, delivery: Delivery) -> Player:
        if self.is_full():
            raise RoomFull()
        taken = {p.slot for p in self.players}
        slot = 1 if 1 not in taken else 2
        player = Player(id=player_id, name=name, slot=slot, delivery=delivery)
        self.players.append(player)
        self.players.sort(key=lambda p: p.slot)
        return player

    def remove_player(self, player_id: str) -> Optional[Player]:
        player = self.player(player_id)
        if player is None:
            return None
        self.players.remove(player)
        self.rematch_votes.clear()
        return player

    def start(self) -> None:
        """Second seat filled: the game begins with slot 1 to play."""
        self.started = True
        self.finished = False
        self.current_turn = 1
        self.rematch_votes.clear()

    def flip_turn(self) -> int:
        self.current_turn = 2 if self.current_turn == 1 else 1
        return self.current_turn

    def vote_rematch(self, slot: int) -> bool:
        """Record a vote. True once every seated slot has voted (votes reset)."""
        self.rematch_votes.add(slot)
        seated = {p.slot for p in self.players}
        if len(seated) == self.MAX_PLAYERS and seated <= self.rematch_votes:
            self.rematch_votes.clear()
            self.current_turn = 1
            self.finished = False
            return True
        return False
