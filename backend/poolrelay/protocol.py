"""Wire protocol: inbound actions and outbound events.

Actions are a closed set of frozen dataclasses keyed by their ``type`` tag.
Events are plain ``{type, ...}`` dicts so they serialize unchanged over
Socket.IO and in poll responses.
"""

import json
from dataclasses import dataclass
from enum import Enum
from typing import Any, ClassVar, Dict, Optional

from .errors import MalformedMessage, UnknownAction


class EventType(str, Enum):
    ROOM_CREATED = 'room_created'
    ROOM_JOINED = 'room_joined'
    OPPONENT_JOINED = 'opponent_joined'
    GAME_START = 'game_start'
    OPPONENT_AIM = 'opponent_aim'
    OPPONENT_SHOT = 'opponent_shot'
    TURN_CHANGE = 'turn_change'
    BALL_POCKETED = 'ball_pocketed'
    GAME_OVER = 'game_over'
    REMATCH_REQUEST = 'rematch_request'
    REMATCH_START = 'rematch_start'
    OPPONENT_LEFT = 'opponent_left'
    CHAT = 'chat'
    ERROR = 'error'


def make_event(kind: EventType, **fields) -> Dict[str, Any]:
    event = {'type': EventType(kind).value}
    event.update(fields)
    return event


def normalize_room_code(value) -> str:
    return str(value or '').strip().upper()


def _require(data: Dict[str, Any], key: str):
    if key not in data:
        raise MalformedMessage(f"Missing field '{key}'")
    return data[key]


@dataclass(frozen=True)
class CreateRoom:
    tag: ClassVar[str] = 'create_room'
    name: str = 'Player 1'

    @classmethod
    def from_payload(cls, data):
        return cls(name=str(data.get('name') or 'Player 1'))


@dataclass(frozen=True)
class JoinRoom:
    tag: ClassVar[str] = 'join_room'
    room_code: str
    name: str = 'Player 2'

    @classmethod
    def from_payload(cls, data):
        # A missing code is looked up like any other and comes back "Room not found"
        return cls(
            room_code=normalize_room_code(data.get('roomCode')),
            name=str(data.get('name') or 'Player 2'),
        )


@dataclass(frozen=True)
class AimUpdate:
    tag: ClassVar[str] = 'aim_update'
    aiming: Any
    direction: Any
    power: Any

    @classmethod
    def from_payload(cls, data):
        return cls(
            aiming=_require(data, 'aiming'),
            direction=_require(data, 'direction'),
            power=_require(data, 'power'),
        )


@dataclass(frozen=True)
class Shoot:
    tag: ClassVar[str] = 'shoot'
    direction: Any
    power: Any

    @classmethod
    def from_payload(cls, data):
        return cls(direction=_require(data, 'direction'), power=_require(data, 'power'))


@dataclass(frozen=True)
class TurnEnd:
    tag: ClassVar[str] = 'turn_end'
    ball_positions: Any
    scores: Any
    pocketed: Any = None
    # Slot whose turn is ending; when given, stale turn_ends are ignored
    turn: Optional[int] = None

    @classmethod
    def from_payload(cls, data):
        turn = data.get('turn')
        if turn is not None and turn not in (1, 2):
            raise MalformedMessage("Field 'turn' must be 1 or 2")
        return cls(
            ball_positions=_require(data, 'ballPositions'),
            scores=_require(data, 'scores'),
            pocketed=data.get('pocketed'),
            turn=turn,
        )


@dataclass(frozen=True)
class BallPocketed:
    tag: ClassVar[str] = 'ball_pocketed'
    ball_number: Any

    @classmethod
    def from_payload(cls, data):
        return cls(ball_number=_require(data, 'ballNumber'))


@dataclass(frozen=True)
class GameOver:
    tag: ClassVar[str] = 'game_over'
    winner: Any

    @classmethod
    def from_payload(cls, data):
        return cls(winner=_require(data, 'winner'))


@dataclass(frozen=True)
class Rematch:
    tag: ClassVar[str] = 'rematch'

    @classmethod
    def from_payload(cls, data):
        return cls()


@dataclass(frozen=True)
class Chat:
    tag: ClassVar[str] = 'chat'
    message: str

    @classmethod
    def from_payload(cls, data):
        return cls(message=str(_require(data, 'message')))


@dataclass(frozen=True)
class Leave:
    tag: ClassVar[str] = 'leave'

    @classmethod
    def from_payload(cls, data):
        return cls()


ACTIONS = {
    cls.tag: cls
    for cls in (CreateRoom, JoinRoom, AimUpdate, Shoot, TurnEnd, BallPocketed, GameOver, Rematch, Chat, Leave)
}


def parse_action(data):
    """Decode a ``{type, ...}`` envelope (dict or JSON text) into an action.

    Raises MalformedMessage for undecodable or incomplete payloads and
    UnknownAction for tags outside the protocol.
    """
    if isinstance(data, (str, bytes, bytearray)):
        try:
            data = json.loads(data)
        except ValueError as exc:
            raise MalformedMessage() from exc
    if not isinstance(data, dict):
        raise MalformedMessage()
    action_cls = ACTIONS.get(data.get('type'))
    if action_cls is None:
        raise UnknownAction(f"Unknown action: {data.get('type')!r}")
    return action_cls.from_payload(data)
