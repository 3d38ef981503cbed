from flask import current_app, request
from flask_socketio import emit

from poolrelay import socketio
from poolrelay.errors import MalformedMessage, RelayError, UnknownAction
from poolrelay.protocol import ACTIONS, EventType, make_event, parse_action
from poolrelay.services.session import get_relay


def _get_sid() -> str:
    # type: ignore: request.sid exists in Socket.IO context
    return request.sid  # type: ignore


def _dispatch(payload) -> None:
    sid = _get_sid()
    try:
        action = parse_action(payload)
    except (MalformedMessage, UnknownAction) as exc:
        current_app.logger.debug(f"[push-drop] sid={sid} reason={exc.message}")
        return
    relay = get_relay()
    try:
        relay.coordinator.dispatch(sid, action, relay.push)
    except RelayError as exc:
        emit('error', make_event(EventType.ERROR, message=exc.message))


def _action_handler(tag):
    def handler(data=None):
        if data is None:
            data = {}
        if not isinstance(data, dict):
            current_app.logger.debug(f"[push-drop] sid={_get_sid()} event={tag} reason=payload is not an object")
            return
        _dispatch(dict(data, type=tag))
    handler.__name__ = f'handle_{tag}'
    return handler


def handle_message(data=None):
    """Raw ``{type, ...}`` envelopes sent with ``send()``, as JSON text or object."""
    _dispatch(data)


def handle_disconnect(reason=None):
    relay = get_relay()
    relay.coordinator.leave(_get_sid())


def register_socketio_handlers(namespace: str = '/ws') -> None:
    """Register push-transport handlers: one named event per protocol action,
    the generic ``message`` event for envelopes, and disconnect cleanup.
    """
    for tag in ACTIONS:
        socketio.on_event(tag, _action_handler(tag), namespace=namespace)
    socketio.on_event('message', handle_message, namespace=namespace)
    socketio.on_event('disconnect', handle_disconnect, namespace=namespace)
