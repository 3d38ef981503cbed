from flask import Blueprint, jsonify, request, current_app

from poolrelay.codes import generate_player_id
from poolrelay.errors import MalformedMessage, RelayError
from poolrelay.protocol import normalize_room_code, parse_action
from poolrelay.services.session import get_relay


poll = Blueprint('poll', __name__)


@poll.errorhandler(RelayError)
def handle_relay_error(exc):
    return jsonify(exc.to_dict()), exc.status_code


def _json_body() -> dict:
    data = request.get_json(force=True, silent=True)
    if not isinstance(data, dict):
        raise MalformedMessage()
    return data


def _relay_action(tag: str):
    """Apply an in-room action for the player named in the body.

    Answers success even when the room or player is unknown; there is
    nobody to relay to in that case.
    """
    data = _json_body()
    action = parse_action(dict(data, type=tag))
    relay = get_relay()
    relay.coordinator.dispatch(
        str(data.get('playerId') or ''),
        action,
        relay.poll,
        room_code=normalize_room_code(data.get('roomCode')),
    )
    return jsonify({'success': True})


@poll.route('/create', methods=['POST'])
def create_room():
    data = _json_body()
    action = parse_action(dict(data, type='create_room'))
    relay = get_relay()
    player_id = generate_player_id()
    reply = relay.coordinator.dispatch(player_id, action, relay.poll)
    current_app.logger.info(f"[poll-create] code={reply['code']} name={action.name}")
    return jsonify({
        'success': True,
        'playerId': player_id,
        'roomCode': reply['code'],
        'playerNumber': reply['playerNumber'],
    })


@poll.route('/join', methods=['POST'])
def join_room():
    data = _json_body()
    action = parse_action(dict(data, type='join_room'))
    relay = get_relay()
    player_id = generate_player_id()
    reply = relay.coordinator.dispatch(player_id, action, relay.poll)
    return jsonify({
        'success': True,
        'playerId': player_id,
        'roomCode': reply['code'],
        'playerNumber': reply['playerNumber'],
        'opponentName': reply['opponentName'],
    })


@poll.route('/aim', methods=['POST'])
def aim():
    return _relay_action('aim_update')


@poll.route('/shoot', methods=['POST'])
def shoot():
    return _relay_action('shoot')


@poll.route('/turn_end', methods=['POST'])
def turn_end():
    return _relay_action('turn_end')


@poll.route('/ball_pocketed', methods=['POST'])
def ball_pocketed():
    return _relay_action('ball_pocketed')


@poll.route('/game_over', methods=['POST'])
def game_over():
    return _relay_action('game_over')


@poll.route('/rematch', methods=['POST'])
def rematch():
    return _relay_action('rematch')


@poll.route('/chat', methods=['POST'])
def chat():
    return _relay_action('chat')


@poll.route('/leave', methods=['POST'])
def leave():
    data = _json_body()
    player_id = str(data.get('playerId') or '')
    relay = get_relay()
    relay.coordinator.leave(player_id, room_code=normalize_room_code(data.get('roomCode')))
    # The queue goes even when the room is already gone
    relay.queues.discard(player_id)
    return jsonify({'success': True})


@poll.route('/poll', methods=['GET'])
def poll_messages():
    player_id = request.args.get('playerId')
    if not player_id:
        return jsonify({'error': 'Missing playerId'}), 400
    messages = get_relay().queues.drain(player_id)
    return jsonify({'messages': messages})
