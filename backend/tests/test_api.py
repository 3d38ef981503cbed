def _create(client, name='Alice'):
    res = client.post('/create', json={'name': name})
    assert res.status_code == 200
    return res.get_json()


def _pair(client):
    host = _create(client)
    guest = client.post('/join', json={'roomCode': host['roomCode'], 'name': 'Bob'}).get_json()
    return host, guest


def _poll(client, player_id):
    res = client.get(f'/poll?playerId={player_id}')
    assert res.status_code == 200
    return res.get_json()['messages']


def test_health(client):
    for path in ('/', '/health'):
        res = client.get(path)
        assert res.status_code == 200
        assert res.mimetype == 'text/plain'
        assert b'OK' in res.data


def test_create_room(client, relay):
    data = _create(client)
    assert data['success'] is True
    assert data['playerNumber'] == 1
    assert len(data['roomCode']) == 6
    assert data['playerId']
    assert data['roomCode'] in relay.registry
    # Creation is acknowledged by the response alone
    assert _poll(client, data['playerId']) == []


def test_join_room(client):
    host = _create(client)
    res = client.post('/join', json={'roomCode': host['roomCode'].lower(), 'name': 'Bob'})
    assert res.status_code == 200
    guest = res.get_json()
    assert guest['success'] is True
    assert guest['playerNumber'] == 2
    assert guest['roomCode'] == host['roomCode']
    assert guest['opponentName'] == 'Alice'
    assert guest['playerId'] != host['playerId']

    host_msgs = _poll(client, host['playerId'])
    assert [m['type'] for m in host_msgs] == ['opponent_joined', 'game_start']
    assert host_msgs[0]['opponentName'] == 'Bob'
    assert host_msgs[1] == {'type': 'game_start', 'currentTurn': 1, 'player1Name': 'Alice', 'player2Name': 'Bob'}
    assert [m['type'] for m in _poll(client, guest['playerId'])] == ['game_start']


def test_join_errors(client):
    res = client.post('/join', json={'roomCode': 'ZZZZZZ', 'name': 'Bob'})
    assert res.status_code == 400
    assert res.get_json() == {'error': 'Room not found'}

    host, _ = _pair(client)
    res = client.post('/join', json={'roomCode': host['roomCode'], 'name': 'Eve'})
    assert res.status_code == 400
    assert res.get_json() == {'error': 'Room is full'}


def test_aim_without_opponent(client):
    host = _create(client)
    res = client.post('/aim', json={
        'roomCode': host['roomCode'], 'playerId': host['playerId'],
        'aiming': True, 'direction': 1.5, 'power': 20,
    })
    assert res.status_code == 200
    assert res.get_json() == {'success': True}
    assert _poll(client, host['playerId']) == []


def test_shoot_respects_turn_order(client):
    host, guest = _pair(client)
    _poll(client, host['playerId'])
    _poll(client, guest['playerId'])

    out_of_turn = {'roomCode': host['roomCode'], 'playerId': guest['playerId'], 'direction': 0.1, 'power': 5}
    assert client.post('/shoot', json=out_of_turn).get_json() == {'success': True}
    assert _poll(client, host['playerId']) == []

    in_turn = {'roomCode': host['roomCode'], 'playerId': host['playerId'], 'direction': 0.1, 'power': 5}
    client.post('/shoot', json=in_turn)
    assert _poll(client, host['playerId']) == []
    assert _poll(client, guest['playerId']) == [{'type': 'opponent_shot', 'direction': 0.1, 'power': 5}]


def test_turn_end_flips_and_broadcasts(client, relay):
    host, guest = _pair(client)
    _poll(client, host['playerId'])
    _poll(client, guest['playerId'])

    body = {'roomCode': host['roomCode'], 'playerId': host['playerId'], 'ballPositions': [[1, 1]], 'scores': {'1': 1}}
    assert client.post('/turn_end', json=body).get_json() == {'success': True}
    for pid in (host['playerId'], guest['playerId']):
        msgs = _poll(client, pid)
        assert msgs == [{'type': 'turn_change', 'currentTurn': 2, 'ballPositions': [[1, 1]], 'scores': {'1': 1}, 'pocketed': None}]
    assert relay.registry.get(host['roomCode']).current_turn == 2


def test_chat_game_over_and_rematch(client):
    host, guest = _pair(client)
    code = host['roomCode']
    _poll(client, host['playerId'])
    _poll(client, guest['playerId'])

    client.post('/chat', json={'roomCode': code, 'playerId': guest['playerId'], 'message': 'nice shot'})
    client.post('/ball_pocketed', json={'roomCode': code, 'playerId': guest['playerId'], 'ballNumber': 3})
    assert _poll(client, host['playerId']) == [
        {'type': 'chat', 'message': 'nice shot', 'from': 2},
        {'type': 'ball_pocketed', 'ballNumber': 3},
    ]
    assert _poll(client, guest['playerId']) == []

    client.post('/game_over', json={'roomCode': code, 'playerId': host['playerId'], 'winner': 1})
    client.post('/rematch', json={'roomCode': code, 'playerId': host['playerId']})
    assert [m['type'] for m in _poll(client, guest['playerId'])] == ['game_over', 'rematch_request']
    client.post('/rematch', json={'roomCode': code, 'playerId': guest['playerId']})
    assert _poll(client, host['playerId']) == [
        {'type': 'game_over', 'winner': 1},
        {'type': 'rematch_start', 'currentTurn': 1},
    ]


def test_leave_notifies_and_cleans_up(client, relay):
    host, guest = _pair(client)
    code = host['roomCode']
    _poll(client, guest['playerId'])

    res = client.post('/leave', json={'roomCode': code, 'playerId': host['playerId']})
    assert res.get_json() == {'success': True}
    assert host['playerId'] not in relay.queues
    assert _poll(client, guest['playerId']) == [{'type': 'opponent_left'}]
    assert code in relay.registry

    client.post('/leave', json={'roomCode': code, 'playerId': guest['playerId']})
    assert code not in relay.registry
    assert guest['playerId'] not in relay.queues


def test_leave_unknown_room_still_answers(client):
    res = client.post('/leave', json={'roomCode': 'NOPE22', 'playerId': 'whoever'})
    assert res.status_code == 200
    assert res.get_json() == {'success': True}


def test_poll_requires_player_id(client):
    res = client.get('/poll')
    assert res.status_code == 400
    assert res.get_json() == {'error': 'Missing playerId'}


def test_invalid_json_body(client):
    res = client.post('/create', data='not json', content_type='application/json')
    assert res.status_code == 400
    assert res.get_json() == {'error': 'Invalid JSON'}


def test_missing_required_field(client):
    host = _create(client)
    res = client.post('/shoot', json={'roomCode': host['roomCode'], 'playerId': host['playerId']})
    assert res.status_code == 400
    assert 'direction' in res.get_json()['error']


def test_unknown_path(client):
    res = client.post('/teleport', json={})
    assert res.status_code == 404
    assert res.get_json() == {'error': 'Not found'}


def test_cors_is_open(client):
    res = client.options('/create', headers={
        'Origin': 'http://example.com',
        'Access-Control-Request-Method': 'POST',
    })
    assert res.status_code == 200
    assert res.headers.get('Access-Control-Allow-Origin') == '*'
    res = client.get('/health', headers={'Origin': 'http://example.com'})
    assert res.headers.get('Access-Control-Allow-Origin') == '*'
