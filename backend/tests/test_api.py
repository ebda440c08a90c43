def test_index_and_health(client):
    assert client.get('/').status_code == 200
    res = client.get('/health')
    assert res.status_code == 200
    assert res.get_json() == {'status': 'ok'}


def test_state_when_idle(client):
    res = client.get('/api/game/state')
    assert res.status_code == 200
    data = res.get_json()
    assert data['phase'] == 'idle'
    assert data['roster'] == {'player_count': 0, 'players': []}
    assert data['durations'] == {'voting': 10, 'answering': 10, 'results': 10}


def test_state_reflects_socket_activity(client, sio_factory):
    alice = sio_factory(uuid='uuid-a')
    sio_factory(uuid='uuid-b')
    alice.emit('propose_round', {'proposer_name': 'Alice'}, namespace='/ws')

    data = client.get('/api/game/state').get_json()
    assert data['phase'] == 'voting'
    assert data['data']['proposer_name'] == 'Alice'
    assert data['data']['quorum_base'] == 2
    assert data['roster']['player_count'] == 2


def test_players_endpoint(client, sio_factory):
    sio_factory(uuid='uuid-a')
    data = client.get('/api/game/players').get_json()
    assert data['player_count'] == 1
    assert data['capacity'] == 30
    assert data['players'][0]['uuid'] == 'uuid-a'
