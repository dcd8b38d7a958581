def test_index(client):
    res = client.get('/')
    assert res.status_code == 200
    assert res.get_json()['socket_namespace'] == '/ws'


def test_health_counts_rooms(client, rooms):
    assert client.get('/api/health').get_json() == {'status': 'ok', 'rooms': 0}
    rooms.create_room('Host')
    assert client.get('/api/health').get_json()['rooms'] == 1


def test_room_state(client, rooms):
    room, host, _ = rooms.create_room('Alice')
    res = client.get(f'/api/rooms/{room.id.lower()}')
    assert res.status_code == 200
    data = res.get_json()
    assert data['roomId'] == room.id
    assert data['hostId'] == host.id
    assert data['capacity'] == 4
    assert any(p['name'] == 'Alice' for p in data['players'])


def test_unknown_room_is_404(client):
    res = client.get('/api/rooms/NOPE23')
    assert res.status_code == 404
    assert res.get_json() == {'error': 'Room not found'}
