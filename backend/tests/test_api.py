from sqlalchemy import text

from conftest import as_player
from bingo import db
from bingo.services.games import store


def create_game(client, **overrides):
    body = {'host_name': 'Hana', 'player_limit': 4, 'host_card_count': 1, 'win_pattern': 'line'}
    body.update(overrides)
    res = client.post('/api/games/create', json=body)
    assert res.status_code == 201
    return res.get_json()


def join(client, code, name='Ravi', card_count=1):
    res = client.post(f'/api/games/{code}/join', json={'name': name, 'card_count': card_count})
    assert res.status_code == 201
    return res.get_json()


def test_create_game(client):
    data = create_game(client)
    assert data['kind'] == 'created'
    assert data['role'] == 'host'
    assert data['game']['status'] == 'waiting'
    assert data['game']['host_id'] == data['player']['id']
    assert len(data['cards']) == 1
    assert len(data['cards'][0]['numbers']) == 25


def test_create_game_bad_input(client):
    res = client.post('/api/games/create', json={'host_name': 'Hana', 'win_pattern': 'zigzag'})
    assert res.status_code == 400
    assert res.get_json()['error'] == 'InvalidInput'
    res = client.post('/api/games/create', json=['not', 'an', 'object'])
    assert res.status_code == 400


def test_join_and_state(client):
    code = create_game(client)['game']['game_code']
    seat = join(client, code)
    assert seat['kind'] == 'joined'
    res = client.get(f'/api/games/{code.lower()}/state', headers=as_player(seat['player']['id']))
    assert res.status_code == 200
    state = res.get_json()
    assert state['game_code'] == code
    assert state['role'] == 'player'
    assert [p['name'] for p in state['players']] == ['Hana', 'Ravi']
    assert state['winners'] == [] and state['missed_winners'] == [] and state['messages'] == []


def test_unknown_game_is_404(client):
    res = client.get('/api/games/NOPE99/state')
    assert res.status_code == 404
    assert res.get_json() == {'error': 'NotFound', 'message': 'Game not found'}


def test_join_full_game_conflicts(client):
    code = create_game(client, player_limit=2)['game']['game_code']
    join(client, code)
    res = client.post(f'/api/games/{code}/join', json={'name': 'Mika', 'card_count': 1})
    assert res.status_code == 409
    assert res.get_json()['error'] == 'Conflict'


def test_reconnect(client):
    created = create_game(client)
    code = created['game']['game_code']
    res = client.post(f'/api/games/{code}/reconnect', json={'player_id': created['player']['id']})
    assert res.status_code == 200
    seat = res.get_json()
    assert seat['kind'] == 'reconnected'
    assert seat['role'] == 'host'
    assert seat['cards'] == created['cards']
    res = client.post(f'/api/games/{code}/reconnect', json={'player_id': 'missing'})
    assert res.status_code == 404


def test_session_lookup(client):
    created = create_game(client)
    res = client.get('/api/session', headers=as_player(created['player']['id']))
    assert res.status_code == 200
    assert res.get_json()['role'] == 'host'
    assert client.get('/api/session').status_code == 401


def test_host_controls_and_forbidden_players(client):
    created = create_game(client)
    code = created['game']['game_code']
    host_id = created['player']['id']
    guest_id = join(client, code)['player']['id']

    assert client.post(f'/api/games/{code}/start', headers=as_player(guest_id)).status_code == 403
    assert client.post(f'/api/games/{code}/start').status_code == 403
    started = client.post(f'/api/games/{code}/start', headers=as_player(host_id)).get_json()
    assert started['status'] == 'playing'

    res = client.post(f'/api/games/{code}/call', json={'number': 12}, headers=as_player(guest_id))
    assert res.status_code == 403
    assert res.get_json()['error'] == 'Forbidden'

    called = client.post(f'/api/games/{code}/call', json={'number': 12}, headers=as_player(host_id)).get_json()
    assert called['called'] == 12
    assert called['called_numbers'] == [12]
    again = client.post(f'/api/games/{code}/call', json={'number': 12}, headers=as_player(host_id)).get_json()
    assert again['called'] is None
    assert again['called_numbers'] == [12]

    assert client.post(f'/api/games/{code}/pause', headers=as_player(host_id)).get_json()['status'] == 'paused'
    assert client.post(f'/api/games/{code}/call', headers=as_player(host_id)).status_code == 409
    assert client.post(f'/api/games/{code}/resume', headers=as_player(host_id)).get_json()['status'] == 'playing'


def test_player_id_in_body_identifies_caller(client):
    created = create_game(client)
    code = created['game']['game_code']
    res = client.post(f'/api/games/{code}/start', json={'player_id': created['player']['id']})
    assert res.status_code == 200
    assert res.get_json()['status'] == 'playing'


def test_mark_claim_and_reset(client):
    created = create_game(client, win_pattern='corners')
    code = created['game']['game_code']
    host = as_player(created['player']['id'])
    seat = join(client, code)
    guest = as_player(seat['player']['id'])
    card = seat['cards'][0]

    client.post(f'/api/games/{code}/start', headers=host)
    for i in (0, 4, 20, 24):
        client.post(f'/api/games/{code}/call', json={'number': card['numbers'][i]}, headers=host)

    res = client.post(f'/api/games/{code}/mark', json={'card_id': card['id'], 'marked': [0, 4, 20]}, headers=guest)
    assert res.status_code == 200
    assert res.get_json()['marked'] == [0, 4, 20]
    early = client.post(f'/api/games/{code}/claim', json={'card_id': card['id']}, headers=guest).get_json()
    assert early['valid'] is False

    client.post(f'/api/games/{code}/mark', json={'card_id': card['id'], 'marked': [0, 4, 20, 24]}, headers=guest)
    claim = client.post(f'/api/games/{code}/claim', json={'card_id': card['id']}, headers=guest).get_json()
    assert claim['valid'] is True
    assert claim['winner']['name'] == 'Ravi'

    dup = client.post(f'/api/games/{code}/claim', json={'card_id': card['id']}, headers=guest)
    assert dup.status_code == 409

    state = client.get(f'/api/games/{code}/state').get_json()
    assert state['status'] == 'playing'
    assert [w['name'] for w in state['winners']] == ['Ravi']
    assert any(m['is_system'] for m in state['messages'])

    assert client.post(f'/api/games/{code}/reset', headers=guest).status_code == 403
    reset = client.post(f'/api/games/{code}/reset', headers=host).get_json()
    assert reset['status'] == 'waiting'
    assert reset['called_numbers'] == []
    assert reset['winners'] == []
    assert reset['messages'] == []
    assert len(reset['players']) == 2
    cards = client.get(f'/api/games/{code}/cards', headers=guest).get_json()
    assert cards[0]['marked'] == []


def test_mark_rejects_bad_bodies(client):
    created = create_game(client)
    code = created['game']['game_code']
    host = as_player(created['player']['id'])
    card_id = created['cards'][0]['id']
    assert client.post(f'/api/games/{code}/mark', json={'marked': [1]}, headers=host).status_code == 400
    assert client.post(f'/api/games/{code}/mark', json={'card_id': card_id, 'marked': 3}, headers=host).status_code == 400
    assert client.post(f'/api/games/{code}/claim', json={}, headers=host).status_code == 400


def test_developer_flow(client):
    created = create_game(client)
    code = created['game']['game_code']
    host = as_player(created['player']['id'])
    guest = as_player(join(client, code)['player']['id'])

    secret = client.post(f'/api/games/{code}/messages', json={'text': 'dev123'}, headers=guest)
    assert secret.get_json() == {'developer': True}
    assert client.get(f'/api/games/{code}/messages').get_json() == []

    assert client.post(f'/api/games/{code}/start', headers=guest).get_json()['status'] == 'playing'
    assert client.post(f'/api/games/{code}/queue', json={'number': 33}, headers=guest).get_json() == {'queue': [33]}
    promoted = client.post(f'/api/games/{code}/queue/promote', headers=guest).get_json()
    assert promoted == {'staged_number': 33, 'queue': []}
    assert client.post(f'/api/games/{code}/call', headers=guest).status_code == 403
    assert client.post(f'/api/games/{code}/call', headers=host).get_json()['called'] == 33

    assert client.post(f'/api/games/{code}/stage', json={'number': 50}, headers=host).status_code == 403
    assert client.post(f'/api/games/{code}/stage', json={'number': 50}, headers=guest).get_json()['staged_number'] == 50
    assert client.get(f'/api/games/{code}/queue', headers=host).status_code == 403


def test_chat_messages(client):
    created = create_game(client)
    code = created['game']['game_code']
    host = as_player(created['player']['id'])
    res = client.post(f'/api/games/{code}/messages', json={'text': 'Welcome!'}, headers=host)
    assert res.status_code == 201
    assert res.get_json()['sender'] == 'Hana'
    assert client.post(f'/api/games/{code}/messages', json={'text': 'anon'}).status_code == 403
    messages = client.get(f'/api/games/{code}/messages').get_json()
    assert [m['text'] for m in messages] == ['Welcome!']


def test_cards_and_exit(client):
    created = create_game(client)
    code = created['game']['game_code']
    host = as_player(created['player']['id'])
    seat = join(client, code)
    guest_id = seat['player']['id']
    guest = as_player(guest_id)

    added = client.post(f'/api/games/{code}/cards', headers=guest)
    assert added.status_code == 201
    assert len(client.get(f'/api/games/{code}/cards', headers=guest).get_json()) == 2
    res = client.delete(f"/api/games/{code}/cards/{added.get_json()['id']}", headers=guest)
    assert res.status_code == 200

    assert client.post(f"/api/games/{code}/players/{created['player']['id']}/remove", headers=guest).status_code == 403
    assert client.post(f'/api/games/{code}/players/{guest_id}/remove', headers=guest).status_code == 200
    state = client.get(f'/api/games/{code}/state', headers=host).get_json()
    assert [p['name'] for p in state['players']] == ['Hana']


def test_pattern_change_and_scan(client):
    created = create_game(client)
    code = created['game']['game_code']
    host = as_player(created['player']['id'])
    res = client.post(f'/api/games/{code}/pattern', json={'win_pattern': 'cross'}, headers=host)
    assert res.get_json()['win_pattern'] == 'cross'
    assert client.post(f'/api/games/{code}/pattern', json={'win_pattern': 'x'}, headers=host).status_code == 400
    scan = client.post(f'/api/games/{code}/scan', headers=host)
    assert scan.status_code == 200
    assert scan.get_json() == {'missed_winners': []}


def test_each_request_is_identified_by_its_own_token(client):
    created = create_game(client)
    code = created['game']['game_code']
    host_id = created['player']['id']
    guest_id = join(client, code)['player']['id']

    assert client.post(f'/api/games/{code}/start', headers=as_player(guest_id)).status_code == 403
    started = client.post(f'/api/games/{code}/start', headers=as_player(host_id))
    assert started.status_code == 200
    assert started.get_json()['status'] == 'playing'

    assert client.get('/api/session', headers=as_player(guest_id)).get_json()['player']['name'] == 'Ravi'
    assert client.get('/api/session', headers=as_player(host_id)).get_json()['role'] == 'host'
    assert client.get('/api/session').status_code == 401


def test_stale_game_write_is_a_conflict(flask_app, client):
    @flask_app.route('/stale-write/<game_code>', methods=['POST'])
    def stale_write(game_code):
        game = store.get_game(game_code)
        # Someone else bumps the row behind this session's back
        db.session.execute(text('UPDATE game SET version = version + 1 WHERE id = :id'), {'id': game.id})
        game.status = 'paused'
        db.session.commit()
        return 'written'

    code = create_game(client)['game']['game_code']
    res = client.post(f'/stale-write/{code}')
    assert res.status_code == 409
    assert res.get_json()['error'] == 'Conflict'
    assert store.get_game(code).status == 'waiting'
