from flask import Blueprint, jsonify, request
from flask_login import current_user
from bingo import socketio
from bingo.errors import InvalidInput
from bingo.services.games import lifecycle, roster, store


games = Blueprint('games', __name__)


def _actor():
    return current_user if current_user.is_authenticated else None


def _body() -> dict:
    data = request.get_json(silent=True)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise InvalidInput('Request body must be a JSON object')
    return data


def _notify(game_code: str) -> None:
    socketio.emit('state_update', {'game_code': game_code}, to=f"game:{game_code}", namespace='/ws')


def _snapshot(game) -> dict:
    payload = game.to_dict()
    payload['players'] = [p.to_dict() for p in store.list_players(game.game_code)]
    payload['winners'] = [w.to_dict() for w in store.list_winners(game.game_code)]
    payload['missed_winners'] = [w.to_dict() for w in store.list_missed_winners(game.game_code)]
    payload['messages'] = [m.to_dict() for m in store.list_messages(game.game_code)]
    return payload


@games.route('/create', methods=['POST'])
def create_game():
    data = _body()
    seat = roster.create_game(
        data.get('host_name'),
        player_limit=data.get('player_limit'),
        host_card_count=data.get('host_card_count'),
        win_pattern=data.get('win_pattern'),
    )
    return jsonify(seat), 201


@games.route('/<string:game_code>/state', methods=['GET'])
def get_game_state(game_code):
    game = store.get_game(game_code)
    payload = _snapshot(game)
    payload['role'] = lifecycle.role_of(game, _actor())
    return jsonify(payload)


@games.route('/<string:game_code>/join', methods=['POST'])
def join_game(game_code):
    data = _body()
    seat = roster.join_as_new_player(game_code, data.get('name'), data.get('card_count'))
    _notify(seat['game']['game_code'])
    return jsonify(seat), 201


@games.route('/<string:game_code>/reconnect', methods=['POST'])
def reconnect(game_code):
    data = _body()
    seat = roster.reconnect_as_player(game_code, data.get('player_id') or request.headers.get('X-Player-Id'))
    return jsonify(seat)


@games.route('/<string:game_code>/start', methods=['POST'])
def start_game(game_code):
    game = lifecycle.start_game(game_code, _actor())
    _notify(game.game_code)
    return jsonify(game.to_dict())


@games.route('/<string:game_code>/pause', methods=['POST'])
def pause_game(game_code):
    game = lifecycle.pause_game(game_code, _actor())
    _notify(game.game_code)
    return jsonify(game.to_dict())


@games.route('/<string:game_code>/resume', methods=['POST'])
def resume_game(game_code):
    game = lifecycle.resume_game(game_code, _actor())
    _notify(game.game_code)
    return jsonify(game.to_dict())


@games.route('/<string:game_code>/reset', methods=['POST'])
def reset_game(game_code):
    game = lifecycle.reset_game(game_code, _actor())
    _notify(game.game_code)
    return jsonify(_snapshot(game))


@games.route('/<string:game_code>/pattern', methods=['POST'])
def set_pattern(game_code):
    data = _body()
    game = lifecycle.set_win_pattern(game_code, _actor(), data.get('win_pattern'))
    _notify(game.game_code)
    return jsonify(game.to_dict())


@games.route('/<string:game_code>/call', methods=['POST'])
def call_number(game_code):
    data = _body()
    number = lifecycle.call_number(game_code, _actor(), data.get('number'))
    game = store.get_game(game_code)
    if number is not None or game.status == 'finished':
        _notify(game.game_code)
    payload = game.to_dict()
    payload['called'] = number
    return jsonify(payload)


@games.route('/<string:game_code>/stage', methods=['POST'])
def stage_number(game_code):
    data = _body()
    game = lifecycle.stage_number(game_code, _actor(), data.get('number'))
    _notify(game.game_code)
    return jsonify(game.to_dict())


@games.route('/<string:game_code>/queue', methods=['GET'])
def get_queue(game_code):
    return jsonify({'queue': lifecycle.developer_queue(game_code, _actor())})


@games.route('/<string:game_code>/queue', methods=['POST'])
def queue_number(game_code):
    data = _body()
    return jsonify({'queue': lifecycle.queue_number(game_code, _actor(), data.get('number'))})


@games.route('/<string:game_code>/queue', methods=['DELETE'])
def clear_queue(game_code):
    lifecycle.clear_developer_queue(game_code, _actor())
    return jsonify({'queue': []})


@games.route('/<string:game_code>/queue/promote', methods=['POST'])
def promote_queue(game_code):
    actor = _actor()
    number = lifecycle.promote_next(game_code, actor)
    game = store.get_game(game_code)
    if number is not None:
        _notify(game.game_code)
    return jsonify({
        'staged_number': game.staged_number,
        'queue': lifecycle.developer_queue(game_code, actor),
    })


@games.route('/<string:game_code>/developer', methods=['POST'])
def enable_developer(game_code):
    data = _body()
    player = lifecycle.enable_developer(game_code, _actor(), data.get('secret'))
    return jsonify({'player': player.to_dict(), 'role': 'developer'})


@games.route('/<string:game_code>/mark', methods=['POST'])
def mark_card(game_code):
    data = _body()
    card = roster.mark_card(game_code, _actor(), data.get('card_id'), data.get('marked'))
    return jsonify({'card_id': card.id, 'marked': card.get_marked()})


@games.route('/<string:game_code>/claim', methods=['POST'])
def claim_bingo(game_code):
    data = _body()
    if not data.get('card_id'):
        raise InvalidInput('card_id is required')
    result = lifecycle.claim_bingo(game_code, _actor(), data.get('card_id'))
    if result['valid']:
        _notify(store.get_game(game_code).game_code)
    return jsonify(result)


@games.route('/<string:game_code>/scan', methods=['POST'])
def scan_missed_winners(game_code):
    return jsonify({'missed_winners': lifecycle.missed_winner_report(game_code, _actor())})


@games.route('/<string:game_code>/cards', methods=['GET'])
def list_cards(game_code):
    return jsonify([c.to_dict() for c in roster.list_own_cards(game_code, _actor())])


@games.route('/<string:game_code>/cards', methods=['POST'])
def add_card(game_code):
    card = roster.add_card(game_code, _actor())
    _notify(store.get_game(game_code).game_code)
    return jsonify(card.to_dict()), 201


@games.route('/<string:game_code>/cards/<string:card_id>', methods=['DELETE'])
def remove_card(game_code, card_id):
    roster.remove_card(game_code, _actor(), card_id)
    _notify(store.get_game(game_code).game_code)
    return jsonify({'message': 'Card removed'})


@games.route('/<string:game_code>/players/<string:player_id>/remove', methods=['POST'])
def remove_player(game_code, player_id):
    roster.leave_game(game_code, _actor(), player_id)
    _notify(store.get_game(game_code).game_code)
    return jsonify({'message': 'Player removed'})


@games.route('/<string:game_code>/messages', methods=['GET'])
def list_messages(game_code):
    return jsonify([m.to_dict() for m in store.list_messages(game_code)])


@games.route('/<string:game_code>/messages', methods=['POST'])
def send_message(game_code):
    data = _body()
    message = roster.send_message(game_code, _actor(), data.get('text'))
    if message is None:
        # Developer secret: acknowledged privately, never shown in chat
        return jsonify({'developer': True})
    _notify(store.get_game(game_code).game_code)
    return jsonify(message.to_dict()), 201
