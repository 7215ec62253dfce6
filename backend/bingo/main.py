from flask import Blueprint, jsonify
from flask_login import current_user, login_required
from bingo.services.games.lifecycle import role_of

main = Blueprint('main', __name__)

@main.route('/')
def index():
    return jsonify({'message': 'Welcome to the Neon Bingo server!'})

@main.route('/api/session')
@login_required
def whoami():
    """Resolve the caller's player id into their seat and server-side role."""
    player = current_user
    return jsonify({
        'player': player.to_dict(),
        'game_code': player.game.game_code,
        'role': role_of(player.game, player),
    })
