from flask_socketio import join_room, leave_room, emit
from flask import current_app, request
from bingo.models import Game
from typing import Dict


# Socket id -> game code the socket is watching
_sid_to_game: Dict[str, str] = {}


def _get_sid() -> str:
    return request.sid  # type: ignore


def _room(game_code: str) -> str:
    return f"game:{game_code}"


def handle_connect():
    emit('connected', {'message': 'Connected to /ws'})


def handle_disconnect(*args):
    game_code = _sid_to_game.pop(_get_sid(), None)
    if game_code:
        current_app.logger.debug(f"[ws-disconnect] game={game_code}")


def handle_join_game(data):
    """Subscribe this socket to a game's state_update notifications."""
    game_code = ((data or {}).get('game_code') or '').strip().upper()
    if not game_code:
        emit('error', {'message': 'game_code is required'})
        return
    if not Game.query.filter_by(game_code=game_code).first():
        emit('error', {'message': 'Game not found'})
        return
    previous = _sid_to_game.get(_get_sid())
    if previous and previous != game_code:
        leave_room(_room(previous))
    join_room(_room(game_code))
    _sid_to_game[_get_sid()] = game_code
    emit('joined', {'room': _room(game_code)})


def handle_leave_game(data):
    game_code = ((data or {}).get('game_code') or '').strip().upper()
    if not game_code:
        emit('error', {'message': 'game_code is required'})
        return
    leave_room(_room(game_code))
    if _sid_to_game.get(_get_sid()) == game_code:
        _sid_to_game.pop(_get_sid(), None)
    emit('left', {'room': _room(game_code)})


def handle_ping(data):
    emit('pong', data or {})


def register_socketio_handlers(testing: bool = False) -> None:
    """Register Socket.IO event handlers.

    Always register on namespace '/ws'. When testing is True, also mirror
    handlers on the default namespace '/' to accommodate the test harness.
    """
    from bingo import socketio

    namespaces = ['/ws', '/'] if testing else ['/ws']
    for namespace in namespaces:
        socketio.on_event('connect', handle_connect, namespace=namespace)
        socketio.on_event('disconnect', handle_disconnect, namespace=namespace)
        socketio.on_event('join_game', handle_join_game, namespace=namespace)
        socketio.on_event('leave_game', handle_leave_game, namespace=namespace)
        socketio.on_event('ping', handle_ping, namespace=namespace)
