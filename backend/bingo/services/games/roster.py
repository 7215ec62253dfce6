"""Rooms and seats: creating games, joining, cards, marks and chat."""
from typing import Optional

from flask import current_app

from bingo import db
from bingo.errors import Conflict, Forbidden, InvalidInput, NotFound
from bingo.models import Player
from . import lifecycle, staging, store
from .cards import generate_card_numbers
from .lifecycle import game_lock, require_player, role_of
from .validation import parse_int, parse_marked, parse_name, parse_pattern


def _max_cards() -> int:
    return int(current_app.config.get('MAX_CARDS_PER_PLAYER', 5))


def _deal_cards(player: Player, count: int):
    return [store.create_card(player.id, generate_card_numbers()) for _ in range(count)]


def _seat_payload(kind: str, game, player: Player, cards) -> dict:
    return {
        'kind': kind,
        'game': game.to_dict(),
        'player': player.to_dict(),
        'role': role_of(game, player),
        'cards': [c.to_dict() for c in cards],
    }


def create_game(host_name, player_limit=None, host_card_count=1, win_pattern='line') -> dict:
    """Open a room and seat its host, who is also a regular card holder."""
    cfg = current_app.config
    host_name = parse_name(host_name, 'host_name')
    if player_limit is None:
        player_limit = cfg.get('DEFAULT_PLAYER_LIMIT', 100)
    player_limit = parse_int(player_limit, 'player_limit', 1, int(cfg.get('MAX_PLAYER_LIMIT', 500)))
    host_card_count = parse_int(1 if host_card_count is None else host_card_count,
                                'host_card_count', 1, _max_cards())
    win_pattern = parse_pattern(win_pattern or 'line')

    game = store.create_game(host_name, player_limit, win_pattern, int(cfg.get('GAME_CODE_LENGTH', 6)))
    host = store.create_player(game.game_code, host_name, host_card_count)
    game.host_id = host.id
    db.session.add(game)
    cards = _deal_cards(host, host_card_count)
    db.session.commit()
    current_app.logger.info(f"[create] game={game.game_code} host={host.id} limit={player_limit} pattern={win_pattern}")
    return _seat_payload('created', game, host, cards)


def join_as_new_player(game_code, name, card_count=1) -> dict:
    name = parse_name(name)
    card_count = parse_int(1 if card_count is None else card_count, 'card_count', 1, _max_cards())
    with game_lock(game_code):
        game = store.get_game(game_code)
        db.session.refresh(game)
        if len(store.list_players(game.game_code)) >= game.player_limit:
            raise Conflict('Game is full')
        player = store.create_player(game.game_code, name, card_count)
        cards = _deal_cards(player, card_count)
        db.session.commit()
        current_app.logger.info(f"[join] game={game.game_code} player={player.id} cards={card_count}")
        return _seat_payload('joined', game, player, cards)


def reconnect_as_player(game_code, player_id) -> dict:
    game = store.get_game(game_code)
    if not player_id:
        raise InvalidInput('player_id is required')
    player = Player.query.filter_by(id=str(player_id), game_id=game.id).first()
    if not player:
        raise NotFound('Player not found in this game')
    current_app.logger.info(f"[reconnect] game={game.game_code} player={player.id}")
    return _seat_payload('reconnected', game, player, store.list_cards(player.id))


def leave_game(game_code, actor, player_id) -> None:
    """A player leaves, or the host removes someone. Their cards go too."""
    with game_lock(game_code):
        game = store.get_game(game_code)
        require_player(game, actor)
        target = Player.query.filter_by(id=str(player_id or ''), game_id=game.id).first()
        if not target:
            raise NotFound('Player not found in this game')
        if target.id != actor.id and actor.id != game.host_id:
            raise Forbidden('Only the host can remove other players')
        if target.id == game.host_id:
            # Only the host can call, reset or change the pattern
            raise Conflict('The host cannot leave their own game')
        store.delete_player(target.id)
        db.session.commit()
        staging.clear_queue(game.game_code, target.id)
        current_app.logger.info(f"[leave] game={game.game_code} player={target.id} by={actor.id}")


# ---- Cards ----

def list_own_cards(game_code, actor):
    game = store.get_game(game_code)
    require_player(game, actor)
    return store.list_cards(actor.id)


def add_card(game_code, actor):
    with game_lock(game_code):
        game = store.get_game(game_code)
        require_player(game, actor)
        cards = store.list_cards(actor.id)
        limit = _max_cards()
        if len(cards) >= limit:
            raise Conflict(f'You can only have {limit} cards maximum')
        card = store.create_card(actor.id, generate_card_numbers())
        store.update_card_count(actor.id, len(cards) + 1)
        db.session.commit()
        return card


def remove_card(game_code, actor, card_id) -> None:
    with game_lock(game_code):
        game = store.get_game(game_code)
        require_player(game, actor)
        card = store.get_card(card_id)
        if card.game_id != game.id:
            raise NotFound('Card not found')
        if card.player_id != actor.id:
            raise Forbidden('You can only remove your own cards')
        remaining = len(store.list_cards(actor.id)) - 1
        if remaining < 1:
            raise Conflict('You must keep at least one card')
        store.delete_card(card.id)
        store.update_card_count(actor.id, remaining)
        db.session.commit()


def mark_card(game_code, actor, card_id, marked):
    """Replace a card's marked cells. Toggling is the client's business."""
    if not card_id:
        raise InvalidInput('card_id is required')
    marked = parse_marked(marked)
    game = store.get_game(game_code)
    require_player(game, actor)
    card = store.get_card(card_id)
    if card.game_id != game.id:
        raise NotFound('Card not found')
    if card.player_id != actor.id:
        raise Forbidden('You can only mark your own cards')
    store.update_card_marked(card.id, marked)
    db.session.commit()
    return card


# ---- Chat ----

def send_message(game_code, actor, text) -> Optional[object]:
    """Post a chat line. The developer secret is swallowed, never broadcast."""
    game = store.get_game(game_code)
    require_player(game, actor)
    if not isinstance(text, str) or not text.strip():
        raise InvalidInput('text is required')
    text = text.strip()
    max_len = int(current_app.config.get('MAX_MESSAGE_LENGTH', 500))
    if len(text) > max_len:
        raise InvalidInput(f'Messages are limited to {max_len} characters')
    secret = current_app.config.get('DEVELOPER_SECRET')
    if secret and text == secret:
        lifecycle.enable_developer(game.game_code, actor, text)
        return None
    message = store.create_message(game.game_code, actor.name, text)
    db.session.commit()
    return message
