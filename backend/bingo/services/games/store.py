"""Game store: the persistence calls the game services rely on.

Writes are added and flushed but never committed here; the caller owns the
transaction so one lifecycle step lands as a single read-modify-write.
"""
import json
from typing import Iterable, List, Optional

from bingo import db
from bingo.errors import NotFound
from bingo.models import Game, Player, Card, Winner, Message, generate_game_code


def _normalize_code(game_code) -> str:
    return str(game_code or '').strip().upper()


# ---- Games ----

def create_game(host_name: str, player_limit: int, win_pattern: str = 'line', code_length: int = 6) -> Game:
    game = Game(
        game_code=generate_game_code(code_length),
        host_name=host_name,
        player_limit=player_limit,
        win_pattern=win_pattern,
        status='waiting',
    )
    db.session.add(game)
    db.session.flush()
    return game


def find_game(game_code) -> Optional[Game]:
    code = _normalize_code(game_code)
    if not code:
        return None
    return Game.query.filter_by(game_code=code).first()


def get_game(game_code) -> Game:
    game = find_game(game_code)
    if not game:
        raise NotFound('Game not found')
    return game


def update_status(game_code, status: str) -> Game:
    game = get_game(game_code)
    game.status = status
    db.session.add(game)
    db.session.flush()
    return game


def update_called_numbers(game_code, numbers: Iterable[int]) -> Game:
    game = get_game(game_code)
    game.set_called_numbers(numbers)
    db.session.add(game)
    db.session.flush()
    return game


def update_staged_number(game_code, number: Optional[int]) -> Game:
    game = get_game(game_code)
    game.staged_number = number
    db.session.add(game)
    db.session.flush()
    return game


# ---- Players ----

def create_player(game_code, name: str, card_count: int = 1) -> Player:
    game = get_game(game_code)
    player = Player(name=name, game_id=game.id, card_count=card_count)
    db.session.add(player)
    db.session.flush()
    return player


def get_player(player_id) -> Player:
    player = Player.query.filter_by(id=str(player_id)).first() if player_id else None
    if not player:
        raise NotFound('Player not found')
    return player


def list_players(game_code) -> List[Player]:
    game = get_game(game_code)
    return Player.query.filter_by(game_id=game.id).order_by(Player.joined_at).all()


def update_card_count(player_id, count: int) -> Player:
    player = get_player(player_id)
    player.card_count = count
    db.session.add(player)
    db.session.flush()
    return player


def delete_player(player_id) -> None:
    player = get_player(player_id)
    db.session.delete(player)
    db.session.flush()


# ---- Cards ----

def create_card(player_id, numbers: List[int]) -> Card:
    player = get_player(player_id)
    last = db.session.query(db.func.max(Card.position)).filter(Card.player_id == player.id).scalar()
    card = Card(player_id=player.id, game_id=player.game_id, numbers=json.dumps(numbers), marked='[]',
                position=(last or 0) + 1)
    db.session.add(card)
    db.session.flush()
    return card


def get_card(card_id) -> Card:
    card = Card.query.filter_by(id=str(card_id)).first() if card_id else None
    if not card:
        raise NotFound('Card not found')
    return card


def list_cards(player_id) -> List[Card]:
    player = get_player(player_id)
    return Card.query.filter_by(player_id=player.id).order_by(Card.position).all()


def list_game_cards(game_code) -> List[Card]:
    game = get_game(game_code)
    return Card.query.filter_by(game_id=game.id).all()


def update_card_marked(card_id, marked: Iterable[int]) -> Card:
    card = get_card(card_id)
    card.set_marked(marked)
    db.session.add(card)
    db.session.flush()
    return card


def delete_card(card_id) -> None:
    card = get_card(card_id)
    db.session.delete(card)
    db.session.flush()


# ---- Winners ----

def create_winner(game_code, player: Player, pattern: str, card_id=None,
                  missed: bool = False, reason: Optional[str] = None) -> Winner:
    game = get_game(game_code)
    winner = Winner(
        game_id=game.id,
        player_id=player.id,
        player_name=player.name,
        card_id=card_id,
        pattern=pattern,
        missed=missed,
        reason=reason,
    )
    db.session.add(winner)
    db.session.flush()
    return winner


def list_winners(game_code) -> List[Winner]:
    game = get_game(game_code)
    return Winner.query.filter_by(game_id=game.id, missed=False).order_by(Winner.id).all()


def list_missed_winners(game_code) -> List[Winner]:
    game = get_game(game_code)
    return Winner.query.filter_by(game_id=game.id, missed=True).order_by(Winner.id).all()


# ---- Messages ----

def create_message(game_code, sender: str, text: str, is_system: bool = False) -> Message:
    game = get_game(game_code)
    message = Message(game_id=game.id, sender=sender, text=text, is_system=is_system)
    db.session.add(message)
    db.session.flush()
    return message


def list_messages(game_code) -> List[Message]:
    game = get_game(game_code)
    return Message.query.filter_by(game_id=game.id).order_by(Message.created_at).all()


def clear_game_history(game_code) -> None:
    """Drop winners, missed winners and chat for a game."""
    game = get_game(game_code)
    Winner.query.filter_by(game_id=game.id).delete(synchronize_session=False)
    Message.query.filter_by(game_id=game.id).delete(synchronize_session=False)
    db.session.flush()
