"""Game lifecycle: status transitions, number calling and claims.

    waiting -> playing          start (host or developer)
    playing <-> paused          pause / resume (host or developer)
    any     -> waiting          reset (host only)
    playing -> finished         pool exhausted with nobody having won

Every operation runs under the game's lock and commits once, so two racing
requests for the same game cannot lose each other's update.
"""
import hmac
import random
import threading
from contextlib import contextmanager
from typing import Dict, List, Optional

from flask import current_app

from bingo import db
from bingo.errors import Conflict, Forbidden, NotFound
from bingo.models import Game, Player
from . import staging, store
from .cards import MAX_NUMBER, label
from .patterns import is_winning_claim, uncalled_marks
from .validation import parse_int, parse_pattern

NUMBER_POOL = range(1, MAX_NUMBER + 1)

_game_locks: Dict[str, threading.Lock] = {}
_game_locks_guard = threading.Lock()


@contextmanager
def game_lock(game_code: str):
    # Unknown codes raise NotFound before a lock is ever allocated
    code = store.get_game(game_code).game_code
    with _game_locks_guard:
        lock = _game_locks.setdefault(code, threading.Lock())
    with lock:
        yield


def _load(game_code) -> Game:
    game = store.get_game(game_code)
    # Another request may have committed while we waited on the lock
    db.session.refresh(game)
    return game


def _in_game(game: Game, actor: Optional[Player]) -> bool:
    return actor is not None and actor.game_id == game.id


def require_player(game: Game, actor: Optional[Player]) -> Player:
    if not _in_game(game, actor):
        raise Forbidden('You are not a player in this game')
    return actor


def require_host(game: Game, actor: Optional[Player], action: str) -> Player:
    if not _in_game(game, actor) or actor.id != game.host_id:
        raise Forbidden(f'Only the host can {action}')
    return actor


def require_controller(game: Game, actor: Optional[Player], action: str) -> Player:
    if not _in_game(game, actor) or not (actor.id == game.host_id or actor.is_developer):
        raise Forbidden(f'Only the host or a developer can {action}')
    return actor


def require_developer(game: Game, actor: Optional[Player], action: str) -> Player:
    if not _in_game(game, actor) or actor.id == game.host_id or not actor.is_developer:
        raise Forbidden(f'Only a developer can {action}')
    return actor


def role_of(game: Game, player: Optional[Player]) -> str:
    if not _in_game(game, player):
        return 'spectator'
    if player.id == game.host_id:
        return 'host'
    return 'developer' if player.is_developer else 'player'


# ---- Status transitions ----

def start_game(game_code, actor) -> Game:
    with game_lock(game_code):
        game = _load(game_code)
        require_controller(game, actor, 'start the game')
        if game.status == 'playing':
            # Idempotent start: already started
            return game
        if game.status != 'waiting':
            raise Conflict(f'Cannot start a game that is {game.status}')
        store.update_status(game.game_code, 'playing')
        db.session.commit()
        current_app.logger.info(f"[start] game={game.game_code} by={actor.id}")
        return game


def pause_game(game_code, actor) -> Game:
    with game_lock(game_code):
        game = _load(game_code)
        require_controller(game, actor, 'pause the game')
        if game.status == 'paused':
            return game
        if game.status != 'playing':
            raise Conflict(f'Cannot pause a game that is {game.status}')
        store.update_status(game.game_code, 'paused')
        db.session.commit()
        current_app.logger.info(f"[pause] game={game.game_code} by={actor.id}")
        return game


def resume_game(game_code, actor) -> Game:
    with game_lock(game_code):
        game = _load(game_code)
        require_controller(game, actor, 'resume the game')
        if game.status == 'playing':
            return game
        if game.status != 'paused':
            raise Conflict(f'Cannot resume a game that is {game.status}')
        store.update_status(game.game_code, 'playing')
        db.session.commit()
        current_app.logger.info(f"[resume] game={game.game_code} by={actor.id}")
        return game


def reset_game(game_code, actor) -> Game:
    """Back to waiting with a clean slate; code, host and roster survive."""
    with game_lock(game_code):
        game = _load(game_code)
        require_host(game, actor, 'reset the game')
        prev_status = game.status
        store.update_status(game.game_code, 'waiting')
        store.update_called_numbers(game.game_code, [])
        store.update_staged_number(game.game_code, None)
        store.clear_game_history(game.game_code)
        for player in store.list_players(game.game_code):
            for card in store.list_cards(player.id):
                store.update_card_marked(card.id, [])
        db.session.commit()
        staging.drop_game(game.game_code)
        current_app.logger.info(f"[reset] game={game.game_code} from={prev_status}")
        return game


def set_win_pattern(game_code, actor, pattern) -> Game:
    with game_lock(game_code):
        game = _load(game_code)
        require_host(game, actor, 'change the win pattern')
        pattern = parse_pattern(pattern)
        if game.status == 'playing':
            raise Conflict('Pause the game before changing the win pattern')
        game.win_pattern = pattern
        db.session.add(game)
        db.session.commit()
        current_app.logger.info(f"[pattern] game={game.game_code} pattern={pattern}")
        return game


# ---- Calling numbers ----

def call_number(game_code, actor, override=None) -> Optional[int]:
    """Commit the next call and return it, or None when nothing was added.

    The number is the override when given, else the staged preview, else a
    random draw from the numbers not yet called.
    """
    with game_lock(game_code):
        game = _load(game_code)
        require_host(game, actor, 'call numbers')
        if override is not None:
            override = parse_int(override, 'number', 1, MAX_NUMBER)
        if game.status != 'playing':
            raise Conflict('Numbers can only be called while the game is playing')

        called = game.get_called_numbers()
        already = set(called)
        remaining = [n for n in NUMBER_POOL if n not in already]
        if not remaining:
            _finish_if_exhausted(game, already)
            db.session.commit()
            return None

        if override is not None:
            number = override
        elif game.staged_number and game.staged_number not in already:
            number = game.staged_number
        else:
            number = random.choice(remaining)

        if number in already:
            current_app.logger.info(f"[call-skip] game={game.game_code} number={number} already called")
            return None

        called.append(number)
        store.update_called_numbers(game.game_code, called)
        if game.staged_number is not None:
            store.update_staged_number(game.game_code, None)
        current_app.logger.info(f"[call] game={game.game_code} number={label(number)} count={len(called)}")
        _finish_if_exhausted(game, set(called))
        db.session.commit()
        return number


def _finish_if_exhausted(game: Game, called: set) -> None:
    if len(called) < MAX_NUMBER or game.status == 'finished':
        return
    if store.list_winners(game.game_code):
        return
    missed = scan_missed_winners(game)
    for entry in missed:
        store.create_winner(
            game.game_code, entry['player'], game.win_pattern,
            card_id=entry['card'].id, missed=True,
            reason='Completed the pattern but never claimed bingo',
        )
    store.update_status(game.game_code, 'finished')
    if missed:
        names = ', '.join(sorted({entry['player'].name for entry in missed}))
        text = f'All numbers called. {names} should have won but never claimed!'
    else:
        text = 'All numbers called. No one won this game. Host must restart.'
    store.create_message(game.game_code, 'System', text, is_system=True)
    current_app.logger.info(f"[finish] game={game.game_code} missed={len(missed)}")


def scan_missed_winners(game: Game) -> List[dict]:
    """Cards whose marks satisfy the game's pattern but hold no win yet."""
    called = game.get_called_numbers()
    claimed_cards = {w.card_id for w in store.list_winners(game.game_code) + store.list_missed_winners(game.game_code)}
    found = []
    for player in store.list_players(game.game_code):
        for card in store.list_cards(player.id):
            if card.id in claimed_cards:
                continue
            if is_winning_claim(card.get_marked(), game.win_pattern, called, card.get_numbers()):
                found.append({'player': player, 'card': card})
    return found


def missed_winner_report(game_code, actor) -> List[dict]:
    game = store.get_game(game_code)
    require_host(game, actor, 'scan for missed winners')
    return [
        {'player_id': e['player'].id, 'name': e['player'].name, 'card_id': e['card'].id, 'pattern': game.win_pattern}
        for e in scan_missed_winners(game)
    ]


# ---- Claims ----

def claim_bingo(game_code, actor, card_id) -> dict:
    with game_lock(game_code):
        game = _load(game_code)
        require_player(game, actor)
        card = store.get_card(card_id)
        if card.game_id != game.id:
            raise NotFound('Card not found')
        if card.player_id != actor.id:
            raise Forbidden('You can only claim bingo on your own card')
        if game.status not in ('playing', 'paused'):
            raise Conflict(f'Cannot claim bingo while the game is {game.status}')
        if any(w.card_id == card.id for w in store.list_winners(game.game_code)):
            raise Conflict('You already called bingo on this card')

        called = game.get_called_numbers()
        marked = card.get_marked()
        numbers = card.get_numbers()
        if not is_winning_claim(marked, game.win_pattern, called, numbers):
            current_app.logger.info(f"[claim-reject] game={game.game_code} player={actor.id} card={card.id}")
            return {
                'valid': False,
                'pattern': game.win_pattern,
                'uncalled_numbers': uncalled_marks(marked, called, numbers),
            }

        winner = store.create_winner(game.game_code, actor, game.win_pattern, card_id=card.id)
        store.create_message(
            game.game_code, 'System', f'BINGO! {actor.name} won with the {game.win_pattern} pattern!', is_system=True
        )
        db.session.commit()
        current_app.logger.info(f"[claim] game={game.game_code} player={actor.id} card={card.id} pattern={game.win_pattern}")
        return {'valid': True, 'pattern': game.win_pattern, 'winner': winner.to_dict()}


# ---- Developer mode ----

def enable_developer(game_code, actor, secret) -> Player:
    with game_lock(game_code):
        game = _load(game_code)
        require_player(game, actor)
        if actor.id == game.host_id:
            raise Forbidden('The host cannot enter developer mode')
        expected = current_app.config.get('DEVELOPER_SECRET') or ''
        if not expected or not hmac.compare_digest(str(secret or ''), expected):
            raise Forbidden('Invalid developer secret')
        if not actor.is_developer:
            actor.is_developer = True
            db.session.add(actor)
            db.session.commit()
            current_app.logger.info(f"[developer] game={game.game_code} player={actor.id}")
        return actor


def stage_number(game_code, actor, number) -> Game:
    with game_lock(game_code):
        game = _load(game_code)
        require_developer(game, actor, 'stage numbers')
        number = parse_int(number, 'number', 1, MAX_NUMBER)
        if number in game.get_called_numbers():
            raise Conflict(f'{label(number)} has already been called')
        store.update_staged_number(game.game_code, number)
        db.session.commit()
        current_app.logger.info(f"[stage] game={game.game_code} number={label(number)} by={actor.id}")
        return game


def queue_number(game_code, actor, number) -> List[int]:
    game = store.get_game(game_code)
    require_developer(game, actor, 'queue numbers')
    number = parse_int(number, 'number', 1, MAX_NUMBER)
    return staging.enqueue(game.game_code, actor.id, number)


def developer_queue(game_code, actor) -> List[int]:
    game = store.get_game(game_code)
    require_developer(game, actor, 'view a staging queue')
    return staging.peek_queue(game.game_code, actor.id)


def clear_developer_queue(game_code, actor) -> None:
    game = store.get_game(game_code)
    require_developer(game, actor, 'clear a staging queue')
    staging.clear_queue(game.game_code, actor.id)


def promote_next(game_code, actor) -> Optional[int]:
    """Move the head of the developer's queue into the game's staged slot."""
    with game_lock(game_code):
        game = _load(game_code)
        require_developer(game, actor, 'stage numbers')
        already = set(game.get_called_numbers())
        number = staging.pop_next(game.game_code, actor.id)
        while number is not None and number in already:
            number = staging.pop_next(game.game_code, actor.id)
        if number is None:
            return None
        store.update_staged_number(game.game_code, number)
        db.session.commit()
        current_app.logger.info(f"[stage] game={game.game_code} number={label(number)} by={actor.id} from=queue")
        return number
