"""Developer staging queues.

Each developer gets a private queue of numbers they intend to call next. The
queues live only in process memory and never touch a game's called-number
history; promoting the head of a queue only sets the game's staged number.
"""
import threading
from collections import defaultdict
from typing import Dict, List, Optional

_queues: Dict[str, Dict[str, List[int]]] = defaultdict(dict)  # game_code -> player id -> numbers
_queues_lock = threading.Lock()


def enqueue(game_code: str, player_id: str, number: int) -> List[int]:
    with _queues_lock:
        queue = _queues[game_code].setdefault(player_id, [])
        if number not in queue:
            queue.append(number)
        return list(queue)


def peek_queue(game_code: str, player_id: str) -> List[int]:
    with _queues_lock:
        return list(_queues.get(game_code, {}).get(player_id, []))


def pop_next(game_code: str, player_id: str) -> Optional[int]:
    with _queues_lock:
        queue = _queues.get(game_code, {}).get(player_id)
        if not queue:
            return None
        return queue.pop(0)


def clear_queue(game_code: str, player_id: str) -> None:
    with _queues_lock:
        _queues.get(game_code, {}).pop(player_id, None)


def drop_game(game_code: str) -> None:
    with _queues_lock:
        _queues.pop(game_code, None)
