import random
from typing import List, Optional, Tuple

LETTERS = 'BINGO'
CARD_SIZE = 5
FREE_INDEX = 12
# Largest number on any card; column c covers c*15+1 .. c*15+15
MAX_NUMBER = 75
NUMBERS_PER_COLUMN = MAX_NUMBER // CARD_SIZE


def column_range(column: int) -> Tuple[int, int]:
    low = column * NUMBERS_PER_COLUMN + 1
    return low, low + NUMBERS_PER_COLUMN - 1


def label(number: int) -> str:
    """B7, N40, O66, ..."""
    return f"{LETTERS[(number - 1) // NUMBERS_PER_COLUMN]}{number}"


def generate_card_numbers(rng: Optional[random.Random] = None) -> List[int]:
    """Build a 25-number card, column-major (index = column * 5 + row).

    Each column draws 5 distinct numbers from its own range. The centre
    index is the free space; the number stored there is never checked.
    """
    rng = rng or random
    numbers: List[int] = []
    for column in range(CARD_SIZE):
        low, high = column_range(column)
        numbers.extend(rng.sample(range(low, high + 1), CARD_SIZE))
    return numbers


def is_valid_layout(numbers) -> bool:
    if not isinstance(numbers, list) or len(numbers) != CARD_SIZE * CARD_SIZE:
        return False
    for column in range(CARD_SIZE):
        low, high = column_range(column)
        cells = numbers[column * CARD_SIZE:(column + 1) * CARD_SIZE]
        if len(set(cells)) != CARD_SIZE:
            return False
        if any(not isinstance(n, int) or n < low or n > high for n in cells):
            return False
    return True
