"""Win-pattern validation.

Cells are addressed by flat index, column-major (index = column * 5 + row).
A cell counts toward a pattern only if it is marked AND its number has been
called; the free centre cell always counts. Everything here is pure.
"""
from typing import Dict, FrozenSet, Iterable, List, Sequence, Tuple

from .cards import CARD_SIZE, FREE_INDEX

ROWS: Tuple[FrozenSet[int], ...] = tuple(
    frozenset(row + column * CARD_SIZE for column in range(CARD_SIZE)) for row in range(CARD_SIZE)
)
COLUMNS: Tuple[FrozenSet[int], ...] = tuple(
    frozenset(range(column * CARD_SIZE, (column + 1) * CARD_SIZE)) for column in range(CARD_SIZE)
)
DIAGONALS: Tuple[FrozenSet[int], ...] = (
    frozenset({0, 6, 12, 18, 24}),
    frozenset({4, 8, 12, 16, 20}),
)
BOX = frozenset({0, 1, 2, 3, 4, 5, 9, 10, 14, 15, 19, 20, 21, 22, 23, 24})
CORNERS = frozenset({0, 4, 20, 24})
FULL = frozenset(range(CARD_SIZE * CARD_SIZE))

# pattern -> (candidate index sets, whether all of them or any one must hold)
_RULES: Dict[str, Tuple[Tuple[FrozenSet[int], ...], bool]] = {
    'line': (ROWS + COLUMNS + DIAGONALS, False),
    'diagonal': (DIAGONALS, False),
    'cross': (DIAGONALS, True),
    'box': ((BOX,), True),
    'corners': ((CORNERS,), True),
    'rows': (ROWS, True),
    'columns': (COLUMNS, True),
    'full': ((FULL,), True),
}

PATTERNS: Tuple[str, ...] = tuple(_RULES)


def satisfied_cells(marked_indices: Iterable[int], called_numbers: Iterable[int],
                    card_numbers: Sequence[int]) -> FrozenSet[int]:
    """Indices that are marked and backed by a called number, plus the free space."""
    called = set(called_numbers)
    cells = {FREE_INDEX}
    for index in set(marked_indices):
        if index == FREE_INDEX or not 0 <= index < len(card_numbers):
            continue
        if card_numbers[index] in called:
            cells.add(index)
    return frozenset(cells)


def is_winning_claim(marked_indices: Iterable[int], pattern: str, called_numbers: Iterable[int],
                     card_numbers: Sequence[int]) -> bool:
    rule = _RULES.get(pattern) if isinstance(pattern, str) else None
    if rule is None:
        return False
    index_sets, require_all = rule
    cells = satisfied_cells(marked_indices, called_numbers, card_numbers)
    check = all if require_all else any
    return check(required <= cells for required in index_sets)


def uncalled_marks(marked_indices: Iterable[int], called_numbers: Iterable[int],
                   card_numbers: Sequence[int]) -> List[int]:
    """Numbers the player marked that were never called (free space excluded)."""
    called = set(called_numbers)
    return [
        card_numbers[index]
        for index in sorted(set(marked_indices))
        if index != FREE_INDEX and 0 <= index < len(card_numbers) and card_numbers[index] not in called
    ]
