import random

from hypothesis import given, strategies as st

from bingo.services.games.cards import (
    column_range, generate_card_numbers, is_valid_layout, label,
)


def test_column_ranges():
    assert [column_range(c) for c in range(5)] == [(1, 15), (16, 30), (31, 45), (46, 60), (61, 75)]


def test_generated_card_has_25_numbers():
    assert len(generate_card_numbers()) == 25


@given(seed=st.integers(min_value=0, max_value=2**32 - 1))
def test_columns_distinct_and_in_range(seed):
    numbers = generate_card_numbers(random.Random(seed))
    for column in range(5):
        low, high = column_range(column)
        cells = numbers[column * 5:column * 5 + 5]
        assert len(set(cells)) == 5
        assert all(low <= n <= high for n in cells)
    assert is_valid_layout(numbers)


def test_seeded_generation_is_reproducible():
    assert generate_card_numbers(random.Random(42)) == generate_card_numbers(random.Random(42))


def test_is_valid_layout_rejects_bad_cards():
    good = [c * 15 + r + 1 for c in range(5) for r in range(5)]
    assert is_valid_layout(good)
    assert not is_valid_layout(good[:24])
    dup = list(good)
    dup[1] = dup[0]
    assert not is_valid_layout(dup)
    out_of_column = list(good)
    out_of_column[0] = 16
    assert not is_valid_layout(out_of_column)


def test_labels():
    assert label(1) == 'B1'
    assert label(15) == 'B15'
    assert label(16) == 'I16'
    assert label(45) == 'N45'
    assert label(60) == 'G60'
    assert label(75) == 'O75'
