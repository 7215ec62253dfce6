from bingo.errors import InvalidInput
from .patterns import PATTERNS


def parse_int(value, field, low, high):
    if isinstance(value, bool):
        raise InvalidInput(f'{field} must be an integer')
    try:
        number = int(value)
    except (TypeError, ValueError):
        raise InvalidInput(f'{field} must be an integer')
    if isinstance(value, float) and value != number:
        raise InvalidInput(f'{field} must be an integer')
    if number < low or number > high:
        raise InvalidInput(f'{field} must be between {low} and {high}')
    return number


def parse_name(value, field='name', max_length=64):
    if not isinstance(value, str) or not value.strip():
        raise InvalidInput(f'{field} is required')
    name = value.strip()
    if len(name) > max_length:
        raise InvalidInput(f'{field} must be at most {max_length} characters')
    return name


def parse_pattern(value):
    if value not in PATTERNS:
        raise InvalidInput(f"Unknown win pattern; expected one of {', '.join(PATTERNS)}")
    return value


def parse_marked(value):
    """A card's marked list: flat indices 0-24, duplicates collapsed."""
    if not isinstance(value, list):
        raise InvalidInput('marked must be an array of cell indices')
    return sorted({parse_int(i, 'marked index', 0, 24) for i in value})
