"""
Random test data generation
Produces collision-resistant, clearly-marked values for entity factories
"""

import random
import string
from typing import Any, Collection, Iterable, Optional
from faker import Faker

from graph_harness.config.settings import get_config

# SystemRandom keeps parallel workers from sharing a seeded sequence
_rng = random.SystemRandom()
_fake = Faker()

ALPHANUMERIC = string.ascii_letters + string.digits
LOWERCASE = string.ascii_lowercase
UPPERCASE = string.ascii_uppercase
DIGITS = string.digits
HEX = "0123456789abcdef"

DEFAULT_LENGTH = 12
MAX_ATTEMPTS = 1000


def _effective_charset(charset: str, exclude_chars: Iterable[str]) -> str:
    excluded = set(exclude_chars)
    # dict.fromkeys keeps order and drops duplicate characters
    chars = "".join(c for c in dict.fromkeys(charset) if c not in excluded)
    if not chars:
        raise ValueError("Character set is empty after exclusions")
    return chars


def random_string(
    length: int = DEFAULT_LENGTH,
    charset: str = ALPHANUMERIC,
    exclude_chars: Iterable[str] = (),
    avoid: Collection[str] = (),
) -> str:
    """
    Random string of exactly `length` characters drawn from `charset`.

    Args:
        length: Exact length of the result
        charset: Characters to draw from
        exclude_chars: Characters removed from the charset
        avoid: Values the result must not equal (e.g. names already in use)
    """
    if length < 0:
        raise ValueError(f"length must be non-negative, got {length}")
    chars = _effective_charset(charset, exclude_chars)

    for _ in range(MAX_ATTEMPTS):
        value = "".join(_rng.choice(chars) for _ in range(length))
        if value not in avoid:
            return value
    raise ValueError(f"Could not generate a value outside the avoid set after {MAX_ATTEMPTS} attempts")


def random_int(minimum: int = 0, maximum: int = 1_000_000, avoid: Collection[int] = ()) -> int:
    """Random integer in [minimum, maximum] that is not in `avoid`"""
    if minimum > maximum:
        raise ValueError(f"minimum {minimum} is greater than maximum {maximum}")
    for _ in range(MAX_ATTEMPTS):
        value = _rng.randint(minimum, maximum)
        if value not in avoid:
            return value
    raise ValueError(f"Could not generate a value outside the avoid set after {MAX_ATTEMPTS} attempts")


def random_choice(options: Collection[Any], avoid: Collection[Any] = ()) -> Any:
    """Random member of `options` that is not in `avoid`"""
    candidates = [o for o in options if o not in avoid]
    if not candidates:
        raise ValueError("No options left after exclusions")
    return _rng.choice(candidates)


def unique_suffix(length: int = 8) -> str:
    """Lowercase hex suffix for names that must not collide across workers"""
    return random_string(length, HEX)


def data_prefix(prefix: Optional[str] = None) -> str:
    """Marker prefix identifying data created by the harness"""
    return prefix if prefix is not None else get_config().test_data_prefix


def random_company(prefix: Optional[str] = None) -> str:
    """Realistic but clearly-marked company name"""
    return f"{data_prefix(prefix)}_{_fake.company()} {unique_suffix(6)}"


def random_person_name(prefix: Optional[str] = None) -> str:
    return f"{data_prefix(prefix)}_{_fake.name()} {unique_suffix(6)}"


def random_email(domain: str = "graph-test.example.com") -> str:
    """Unique address on a reserved test domain"""
    return f"test.{_fake.user_name()}.{unique_suffix()}@{domain}"


def random_sentence() -> str:
    return _fake.sentence()


def random_price(minimum: float = 1.0, maximum: float = 1000.0) -> float:
    """Price rounded to cents"""
    cents = random_int(int(minimum * 100), int(maximum * 100))
    return cents / 100
