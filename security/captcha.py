import random
import re
from dataclasses import dataclass

OPERATORS = ("+", "-", "*")

_LEADING_INT = re.compile(r"^\s*([+-]?\d+)")


@dataclass(frozen=True)
class Challenge:
    question: str
    answer: int


def generate_challenge(rng: random.Random | None = None) -> Challenge:
    """
    Small arithmetic puzzle for public forms. Easy for people, enough to stop
    naive scripted submissions.
    """
    rng = rng or random.SystemRandom()
    op = rng.choice(OPERATORS)

    if op == "*":
        # keep products small enough to do in your head
        a = rng.randint(1, 5)
        b = rng.randint(1, 5)
        return Challenge(question=f"{a} × {b}", answer=a * b)

    a = rng.randint(1, 10)
    b = rng.randint(1, 10)
    if op == "+":
        return Challenge(question=f"{a} + {b}", answer=a + b)

    larger, smaller = max(a, b), min(a, b)
    return Challenge(question=f"{larger} - {smaller}", answer=larger - smaller)


def _coerce_int(value):
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        if value != value or value in (float("inf"), float("-inf")):
            return None
        return int(value)
    if isinstance(value, str):
        match = _LEADING_INT.match(value)
        return int(match.group(1)) if match else None
    return None


def validate_challenge(submitted, answer: int) -> bool:
    """Exact match after integer coercion. No tolerance."""
    value = _coerce_int(submitted)
    if value is None:
        return False
    return value == answer
