"""Salience arithmetic.

Reinforcement is additive and decay multiplicative: memories recalled often
climb toward MAX_SALIENCE, untouched ones follow 1.0 * 0.98**n and cross
PRUNE_FLOOR after about 115 sweeps. The store applies the same rules in SQL;
these functions are the reference for them.
"""
import math
from datetime import datetime, timedelta

INITIAL_SALIENCE = 1.0
MIN_SALIENCE = 0.0
MAX_SALIENCE = 5.0
REINFORCE_DELTA = 0.1
DECAY_FACTOR = 0.98
PRUNE_FLOOR = 0.1
GRACE_WINDOW = timedelta(hours=24)


def clamp(salience: float) -> float:
    return max(MIN_SALIENCE, min(salience, MAX_SALIENCE))


def reinforced(salience: float) -> float:
    """Salience after one retrieval."""
    return clamp(salience + REINFORCE_DELTA)


def decayed(salience: float) -> float:
    """Salience after one sweep outside the grace window."""
    return clamp(salience * DECAY_FACTOR)


def is_expired(salience: float) -> bool:
    return salience < PRUNE_FLOOR


def decay_cutoff(now: datetime) -> datetime:
    """Memories last accessed before this instant decay in a sweep at `now`."""
    return now - GRACE_WINDOW


def sweeps_until_expiry(salience: float = INITIAL_SALIENCE) -> int:
    """Number of unaccessed sweeps before a memory is pruned."""
    if is_expired(salience):
        return 0
    n = math.ceil(math.log(PRUNE_FLOOR / salience) / math.log(DECAY_FACTOR))
    # float rounding can land exactly on the floor
    while not is_expired(salience * DECAY_FACTOR ** n):
        n += 1
    return n
