import logging
import os
from enum import Enum
from typing import Tuple

LOGLEVEL = os.environ.get("LOGLEVEL", "INFO").upper()
logging.basicConfig(level=LOGLEVEL)

BasePair = Tuple[int, int]


class ValidationError(ValueError):
    """Raised when constructor input violates the structure contract."""


class ConsistencyError(RuntimeError):
    """Raised when a canonicalized structure breaks an internal invariant."""


class TopologyWarning(UserWarning):
    """Emitted when pseudoknot layers run out before all pairs are placed."""


class SplitMode(Enum):
    """How helices are delimited when grouping stacked base pairs."""

    STACKED = "stacked"
    BULGES = "bulges"
    LOOPS = "loops"


def normalize_pair(pair) -> BasePair:
    """Return the pair as a tuple with the lower index first."""
    i, j = pair
    return (i, j) if i < j else (j, i)
