import itertools
import logging
from bisect import bisect_left
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Dict, Iterable, List, Sequence, Tuple

import pulp

from rnacanon.common import BasePair
from rnacanon.dotbracket import PSEUDOKNOT_LAYERS, crosses

METHODS = ("dp", "fcfs", "milp")


class ResolutionStatus(Enum):
    RESOLVED = "resolved"
    PARTIALLY_RESOLVED = "partially-resolved"


@dataclass(frozen=True)
class Resolution:
    """Outcome of distributing pseudoknotted pairs over bracket layers.

    ``layers`` maps each placed pair to its index in ``LAYERS`` and
    ``remaining`` holds pairs for which the palette ran out.
    """

    layers: Dict[BasePair, int] = field(default_factory=dict)
    remaining: List[BasePair] = field(default_factory=list)

    @property
    def status(self) -> ResolutionStatus:
        if self.remaining:
            return ResolutionStatus.PARTIALLY_RESOLVED
        return ResolutionStatus.RESOLVED


def _sparse_table(values: List[int], function) -> List[List[int]]:
    table = [values]
    width = 1
    while 2 * width <= len(values):
        previous = table[-1]
        table.append(
            [
                function(previous[i], previous[i + width])
                for i in range(len(values) - 2 * width + 1)
            ]
        )
        width *= 2
    return table


def _query(table: List[List[int]], function, lo: int, hi: int) -> int:
    level = (hi - lo + 1).bit_length() - 1
    return function(table[level][lo], table[level][hi - (1 << level) + 1])


def _split_free(pairs: Sequence[BasePair]) -> Tuple[List[BasePair], List[BasePair]]:
    """Separate pairs crossing nothing from pairs involved in a conflict.

    A pair (i, j) crosses nothing when every partner of a position strictly
    inside it also lies strictly inside it.
    """
    length = max(j for _, j in pairs) + 1
    partner = list(range(length))
    for i, j in pairs:
        partner[i] = j
        partner[j] = i

    minimum = _sparse_table(partner, min)
    maximum = _sparse_table(partner, max)
    free, conflicted = [], []

    for i, j in pairs:
        if j - i < 2 or (
            _query(minimum, min, i + 1, j - 1) > i
            and _query(maximum, max, i + 1, j - 1) < j
        ):
            free.append((i, j))
        else:
            conflicted.append((i, j))

    return free, conflicted


def _maximum_size(pairs: Sequence[BasePair]) -> int:
    """Size of a maximum crossing-free subset, by dynamic programming.

    Closing positions are scanned 5' to 3'; the value of a pair is one plus
    the best score strictly inside it.
    """
    if not pairs:
        return 0
    opener_of = {j: i for i, j in pairs}
    closers = sorted(opener_of)
    value: Dict[BasePair, int] = {}

    def scan(lo: int, hi: int) -> int:
        ends = closers[bisect_left(closers, lo) : bisect_left(closers, hi + 1)]
        scores: List[int] = []
        for t, y in enumerate(ends):
            best = scores[t - 1] if t else 0
            k = opener_of[y]
            if k >= lo:
                u = bisect_left(ends, k) - 1
                best = max(best, (scores[u] if u >= 0 else 0) + value[(k, y)])
            scores.append(best)
        return scores[-1] if scores else 0

    for i, j in sorted(pairs, key=lambda pair: (pair[1] - pair[0], pair[0])):
        value[(i, j)] = 1 + scan(i + 1, j - 1)
    return scan(0, closers[-1])


def _lexicographic_maximum(
    pairs: Sequence[BasePair], size: Callable[[Sequence[BasePair]], int]
) -> List[BasePair]:
    """Pick the maximum crossing-free subset the greedy order prefers.

    Pairs are visited by ascending start, then span, and a pair is taken
    whenever some maximum subset still contains it together with the pairs
    taken before. ``size`` computes the maximum subset size of a pair list.
    """
    target = size(pairs)
    selected: List[BasePair] = []
    pool = sorted(pairs, key=lambda pair: (pair[0], pair[1] - pair[0]))
    while pool and len(selected) < target:
        pair, rest = pool[0], pool[1:]
        compatible = [other for other in rest if not crosses(pair, other)]
        if len(selected) + 1 + size(compatible) == target:
            selected.append(pair)
            pool = compatible
        else:
            pool = rest
    return selected


def _maximum_dp(pairs: Sequence[BasePair]) -> List[BasePair]:
    """Select a maximum crossing-free subset by dynamic programming."""
    return _lexicographic_maximum(pairs, _maximum_size)


def _fcfs(pairs: Sequence[BasePair]) -> List[BasePair]:
    """Accept pairs by ascending start then span unless they cross an accepted one."""
    accepted: List[BasePair] = []
    for pair in sorted(pairs, key=lambda pair: (pair[0], pair[1] - pair[0])):
        if not any(crosses(pair, other) for other in accepted):
            accepted.append(pair)
    return accepted


def _milp_size(pairs: Sequence[BasePair], solver) -> int:
    if not pairs:
        return 0

    problem = pulp.LpProblem("MNS", pulp.LpMaximize)
    variables = {
        pair: pulp.LpVariable(f"x_{pair[0]}_{pair[1]}", 0, 1, pulp.LpInteger)
        for pair in pairs
    }
    problem += pulp.lpSum(variables.values())

    for a, b in itertools.combinations(pairs, 2):
        if crosses(a, b):
            problem += variables[a] + variables[b] <= 1

    logging.debug(f"MNS: problem formulation\n{problem}")
    problem.solve(solver)
    if problem.status != pulp.LpStatusOptimal:
        raise pulp.PulpSolverError("MNS: problem is not optimal")
    return round(pulp.value(problem.objective))


def _maximum_milp(pairs: Sequence[BasePair]) -> List[BasePair]:
    """Select a maximum crossing-free subset with PuLP integer programs.

    The solver only provides subset sizes, the choice among equally large
    subsets is the same as for the dynamic programming route. Falls back to
    that route if the solver fails.
    """
    if pulp.HiGHS_CMD().available():
        solver = pulp.HiGHS_CMD()  # much faster than default
    else:
        solver = pulp.LpSolverDefault
    if solver is None:
        logging.warning("MNS: no MILP solver available, fallback to DP")
        return _maximum_dp(pairs)
    solver.msg = False

    try:
        return _lexicographic_maximum(pairs, lambda subset: _milp_size(subset, solver))
    except pulp.PulpSolverError as e:
        logging.warning(
            f"MNS: failed to solve problem using MILP approach, fallback to DP: {e}"
        )
        return _maximum_dp(pairs)


def extract_non_nested(
    pairs: Iterable[BasePair], method: str = "dp"
) -> Tuple[List[BasePair], List[BasePair]]:
    """Split base pairs into a crossing-free subset and the pairs crossing it.

    Args:
        pairs: 0-based (i, j) pairs with i < j and no shared index.
        method: "dp" (exact maximum), "milp" (exact maximum through PuLP) or
            "fcfs" (greedy first-come first-served). Among equally large
            subsets "dp" and "milp" keep the one preferred by ascending
            start, then span, so they agree with "fcfs" whenever the greedy
            result is maximum.

    Returns:
        Sorted nested pairs and sorted crossing pairs.

    Raises:
        ValueError: If the method is unknown.
    """
    if method not in METHODS:
        raise ValueError(f"Unknown method '{method}', expected one of {METHODS}")

    pairs = sorted(set(pairs))
    if not pairs:
        return [], []

    free, conflicted = _split_free(pairs)
    if not conflicted:
        return pairs, []

    if method == "fcfs":
        selected = _fcfs(pairs)
    elif method == "milp":
        selected = free + _maximum_milp(conflicted)
    else:
        selected = free + _maximum_dp(conflicted)

    chosen = set(selected)
    nested = sorted(chosen)
    crossing = [pair for pair in pairs if pair not in chosen]
    logging.debug(
        f"MNS: kept {len(nested)} nested pairs, removed {len(crossing)} crossing pairs"
    )
    return nested, crossing


def assign_layers(pairs: Iterable[BasePair], method: str = "dp") -> Resolution:
    """Distribute pseudoknotted pairs over successive bracket layers.

    Each step extracts the nested subset of the pairs not placed yet and
    assigns it the next layer of PSEUDOKNOT_LAYERS.
    """
    layers: Dict[BasePair, int] = {}
    remaining = sorted(pairs)
    cursor = 0

    while remaining and cursor < len(PSEUDOKNOT_LAYERS):
        nested, remaining = extract_non_nested(remaining, method)
        for pair in nested:
            layers[pair] = cursor + 1
        cursor += 1

    return Resolution(layers, remaining)
