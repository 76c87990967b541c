from collections import defaultdict
from dataclasses import dataclass
from itertools import accumulate
from typing import Dict, Iterable, List, Tuple

from rnacanon.common import BasePair, SplitMode
from rnacanon.dotbracket import decode_layers


@dataclass(frozen=True)
class HelixRecord:
    """Raw grouping of paired bases: 5' side ascending, 3' side descending."""

    h5bases: Tuple[int, ...]
    h3bases: Tuple[int, ...]
    layer: int = 0


@dataclass(frozen=True)
class Helix:
    """Run of stacked base pairs listed in 5' to 3' order."""

    basepairs: Tuple[BasePair, ...]
    layer: int = 0

    @staticmethod
    def from_record(record: HelixRecord):
        if len(record.h5bases) != len(record.h3bases):
            raise ValueError(
                f"Helix sides differ in length, {len(record.h5bases)} vs {len(record.h3bases)}"
            )
        if not record.h5bases:
            raise ValueError("Helix must contain at least one base pair")
        return Helix(tuple(zip(record.h5bases, record.h3bases)), record.layer)

    @property
    def h5bases(self) -> Tuple[int, ...]:
        return tuple(i for i, _ in self.basepairs)

    @property
    def h3bases(self) -> Tuple[int, ...]:
        return tuple(j for _, j in self.basepairs)

    def __len__(self) -> int:
        return len(self.basepairs)

    def __str__(self):
        (i, j), (k, l) = self.basepairs[0], self.basepairs[-1]
        return f"Helix {i}-{k} {l}-{j} ({len(self)} bp)"


def _continues(
    previous: BasePair, current: BasePair, paired: List[int], split: SplitMode
) -> bool:
    i, j = previous
    k, l = current
    if not (i < k < l < j):
        return False
    gap5, gap3 = k - i - 1, j - l - 1
    if split == SplitMode.STACKED:
        return gap5 == 0 and gap3 == 0
    if split == SplitMode.BULGES and gap5 > 0 and gap3 > 0:
        return False
    # no other pair of the same layer may start or end inside the gaps
    return paired[k] - paired[i + 1] == 0 and paired[j] - paired[l + 1] == 0


def _group(pairs: List[BasePair], length: int, split: SplitMode, layer: int):
    marks = [0] * length
    for i, j in pairs:
        marks[i] = marks[j] = 1
    paired = [0] + list(accumulate(marks))

    runs: List[List[BasePair]] = []
    for pair in sorted(pairs):
        if runs and _continues(runs[-1][-1], pair, paired, split):
            runs[-1].append(pair)
        else:
            runs.append([pair])

    return [
        HelixRecord(tuple(i for i, _ in run), tuple(j for _, j in run), layer)
        for run in runs
    ]


def group_into_helices(
    structure: str, split: SplitMode = SplitMode.STACKED
) -> Tuple[List[HelixRecord], List[HelixRecord]]:
    """Group the pairs of a dot-bracket string into helix records.

    Each bracket layer is grouped on its own; unresolved markers are ignored.

    Returns:
        Records of the base layer and records of the pseudoknot layers.
    """
    by_layer: Dict[int, List[BasePair]] = defaultdict(list)
    for pair, layer in decode_layers(structure, markers=False).items():
        by_layer[layer].append(pair)

    nested = _group(by_layer.pop(0, []), len(structure), split, 0)
    pseudoknotted = []
    for layer in sorted(by_layer):
        pseudoknotted.extend(_group(by_layer[layer], len(structure), split, layer))
    return nested, pseudoknotted


def strip_lonely_pairs(
    records: Iterable[HelixRecord],
) -> Tuple[List[Helix], List[BasePair]]:
    """Turn records into helices, setting aside single-pair ones as lonely pairs."""
    helices, lonely = [], []
    for record in records:
        if len(record.h5bases) == 1:
            lonely.append((record.h5bases[0], record.h3bases[0]))
        else:
            helices.append(Helix.from_record(record))
    return helices, lonely
