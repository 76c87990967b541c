import logging
from typing import Iterable, List, Tuple

from rnacanon.common import BasePair
from rnacanon.dotbracket import blank_positions, decode
from rnacanon.sequence import is_canonical_pair


def partition_pairs(
    sequence: str, pairs: Iterable[BasePair]
) -> Tuple[List[BasePair], List[BasePair]]:
    """Split base pairs into canonical (Watson-Crick, wobble) and non-canonical.

    Args:
        sequence: Nucleotide sequence the pair indices refer to.
        pairs: 0-based base pairs.

    Returns:
        Canonical and non-canonical pairs, each in input order.
    """
    canonical, non_canonical = [], []
    for i, j in pairs:
        if is_canonical_pair(sequence, i, j):
            canonical.append((i, j))
        else:
            non_canonical.append((i, j))
    if non_canonical:
        logging.debug(f"Found {len(non_canonical)} non-canonical base pairs")
    return canonical, non_canonical


def filter_structure(
    sequence: str, structure: str
) -> Tuple[str, List[BasePair], List[BasePair]]:
    """Remove non-canonical pairs from a dot-bracket string in place.

    The positions of non-canonical pairs are blanked directly in the string
    instead of re-encoding the surviving pairs.

    Returns:
        Filtered structure, canonical pairs and non-canonical pairs.
    """
    canonical, non_canonical = partition_pairs(sequence, decode(structure))
    if non_canonical:
        structure = blank_positions(structure, non_canonical)
    return structure, canonical, non_canonical
