import logging
import math
import numbers
import warnings
from dataclasses import dataclass
from functools import cached_property
from typing import Dict, List, Optional, Sequence, Tuple

from rnacanon.canonical import filter_structure, partition_pairs
from rnacanon.common import (
    BasePair,
    ConsistencyError,
    SplitMode,
    TopologyWarning,
    ValidationError,
    normalize_pair,
)
from rnacanon.dotbracket import (
    DotBracket,
    decode,
    encode,
    is_balanced,
    is_valid_grammar,
    mark_unresolved,
)
from rnacanon.helices import Helix, group_into_helices, strip_lonely_pairs
from rnacanon.pseudoknots import (
    Resolution,
    ResolutionStatus,
    assign_layers,
    extract_non_nested,
)
from rnacanon.sequence import is_nucleic_acid, normalize_sequence


def is_energy(value) -> bool:
    """Check if the value is a real, non-positive free energy."""
    return (
        isinstance(value, numbers.Real)
        and not isinstance(value, bool)
        and not math.isnan(value)
        and value <= 0
    )


@dataclass(frozen=True)
class StructureConfig:
    """Everything needed to build a Structure, validated as a unit."""

    sequence: str
    structure: Optional[str] = None
    basepairs: Optional[Sequence[Sequence[int]]] = None
    energy: float = 0.0
    allow_pseudoknots: bool = False
    allow_noncanonical: bool = False
    allow_lonely_pairs: bool = False

    def validate(self):
        """Raise ValidationError describing the first violated constraint."""
        if not is_energy(self.energy):
            raise ValidationError("Energy value must be a real <= 0")
        for name in ("allow_pseudoknots", "allow_noncanonical", "allow_lonely_pairs"):
            if not isinstance(getattr(self, name), bool):
                raise ValidationError(f"Parameter {name} must be bool")
        if not is_nucleic_acid(self.sequence):
            raise ValidationError("Sequence must be a string of nucleotide codes")
        if self.structure is not None:
            if not isinstance(self.structure, str):
                raise ValidationError("Structure must be a dot-bracket string")
            if len(self.sequence) != len(self.structure):
                raise ValidationError(
                    "Sequence and structure have different lengths, "
                    f"{len(self.sequence)} vs {len(self.structure)}"
                )
            if not is_valid_grammar(self.structure):
                raise ValidationError("Invalid dot-bracket structure")
        if self.basepairs is not None:
            if not isinstance(self.basepairs, (list, tuple, set, frozenset)):
                raise ValidationError("Base pairs must be a collection of pairs")
            check_pairs(self.basepairs, len(self.sequence), ValidationError)
        if self.structure is not None and self.has_basepairs:
            pairs = sorted(normalize_pair(tuple(pair)) for pair in self.basepairs)
            if pairs != decode(self.structure):
                raise ValidationError(
                    "Structure and base pairs describe different pairings"
                )

    @property
    def has_basepairs(self) -> bool:
        return bool(self.basepairs)


def check_pairs(pairs, length: int, error=ValidationError, label: str = "Base"):
    """Check pair shape, index range and that no index is used twice."""
    used = set()
    for pair in pairs:
        if isinstance(pair, (str, bytes)) or not isinstance(pair, Sequence):
            raise error(f"{label} pair {pair!r} is not a pair of indices")
        if len(pair) != 2:
            raise error(f"{label} pair {pair!r} must contain 2 elements")
        for i in pair:
            if not isinstance(i, int) or isinstance(i, bool) or i < 0:
                raise error(f"{label} index {i!r} must be a non-negative integer")
            if i >= length:
                raise error(f"{label} index {i} cannot exceed sequence's length")
        if pair[0] == pair[1]:
            raise error(f"{label} pair {tuple(pair)} pairs a base with itself")
        for i in pair:
            if i in used:
                raise error(f"{label} index {i} is used in more than one pair")
            used.add(i)


class Structure:
    """RNA secondary structure canonicalized at construction.

    The input pairing is read from ``basepairs`` when that list is not
    empty, otherwise from the dot-bracket ``structure``, otherwise the
    structure has no pairs. When both are given they must describe the same
    pairing. The pairing is filtered for non-canonical pairs, split into a
    maximum nested subset and pseudoknotted pairs, and optionally cleaned of
    lonely pairs until no lonely pair is left. Base pairs are the ground
    truth and the output dot-bracket string is always derived from them.

    Args:
        config: Construction parameters; alternatively pass them as keywords.
        method: Maximum nested subset method, see ``extract_non_nested``.
        **kwargs: Fields of StructureConfig when no config is given.

    Raises:
        ValidationError: If the input violates the structure contract.
        ConsistencyError: If the canonicalized structure is inconsistent.
    """

    def __init__(
        self, config: Optional[StructureConfig] = None, method: str = "dp", **kwargs
    ):
        if config is None:
            config = StructureConfig(**kwargs)
        elif kwargs:
            raise TypeError("Pass either a StructureConfig or keyword arguments")
        config.validate()

        self._config = config
        self._method = method
        self._sequence = normalize_sequence(config.sequence)
        self._energy = float(config.energy)
        self._basepairs: List[BasePair] = []
        self._pkpairs: List[BasePair] = []
        self._ncpairs: List[BasePair] = []
        self._lonelypairs: List[BasePair] = []
        self._resolution = Resolution()
        self._helices: Dict[SplitMode, Tuple[List[Helix], List[Helix]]] = {}

        if config.has_basepairs or config.structure is not None:
            self._canonicalize()

        self.__check_consistency()

        if not config.allow_lonely_pairs:
            self._strip_lonely_pairs()

        self._report_topology()

    def _canonicalize(self):
        config = self._config

        if config.has_basepairs:
            pairs = sorted(normalize_pair(tuple(pair)) for pair in config.basepairs)
            canonical, self._ncpairs = partition_pairs(self._sequence, pairs)
            working = canonical + self._ncpairs if config.allow_noncanonical else canonical
        elif config.allow_noncanonical:
            working = decode(config.structure)
            _, self._ncpairs = partition_pairs(self._sequence, working)
        else:
            structure, _, self._ncpairs = filter_structure(
                self._sequence, config.structure
            )
            working = decode(structure)
        logging.debug(f"Canonicality filter kept {len(working)} base pairs")

        self._resolve(working)

    def _resolve(self, pairs: Sequence[BasePair]):
        self._basepairs, self._pkpairs = extract_non_nested(pairs, self._method)
        if self._pkpairs:
            self._resolution = assign_layers(self._pkpairs, self._method)
        else:
            self._resolution = Resolution()

    def _report_topology(self):
        if self.resolution_status == ResolutionStatus.PARTIALLY_RESOLVED:
            message = (
                "Structure topology is too complex, unable to add "
                f"{len(self._resolution.remaining)} pseudoknotted pairs"
            )
            logging.warning(message)
            warnings.warn(message, TopologyWarning, stacklevel=3)

    def _encode(self, pseudoknots: Optional[bool] = None) -> str:
        if pseudoknots is None:
            pseudoknots = self._config.allow_pseudoknots
        if not pseudoknots:
            return encode(self._basepairs, len(self._sequence))
        placed = self._basepairs + list(self._resolution.layers)
        structure = encode(placed, len(self._sequence), self._resolution.layers)
        if self._resolution.remaining:
            structure = mark_unresolved(structure, self._resolution.remaining)
        return structure

    def __check_consistency(self):
        check_pairs(
            self._basepairs + self._pkpairs,
            len(self._sequence),
            ConsistencyError,
            "Canonicalized",
        )
        try:
            structure = self._encode(pseudoknots=True)
        except ValueError as e:
            raise ConsistencyError(f"Failed to encode base pairs: {e}") from e
        if not is_balanced(structure):
            raise ConsistencyError("Unbalanced base-pairs in structure")

    def _strip_lonely_pairs(self):
        # pseudoknot layers are checked even when they are not written out
        while True:
            nested, pseudoknotted = group_into_helices(self._encode(pseudoknots=True))
            helices, lonely = strip_lonely_pairs(nested)
            pkhelices, pklonely = strip_lonely_pairs(pseudoknotted)
            if not lonely and not pklonely:
                break

            logging.debug(f"Removing {len(lonely) + len(pklonely)} lonely base pairs")
            removed = set(lonely + pklonely)
            self._lonelypairs = sorted(removed.union(self._lonelypairs))
            # survivors are split again so pkpairs only holds pairs that still cross
            self._resolve(
                [pair for pair in self._basepairs + self._pkpairs if pair not in removed]
            )

        if not self._config.allow_pseudoknots:
            pkhelices = []
        self._helices[SplitMode.STACKED] = (helices, pkhelices)

    def _decompose(self, split: SplitMode) -> Tuple[List[Helix], List[Helix]]:
        if split not in self._helices:
            nested, pseudoknotted = group_into_helices(self.structure, split)
            self._helices[split] = (
                [Helix.from_record(record) for record in nested],
                [Helix.from_record(record) for record in pseudoknotted],
            )
        return self._helices[split]

    @property
    def config(self) -> StructureConfig:
        return self._config

    @property
    def sequence(self) -> str:
        return self._sequence

    @cached_property
    def structure(self) -> str:
        return self._encode()

    @property
    def dot_bracket(self) -> DotBracket:
        return DotBracket(self._sequence, self.structure)

    @property
    def basepairs(self) -> List[BasePair]:
        return list(self._basepairs)

    @property
    def pkpairs(self) -> List[BasePair]:
        return list(self._pkpairs)

    @property
    def noncanonical_pairs(self) -> List[BasePair]:
        return list(self._ncpairs)

    @property
    def lonely_pairs(self) -> List[BasePair]:
        return list(self._lonelypairs)

    @property
    def layers(self) -> Dict[BasePair, int]:
        """Bracket layer of every pair written to the structure (0 = round)."""
        result = {pair: 0 for pair in self._basepairs}
        if self._config.allow_pseudoknots:
            result.update(self._resolution.layers)
        return result

    @property
    def resolution_status(self) -> ResolutionStatus:
        if not self._config.allow_pseudoknots:
            return ResolutionStatus.RESOLVED
        return self._resolution.status

    @property
    def energy(self) -> float:
        return self._energy

    @energy.setter
    def energy(self, value):
        self.set_energy(value)

    def set_energy(self, value) -> float:
        """Store a new free energy; values that are not a real <= 0 are ignored."""
        if is_energy(value):
            self._energy = float(value)
        else:
            logging.debug(f"Ignoring invalid energy value: {value!r}")
        return self._energy

    def helices(self, split: Optional[SplitMode] = None) -> List[Helix]:
        """Helices of the base layer, grouped with the given split mode."""
        return list(self._decompose(split or SplitMode.STACKED)[0])

    def pkhelices(self, split: Optional[SplitMode] = None) -> List[Helix]:
        """Helices of the pseudoknot layers, grouped with the given split mode."""
        return list(self._decompose(split or SplitMode.STACKED)[1])

    def __len__(self) -> int:
        return len(self._sequence)

    def __str__(self):
        return f"{self._sequence}\n{self.structure}"
