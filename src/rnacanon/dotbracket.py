import string
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Mapping, Optional, Tuple

from rnacanon.common import BasePair

LAYERS: Tuple[Tuple[str, str], ...] = (("(", ")"), ("{", "}"), ("<", ">")) + tuple(
    zip(string.ascii_uppercase, string.ascii_lowercase)
)
PSEUDOKNOT_LAYERS = LAYERS[1:]

# single-sided marker for pseudoknotted bases left without a layer
MARKER = ("[", "]")
MARKER_LAYER = len(LAYERS)

BRACKETS = LAYERS + (MARKER,)
OPENING = {opening: layer for layer, (opening, _) in enumerate(BRACKETS)}
CLOSING = {closing: layer for layer, (_, closing) in enumerate(BRACKETS)}


def decode_layers(structure: str, markers: bool = True) -> Dict[BasePair, int]:
    """Parse a dot-bracket string into pairs mapped to their bracket layer.

    Args:
        structure: Dot-bracket string.
        markers: If False, square brackets are skipped instead of decoded.

    Returns:
        Mapping of 0-based (i, j) pairs to indices in BRACKETS.

    Raises:
        ValueError: On foreign characters or unbalanced brackets.
    """
    stacks: Dict[int, List[int]] = {layer: [] for layer in range(len(BRACKETS))}
    result = {}

    for i, c in enumerate(structure):
        if c == ".":
            continue
        if c in OPENING:
            layer = OPENING[c]
            if layer == MARKER_LAYER and not markers:
                continue
            stacks[layer].append(i)
        elif c in CLOSING:
            layer = CLOSING[c]
            if layer == MARKER_LAYER and not markers:
                continue
            if not stacks[layer]:
                raise ValueError(f"Unmatched closing bracket '{c}' at position {i}")
            result[(stacks[layer].pop(), i)] = layer
        else:
            raise ValueError(f"Unexpected character '{c}' at position {i}")

    for layer, stack in stacks.items():
        if stack:
            raise ValueError(
                f"Unmatched opening bracket '{BRACKETS[layer][0]}' at position {stack[-1]}"
            )

    return result


def decode(structure: str) -> List[BasePair]:
    """Return sorted 0-based base pairs encoded in a dot-bracket string."""
    return sorted(decode_layers(structure))


def encode(
    pairs: Iterable[BasePair],
    length: int,
    layers: Optional[Mapping[BasePair, int]] = None,
) -> str:
    """Write base pairs into a dot-bracket string of the given length.

    Pairs missing from ``layers`` are written with round brackets.
    """
    structure = ["."] * length
    layers = layers or {}

    for pair in pairs:
        i, j = pair
        if not (0 <= i < j < length):
            raise ValueError(f"Base pair {pair} does not fit in length {length}")
        if structure[i] != "." or structure[j] != ".":
            raise ValueError(f"Base pair {pair} collides with another pair")
        opening, closing = BRACKETS[layers.get(pair, 0)]
        structure[i] = opening
        structure[j] = closing

    return "".join(structure)


def is_balanced(structure: str) -> bool:
    """Check that every layer is balanced, ignoring unresolved markers."""
    try:
        decode_layers(structure, markers=False)
    except ValueError:
        return False
    return True


def is_valid_grammar(structure) -> bool:
    """Check that an input string is a well-formed dot-bracket annotation."""
    if not isinstance(structure, str):
        return False
    try:
        decode_layers(structure)
    except ValueError:
        return False
    return True


def crosses(a: BasePair, b: BasePair) -> bool:
    """Check if exactly one index of ``b`` lies strictly inside ``a``."""
    i, j = a
    k, l = b
    return (i < k < j) != (i < l < j)


def blank_positions(structure: str, pairs: Iterable[BasePair]) -> str:
    """Replace both positions of every pair with a dot."""
    characters = list(structure)
    for i, j in pairs:
        characters[i] = "."
        characters[j] = "."
    return "".join(characters)


def mark_unresolved(structure: str, pairs: Iterable[BasePair]) -> str:
    """Put single-sided markers on still unpaired positions of the given pairs."""
    characters = list(structure)
    for i, j in pairs:
        if characters[i] == ".":
            characters[i] = MARKER[0]
        if characters[j] == ".":
            characters[j] = MARKER[1]
    return "".join(characters)


@dataclass
class DotBracket:
    """Sequence and structure in dot-bracket notation."""

    sequence: str
    structure: str
    header: Optional[str] = None
    pairs: List[BasePair] = field(init=False, repr=False, compare=False)

    @staticmethod
    def from_file(path: str):
        """Read DotBracket from a file with 2-3 lines.

        Args:
            path: Path to a file with an optional '>' header, sequence and structure.

        Returns:
            Parsed dot-bracket object.
        """
        with open(path) as f:
            lines = [line.rstrip() for line in f if line.strip()]
        if len(lines) == 2:
            return DotBracket.from_string(lines[0], lines[1])
        if len(lines) == 3 and lines[0].startswith(">"):
            return DotBracket.from_string(lines[1], lines[2], lines[0][1:].strip())
        raise RuntimeError(f"Failed to read DotBracket from file: {path}")

    @staticmethod
    def from_string(sequence: str, structure: str, header: Optional[str] = None):
        """Create a DotBracket object from raw sequence and structure strings.

        Raises:
            ValueError: If sequence and structure lengths differ.
        """
        if len(sequence) != len(structure):
            raise ValueError(
                f"Sequence and structure lengths differ, {len(sequence)} vs {len(structure)}"
            )
        return DotBracket(sequence, structure, header)

    def __post_init__(self):
        self.pairs = sorted(decode_layers(self.structure, markers=False))

    def __str__(self):
        text = f"{self.sequence}\n{self.structure}"
        if self.header is not None:
            return f">{self.header}\n{text}"
        return text
