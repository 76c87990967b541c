import re

IUPAC = "ACGTURYSWKMBDHVN"

CANONICAL_PAIRS = frozenset(
    [
        ("A", "U"),
        ("U", "A"),
        ("G", "C"),
        ("C", "G"),
        ("G", "U"),
        ("U", "G"),
    ]
)

_NUCLEIC_ACID = re.compile(rf"[{IUPAC}{IUPAC.lower()}-]*")


def is_nucleic_acid(sequence) -> bool:
    """Check if the sequence is made of IUPAC nucleotide codes (gaps allowed)."""
    return isinstance(sequence, str) and _NUCLEIC_ACID.fullmatch(sequence) is not None


def dna_to_rna(sequence: str) -> str:
    return sequence.replace("T", "U").replace("t", "u")


def normalize_sequence(sequence: str) -> str:
    """Upper-case the sequence and convert it to the RNA alphabet."""
    return dna_to_rna(sequence.upper())


def is_canonical_pair(sequence: str, i: int, j: int) -> bool:
    """Check if bases at i and j form a Watson-Crick or wobble pair."""
    nt1 = dna_to_rna(sequence[i].upper())
    nt2 = dna_to_rna(sequence[j].upper())
    return (nt1, nt2) in CANONICAL_PAIRS
