#! /usr/bin/env python
import argparse
import itertools
import sys
from typing import Dict

import orjson

from rnacanon.common import SplitMode, ValidationError
from rnacanon.dotbracket import DotBracket
from rnacanon.pseudoknots import METHODS
from rnacanon.structure import Structure, StructureConfig


def to_dict(structure: Structure, split: SplitMode) -> Dict:
    return {
        "sequence": structure.sequence,
        "structure": structure.structure,
        "energy": structure.energy,
        "basepairs": structure.basepairs,
        "pkpairs": structure.pkpairs,
        "noncanonicalPairs": structure.noncanonical_pairs,
        "lonelyPairs": structure.lonely_pairs,
        "status": structure.resolution_status.value,
        "helices": [helix.basepairs for helix in structure.helices(split)],
        "pkHelices": [helix.basepairs for helix in structure.pkhelices(split)],
    }


def main():
    parser = argparse.ArgumentParser(
        description="Validate and canonicalize an RNA secondary structure"
    )
    parser.add_argument("--dbn", help="path to DotBracket file")
    parser.add_argument("--sequence", help="nucleotide sequence")
    parser.add_argument("--structure", help="dot-bracket structure")
    parser.add_argument(
        "--allow-pseudoknots",
        action="store_true",
        help="keep pseudoknots using additional bracket layers",
    )
    parser.add_argument(
        "--allow-noncanonical",
        action="store_true",
        help="keep base pairs other than Watson-Crick and wobble",
    )
    parser.add_argument(
        "--allow-lonely-pairs", action="store_true", help="keep isolated base pairs"
    )
    parser.add_argument("--energy", type=float, default=0.0, help="free energy (<= 0)")
    parser.add_argument(
        "--method",
        choices=METHODS,
        default="dp",
        help="maximum nested subset method (default=dp)",
    )
    parser.add_argument(
        "--split",
        choices=[mode.value for mode in SplitMode],
        default=SplitMode.STACKED.value,
        help="how helices are delimited (default=stacked)",
    )
    parser.add_argument("--json", action="store_true", help="print result as JSON")
    args = parser.parse_args()

    if args.dbn:
        try:
            dot_bracket = DotBracket.from_file(args.dbn)
        except ValueError as e:
            print(f"Invalid input: {e}", file=sys.stderr)
            sys.exit(1)
        sequence, structure = dot_bracket.sequence, dot_bracket.structure
    elif args.sequence:
        sequence, structure = args.sequence, args.structure
    else:
        parser.print_help()
        return

    config = StructureConfig(
        sequence=sequence,
        structure=structure,
        energy=args.energy,
        allow_pseudoknots=args.allow_pseudoknots,
        allow_noncanonical=args.allow_noncanonical,
        allow_lonely_pairs=args.allow_lonely_pairs,
    )

    try:
        result = Structure(config, method=args.method)
    except ValidationError as e:
        print(f"Invalid input: {e}", file=sys.stderr)
        sys.exit(1)

    split = SplitMode(args.split)

    if args.json:
        print(orjson.dumps(to_dict(result, split)).decode("utf-8"))
        return

    print(result.dot_bracket)
    for helix in itertools.chain(result.helices(split), result.pkhelices(split)):
        print(helix)
    for i, j in result.lonely_pairs:
        print(f"LonelyPair {i} {j}")


if __name__ == "__main__":
    main()
