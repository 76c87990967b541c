import itertools

import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from rnacanon.dotbracket import crosses
from rnacanon.pseudoknots import (
    Resolution,
    ResolutionStatus,
    assign_layers,
    extract_non_nested,
)


@st.composite
def pair_sets(draw, max_length=40, max_pairs=12):
    indices = draw(
        st.lists(
            st.integers(0, max_length - 1), unique=True, max_size=2 * max_pairs
        )
    )
    return [
        tuple(sorted((indices[k], indices[k + 1])))
        for k in range(0, len(indices) - 1, 2)
    ]


def is_nested(pairs):
    return not any(crosses(a, b) for a, b in itertools.combinations(pairs, 2))


@pytest.mark.parametrize("method", ["dp", "fcfs", "milp"])
def test_crossing_pair_with_lower_start_is_kept(method):
    nested, crossing = extract_non_nested([(2, 6), (0, 4)], method)
    assert nested == [(0, 4)]
    assert crossing == [(2, 6)]


@pytest.mark.parametrize("method", ["dp", "fcfs", "milp"])
def test_equally_large_subsets_prefer_lower_start(method):
    pairs = [(0, 3), (1, 6), (2, 4), (5, 7)]
    assert extract_non_nested(pairs, method) == ([(0, 3), (5, 7)], [(1, 6), (2, 4)])


@pytest.mark.parametrize("method", ["dp", "fcfs", "milp"])
def test_nested_input_is_untouched(method):
    pairs = [(0, 8), (1, 7), (2, 6), (10, 14)]
    assert extract_non_nested(pairs, method) == (pairs, [])


def test_empty():
    assert extract_non_nested([]) == ([], [])


@pytest.mark.parametrize("method", ["dp", "milp"])
def test_maximum_beats_greedy(method):
    pairs = [(0, 5), (1, 8), (2, 7), (3, 6)]
    assert extract_non_nested(pairs, method) == ([(1, 8), (2, 7), (3, 6)], [(0, 5)])
    assert extract_non_nested(pairs, "fcfs") == ([(0, 5)], [(1, 8), (2, 7), (3, 6)])


def test_unknown_method():
    with pytest.raises(ValueError):
        extract_non_nested([(0, 4)], "nussinov")


@given(pair_sets())
@settings(max_examples=200)
def test_maximum_nested_subset(pairs):
    nested, crossing = extract_non_nested(pairs)
    assert is_nested(nested)
    assert sorted(nested + crossing) == sorted(pairs)
    assert extract_non_nested(nested) == (nested, [])
    # nothing left out could be added back
    for pair in crossing:
        assert any(crosses(pair, other) for other in nested)
    assert len(nested) >= len(extract_non_nested(pairs, "fcfs")[0])


@given(pair_sets(max_length=16, max_pairs=6))
@settings(max_examples=100)
def test_maximum_matches_exhaustive_search(pairs):
    best = 0
    for size in range(len(pairs), 0, -1):
        if any(is_nested(subset) for subset in itertools.combinations(pairs, size)):
            best = size
            break
    assert len(extract_non_nested(pairs)[0]) == best


def test_assign_layers():
    pairs = [(4, 15), (5, 14), (8, 19), (9, 18)]
    resolution = assign_layers(pairs)
    assert resolution.layers == {(4, 15): 1, (5, 14): 1, (8, 19): 2, (9, 18): 2}
    assert resolution.remaining == []
    assert resolution.status == ResolutionStatus.RESOLVED


def test_assign_layers_uses_whole_palette():
    pairs = [(i, i + 29) for i in range(1, 29)]
    resolution = assign_layers(pairs)
    assert sorted(resolution.layers.values()) == list(range(1, 29))
    assert resolution.status == ResolutionStatus.RESOLVED


def test_assign_layers_palette_exhausted():
    pairs = [(i, i + 30) for i in range(1, 30)]
    resolution = assign_layers(pairs)
    assert len(resolution.layers) == 28
    assert resolution.remaining == [(29, 59)]
    assert resolution.status == ResolutionStatus.PARTIALLY_RESOLVED


def test_empty_resolution():
    assert Resolution().status == ResolutionStatus.RESOLVED
    assert assign_layers([]) == Resolution()


@given(pair_sets())
@settings(max_examples=300)
def test_maximum_agrees_with_greedy_when_greedy_is_maximum(pairs):
    nested, _ = extract_non_nested(pairs)
    greedy, _ = extract_non_nested(pairs, "fcfs")
    if len(nested) == len(greedy):
        assert nested == greedy


@given(pair_sets(max_length=20, max_pairs=6))
@settings(max_examples=20, deadline=None)
def test_milp_selects_same_subset_as_dp(pairs):
    assert extract_non_nested(pairs, "milp") == extract_non_nested(pairs, "dp")
