import pytest

from rnacanon.common import SplitMode
from rnacanon.helices import Helix, HelixRecord, group_into_helices, strip_lonely_pairs


def test_hairpin():
    nested, pseudoknotted = group_into_helices("(((...)))")
    assert nested == [HelixRecord((0, 1, 2), (8, 7, 6), 0)]
    assert pseudoknotted == []


def test_interior_loop():
    structure = "((.((...)).))"
    assert len(group_into_helices(structure)[0]) == 2
    assert len(group_into_helices(structure, SplitMode.BULGES)[0]) == 2
    nested, _ = group_into_helices(structure, SplitMode.LOOPS)
    assert nested == [HelixRecord((0, 1, 3, 4), (12, 11, 9, 8))]


def test_bulge():
    structure = "((.((...))))"
    assert len(group_into_helices(structure)[0]) == 2
    nested, _ = group_into_helices(structure, SplitMode.BULGES)
    assert nested == [HelixRecord((0, 1, 3, 4), (11, 10, 9, 8))]


def test_multiloop_is_never_merged():
    nested, _ = group_into_helices("(.(..).(..).)", SplitMode.LOOPS)
    assert [record.h5bases for record in nested] == [(0,), (2,), (7,)]


def test_pseudoknot_layers():
    nested, pseudoknotted = group_into_helices("((..{{..<<))..}}..>>")
    assert nested == [HelixRecord((0, 1), (11, 10), 0)]
    assert pseudoknotted == [
        HelixRecord((4, 5), (15, 14), 1),
        HelixRecord((8, 9), (19, 18), 2),
    ]


def test_unresolved_markers_are_ignored():
    nested, pseudoknotted = group_into_helices("((.[..)).]")
    assert nested == [HelixRecord((0, 1), (7, 6))]
    assert pseudoknotted == []


def test_helix_from_record():
    helix = Helix.from_record(HelixRecord((0, 1, 2), (8, 7, 6)))
    assert helix.basepairs == ((0, 8), (1, 7), (2, 6))
    assert helix.h5bases == (0, 1, 2)
    assert helix.h3bases == (8, 7, 6)
    assert len(helix) == 3
    assert str(helix) == "Helix 0-2 6-8 (3 bp)"

    with pytest.raises(ValueError):
        Helix.from_record(HelixRecord((0, 1), (8,)))
    with pytest.raises(ValueError):
        Helix.from_record(HelixRecord((), ()))


def test_strip_lonely_pairs():
    nested, _ = group_into_helices("(((...)))..(...)")
    helices, lonely = strip_lonely_pairs(nested)
    assert [helix.basepairs for helix in helices] == [((0, 8), (1, 7), (2, 6))]
    assert lonely == [(11, 15)]
