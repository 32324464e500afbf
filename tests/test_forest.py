import math

import pytest

from lineagechart.model.forest import ForestError, build_forest
from lineagechart.utils import citation_radius

from conftest import make_record


def test_structure(chain_forest):
    assert [n.name for n in chain_forest.roots] == ["A"]
    assert [chain_forest[name].depth for name in "ABC"] == [0, 1, 2]
    assert chain_forest.max_depth == 2
    assert [(l.source.name, l.target.name) for l in chain_forest.links] == [("A", "B"), ("B", "C")]
    assert [n.name for n in chain_forest.descendants(chain_forest["A"])] == ["A", "B", "C"]


def test_multiple_roots_keep_input_order():
    forest = build_forest([
        make_record("R1"),
        make_record("R2"),
        make_record("x", parent="R2"),
        make_record("y", parent="R1"),
    ])
    assert [r.name for r in forest.roots] == ["R1", "R2"]
    assert [c.name for r in forest.roots for c in r.children] == ["y", "x"]


def test_link_weight_grows_with_subtree(chain_forest):
    first, second = chain_forest.links
    assert chain_forest.link_weight(first) == pytest.approx(max(math.log(2), 1.0))
    assert chain_forest.link_weight(second) == 1.0


def test_duplicate_name():
    with pytest.raises(ForestError, match="Duplicate"):
        build_forest([make_record("A"), make_record("A")])


def test_dangling_parent():
    with pytest.raises(ForestError, match="unknown predecessor"):
        build_forest([make_record("A", parent="ghost")])


def test_cycle():
    with pytest.raises(ForestError, match="cycle"):
        build_forest([make_record("R"), make_record("A", parent="B"), make_record("B", parent="A")])


def test_empty_forest():
    forest = build_forest([])
    assert len(forest) == 0
    assert forest.max_depth == 0
    assert forest.links == []


def test_radius_from_citations():
    assert citation_radius(0) == 3.0
    assert citation_radius(1) == 4.0
    assert citation_radius(0.5) == 4.0
    assert citation_radius(math.exp(20)) == pytest.approx(10.0)
