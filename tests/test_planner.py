import numpy as np
import pytest

from lineagechart.controller.planner import ConstraintPlanner
from lineagechart.model.forest import build_forest
from lineagechart.model.settings import BandOrigin, ChartSettings, GroupRule, TargetOffset, YBand

from conftest import make_record


@pytest.fixture
def settings():
    return ChartSettings(groups=(
        GroupRule(
            name="primary",
            members=("BERT", "GPT"),
            band=YBand(start=45.0),
            hard_anchor=True,
            offsets=(TargetOffset("bloom", 170.0),),
        ),
        GroupRule(
            name="secondary",
            exclude=("BERT", "GPT", "PaLM"),
            band=YBand(origin=BandOrigin.ROOT, span=200.0),
        ),
    ))


def test_root_is_anchored(llm_forest, settings):
    plan = ConstraintPlanner(settings).plan(llm_forest)
    assert plan.root_y == 570.0
    assert plan.for_node("Transformer") == (570.0, None)


def test_primary_heads_in_forest_order(llm_forest, settings):
    plan = ConstraintPlanner(settings).plan(llm_forest)
    # GPT appears before BERT among the root's children
    assert plan.for_node("GPT") == (345.0, 345.0)
    assert plan.for_node("BERT") == (645.0, 645.0)
    assert plan.for_node("RoBERTa") == (None, 645.0)


def test_offsets_apply_to_descendants(llm_forest, settings):
    plan = ConstraintPlanner(settings).plan(llm_forest)
    assert plan.for_node("GPT-3") == (None, 345.0)
    assert plan.for_node("BLOOM") == (None, 515.0)
    assert plan.for_node("bloomz") == (None, 515.0)


def test_secondary_band_is_soft(llm_forest, settings):
    plan = ConstraintPlanner(settings).plan(llm_forest)
    assert plan.for_node("T5") == (None, 670.0)
    assert plan.for_node("Flan-T5") == (None, 670.0)
    assert plan.groups[llm_forest.index_of("T5")] == "secondary"


def test_unmatched_subtree_floats(llm_forest, settings):
    plan = ConstraintPlanner(settings).plan(llm_forest)
    assert plan.for_node("PaLM") == (None, None)
    assert plan.y_targets[llm_forest.index_of("PaLM")] == 450.0


def test_plan_is_idempotent(llm_forest, settings):
    planner = ConstraintPlanner(settings)
    first = planner.plan(llm_forest)
    second = planner.plan(llm_forest)
    assert np.array_equal(first.hard_y, second.hard_y, equal_nan=True)
    assert np.array_equal(first.soft_y, second.soft_y, equal_nan=True)
    assert not first.hard_y.flags.writeable


def test_root_anchor_wins_over_group_rule(chain_forest):
    settings = ChartSettings(groups=(GroupRule(name="all", band=YBand(start=10.0), hard_anchor=True),))
    plan = ConstraintPlanner(settings).plan(chain_forest)
    assert plan.for_node("A")[0] == 570.0
    assert plan.for_node("B")[0] == 460.0
    assert np.isnan(plan.fixed[:, 0]).all()


def test_rules_claim_roots_of_a_multi_root_forest():
    forest = build_forest([
        make_record("R1"),
        make_record("R2"),
        make_record("R3"),
        make_record("c1", parent="R1"),
    ])
    settings = ChartSettings(groups=(
        GroupRule(name="primary", members=("R1", "R2"), band=YBand(start=45.0), hard_anchor=True),
    ))
    plan = ConstraintPlanner(settings).plan(forest)
    assert plan.for_node("R1") == (345.0, 345.0)
    assert plan.for_node("R2") == (645.0, 645.0)
    assert plan.for_node("c1") == (None, 345.0)
    assert plan.for_node("R3") == (570.0, None)
    assert plan.groups == ("primary", "primary", None, "primary")


def test_unclaimed_root_still_groups_its_children():
    forest = build_forest([
        make_record("R1"),
        make_record("R2"),
        make_record("GPT", parent="R2"),
    ])
    settings = ChartSettings(groups=(GroupRule(name="primary", members=("GPT",), band=YBand(start=45.0)),))
    plan = ConstraintPlanner(settings).plan(forest)
    assert plan.for_node("R2") == (570.0, None)
    assert plan.for_node("GPT") == (None, 495.0)
