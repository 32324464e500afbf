import json
import math

import pytest

from lineagechart.config import DEFAULT_SETTINGS_PATH
from lineagechart.model.settings import (
    BandOrigin, ChartSettings, ForceSettings, GroupRule, TargetOffset, Viewport, YBand, load_settings,
    save_settings
)


def test_round_trip(tmp_path):
    settings = ChartSettings(
        viewport=Viewport(width=800.0, height=600.0),
        groups=(
            GroupRule(
                name="primary",
                members=("GPT", "BERT"),
                band=YBand(start=45.0),
                hard_anchor=True,
                offsets=(TargetOffset("bloom", 170.0),),
            ),
            GroupRule(name="rest", exclude=("GPT",), band=YBand(origin=BandOrigin.ROOT, span=200.0)),
        ),
        caption="hello",
    )
    path = tmp_path / "settings.json"
    save_settings(settings, str(path))
    assert load_settings(str(path)) == settings


def test_infinite_distance_is_stored_as_null():
    data = ForceSettings().to_dict()
    assert data["charge_distance_max"] is None
    json.dumps(data)
    assert math.isinf(ForceSettings.from_dict(data).charge_distance_max)


def test_unknown_band_origin():
    with pytest.raises(ValueError, match="band origin"):
        YBand.from_dict({"origin": "middle"})


def test_bundled_settings_load():
    settings = load_settings(DEFAULT_SETTINGS_PATH)
    assert [g.name for g in settings.groups] == ["primary", "secondary"]
    assert settings.groups[0].hard_anchor


def test_group_matching():
    members = GroupRule(name="a", members=("GPT",))
    rest = GroupRule(name="b", exclude=("GPT",))
    assert members.matches("GPT") and not members.matches("T5")
    assert rest.matches("T5") and not rest.matches("GPT")


def test_offset_prefix_is_case_insensitive():
    rule = GroupRule(name="a", offsets=(TargetOffset("bloom", 170.0),))
    assert rule.offset_for("BLOOMZ") == 170.0
    assert rule.offset_for("GPT-3") == 0.0
    assert TargetOffset("bloom", 1.0, case_sensitive=True).matches("BLOOM") is False
