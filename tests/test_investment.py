"""Tests for shop ROI analysis."""

import pytest

from ledgerquest.config import Settings
from ledgerquest.investment import IMPRACTICAL_PAYBACK, analyze_item_roi, analyze_shop
from ledgerquest.models import AgentMemory, ItemData, ObservedState


@pytest.fixture
def catalog():
    return Settings().item_shop


def _state(gold=100, strength=10, defense=10):
    return ObservedState(gold=gold, strength=strength, defense=defense, exists=True)


class TestAnalyzeItemRoi:
    def test_iron_sword_for_starter(self, catalog):
        report = analyze_item_roi(catalog[1], _state(), AgentMemory())
        assert report.item_name == "Iron Sword"
        assert report.expected_win_rate_increase == pytest.approx(0.25)
        assert report.payback_battles == 7
        assert report.roi_score == pytest.approx(10.0)
        assert report.recommendation == "High Value"
        assert report.is_affordable is True
        assert report.is_owned is False

    def test_steel_armor_not_affordable(self, catalog):
        report = analyze_item_roi(catalog[2], _state(gold=100), AgentMemory())
        assert report.is_affordable is False
        assert report.expected_win_rate_increase == pytest.approx(0.625)
        assert report.payback_battles == 7

    def test_owned_flag(self, catalog):
        memory = AgentMemory(owned_items=frozenset({1}))
        assert analyze_item_roi(catalog[1], _state(), memory).is_owned is True

    def test_zero_power_player(self, catalog):
        report = analyze_item_roi(catalog[1], _state(strength=0, defense=0), AgentMemory())
        assert report.expected_win_rate_increase == 0
        assert report.payback_battles == IMPRACTICAL_PAYBACK

    def test_zero_cost_item(self):
        item = ItemData(id=7, name="Free Charm", cost=0, strength=1)
        report = analyze_item_roi(item, _state(), AgentMemory())
        assert report.roi_score == 0
        assert report.recommendation == "Low Value"
        assert report.is_affordable is True

    @pytest.mark.parametrize("strength, expected", [
        (6, "Good Value"),
        (1, "Low Value"),
        (20, "High Value"),
    ])
    def test_recommendation_bands(self, strength, expected):
        item = ItemData(id=9, name="Relic", cost=1000, strength=strength)
        assert analyze_item_roi(item, _state(), AgentMemory()).recommendation == expected


class TestAnalyzeShop:
    def test_preserves_catalog_order(self, catalog):
        reports = analyze_shop(catalog, _state(), AgentMemory())
        assert [r.item_id for r in reports] == [0, 1, 2]

    def test_empty_catalog(self):
        assert analyze_shop([], _state(), AgentMemory()) == []
