"""
Tests for market regimes and playbooks.
"""

import pytest

from ccpi import PLAYBOOKS, REGIMES, determine_regime, get_regime

from tests.helpers import make_snapshot


class TestDetermineRegime:
    """Score -> regime, lower bound inclusive."""

    @pytest.mark.parametrize("score, level, name", [
        (0.0, 1, "Low Risk"),
        (19.9, 1, "Low Risk"),
        (20.0, 2, "Normal"),
        (39.9, 2, "Normal"),
        (40.0, 3, "Elevated Risk"),
        (60.0, 4, "High Alert"),
        (79.9, 4, "High Alert"),
        (80.0, 5, "Crash Watch"),
        (100.0, 5, "Crash Watch"),
    ])
    def test_boundaries(self, score, level, name):
        regime = determine_regime(score)

        assert regime.level == level
        assert regime.name == name

    def test_every_level_has_its_playbook(self):
        assert sorted(r.level for r in REGIMES) == [1, 2, 3, 4, 5]
        for regime in REGIMES:
            assert regime.playbook is PLAYBOOKS[regime.level]
            assert regime.playbook.strategies

    def test_get_regime(self):
        assert get_regime(5).name == "Crash Watch"
        with pytest.raises(KeyError):
            get_regime(6)

    def test_defensiveness_increases_with_level(self):
        assert get_regime(1).playbook.bias == "Risk-On / Bullish"
        assert get_regime(5).playbook.bias == "Maximum Defense / Crisis Mode"
        assert get_regime(5).playbook.allocation.cash == "40-50%"


class TestSnapshotRegime:
    """Each computed snapshot carries the regime of its composite."""

    def test_regime_follows_composite(self):
        snapshot = make_snapshot(65.0)

        assert snapshot.regime.name == "High Alert"
        assert snapshot.to_dict()["regime"]["playbook"]["bias"] == "Heavily Defensive / Short Bias"

    def test_no_data_composite_is_elevated_risk(self):
        snapshot = make_snapshot(missing=("val", "tech", "macro"))

        assert snapshot.result.ccpi_score == 50.0
        assert snapshot.regime.level == 3
