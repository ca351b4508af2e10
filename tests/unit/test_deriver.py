"""
Unit Tests for combat stat derivation
=====================================

Pure functions: no fakes needed beyond config defaults.
"""

from decimal import Decimal

import pytest

from fightslot.core.config.manager import ConfigManager
from fightslot.modules.shared.models import RewardAccount
from fightslot.modules.stats import deriver
from fightslot.modules.sync import plan as fields
from fightslot.modules.sync.cells import FieldCell, SyncSnapshot


def _snapshot(**values) -> SyncSnapshot:
    cells = {}
    for name, value in values.items():
        cell = FieldCell(name)
        cell.resolve(value, 1)
        cells[name] = cell
    return SyncSnapshot(address=None, cycle=1, cells=cells)


@pytest.mark.unit
class TestHpRequired:
    @pytest.mark.parametrize(
        "level, base, expected",
        [(1, 50, 50), (5, 50, 90), (10, 100, 190)],
    )
    def test_formula(self, level, base, expected):
        """Test (level - 1) * 10 + base."""
        assert deriver.hp_required(level, base) == expected

    def test_unknown_inputs(self):
        """Test a missing level or base yields None."""
        assert deriver.hp_required(None, 50) is None
        assert deriver.hp_required(5, None) is None


@pytest.mark.unit
class TestSuccessRate:
    def test_basis_points_to_percent(self):
        """Test 7550 basis points is 75.5 percent."""
        assert deriver.success_rate_percent(7550) == 75.5

    def test_bounds_inclusive(self):
        """Test 0 and 10000 are valid."""
        assert deriver.success_rate_percent(0) == 0.0
        assert deriver.success_rate_percent(10_000) == 100.0

    def test_out_of_range_is_unknown(self, caplog):
        """Test an impossible raw value derives to None with a warning."""
        # Arrange & Act
        result = deriver.success_rate_percent(10_001)

        # Assert
        assert result is None
        assert any("out of range" in r.getMessage() for r in caplog.records)

    def test_none_passthrough(self):
        assert deriver.success_rate_percent(None) is None


@pytest.mark.unit
class TestRewardDisplay:
    def test_two_places(self):
        """Test 2.5e18 wei renders as 2.50."""
        assert deriver.reward_display(2_500_000_000_000_000_000) == Decimal("2.50")

    def test_rounds_half_up(self):
        """Test 1.005 tokens rounds up to 1.01."""
        assert deriver.reward_display(1_005_000_000_000_000_000) == Decimal("1.01")

    def test_zero(self):
        assert deriver.reward_display(0) == Decimal("0.00")

    def test_large_values_exact(self):
        """Test no float precision loss on big balances."""
        value = 123_456_789 * 10**18 + 990_000_000_000_000_000
        assert deriver.reward_display(value) == Decimal("123456789.99")


@pytest.mark.unit
class TestImageUrls:
    def test_character_image(self):
        """Test the four-part character art path."""
        # Arrange & Act
        url = deriver.character_image_url(2, 0, 1, 4, base="https://art/character/")

        # Assert
        assert url == "https://art/character/2/0/1/4.png"

    def test_character_image_needs_all_parts(self):
        assert deriver.character_image_url(2, None, 1, 4, base="https://art") is None

    def test_mob_image_uses_config_base(self):
        """Test the mobster art base comes from config."""
        # Arrange
        ConfigManager.set_override("assets.mobster_image_base", "https://mobs/")

        # Act
        url = deriver.mob_image_url(7)

        # Assert
        assert url == "https://mobs/7.png"


@pytest.mark.unit
class TestDerive:
    def test_full_snapshot(self):
        """Test every derived value from a resolved snapshot."""
        # Arrange
        snap = _snapshot(
            **{
                fields.CHAR_LEVEL: 5,
                fields.HP_REQUIRE_BASE: 50,
                fields.SUCCESS_RATE: 7550,
                fields.REWARDS: RewardAccount(0, 2_500_000_000_000_000_000, 0, 0),
                fields.ANGEL_MODIFIER: 2,
                fields.CHAR_STATUS: 0,
                fields.CHAR_TYPE: 1,
                fields.CHAR_SKILL: 4,
            }
        )

        # Act
        derived = deriver.derive(snap)

        # Assert
        assert derived.hp_required == 90
        assert derived.success_rate_percent == 75.5
        assert derived.reward_display == Decimal("2.50")
        assert derived.character_image_url.endswith("/2/0/1/4.png")
        assert derived.mob_image_url.endswith("/5.png")

    def test_empty_snapshot(self):
        """Test nothing is derived from nothing, and nothing raises."""
        # Arrange & Act
        derived = deriver.derive(_snapshot())

        # Assert
        assert derived == deriver.CombatDerived()

    def test_failed_field_is_not_zero(self):
        """Test a failed level is unknown rather than level 0."""
        # Arrange
        level = FieldCell(fields.CHAR_LEVEL)
        level.fail("boom", 1)
        base = FieldCell(fields.HP_REQUIRE_BASE)
        base.resolve(50, 1)
        snap = SyncSnapshot(
            address=None,
            cycle=1,
            cells={fields.CHAR_LEVEL: level, fields.HP_REQUIRE_BASE: base},
        )

        # Act & Assert
        assert deriver.derive(snap).hp_required is None
