"""
Unit Tests for Config and ConfigManager
=======================================
"""

from pathlib import Path

import pytest

from fightslot.core.config.config import Config, Environment
from fightslot.core.config.errors import ConfigValidationError
from fightslot.core.config.manager import ConfigManager
from fightslot.core.exceptions import ConfigurationError


@pytest.mark.unit
class TestConfigManager:
    def test_builtin_defaults(self):
        """Test the defaults cover chain, rpc and sync settings."""
        assert ConfigManager.get("chain.chain_id") == 56
        assert ConfigManager.get("chain.unknown_chain_error_code") == 4902
        assert ConfigManager.get_float("rpc.read_timeout_seconds", 0.0) == 15.0
        assert ConfigManager.get("sync.cache_hp_require_base") is True

    def test_missing_key_default(self):
        assert ConfigManager.get("does.not.exist", "fallback") == "fallback"

    def test_yaml_overrides_defaults(self, tmp_path):
        """Test YAML files deep-merge over the built-in tree."""
        # Arrange
        (tmp_path / "fightslot.yaml").write_text(
            "rewards:\n  symbol: APOC\nchain:\n  chain_name: BSC Testnet\n",
            encoding="utf-8",
        )
        ConfigManager.reset()

        # Act
        ConfigManager.initialize(config_dir=tmp_path)

        # Assert
        assert ConfigManager.get("rewards.symbol") == "APOC"
        assert ConfigManager.get("rewards.decimals") == 18
        assert ConfigManager.get("chain.chain_name") == "BSC Testnet"

    def test_environment_chain_id_wins_over_yaml(self, tmp_path, monkeypatch):
        """Test REQUIRED_CHAIN_ID is honoured whatever the YAML files say."""
        # Arrange
        monkeypatch.setattr(Config, "REQUIRED_CHAIN_ID", 97)
        (tmp_path / "chain.yaml").write_text("chain:\n  chain_id: 56\n", encoding="utf-8")
        shipped = Path(__file__).resolve().parents[2] / "config"

        # Act
        ConfigManager.reset()
        ConfigManager.initialize(config_dir=tmp_path)
        from_tmp = ConfigManager.get("chain.chain_id")
        ConfigManager.reset()
        ConfigManager.initialize(config_dir=shipped)
        from_shipped = ConfigManager.get("chain.chain_id")

        # Assert
        assert from_tmp == 97
        assert from_shipped == 97
        assert ConfigManager.get("chain.chain_name") == "Binance Smart Chain Mainnet"

    def test_broken_yaml_ignored(self, tmp_path):
        # Arrange
        (tmp_path / "broken.yaml").write_text("chain: [unclosed\n", encoding="utf-8")
        ConfigManager.reset()

        # Act
        ConfigManager.initialize(config_dir=tmp_path)

        # Assert
        assert ConfigManager.get("chain.chain_id") == 56

    def test_override_type_checked(self):
        with pytest.raises(ConfigValidationError):
            ConfigManager.set_override("chain.chain_id", "fifty-six")

    def test_override_accepts_int_for_float(self):
        # Act
        ConfigManager.set_override("rpc.read_timeout_seconds", 5)

        # Assert
        assert ConfigManager.get_float("rpc.read_timeout_seconds", 15.0) == 5.0

    def test_clear_overrides(self):
        # Arrange
        ConfigManager.set_override("rewards.symbol", "XYZ")

        # Act
        ConfigManager.clear_overrides()

        # Assert
        assert ConfigManager.get("rewards.symbol") == "BUSD"

    def test_get_float_non_numeric(self):
        ConfigManager.set_override("new.timeout", "soon")
        assert ConfigManager.get_float("new.timeout", 3.0) == 3.0


@pytest.mark.unit
class TestStaticConfig:
    def test_environment_parsing(self):
        assert Environment.from_string("PRODUCTION") is Environment.PRODUCTION
        assert Environment.from_string("nonsense") is Environment.DEVELOPMENT

    def test_contract_addresses_from_env(self):
        """Test the four contract addresses are loaded from the environment."""
        # Arrange & Act
        Config.load()

        # Assert
        assert set(Config.contract_addresses()) == {
            "GAME",
            "CHARACTER",
            "WEAPON",
            "REWARD_POOL",
        }
        assert Config.GAME_CONTRACT == "0x" + "11" * 20

    def test_strict_validation_rejects_bad_address(self, monkeypatch):
        # Arrange
        monkeypatch.setenv("WEAPON_CONTRACT", "0x1234")

        # Act & Assert
        with pytest.raises(ConfigurationError) as exc_info:
            Config.validate(strict=True)
        assert exc_info.value.config_key == "WEAPON_CONTRACT"

        monkeypatch.undo()
        Config.load()

    def test_hex_chain_id(self, monkeypatch):
        # Arrange
        monkeypatch.setenv("REQUIRED_CHAIN_ID", "0x38")

        # Act
        Config.load()

        # Assert
        assert Config.REQUIRED_CHAIN_ID == 56

        monkeypatch.undo()
        Config.load()

    def test_timeout_out_of_bounds_falls_back(self, monkeypatch):
        # Arrange
        monkeypatch.setenv("READ_TIMEOUT_SECONDS", "0")

        # Act
        Config.load()

        # Assert
        assert Config.READ_TIMEOUT_SECONDS == 15.0

        monkeypatch.undo()
        Config.load()
