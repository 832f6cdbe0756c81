"""Tests for config loading."""

from __future__ import annotations

from pathlib import Path

import pytest

from codepulse.core.config import (
    CodePulseConfig,
    HealConfig,
    ensure_gitignore,
    get_state_dir,
    load_config,
    validate_threshold,
)
from codepulse.core.errors import InvalidConfig


class TestLoadConfig:
    def test_defaults_when_no_config_file(self, tmp_path: Path):
        """Without a codepulse.toml, load_config should return defaults."""
        config = load_config(tmp_path)

        assert isinstance(config, CodePulseConfig)
        assert config.heal.enabled is False
        assert config.heal.auto_apply_threshold == 0.85
        assert config.detect.density_threshold == 0.30
        assert config.detect.max_low_density == 3
        assert config.detect.max_hotspots == 2
        assert config.detect.coverage_ratio == 0.08
        assert ".ts" in config.scan.extensions
        assert config.store.record_history is True

    def test_defaults_exclude_patterns(self, tmp_path: Path):
        config = load_config(tmp_path)

        assert "node_modules/" in config.exclude
        assert ".codepulse/" in config.exclude
        assert ".git/" in config.exclude

    def test_loads_heal_section(self, tmp_path: Path):
        (tmp_path / "codepulse.toml").write_text(
            "[heal]\nenabled = true\nauto_apply_threshold = 0.9\nencrypt_payloads = true\n"
        )
        config = load_config(tmp_path)

        assert config.heal == HealConfig(enabled=True, auto_apply_threshold=0.9)
        assert config.store.encrypt_payloads is True

    def test_invalid_threshold_raises(self, tmp_path: Path):
        (tmp_path / "codepulse.toml").write_text("[heal]\nauto_apply_threshold = 0.4\n")
        with pytest.raises(InvalidConfig):
            load_config(tmp_path)

    def test_string_threshold_raises(self, tmp_path: Path):
        (tmp_path / "codepulse.toml").write_text('[heal]\nauto_apply_threshold = "0.8"\n')
        with pytest.raises(InvalidConfig):
            load_config(tmp_path)

    def test_string_enabled_raises(self, tmp_path: Path):
        (tmp_path / "codepulse.toml").write_text('[heal]\nenabled = "false"\n')
        with pytest.raises(InvalidConfig):
            load_config(tmp_path)

    def test_loads_detect_section(self, tmp_path: Path):
        (tmp_path / "codepulse.toml").write_text(
            "[detect]\n"
            "density_threshold = 0.4\n"
            "max_hotspots = 5\n"
            'refactored_exemptions = ["legacy.ts"]\n'
            'expected_domains = ["domainA"]\n'
        )
        config = load_config(tmp_path)

        assert config.detect.density_threshold == 0.4
        assert config.detect.max_hotspots == 5
        assert config.detect.refactored_exemptions == ["legacy.ts"]
        assert config.detect.expected_domains == ["domainA"]
        assert config.detect.max_low_density == 3

    def test_loads_scan_section(self, tmp_path: Path):
        (tmp_path / "codepulse.toml").write_text(
            "[scan]\n"
            'extensions = [".py"]\n'
            "module_delay = 0.0\n"
            "\n"
            "[scan.categories]\n"
            'core = ["/engine/"]\n'
        )
        config = load_config(tmp_path)

        assert config.scan.extensions == [".py"]
        assert config.scan.module_delay == 0.0
        assert config.scan.category_markers == {"core": ["/engine/"]}

    def test_general_and_history(self, tmp_path: Path):
        (tmp_path / "codepulse.toml").write_text(
            '[general]\nexclude = ["vendor/"]\n\n[history]\nenabled = false\n'
        )
        config = load_config(tmp_path)

        assert config.exclude == ["vendor/"]
        assert config.store.record_history is False


class TestValidateThreshold:
    @pytest.mark.parametrize("value", [0.70, 0.85, 0.99])
    def test_accepts(self, value: float):
        assert validate_threshold(value) == value

    @pytest.mark.parametrize("value", [0.0, 0.6999, 0.991, 2, "high", "0.8", True, None])
    def test_rejects(self, value):
        with pytest.raises(InvalidConfig):
            validate_threshold(value)

    def test_heal_config_validates_on_construction(self):
        with pytest.raises(InvalidConfig):
            HealConfig(auto_apply_threshold=0.5)

    def test_heal_config_rejects_non_bool_enabled(self):
        with pytest.raises(InvalidConfig):
            HealConfig(enabled="false")


class TestStateDir:
    def test_created_on_demand(self, tmp_path: Path):
        state_dir = get_state_dir(tmp_path)
        assert state_dir == tmp_path / ".codepulse"
        assert state_dir.is_dir()

    def test_gitignore_created(self, tmp_path: Path):
        ensure_gitignore(tmp_path)
        assert (tmp_path / ".gitignore").read_text() == ".codepulse/\n"

    def test_gitignore_appended_once(self, tmp_path: Path):
        (tmp_path / ".gitignore").write_text("node_modules/")
        ensure_gitignore(tmp_path)
        ensure_gitignore(tmp_path)

        assert (tmp_path / ".gitignore").read_text() == "node_modules/\n.codepulse/\n"
