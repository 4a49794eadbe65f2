"""Tests for the TOML configuration manager."""

from pathlib import Path

import toml

from tsgen_cli import config_manager


def test_defaults_without_file():
    cfg = config_manager.load_config()

    assert cfg["analysis"] == {"large_file_lines": 500, "complexity_threshold": 20, "diff_tolerance": 2}
    assert cfg["format"]["license_header"] == ""


def test_file_values_merge_over_defaults(tsgen_home: Path):
    tsgen_home.mkdir(parents=True)
    (tsgen_home / "config.toml").write_text("[analysis]\ncomplexity_threshold = 7\n")

    cfg = config_manager.load_config()
    assert cfg["analysis"]["complexity_threshold"] == 7
    assert cfg["analysis"]["large_file_lines"] == 500


def test_defaults_are_not_mutated():
    config_manager.load_config()["analysis"]["large_file_lines"] = 1
    assert config_manager.DEFAULT_CONFIG["analysis"]["large_file_lines"] == 500


def test_save_analysis_preserves_other_sections(tsgen_home: Path):
    assert config_manager.save_license_header("MIT")
    assert config_manager.save_analysis_config(diff_tolerance=0)

    on_disk = toml.load(tsgen_home / "config.toml")
    assert on_disk["format"]["license_header"] == "MIT"
    assert on_disk["analysis"] == {"diff_tolerance": 0}


def test_unreadable_file_falls_back(tsgen_home: Path):
    tsgen_home.mkdir(parents=True)
    (tsgen_home / "config.toml").write_text("this is = = not toml")

    assert config_manager.load_full_config() == {}
    assert config_manager.load_config()["analysis"]["diff_tolerance"] == 2
