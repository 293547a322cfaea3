#!/usr/bin/env python3
"""Tests for environment-driven configuration."""
from pathlib import Path

import pytest

from config import Config, build_tracker, load_config
from models import NoHistoryPolicy, VisionOdometerReader


class TestLoadConfig:
    """Tests for load_config."""

    def test_defaults(self):
        config = load_config({})
        assert config.data_file == Path("data/store.yaml")
        assert config.due_soon_ratio == 0.10
        assert config.no_history is NoHistoryPolicy.OMIT
        assert config.openai_api_key is None
        assert config.log_level == "INFO"

    def test_overrides(self):
        config = load_config(
            {
                "MAINT_DATA_FILE": "/tmp/moto.yaml",
                "DUE_SOON_RATIO": "0.2",
                "NO_HISTORY_POLICY": "OVERDUE",
                "OPENAI_API_KEY": "sk-test",
                "ODO_MODEL": "gpt-4o-mini",
                "LOG_LEVEL": "debug",
            }
        )
        assert config.data_file == Path("/tmp/moto.yaml")
        assert config.due_soon_ratio == 0.2
        assert config.no_history is NoHistoryPolicy.OVERDUE
        assert config.openai_api_key == "sk-test"
        assert config.odo_model == "gpt-4o-mini"
        assert config.log_level == "DEBUG"

    def test_bad_ratio(self):
        with pytest.raises(ValueError):
            load_config({"DUE_SOON_RATIO": "1.5"})

    def test_bad_policy(self):
        with pytest.raises(ValueError):
            load_config({"NO_HISTORY_POLICY": "ignore"})


class TestBuildTracker:
    """Tests for build_tracker."""

    def test_without_api_key_has_no_reader(self, tmp_path):
        tracker = build_tracker(Config(data_file=tmp_path / "s.yaml", image_dir=tmp_path))
        assert tracker.reader is None
        assert tracker.store.filename == tmp_path / "s.yaml"

    def test_with_api_key(self, tmp_path):
        config = Config(image_dir=tmp_path, openai_api_key="sk-test", due_soon_ratio=0.15)
        tracker = build_tracker(config, data_file=tmp_path / "other.yaml")
        assert isinstance(tracker.reader, VisionOdometerReader)
        assert tracker.soon_ratio == 0.15
        assert tracker.store.filename == tmp_path / "other.yaml"
