#!/usr/bin/env python3
"""Tests for TagInterval class."""

from models import TagInterval


class TestTagInterval:
    """Tests for TagInterval class."""

    def test_defaults(self):
        interval = TagInterval("u1", "Oil Change", 3000)
        assert interval.days is None
        assert interval.enabled is True
        assert interval.id is None

    def test_is_evaluable(self):
        assert TagInterval("u1", "Oil", kilometers=3000).is_evaluable
        assert TagInterval("u1", "Battery", days=365).is_evaluable
        assert not TagInterval("u1", "Wash").is_evaluable
        assert not TagInterval("u1", "Zero", kilometers=0, days=0).is_evaluable

    def test_interval_label(self):
        assert TagInterval("u1", "Oil", 3000, 90).interval_label == "3,000 km / 90 d"
        assert TagInterval("u1", "Battery", days=365).interval_label == "365 d"
        assert TagInterval("u1", "Wash").interval_label == "-"
