"""Tests for the RuleSet model and its settings loading."""

from __future__ import annotations

import json
from datetime import datetime, timedelta

import pytest

from ferry.models.rules import RuleSet
from ferry.settings import Settings
from ferry.utils import BYTES_PER_MB


class TestRuleSetPredicates:
    def test_blocked_extension_is_case_insensitive(self):
        rules = RuleSet()
        assert rules.is_blocked_extension("exe")
        assert rules.is_blocked_extension("EXE")
        assert rules.is_blocked_extension(".Msi")
        assert not rules.is_blocked_extension("docx")
        assert not rules.is_blocked_extension("")

    def test_reserved_name_is_case_insensitive(self):
        rules = RuleSet()
        assert rules.is_reserved_name("CON")
        assert rules.is_reserved_name("lpt1")
        assert rules.is_reserved_name("_vti_")
        assert not rules.is_reserved_name("console")

    def test_has_forbidden_char_returns_first_match(self):
        rules = RuleSet()
        assert rules.has_forbidden_char("a<b>c") == "<"
        assert rules.has_forbidden_char("plain name.txt") is None

    @pytest.mark.parametrize("char", list('"*:<>?/\\|'))
    def test_every_default_forbidden_char(self, char):
        assert RuleSet().has_forbidden_char(f"file{char}name.txt") == char

    def test_name_length_boundary(self):
        rules = RuleSet()
        assert not rules.exceeds_name_length("a" * 128)
        assert rules.exceeds_name_length("a" * 129)

    def test_path_length_boundary(self):
        rules = RuleSet()
        assert not rules.exceeds_path_length("p" * 400)
        assert rules.exceeds_path_length("p" * 401)

    def test_size_boundary(self):
        rules = RuleSet()
        assert not rules.exceeds_size_limit(250 * BYTES_PER_MB)
        assert rules.exceeds_size_limit(250 * BYTES_PER_MB + 1)
        assert not rules.exceeds_size_limit(0)

    def test_stale_boundary(self):
        rules = RuleSet()
        now = datetime(2026, 3, 1, 12, 0)
        assert not rules.is_stale(now - timedelta(days=730), now)
        assert rules.is_stale(now - timedelta(days=731), now)


class TestRuleSetConstruction:
    def test_sets_are_normalized(self):
        rules = RuleSet(blocked_extensions=frozenset({".ZIP", "Tar"}), reserved_names=frozenset({"Secret"}))
        assert rules.blocked_extensions == {"zip", "tar"}
        assert rules.is_reserved_name("SECRET")

    @pytest.mark.parametrize("field", ["max_name_length", "max_path_length", "max_file_size_mb", "stale_days"])
    @pytest.mark.parametrize("value", [0, -5, True, "10"])
    def test_rejects_invalid_thresholds(self, field, value):
        with pytest.raises(ValueError):
            RuleSet(**{field: value})

    def test_with_overrides_ignores_none(self):
        rules = RuleSet()
        assert rules.with_overrides(stale_days=None) is rules
        changed = rules.with_overrides(stale_days=30, max_path_length=None)
        assert changed.stale_days == 30
        assert changed.max_path_length == 400

    def test_is_immutable(self):
        rules = RuleSet()
        with pytest.raises(AttributeError):
            rules.stale_days = 1


class TestRuleSetFromSettings:
    def test_defaults_without_file(self, tmp_path):
        rules = RuleSet.from_settings(Settings(tmp_path / "missing.json"))
        assert rules == RuleSet()

    def test_file_values_then_overrides(self, tmp_path):
        path = tmp_path / "settings.json"
        path.write_text(json.dumps({
            "rules": {"stale_days": 365, "max_file_size_mb": 100, "blocked_extensions": ["zip"]},
        }))
        rules = RuleSet.from_settings(Settings(path), max_file_size_mb=50)

        assert rules.stale_days == 365
        assert rules.max_file_size_mb == 50
        assert rules.blocked_extensions == {"zip"}

    def test_unknown_keys_are_ignored(self, tmp_path, caplog):
        path = tmp_path / "settings.json"
        path.write_text(json.dumps({"rules": {"colour": "blue"}}))
        rules = RuleSet.from_settings(Settings(path))
        assert rules == RuleSet()
        assert "colour" in caplog.text

    def test_invalid_value_raises(self, tmp_path):
        path = tmp_path / "settings.json"
        path.write_text(json.dumps({"rules": {"stale_days": 0}}))
        with pytest.raises(ValueError):
            RuleSet.from_settings(Settings(path))


class TestSettings:
    def test_dot_notation_roundtrip(self, tmp_path):
        path = tmp_path / "nested" / "settings.json"
        settings = Settings(path)
        settings.set("migration.batch_size", 25)

        assert Settings(path).get("migration.batch_size") == 25
        assert Settings(path).section("migration") == {"batch_size": 25}

    def test_corrupt_file_uses_defaults(self, tmp_path):
        path = tmp_path / "settings.json"
        path.write_text("{not json")
        settings = Settings(path)
        assert settings.get("rules.stale_days", 730) == 730
        assert settings.section("rules") == {}

    def test_section_must_be_object(self, tmp_path):
        path = tmp_path / "settings.json"
        path.write_text(json.dumps({"rules": [1, 2]}))
        assert Settings(path).section("rules") == {}

    def test_default_path_follows_xdg(self, isolate_config):
        assert Settings().path == isolate_config
