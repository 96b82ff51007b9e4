"""Tests for file classification."""

from __future__ import annotations

from pathlib import Path

import pytest

from ferry.core.classifier import CHECKS, classify, virtual_path
from ferry.models.rules import RuleSet
from ferry.models.scan_result import VerdictKind
from ferry.utils import BYTES_PER_MB

ROOT = Path("/share")
PREFIX = "https://contoso.sharepoint.com/sites/hr/Shared Documents"


@pytest.fixture
def rules():
    return RuleSet()


@pytest.fixture
def verdict_of(rules, now):
    def _classify(entry, prefix=PREFIX):
        return classify(entry, rules, ROOT, prefix, now)

    return _classify


class TestClassify:
    def test_clean_file_is_eligible(self, make_entry, verdict_of):
        verdict = verdict_of(make_entry("minutes.docx"))
        assert verdict.kind is VerdictKind.ELIGIBLE
        assert verdict.is_eligible

    def test_zero_byte_file_is_eligible(self, make_entry, verdict_of):
        assert verdict_of(make_entry("empty.txt", size_bytes=0)).is_eligible

    def test_is_deterministic(self, make_entry, verdict_of):
        entry = make_entry("a:b.txt", age_days=900)
        assert verdict_of(entry) == verdict_of(entry)

    def test_size_boundary(self, make_entry, verdict_of):
        assert verdict_of(make_entry("video.mp4", size_bytes=250 * BYTES_PER_MB)).is_eligible

        verdict = verdict_of(make_entry("video.mp4", size_bytes=250 * BYTES_PER_MB + 1))
        assert verdict.kind is VerdictKind.TOO_LARGE
        assert verdict.value == 250.0

    def test_stale_boundary(self, make_entry, verdict_of):
        assert verdict_of(make_entry("old.docx", age_days=730)).is_eligible

        verdict = verdict_of(make_entry("old.docx", age_days=731))
        assert verdict.kind is VerdictKind.OBSOLETE
        assert verdict.value == 731
        assert verdict.reason == "not modified for 731 days"

    def test_name_length_boundary(self, make_entry, verdict_of):
        assert verdict_of(make_entry("a" * 124 + ".txt")).is_eligible

        verdict = verdict_of(make_entry("a" * 125 + ".txt"))
        assert verdict.kind is VerdictKind.INVALID_NAME
        assert verdict.reason == "name too long"

    @pytest.mark.parametrize("char", list('"*:<>?\\|'))
    def test_forbidden_char_wins_over_size(self, make_entry, verdict_of, char):
        entry = make_entry(f"budget{char}2024.xlsx", size_bytes=300 * BYTES_PER_MB)
        verdict = verdict_of(entry)
        assert verdict.kind is VerdictKind.INVALID_NAME
        assert verdict.reason == f"forbidden character: {char}"

    @pytest.mark.parametrize("name", ["CON.txt", "nul", "lpt3.log", "Aux.docx"])
    def test_reserved_base_name(self, make_entry, verdict_of, name):
        verdict = verdict_of(make_entry(name))
        assert verdict.kind is VerdictKind.INVALID_NAME
        assert verdict.reason == "reserved name"

    def test_reserved_name_is_not_a_substring_match(self, make_entry, verdict_of):
        assert verdict_of(make_entry("contract.pdf")).is_eligible

    def test_blocked_extension(self, make_entry, verdict_of):
        verdict = verdict_of(make_entry("setup.EXE"))
        assert verdict.kind is VerdictKind.INVALID_NAME
        assert verdict.reason == "blocked extension"
        assert verdict.value == "exe"
        assert verdict.is_blocked

    @pytest.mark.parametrize("name", ["notes.", "notes.txt "])
    def test_trailing_dot_or_space(self, make_entry, verdict_of, name):
        verdict = verdict_of(make_entry(name))
        assert verdict.kind is VerdictKind.INVALID_NAME
        assert verdict.reason == "trailing dot or space"

    def test_path_too_long(self, make_entry, verdict_of):
        relative = "/".join(["department"] * 40) + "/file.txt"
        verdict = verdict_of(make_entry("file.txt", relative_path=relative))
        assert verdict.kind is VerdictKind.PATH_TOO_LONG
        assert verdict.value == len(PREFIX) + 1 + len(relative)

    def test_path_length_counts_destination_prefix(self, make_entry, verdict_of):
        relative = "d/" * 150 + "f.txt"  # 305 characters
        entry = make_entry("f.txt", relative_path=relative)
        assert verdict_of(entry, prefix="").is_eligible
        assert verdict_of(entry, prefix="x" * 100).kind is VerdictKind.PATH_TOO_LONG

    def test_path_length_limit_is_inclusive(self, make_entry, verdict_of):
        folder = "x" * (400 - len(PREFIX) - len("//file.txt"))
        at_limit = make_entry("file.txt", relative_path=f"{folder}/file.txt")
        over_limit = make_entry("file.txt", relative_path=f"{folder}x/file.txt")

        assert verdict_of(at_limit).is_eligible
        verdict = verdict_of(over_limit)
        assert verdict.kind is VerdictKind.PATH_TOO_LONG
        assert verdict.value == 401


class TestPrecedence:
    def test_obsolete_wins_over_everything(self, make_entry, verdict_of):
        entry = make_entry("bad:name.exe", size_bytes=500 * BYTES_PER_MB, age_days=1000)
        assert verdict_of(entry).kind is VerdictKind.OBSOLETE

    def test_name_wins_over_path_and_size(self, make_entry, verdict_of):
        relative = "x/" * 250 + "tool.exe"
        entry = make_entry("tool.exe", size_bytes=500 * BYTES_PER_MB, relative_path=relative)
        assert verdict_of(entry).reason == "blocked extension"

    def test_path_wins_over_size(self, make_entry, verdict_of):
        relative = "x/" * 250 + "big.iso"
        entry = make_entry("big.iso", size_bytes=500 * BYTES_PER_MB, relative_path=relative)
        assert verdict_of(entry).kind is VerdictKind.PATH_TOO_LONG

    def test_check_table_order(self):
        names = [check.__name__ for check in CHECKS]
        assert names.index("_check_stale") == 0
        assert names.index("_check_path_length") > names.index("_check_trailing_char")
        assert names[-1] == "_check_size"


class TestCustomRules:
    def test_custom_thresholds(self, make_entry, now):
        rules = RuleSet(max_file_size_mb=1, stale_days=10)
        entry = make_entry("photo.jpg", size_bytes=2 * BYTES_PER_MB)
        assert classify(entry, rules, ROOT, "", now).kind is VerdictKind.TOO_LARGE
        assert classify(make_entry("note.txt", age_days=11), rules, ROOT, "", now).kind is VerdictKind.OBSOLETE


class TestVirtualPath:
    def test_normalizes_separators(self, make_entry):
        entry = make_entry("b.txt", relative_path="a\\b.txt")
        assert virtual_path(entry, "https://host/lib/") == "https://host/lib/a/b.txt"

    def test_empty_prefix(self, make_entry):
        assert virtual_path(make_entry("b.txt", relative_path="a/b.txt"), "") == "/a/b.txt"
