"""Tests for name-and-size duplicate detection."""

from __future__ import annotations

from ferry.core.duplicates import duplicate_key, find_duplicates
from ferry.utils import BYTES_PER_MB


class TestFindDuplicates:
    def test_same_name_and_size_grouped(self, make_entry):
        a = make_entry("plan.xlsx", size_bytes=3 * BYTES_PER_MB, relative_path="a/plan.xlsx")
        b = make_entry("plan.xlsx", size_bytes=3 * BYTES_PER_MB, relative_path="b/plan.xlsx")
        groups = find_duplicates([a, b])

        assert len(groups) == 1
        assert groups[0].name == "plan.xlsx"
        assert groups[0].size_mb == 3.0
        assert groups[0].entries == [a, b]

    def test_rounding_to_two_decimals(self, make_entry):
        # 1.001 MB and 1.004 MB both round to 1.0
        a = make_entry("x.bin", size_bytes=int(1.001 * BYTES_PER_MB), relative_path="a/x.bin")
        b = make_entry("x.bin", size_bytes=int(1.004 * BYTES_PER_MB), relative_path="b/x.bin")
        assert len(find_duplicates([a, b])) == 1

    def test_different_size_not_grouped(self, make_entry):
        a = make_entry("x.bin", size_bytes=1 * BYTES_PER_MB, relative_path="a/x.bin")
        b = make_entry("x.bin", size_bytes=2 * BYTES_PER_MB, relative_path="b/x.bin")
        assert find_duplicates([a, b]) == []

    def test_different_name_not_grouped(self, make_entry):
        a = make_entry("x.bin", size_bytes=BYTES_PER_MB)
        b = make_entry("y.bin", size_bytes=BYTES_PER_MB)
        assert find_duplicates([a, b]) == []

    def test_names_compared_case_sensitively(self, make_entry):
        a = make_entry("Plan.xlsx", relative_path="a/Plan.xlsx")
        b = make_entry("plan.xlsx", relative_path="b/plan.xlsx")
        assert find_duplicates([a, b]) == []

    def test_single_entries_are_not_groups(self, make_entry):
        assert find_duplicates([make_entry("only.txt")]) == []
        assert find_duplicates([]) == []

    def test_key(self, make_entry):
        assert duplicate_key(make_entry("a.txt", size_bytes=BYTES_PER_MB // 2)) == ("a.txt", 0.5)
