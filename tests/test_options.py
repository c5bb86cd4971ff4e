"""Tests for option validation."""
from __future__ import annotations

import pytest

from imapstats.options import (
    RECURSE_ALL,
    InvalidOptionError,
    OptionValidator,
    normalize_sort_key,
)


@pytest.fixture
def validator():
    return OptionValidator()


class TestNormalizeSortKey:
    @pytest.mark.parametrize("key,expected", [
        ("count", "count"),
        ("TOTAL_SIZE", "total_size"),
        ("median-size", "median_size"),
        ("q1", "q1_size"),
        ("q3", "q3_size"),
        ("max", "max_size"),
        (None, None),
    ])
    def test_known(self, key, expected):
        assert normalize_sort_key(key) == expected

    def test_unknown(self):
        with pytest.raises(InvalidOptionError, match="sort option must be one of"):
            normalize_sort_key("subject")


class TestGlobalOptions:
    def test_valid(self, validator):
        validator.validate_global("imap.example.com", "me")
        assert validator.passed

    def test_missing_server_and_user(self, validator):
        with pytest.raises(InvalidOptionError):
            validator.validate_global(None, "")
        assert len(validator.errors) == 2

    def test_password_and_prompt_conflict(self, validator):
        with pytest.raises(InvalidOptionError, match="-p and -P"):
            validator.validate_global("imap.example.com", "me", password="x", prompt=True)


class TestStatsOptions:
    def test_defaults(self, validator):
        options = validator.validate_stats([])
        assert options.depth is None
        assert options.sort is None
        assert options.reverse is False
        assert options.limit is None

    def test_recurse_and_no_recurse_conflict(self, validator):
        with pytest.raises(InvalidOptionError, match="incompatible"):
            validator.validate_stats(["INBOX"], recurse=True, no_recurse=True)

    def test_recurse_named_folder(self, validator):
        assert validator.validate_stats(["INBOX"], recurse=True).depth == RECURSE_ALL
        assert not validator.warnings

    def test_recurse_from_root_is_superfluous(self, validator):
        assert validator.validate_stats([], recurse=True).depth is None
        assert "superfluous -r/--recurse" in validator.warnings[0]

    def test_no_recurse_from_root(self, validator):
        assert validator.validate_stats([], no_recurse=True).depth == 0

    def test_no_recurse_named_folder_is_superfluous(self, validator):
        assert validator.validate_stats(["INBOX"], no_recurse=True).depth is None
        assert "superfluous -R/--no-recurse" in validator.warnings[0]

    def test_sort_and_reverse(self, validator):
        options = validator.validate_stats([], sort="Q3", reverse=True)
        assert options.sort == "q3_size"
        assert options.reverse is True

    def test_bad_sort(self, validator):
        with pytest.raises(InvalidOptionError):
            validator.validate_stats([], sort="date")

    def test_limit(self, validator):
        assert validator.validate_stats([], limit=5).limit == 5

    def test_non_positive_limit(self, validator):
        with pytest.raises(InvalidOptionError, match="limit"):
            validator.validate_stats([], limit=0)
