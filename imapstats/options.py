"""Option validation for the command line and for report building.

Everything here runs before the first network round-trip, so a typo in a
sort key never costs a login.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Sequence

logger = logging.getLogger(__name__)

SORT_KEYS: tuple[str, ...] = (
    "count",
    "total_size",
    "min_size",
    "q1_size",
    "median_size",
    "q3_size",
    "max_size",
)

_SORT_ALIASES = {
    "size": "total_size",
    "total": "total_size",
    "min": "min_size",
    "q1": "q1_size",
    "median": "median_size",
    "q3": "q3_size",
    "max": "max_size",
}

RECURSE_ALL = -1


class InvalidOptionError(ValueError):
    pass


@dataclass
class StatsOptions:
    """
    depth: None = default policy, -1 = unbounded, n >= 0 = n levels below
    each selected folder.
    """
    depth: int | None = None
    sort: str | None = None
    reverse: bool = False
    limit: int | None = None


def normalize_sort_key(key: str | None) -> str | None:
    """Map a user-supplied sort key to one of SORT_KEYS; None stays None."""
    if key is None:
        return None
    lowered = key.strip().lower().replace("-", "_")
    lowered = _SORT_ALIASES.get(lowered, lowered)
    if lowered not in SORT_KEYS:
        raise InvalidOptionError(f"sort option must be one of: {', '.join(SORT_KEYS)}")
    return lowered


class OptionValidator:
    """Collects errors and warnings while checking user options."""

    def __init__(self) -> None:
        self.errors: list[str] = []
        self.warnings: list[str] = []

    @property
    def passed(self) -> bool:
        return not self.errors

    def _raise_on_errors(self) -> None:
        if self.errors:
            raise InvalidOptionError("; ".join(self.errors))

    def validate_global(
        self,
        server: str | None,
        user: str | None,
        password: str | None = None,
        prompt: bool = False,
    ) -> None:
        if not server:
            self.errors.append("missing server name (use -s option or set IMAP_SERVER environment variable)")
        if not user:
            self.errors.append("missing user name (use -u option or set IMAP_USER environment variable)")
        if password and prompt:
            self.errors.append("-p and -P options do not agree")
        self._raise_on_errors()

    def validate_stats(
        self,
        mailbox_names: Sequence[str] = (),
        recurse: bool = False,
        no_recurse: bool = False,
        sort: str | None = None,
        reverse: bool = False,
        limit: int | None = None,
    ) -> StatsOptions:
        """Turn stats switches into StatsOptions; raises InvalidOptionError."""
        if recurse and no_recurse:
            raise InvalidOptionError("incompatible options -r/--recurse and -R/--no-recurse")

        options = StatsOptions(reverse=reverse)
        if recurse:
            if mailbox_names:
                options.depth = RECURSE_ALL
            else:
                self.warnings.append("warning: superfluous -r/--recurse option; will recurse from root by default")
        elif no_recurse:
            if mailbox_names:
                self.warnings.append(
                    "warning: superfluous -R/--no-recurse option; will not recurse from non-root mailbox by default"
                )
            else:
                options.depth = 0

        try:
            options.sort = normalize_sort_key(sort)
        except InvalidOptionError as exc:
            self.errors.append(str(exc))

        if limit is not None:
            if limit < 1:
                self.errors.append("limit must be a positive number")
            else:
                options.limit = limit

        for warning in self.warnings:
            logger.debug(warning)
        self._raise_on_errors()
        return options
