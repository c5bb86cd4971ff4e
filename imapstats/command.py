"""Command — entry points behind the CLI sub-commands.

Each method returns plain data (lines of text, or report rows) so the CLI
decides how to render it. `stats` is the report builder: it resolves the
requested folders against the mailbox tree, collects message sizes through
the mail session, and returns one row per folder plus a Total row.
"""
from __future__ import annotations

import logging
from typing import Any, Callable, Sequence

from imapstats import config
from imapstats.imap.connection import IMAPConnectionError
from imapstats.imap.session import MailSession
from imapstats.models.mailbox import Mailbox
from imapstats.models.stats import Stats
from imapstats.options import InvalidOptionError, StatsOptions, normalize_sort_key
from imapstats.utils.size_fmt import human_size

logger = logging.getLogger(__name__)

TOTAL_LABEL = "Total"

Row = list[Any]  # [label, count, total, min, q1, median, q3, max]


class NotFoundError(LookupError):
    pass


class Command:
    def __init__(self, session: MailSession | None, case_insensitive: bool | None = None) -> None:
        if session is None:
            raise IMAPConnectionError("a mail session is required")
        self._session = session
        self._case_insensitive = config.CASE_INSENSITIVE if case_insensitive is None else case_insensitive
        self._root: Mailbox | None = None

    # ── Tree ──────────────────────────────────────────────────────────────

    @property
    def mailbox_root(self) -> Mailbox:
        """The mailbox tree, built from the server's folder list on first use."""
        if self._root is None:
            self._root = Mailbox.build(
                self._session.list_folders(),
                case_insensitive=self._case_insensitive,
            )
            logger.debug("Built mailbox tree with %d nodes", self._root.count())
        return self._root

    def find_mailbox(self, name: str) -> Mailbox | None:
        return self.mailbox_root.find_sub_mailbox(name, self._session.hierarchy_delimiter())

    def find_mailboxes(self, names: Sequence[str] | None) -> list[Mailbox]:
        """Resolve folder names; unknown names are dropped, overlaps consolidated."""
        if not names:
            return [self.mailbox_root]
        found = []
        for name in names:
            mailbox = self.find_mailbox(name)
            if mailbox is None:
                logger.warning("Unknown mailbox: %s", name)
            else:
                found.append(mailbox)
        return Mailbox.consolidate(found)

    # ── Commands ──────────────────────────────────────────────────────────

    def check(self) -> bool:
        """True if the server accepts the login."""
        return self._session.login()

    def info(self) -> list[str]:
        output = [
            f"greeting: {self._session.greeting()}",
            f"capability: {' '.join(self._session.capabilities())}",
            f"hierarchy separator: {self._session.hierarchy_delimiter()}",
        ]
        quota = self._session.quota() if self._session.supports_quota() else None
        if quota is not None:
            usage, limit, percent = quota
            line = f"quota: {human_size(usage * 1024)} used, {human_size(limit * 1024)} available"
            if percent is not None:
                line += f" ({percent:.1f}%)"
            output.append(line)
        else:
            output.append("quota: IMAP QUOTA extension not supported by this server")
        return output

    def list(self) -> list[str]:
        """One '- name' line per folder, indented two spaces per level."""
        return [
            f"{'  ' * max(mailbox.depth, 0)}- {mailbox.name}"
            for mailbox in self.mailbox_root.walk()
            if mailbox.is_imap_mailbox
        ]

    def stats(
        self,
        mailbox_names: Sequence[str] | str | None = None,
        options: StatsOptions | None = None,
        on_progress: Callable[[int, int], None] | None = None,
    ) -> list[Row]:
        """
        Collect statistics for the named folders (all folders if none).

        Returns rows of ``[name, count, total, min, q1, median, q3, max]``
        in report order, followed by a Total row (over every selected
        folder) when more than one row is emitted. *on_progress(done,
        total)* is called after each folder's sizes have been fetched.

        Raises InvalidOptionError for bad options (before any server
        access) and NotFoundError if no folder matches.
        """
        options = options or StatsOptions()
        sort_key = normalize_sort_key(options.sort)
        if options.limit is not None and options.limit < 1:
            raise InvalidOptionError("limit must be a positive number")
        if isinstance(mailbox_names, str):
            mailbox_names = [mailbox_names]

        roots = self.find_mailboxes(mailbox_names)
        selection: list[tuple[Mailbox, int | None]] = [
            (root, self.determine_max_depth(root, options)) for root in roots
        ]

        mailboxes: list[Mailbox] = []
        for root, max_depth in selection:
            for mailbox in root.to_list(max_depth):
                if not any(mailbox is seen for seen in mailboxes):
                    mailboxes.append(mailbox)
        if not mailboxes:
            raise NotFoundError("mailbox not found")
        mailboxes.sort(key=lambda m: m.full_name or "")

        total = len(mailboxes)
        done = 0
        logger.info("Collecting stats for %d folder(s)", total)

        def on_each(_mailbox: Mailbox, _stats: Stats) -> None:
            nonlocal done
            done += 1
            if on_progress is not None:
                on_progress(done, total)

        for root, max_depth in selection:
            root.collect_stats(self._session, max_depth, on_each)

        total_stats = Stats()
        for mailbox in mailboxes:
            total_stats.add(mailbox.stats)

        ordered = self.sort_mailboxes(mailboxes, sort_key, options.reverse, options.limit)
        rows: list[Row] = [stats_to_row(m.full_name, m.stats) for m in ordered]
        if len(ordered) > 1:
            rows.append(stats_to_row(TOTAL_LABEL, total_stats))
        return rows

    # ── Helpers ───────────────────────────────────────────────────────────

    @staticmethod
    def determine_max_depth(mailbox: Mailbox, options: StatsOptions) -> int | None:
        """
        Maximum path depth to descend to from *mailbox*.

        The root is traversed entirely unless options.depth limits it.
        A named folder is not recursed into by default; depth n >= 0 goes
        n levels below it and a negative depth means no limit.
        """
        if mailbox.is_root:
            depth = options.depth
            return depth if depth is not None and depth >= 0 else None
        depth = options.depth if options.depth is not None else 0
        return mailbox.depth + depth if depth >= 0 else None

    @staticmethod
    def sort_mailboxes(
        mailboxes: Sequence[Mailbox],
        sort_key: str | None,
        reverse: bool = False,
        limit: int | None = None,
    ) -> list[Mailbox]:
        """
        Order mailboxes for the report.

        Folders without a value for *sort_key* (empty folders, or a folder
        whose stats are missing) always come last, in path order, and only
        fill slots the limit leaves over. With a limit, the most extreme
        values under the chosen direction are kept: the tail of an
        ascending sort, the head of a descending one. Without a sort key
        the order is by path and the limit keeps its tail as well.
        """
        if sort_key is None:
            ordered = list(mailboxes)
            return ordered[-limit:] if limit else ordered

        def has_value(m: Mailbox) -> bool:
            return m.stats is not None and m.stats.count > 0 and m.stats.value(sort_key) is not None

        defined = sorted((m for m in mailboxes if has_value(m)), key=lambda m: m.stats.value(sort_key))
        undefined = [m for m in mailboxes if not has_value(m)]
        if reverse:
            defined.reverse()
        if limit:
            defined = defined[:limit] if reverse else defined[-limit:]
            undefined = undefined[:max(0, limit - len(defined))]
        return defined + undefined


def stats_to_row(label: str | None, stats: Stats | None) -> Row:
    stats = stats if stats is not None else Stats()
    return [label, *stats.as_row()]
