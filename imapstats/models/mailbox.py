"""Mailbox tree — IMAP folders arranged by their hierarchy delimiter.

In IMAP speak a *mailbox* is what mail clients call a folder. The server
returns a flat LIST of names such as ``INBOX``, ``INBOX/Work`` and
``INBOX/Work/2024``; `Mailbox.build` turns that list into a tree rooted at a
synthetic, nameless mailbox.

A node whose ``entry`` is None exists only because a deeper folder implies it
(``A/B`` listed without ``A``); such nodes never appear in flat listings.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Callable, Iterable

from imapstats.models.stats import Stats

if TYPE_CHECKING:
    from imapstats.imap.session import MailSession

logger = logging.getLogger(__name__)

INBOX = "INBOX"


@dataclass(frozen=True)
class MailboxEntry:
    """One line of the server's LIST response."""
    name: str
    delimiter: str | None = "/"
    flags: tuple[str, ...] = field(default_factory=tuple)

    @property
    def selectable(self) -> bool:
        lowered = {f.lower() for f in self.flags}
        return "\\noselect" not in lowered and "\\nonexistent" not in lowered


def normalize_key(segment: str, level: int, case_insensitive: bool = False) -> str:
    """
    Key under which *segment* is stored among its siblings.

    *level* is the level of the child being keyed (top-level folders are 1).
    INBOX is case-insensitive on every server (RFC 3501), other names only
    when the caller asks for it.
    """
    if case_insensitive or (level == 1 and segment.upper() == INBOX):
        return segment.upper()
    return segment


def _split(name: str | None, delimiter: str | None) -> tuple[str | None, str | None]:
    """Split off the first path segment: 'A/B/C' -> ('A', 'B/C')."""
    if not name:
        return None, None
    if not delimiter:
        return name, None
    head, sep, rest = name.partition(delimiter)
    return head, (rest if sep else None)


class Mailbox:
    """A node of the mailbox tree. The root has level 0 and no name."""

    def __init__(
        self,
        name: str = "",
        level: int = 0,
        case_insensitive: bool = False,
        delimiter: str | None = None,
    ) -> None:
        self.name = name
        self.level = level
        self.entry: MailboxEntry | None = None
        self.stats: Stats | None = None
        self._children: dict[str, Mailbox] = {}
        self._case_insensitive = case_insensitive
        self._delimiter_override = delimiter

    @classmethod
    def build(
        cls,
        entries: Iterable[MailboxEntry] | None = None,
        case_insensitive: bool = False,
        delimiter: str | None = None,
    ) -> Mailbox:
        """Create a root mailbox and add *entries* (a LIST response) to it.

        *delimiter*, if given, overrides the delimiter of every entry.
        """
        root = cls(case_insensitive=case_insensitive, delimiter=delimiter)
        if entries:
            root.add_entries(entries)
        return root

    # ── Construction ──────────────────────────────────────────────────────

    def add_entries(self, entries: Iterable[MailboxEntry]) -> None:
        """Add a whole LIST response; sorted first so the tree is deterministic."""
        for entry in sorted(entries, key=lambda e: (e.name or "").lower()):
            self.add_entry(entry)

    def add_entry(self, entry: MailboxEntry) -> Mailbox | None:
        """Add a single folder, creating structural ancestors as needed."""
        if entry is None or not entry.name:
            logger.debug("Skipping mailbox entry without a name: %r", entry)
            return None
        delimiter = self._delimiter_override or entry.delimiter
        node = self
        rest: str | None = entry.name
        while rest is not None:
            segment, rest = _split(rest, delimiter)
            node = node._child_for(segment or "")
        node.entry = entry
        return node

    def _child_for(self, segment: str) -> Mailbox:
        key = normalize_key(segment, self.level + 1, self._case_insensitive)
        child = self._children.get(key)
        if child is None:
            child = Mailbox(
                name=segment,
                level=self.level + 1,
                case_insensitive=self._case_insensitive,
                delimiter=self._delimiter_override,
            )
            self._children[key] = child
        return child

    # ── Properties ────────────────────────────────────────────────────────

    @property
    def children(self) -> list[Mailbox]:
        return list(self._children.values())

    @property
    def depth(self) -> int:
        """Path depth: 0 for top-level folders, -1 for the synthetic root."""
        return self.level - 1

    @property
    def full_name(self) -> str | None:
        return self.entry.name if self.entry else None

    @property
    def delimiter(self) -> str | None:
        return self.entry.delimiter if self.entry else None

    @property
    def is_root(self) -> bool:
        return self.level == 0

    @property
    def is_imap_mailbox(self) -> bool:
        return self.entry is not None

    @property
    def has_children(self) -> bool:
        return bool(self._children)

    def __getitem__(self, key: str) -> Mailbox | None:
        return self._children.get(key)

    def __repr__(self) -> str:
        return f"Mailbox({self.full_name or self.name!r}, level={self.level})"

    # ── Queries ───────────────────────────────────────────────────────────

    def _descend(self, max_depth: int | None) -> bool:
        return max_depth is None or self.depth < max_depth

    def count(self, max_depth: int | None = None) -> int:
        """Number of nodes in this subtree, including self and structural nodes."""
        total = 1
        if self._descend(max_depth):
            total += sum(child.count(max_depth) for child in self._children.values())
        return total

    def max_depth(self) -> int:
        """Deepest path depth found in this subtree."""
        if not self._children:
            return self.depth
        return max(child.max_depth() for child in self._children.values())

    def contains(self, other: Mailbox) -> bool:
        """True if *other* is a (transitive) child of this mailbox."""
        return any(
            child is other or child.contains(other)
            for child in self._children.values()
        )

    def find_sub_mailbox(self, relative_name: str | None, delimiter: str | None) -> Mailbox | None:
        """
        Locate a mailbox by a name relative to this one ('Work/2024').
        Returns None as soon as a path segment does not exist.
        """
        if not relative_name:
            return self
        segment, rest = _split(relative_name, delimiter)
        key = normalize_key(segment or "", self.level + 1, self._case_insensitive)
        child = self._children.get(key)
        if child is None:
            return None
        return child.find_sub_mailbox(rest, delimiter)

    def to_list(self, max_depth: int | None = None) -> list[Mailbox]:
        """
        Flatten this subtree into a list ordered by full name.

        Structural nodes (including the root) are left out. Children are
        visited while this node's depth is below *max_depth*; None means
        no limit.
        """
        found = [self] if self.is_imap_mailbox else []
        if self._descend(max_depth):
            for child in self._children.values():
                found.extend(child.to_list(max_depth))
        return sorted(found, key=lambda m: m.full_name or "")

    def walk(self) -> Iterable[Mailbox]:
        """Depth-first pre-order traversal, children in name order."""
        yield self
        for child in sorted(self._children.values(), key=lambda m: m.name.lower()):
            yield from child.walk()

    def collect_stats(
        self,
        session: MailSession,
        max_depth: int | None = None,
        on_each: Callable[[Mailbox, Stats], None] | None = None,
    ) -> None:
        """
        Fetch message sizes for this mailbox and its children down to
        *max_depth*.

        Stats are fetched at most once per mailbox; a second call only
        descends into children that have not been visited yet. *on_each*
        is called for each real folder right after its own stats arrive.
        """
        if self.stats is None and self.is_imap_mailbox:
            self.stats = Stats(session.message_sizes(self.full_name))
            logger.debug("Collected %d message sizes for %s", self.stats.count, self.full_name)
            if on_each is not None:
                on_each(self, self.stats)
        if self._descend(max_depth):
            for child in self._children.values():
                child.collect_stats(session, max_depth, on_each)

    @staticmethod
    def consolidate(mailboxes: Iterable[Mailbox]) -> list[Mailbox]:
        """Drop duplicates and every mailbox contained in another one of the list."""
        unique: list[Mailbox] = []
        for mailbox in mailboxes:
            if not any(mailbox is seen for seen in unique):
                unique.append(mailbox)
        return [
            mailbox for mailbox in unique
            if not any(parent.contains(mailbox) for parent in unique)
        ]
