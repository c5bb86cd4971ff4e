"""Tests for Command with a mock mail session."""
from __future__ import annotations

import pytest
from unittest.mock import MagicMock

from imapstats.command import Command, NotFoundError
from imapstats.imap.connection import IMAPConnectionError
from imapstats.models.mailbox import Mailbox, MailboxEntry
from imapstats.models.stats import Stats
from imapstats.options import InvalidOptionError, StatsOptions

FOLDERS = [
    "Inbox",
    "Inbox/Foo",
    "Inbox/Foo/Sub",
    "Inbox/Bar",
    "Inbox/Bar/Sub",
    "Inbox/Bar/Sub/Subsub",
]

SIZES = {
    "Inbox": [1024 * i for i in range(1, 5)],
    "Inbox/Foo": [1024 * i for i in range(3, 11)],
    "Inbox/Foo/Sub": [1024] * 10,
    "Inbox/Bar": [1024, 2048],
    "Inbox/Bar/Sub": [1, 1024 * 20],
    "Inbox/Bar/Sub/Subsub": [1024 * i for i in range(1, 5)],
}


def make_session(folders=FOLDERS, sizes=SIZES) -> MagicMock:
    session = MagicMock()
    session.login.return_value = True
    session.hierarchy_delimiter.return_value = "/"
    session.list_folders.return_value = [MailboxEntry(name, "/") for name in folders]
    session.message_sizes.side_effect = lambda name: list(sizes.get(name, []))
    return session


@pytest.fixture
def session():
    return make_session()


@pytest.fixture
def command(session):
    return Command(session)


def labels(rows):
    return [row[0] for row in rows]


class TestCommandBasics:
    def test_requires_a_session(self):
        with pytest.raises(IMAPConnectionError):
            Command(None)

    def test_check(self, command):
        assert command.check() is True

    def test_check_failed_login(self, session, command):
        session.login.return_value = False
        assert command.check() is False

    def test_info(self, session, command):
        session.greeting.return_value = "hello"
        session.capabilities.return_value = ["IMAP4rev1", "QUOTA"]
        session.supports_quota.return_value = True
        session.quota.return_value = (1024, 2048, 50.0)
        output = command.info()
        assert output[0] == "greeting: hello"
        assert output[1] == "capability: IMAP4rev1 QUOTA"
        assert output[2] == "hierarchy separator: /"
        assert output[3] == "quota: 1.0 MB used, 2.0 MB available (50.0%)"

    def test_info_without_quota(self, session, command):
        session.greeting.return_value = "hello"
        session.capabilities.return_value = ["IMAP4rev1"]
        session.supports_quota.return_value = False
        assert command.info()[-1] == "quota: IMAP QUOTA extension not supported by this server"

    def test_list(self, command):
        assert command.list() == [
            "- Inbox",
            "  - Bar",
            "    - Sub",
            "      - Subsub",
            "  - Foo",
            "    - Sub",
        ]

    def test_tree_is_built_once(self, session, command):
        command.find_mailbox("Inbox")
        command.find_mailbox("Inbox/Foo")
        session.list_folders.assert_called_once()


class TestStatsSelection:
    def test_all_folders(self, command):
        rows = command.stats()
        assert len(rows) == 7
        assert rows[0][0] == "Inbox"
        assert rows[0][1] == 4
        assert rows[-1][0] == "Total"
        assert rows[-1][1] == 4 + 8 + 10 + 2 + 2 + 4

    def test_single_folder_has_no_total(self, command):
        rows = command.stats("Inbox/Foo")
        assert len(rows) == 1
        assert rows[0][0] == "Inbox/Foo"
        assert rows[0][1] == 8

    def test_folder_and_subfolders(self, command):
        rows = command.stats("Inbox/Foo", StatsOptions(depth=-1))
        assert labels(rows) == ["Inbox/Foo", "Inbox/Foo/Sub", "Total"]

    def test_limit_of_one_has_no_total(self, command):
        rows = command.stats(options=StatsOptions(sort="count", reverse=True, limit=1))
        assert labels(rows) == ["Inbox/Foo/Sub"]

    def test_limit_without_sort_keeps_last_paths(self, command):
        rows = command.stats(options=StatsOptions(limit=2))
        assert labels(rows) == ["Inbox/Foo", "Inbox/Foo/Sub", "Total"]
        assert rows[-1][1] == 30

    def test_non_root_default_does_not_recurse(self, session, command):
        command.stats(["Inbox/Bar"])
        session.message_sizes.assert_called_once_with("Inbox/Bar")

    def test_bounded_depth_below_folder(self, command):
        rows = command.stats(["Inbox"], StatsOptions(depth=1))
        assert labels(rows) == ["Inbox", "Inbox/Bar", "Inbox/Foo", "Total"]

    def test_root_with_zero_depth_lists_top_level(self, command):
        rows = command.stats([], StatsOptions(depth=0))
        assert labels(rows) == ["Inbox"]

    def test_overlapping_names_are_consolidated(self, session, command):
        rows = command.stats(["Inbox/Foo/Sub", "Inbox/Foo"], StatsOptions(depth=-1))
        assert labels(rows) == ["Inbox/Foo", "Inbox/Foo/Sub", "Total"]
        assert session.message_sizes.call_count == 2

    def test_several_roots_are_ordered_by_path(self, command):
        rows = command.stats(["Inbox/Foo", "Inbox/Bar"])
        assert labels(rows) == ["Inbox/Bar", "Inbox/Foo", "Total"]

    def test_unknown_names_are_dropped(self, command):
        rows = command.stats(["Nope", "Inbox/Foo"])
        assert labels(rows) == ["Inbox/Foo"]

    def test_all_unknown_raises(self, command):
        with pytest.raises(NotFoundError):
            command.stats(["Nope", "Also/Nope"])

    def test_structural_only_selection_raises(self):
        command = Command(make_session(folders=["A/B"]))
        with pytest.raises(NotFoundError):
            command.stats(["A"])

    def test_repeated_calls_do_not_double_totals(self, session, command):
        first = command.stats()
        second = command.stats()
        assert first[-1] == second[-1]
        assert session.message_sizes.call_count == 6

    def test_progress(self, command):
        calls = []
        command.stats(on_progress=lambda done, total: calls.append((done, total)))
        assert calls == [(i, 6) for i in range(1, 7)]


class TestStatsSorting:
    def test_by_count_reverse(self, command):
        rows = command.stats("Inbox", StatsOptions(depth=-1, sort="count", reverse=True))
        assert rows[0][0] == "Inbox/Foo/Sub"

    def test_by_total_size_reverse(self, command):
        rows = command.stats("Inbox", StatsOptions(depth=-1, sort="total_size", reverse=True))
        assert rows[0][0] == "Inbox/Foo"

    def test_by_max_size_reverse(self, command):
        rows = command.stats("Inbox", StatsOptions(depth=-1, sort="max_size", reverse=True))
        assert rows[0][0] == "Inbox/Bar/Sub"

    def test_by_min_size_reverse(self, command):
        rows = command.stats("Inbox", StatsOptions(depth=-1, sort="min_size", reverse=True))
        assert rows[0][0] == "Inbox/Foo"

    def test_unknown_sort_key_fails_before_server_access(self, session, command):
        with pytest.raises(InvalidOptionError):
            command.stats(options=StatsOptions(sort="colour"))
        session.list_folders.assert_not_called()
        session.message_sizes.assert_not_called()

    def test_invalid_limit(self, command):
        with pytest.raises(InvalidOptionError):
            command.stats(options=StatsOptions(limit=0))

    def test_limit_keeps_largest(self, command):
        rows = command.stats(options=StatsOptions(sort="count", reverse=True, limit=2))
        assert labels(rows) == ["Inbox/Foo/Sub", "Inbox/Foo", "Total"]
        assert rows[-1][1] == 30

    def test_limit_ascending_keeps_tail(self, command):
        rows = command.stats(options=StatsOptions(sort="count", limit=2))
        assert labels(rows) == ["Inbox/Foo", "Inbox/Foo/Sub", "Total"]


def _mailbox_with(name: str, sizes: list[int]) -> Mailbox:
    root = Mailbox.build([MailboxEntry(name, "/")])
    mailbox = root.find_sub_mailbox(name, "/")
    mailbox.stats = Stats(sizes)
    return mailbox


class TestSortMailboxes:
    @pytest.fixture
    def mailboxes(self):
        return [
            _mailbox_with("A", [1] * 4),
            _mailbox_with("B", [1] * 8),
            _mailbox_with("C", [1] * 10),
            _mailbox_with("D", []),
        ]

    def order(self, mailboxes, *args, **kwargs):
        return [m.full_name for m in Command.sort_mailboxes(mailboxes, *args, **kwargs)]

    def test_descending_count_empty_last(self, mailboxes):
        assert self.order(mailboxes, "count", reverse=True) == ["C", "B", "A", "D"]

    def test_ascending_count_empty_last(self, mailboxes):
        assert self.order(mailboxes, "count") == ["A", "B", "C", "D"]

    def test_missing_values_stay_last(self, mailboxes):
        assert self.order(mailboxes, "median_size", reverse=True)[-1] == "D"
        assert self.order(mailboxes, "median_size")[-1] == "D"

    def test_no_sort_key_keeps_order(self, mailboxes):
        assert self.order(mailboxes, None) == ["A", "B", "C", "D"]
        assert self.order(mailboxes, None, limit=2) == ["C", "D"]

    def test_limit_fills_with_missing_values(self, mailboxes):
        assert self.order(mailboxes, "count", reverse=True, limit=5) == ["C", "B", "A", "D"]
        assert self.order(mailboxes, "count", reverse=True, limit=1) == ["C"]

    def test_ties_keep_path_order(self):
        mailboxes = [_mailbox_with("A", [5]), _mailbox_with("B", [5]), _mailbox_with("C", [1])]
        assert self.order(mailboxes, "max_size") == ["C", "A", "B"]


class TestDetermineMaxDepth:
    @pytest.fixture
    def root(self, command):
        return command.mailbox_root

    def test_root_defaults_to_unbounded(self, root):
        assert Command.determine_max_depth(root, StatsOptions()) is None

    def test_root_with_depth(self, root):
        assert Command.determine_max_depth(root, StatsOptions(depth=2)) == 2

    def test_root_recurse_all(self, root):
        assert Command.determine_max_depth(root, StatsOptions(depth=-1)) is None

    def test_folder_defaults_to_own_depth(self, command):
        foo = command.find_mailbox("Inbox/Foo")
        assert Command.determine_max_depth(foo, StatsOptions()) == 1

    def test_folder_with_depth(self, command):
        foo = command.find_mailbox("Inbox/Foo")
        assert Command.determine_max_depth(foo, StatsOptions(depth=2)) == 3
        assert Command.determine_max_depth(foo, StatsOptions(depth=-1)) is None

    def test_folder_with_empty_name_is_not_the_root(self):
        root = Mailbox.build([MailboxEntry("/Archive", "/")])
        unnamed = root[""]
        assert not unnamed.is_root
        assert Command.determine_max_depth(unnamed, StatsOptions()) == 0
        assert Command.determine_max_depth(unnamed, StatsOptions(depth=1)) == 1
