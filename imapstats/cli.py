"""imapstats CLI — folder listing and message size statistics for an IMAP account."""
from __future__ import annotations

import argparse
import csv
import getpass
import logging
import os
import sys
from typing import Callable, TextIO

from imapclient.exceptions import IMAPClientError

from imapstats import config
from imapstats.command import Command, NotFoundError, Row
from imapstats.imap.connection import IMAPConnectionError
from imapstats.imap.session import IMAPSession, MailSession
from imapstats.models.account import Account
from imapstats.options import SORT_KEYS, InvalidOptionError, OptionValidator
from imapstats.utils.keyring_store import delete_password, get_password, set_password
from imapstats.utils.size_fmt import format_bytes

logger = logging.getLogger(__name__)

HEADER = ["Mailbox", "Count", "Total size", "Min", "Q1", "Median", "Q3", "Max"]

SessionFactory = Callable[[Account, "str | None"], MailSession]


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="imapstats",
        description="Command-line interface for IMAP servers: folder tree and message size statistics",
    )
    p.add_argument("--version", action="version", version=f"%(prog)s {config.APP_VERSION}")
    p.add_argument("-s", "--server", default=os.environ.get(config.ENV_SERVER),
                   help="IMAP server, optionally with :port (default $IMAP_SERVER)")
    p.add_argument("-u", "--user", default=os.environ.get(config.ENV_USER),
                   help="Log-in name (default $IMAP_USER)")
    p.add_argument("-p", "--password", help="Log-in password")
    p.add_argument("-P", "--prompt", action="store_true", help="Prompt for password (stored in keyring)")
    p.add_argument("--no-ssl", action="store_true", help="Disable SSL/TLS")
    p.add_argument("-v", "--verbose", action="store_true", help="Debug logging, including IMAP traffic")

    sub = p.add_subparsers(dest="command", required=True)
    sub.add_parser("check", help="Test if log-in succeeds with the credentials")
    sub.add_parser("info", help="Print information about the server")
    sub.add_parser("list", help="List mailboxes (folders)")
    sub.add_parser("forget", help="Remove the stored password from the keyring")

    stats = sub.add_parser("stats", help="Collect mailbox statistics")
    stats.add_argument("mailboxes", nargs="*", metavar="MAILBOX",
                       help="Folders to analyze (default: all)")
    stats.add_argument("-r", "--recurse", action="store_true", help="Recurse into sub mailboxes")
    stats.add_argument("-R", "--no-recurse", action="store_true", help="Do not recurse into sub mailboxes")
    stats.add_argument("-H", "--human", action="store_true", help="Human-friendly byte counts")
    stats.add_argument("-o", "--sort", default=config.DEFAULT_SORT, metavar="KEY",
                       help=f"Sort by one of: {', '.join(SORT_KEYS)}")
    stats.add_argument("--reverse", action="store_true", help="Reverse sort order (largest first)")
    stats.add_argument("--csv", action="store_true", help="Output comma-separated values")
    stats.add_argument("-l", "--limit", type=int, default=config.DEFAULT_LIMIT, metavar="N",
                       help="Limit the results to N folders")
    return p


# ── Credentials ───────────────────────────────────────────────────────────────

def resolve_password(args: argparse.Namespace, account: Account) -> str | None:
    """-P prompt, then -p, then $IMAP_PASS, then the keyring."""
    if args.prompt:
        password = getpass.getpass(f"Password for {account.username}@{account.host}: ")
        set_password(account.username, account.host, password)
        return password
    if args.password:
        return args.password
    env_password = os.environ.get(config.ENV_PASSWORD)
    if env_password:
        return env_password
    return get_password(account.username, account.host)


# ── Rendering ─────────────────────────────────────────────────────────────────

def format_rows(rows: list[Row], human: bool = False, missing: str = "-") -> list[list[str]]:
    return [
        [str(row[0]), str(row[1])] + [format_bytes(cell, human, missing) for cell in row[2:]]
        for row in rows
    ]


def render_table(rows: list[Row], human: bool = False) -> str:
    """Plain-text table; the Total row (if any) is set off by a rule."""
    body = format_rows(rows, human)
    widths = [len(h) for h in HEADER]
    for row in body:
        widths = [max(w, len(cell)) for w, cell in zip(widths, row)]

    def line(cells: list[str]) -> str:
        first = f"{cells[0]:<{widths[0]}}"
        rest = [f"{cell:>{w}}" for cell, w in zip(cells[1:], widths[1:])]
        return "  ".join([first, *rest])

    rule = "-" * (sum(widths) + 2 * (len(widths) - 1))
    out = [line(HEADER), rule]
    if len(body) > 1:
        out.extend(line(row) for row in body[:-1])
        out.append(rule)
        out.append(line(body[-1]))
    else:
        out.extend(line(row) for row in body)
    return "\n".join(out)


def write_csv(rows: list[Row], stream: TextIO, human: bool = False) -> None:
    """CSV with sizes in bytes; the Total row is left out."""
    writer = csv.writer(stream)
    writer.writerow(HEADER)
    folder_rows = rows[:-1] if len(rows) > 1 else rows
    writer.writerows(format_rows(folder_rows, human, missing=""))


class _Progress:
    """Single-line progress on stderr, shown only for multi-folder reports."""

    def __init__(self, stream: TextIO | None = None) -> None:
        self._stream = stream or sys.stderr
        self._started = False

    def __call__(self, done: int, total: int) -> None:
        if total <= 1:
            return
        if not self._started:
            print(f"info: collecting stats for {total} folders", file=self._stream)
            self._started = True
        pct = done * 100 // total
        print(f"collecting stats... {done}/{total} ({pct}%)\r", end="", file=self._stream, flush=True)

    def finish(self) -> None:
        if self._started:
            print(file=self._stream)


# ── Entry ─────────────────────────────────────────────────────────────────────

def run(args: argparse.Namespace, session_factory: SessionFactory | None = None) -> int:
    """Execute a parsed command line; returns the process exit code."""
    factory = session_factory or IMAPSession
    validator = OptionValidator()
    session: MailSession | None = None
    try:
        validator.validate_global(args.server, args.user, args.password, args.prompt)
        stats_options = None
        if args.command == "stats":
            stats_options = validator.validate_stats(
                args.mailboxes,
                recurse=args.recurse,
                no_recurse=args.no_recurse,
                sort=args.sort,
                reverse=args.reverse,
                limit=args.limit,
            )
        for warning in validator.warnings:
            print(warning, file=sys.stderr)

        account = Account.from_server(args.server, args.user, use_ssl=not args.no_ssl)
        if not account.host_valid:
            raise InvalidOptionError("invalid server name")
        print(f"server: {account.host}", file=sys.stderr)
        print(f"user: {account.username}", file=sys.stderr)

        if args.command == "forget":
            if delete_password(account.username, account.host):
                print("stored password removed")
            else:
                print("no stored password")
            return 0

        password = resolve_password(args, account)
        if not password:
            print("warning: no password was provided (missing -p/-P option)", file=sys.stderr)

        session = factory(account, password)
        command = Command(session)

        if args.command == "check":
            if command.check():
                print("login successful")
                return 0
            print("login failed", file=sys.stderr)
            return 1

        if not command.check():
            print("error: unable to log into server", file=sys.stderr)
            return 1

        if args.command == "info":
            print("\n".join(command.info()))
        elif args.command == "list":
            print("\n".join(command.list()))
        elif args.command == "stats":
            progress = _Progress()
            try:
                rows = command.stats(args.mailboxes, stats_options, on_progress=progress)
            finally:
                progress.finish()
            if args.csv:
                write_csv(rows, sys.stdout, args.human)
            else:
                if args.human:
                    print("notice: -H/--human flag present, message sizes are given with binary prefixes")
                else:
                    print("notice: message sizes are given in bytes")
                print(render_table(rows, args.human))
        return 0
    except (InvalidOptionError, NotFoundError, IMAPConnectionError, IMAPClientError, OSError) as exc:
        logger.debug("Command failed", exc_info=True)
        print(f"error: {exc}", file=sys.stderr)
        return 1
    finally:
        if session is not None:
            session.logout()
