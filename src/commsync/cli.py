"""Command-line interface for CommSync.

This module provides the main entry point for the CLI application.
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from collections.abc import Callable
from pathlib import Path
from typing import Any

import pydantic
import structlog

from commsync.channels import (
    bulkvs_to_message,
    justcall_to_message,
    twilio_to_message,
    whatsapp_to_message,
)
from commsync.config import Settings, get_settings
from commsync.exceptions import CommSyncError, ValidationError
from commsync.gmail.client import GmailClient
from commsync.gmail.fetcher import GmailFetcher
from commsync.gmail.parsing import gmail_to_message
from commsync.inbox import Inbox
from commsync.models import ConversationTarget, Group, LinkedAccount, Message, SessionUser
from commsync.storage import StateRepository
from commsync.store import MessageStore

logger = structlog.get_logger()

_PROVIDERS = ("message", "gmail", "twilio", "justcall", "bulkvs", "whatsapp")


def _add_common_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--db",
        type=Path,
        default=None,
        help="Path to the SQLite state database (default: settings state_db_path)",
    )
    parser.add_argument(
        "--session-email",
        default=None,
        help="Primary Gmail address of the user (default: settings session_email)",
    )


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="commsync", description="CommSync unified inbox")
    subparsers = parser.add_subparsers(dest="command", required=True)

    import_parser = subparsers.add_parser("import", help="Merge a JSON array of messages into the store")
    import_parser.add_argument("file", type=Path, help="JSON file holding a list of records")
    import_parser.add_argument(
        "--provider",
        choices=_PROVIDERS,
        default="message",
        help="Shape of each record: normalized messages or a raw provider payload",
    )
    import_parser.add_argument(
        "--account",
        default=None,
        help="Linked account id to stamp on imported provider payloads",
    )
    _add_common_arguments(import_parser)

    contacts_parser = subparsers.add_parser("contacts", help="List deduplicated contacts")
    contacts_parser.add_argument("--filter", choices=("all", "sms", "inbox"), default=None)
    contacts_parser.add_argument("--search", default=None, help="Search terms")
    contacts_parser.add_argument("--limit", type=int, default=50, help="Max contacts")
    _add_common_arguments(contacts_parser)

    thread_parser = subparsers.add_parser("thread", help="Show the conversation with a contact or group")
    thread_parser.add_argument("address", nargs="?", default=None, help="Contact identity key or address")
    thread_parser.add_argument("--group", type=Path, default=None, help="JSON file describing a group")
    thread_parser.add_argument(
        "--accounts",
        type=Path,
        default=None,
        help="JSON file listing linked accounts (used for direction)",
    )
    _add_common_arguments(thread_parser)

    sync_parser = subparsers.add_parser("gmail-sync", help="Fetch the next page of older Gmail messages")
    sync_parser.add_argument(
        "--limit",
        type=int,
        default=None,
        help="Messages per page (default: settings gmail_page_size)",
    )
    _add_common_arguments(sync_parser)

    return parser


def _read_json(path: Path) -> Any:
    try:
        return json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as exc:
        raise CommSyncError(f"Cannot read {path}: {exc}") from exc


def _open_store(args: argparse.Namespace, settings: Settings) -> tuple[StateRepository, MessageStore]:
    db_path: Path = args.db or settings.state_db_path
    repo = StateRepository(db_path)
    repo.initialize()
    store = MessageStore(repo, group_suffix=settings.group_chat_suffix)
    store.load()
    return repo, store


def _session_user(args: argparse.Namespace, settings: Settings) -> SessionUser:
    return SessionUser(email=args.session_email or settings.session_email)


def _converter(provider: str, account: str | None, settings: Settings) -> Callable[[dict[str, Any]], Message | None]:
    match provider:
        case "gmail":
            return lambda raw: gmail_to_message(raw, linked_account_id=account)
        case "twilio":
            return lambda raw: twilio_to_message(raw, linked_account_id=account)
        case "justcall":
            return lambda raw: justcall_to_message(raw, linked_account_id=account)
        case "bulkvs":
            return lambda raw: bulkvs_to_message(raw, linked_account_id=account)
        case "whatsapp":
            return lambda raw: whatsapp_to_message(
                raw,
                chat_name=raw.get("chat_name"),
                linked_account_id=account,
                group_suffix=settings.group_chat_suffix,
            )
        case _:
            return Message.model_validate


def _cmd_import(args: argparse.Namespace) -> int:
    settings = get_settings()
    records = _read_json(args.file)
    if not isinstance(records, list):
        raise ValidationError(f"{args.file} must contain a JSON array")

    _, store = _open_store(args, settings)
    convert = _converter(args.provider, args.account, settings)

    messages: list[Message] = []
    skipped = 0
    for index, record in enumerate(records):
        if not isinstance(record, dict):
            skipped += 1
            continue
        try:
            message = convert(record)
        except pydantic.ValidationError as exc:
            logger.warning("import_record_invalid", index=index, error=str(exc))
            skipped += 1
            continue
        if message is None:
            skipped += 1
            continue
        messages.append(message)

    added = store.merge(messages)
    print(f"Imported {len(messages)} messages ({added} new, {skipped} skipped); store holds {len(store)}")
    return 0


def _cmd_contacts(args: argparse.Namespace) -> int:
    settings = get_settings()
    _, store = _open_store(args, settings)
    inbox = Inbox(store, session_user=_session_user(args, settings), settings=settings)

    category = None if args.filter == "all" else args.filter
    contacts = inbox.get_deduplicated_contacts(category=category, query=args.search)
    for contact in contacts[: args.limit]:
        date_part = contact.last_message_date.isoformat() if contact.last_message_date else "(no date)"
        name = contact.name or contact.address
        print(f"{date_part}\t{contact.channel}\t{name} <{contact.address}>\t{contact.last_message_subject or ''}")

    if not contacts:
        print("No contacts")
    return 0


def _cmd_thread(args: argparse.Namespace) -> int:
    settings = get_settings()
    if not args.address and not args.group:
        print("Either an address or --group is required", file=sys.stderr)
        return 2

    groups: list[Group] = []
    if args.group:
        group = Group.model_validate(_read_json(args.group))
        groups.append(group)
        target = ConversationTarget(group_id=group.id)
    else:
        target = ConversationTarget(contact_key=args.address)

    accounts: list[LinkedAccount] = []
    if args.accounts:
        raw_accounts = _read_json(args.accounts)
        if not isinstance(raw_accounts, list):
            raise ValidationError(f"{args.accounts} must contain a JSON array")
        accounts = [LinkedAccount.model_validate(item) for item in raw_accounts]

    _, store = _open_store(args, settings)
    inbox = Inbox(
        store,
        session_user=_session_user(args, settings),
        accounts=accounts,
        groups=groups,
        settings=settings,
    )

    view = inbox.conversation_view(target)
    if not view:
        print("No messages")
        return 0

    for message, from_user in view:
        arrow = "->" if from_user else "<-"
        who = message.sender.name or message.sender.address
        text = message.snippet or message.body
        print(f"{message.timestamp.isoformat()}\t{arrow}\t{message.channel}\t{who}\t{text[:80]}")
    return 0


async def _cmd_gmail_sync(args: argparse.Namespace) -> int:
    settings = get_settings()
    repo, store = _open_store(args, settings)

    gmail = GmailClient(settings)
    session_user = _session_user(args, settings)
    if session_user.email is None:
        await gmail.authenticate()
        session_user = await gmail.get_profile()

    inbox = Inbox(
        store,
        [GmailFetcher(gmail, page_size=args.limit)],
        session_user=session_user,
        state=repo,
        settings=settings,
    )

    result = await inbox.load_more()
    if result.failed_channels:
        print(f"Failed channels: {', '.join(result.failed_channels)}", file=sys.stderr)
    if result.exhausted:
        print("No more messages")
    print(f"Loaded {result.loaded} new messages; store holds {len(store)}")
    return 1 if result.failed_channels and not result.loaded else 0


def main(args: list[str] | None = None) -> int:
    """Main entry point for the CommSync CLI.

    Args:
        args: Command-line arguments. If None, uses sys.argv.

    Returns:
        Exit code (0 for success, non-zero for failure).
    """
    if args is None:
        args = sys.argv[1:]

    settings = get_settings()

    # Configure logging; stdout is reserved for command output.
    structlog.configure(
        wrapper_class=structlog.make_filtering_bound_logger(
            getattr(logging, settings.log_level.upper(), logging.INFO)
        ),
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
    )

    logger.info("commsync_started", version="0.1.0", debug=settings.debug)

    parser = _build_parser()
    parsed = parser.parse_args(args)

    try:
        match parsed.command:
            case "import":
                return _cmd_import(parsed)
            case "contacts":
                return _cmd_contacts(parsed)
            case "thread":
                return _cmd_thread(parsed)
            case "gmail-sync":
                return asyncio.run(_cmd_gmail_sync(parsed))
    except (CommSyncError, pydantic.ValidationError) as exc:
        logger.error("command_failed", command=parsed.command, error=str(exc))
        print(f"Error: {exc}", file=sys.stderr)
        return 1

    logger.error("unknown_command", command=parsed.command)
    return 2


if __name__ == "__main__":
    sys.exit(main())
