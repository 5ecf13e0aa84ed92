"""Per-channel pagination cursors and the fetcher interface."""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import Protocol, Union

from commsync.exceptions import ChannelFetchError
from commsync.models import Channel, LinkedAccount, Message


@dataclass(frozen=True)
class DateCursor:
    """Fetch messages strictly older than ``before`` (Gmail)."""

    before: datetime | None = None


@dataclass(frozen=True)
class PageCursor:
    """Page-numbered fetch (IMAP, Twilio, BulkVS)."""

    page: int = 1

    def next(self) -> "PageCursor":
        return replace(self, page=self.page + 1)


@dataclass(frozen=True)
class TokenCursor:
    """Opaque continuation token, e.g. JustCall's last-message id."""

    last_message_id: str | None = None


Cursor = Union[DateCursor, PageCursor, TokenCursor]


def initial_cursor(channel: Channel | str) -> Cursor:
    if channel == Channel.GMAIL:
        return DateCursor()
    if channel == Channel.JUSTCALL:
        return TokenCursor()
    return PageCursor()


def advance(cursor: Cursor) -> Cursor:
    """Default next cursor when a fetcher does not return one."""
    if isinstance(cursor, PageCursor):
        return cursor.next()
    return cursor


@dataclass
class FetchPage:
    """One fetch-more result from a channel."""

    messages: list[Message] = field(default_factory=list)
    next_cursor: Cursor | None = None


class ChannelFetcher(Protocol):
    """Fetches the next page of older messages for one channel."""

    channel: Channel

    async def fetch_more(self, account: LinkedAccount | None, cursor: Cursor) -> FetchPage: ...


FetchFn = Callable[[Channel, LinkedAccount | None, Cursor], Awaitable[list[Message]]]


class CollaboratorFetcher:
    """Adapts a plain ``fetch(channel, account, cursor) -> list[Message]`` coroutine."""

    def __init__(self, channel: Channel, fetch: FetchFn) -> None:
        self.channel = channel
        self._fetch = fetch

    async def fetch_more(self, account: LinkedAccount | None, cursor: Cursor) -> FetchPage:
        try:
            messages = await self._fetch(self.channel, account, cursor)
        except ChannelFetchError:
            raise
        except Exception as exc:  # noqa: BLE001
            raise ChannelFetchError(f"{self.channel} fetch failed: {exc}") from exc
        page = list(messages or [])
        return FetchPage(messages=page, next_cursor=_token_after(cursor, page))


def _token_after(cursor: Cursor, messages: list[Message]) -> Cursor | None:
    """Continue a token cursor from the oldest message of a non-empty page."""
    if not isinstance(cursor, TokenCursor) or not messages:
        return None
    oldest = min(messages, key=lambda message: message.timestamp)
    return TokenCursor(last_message_id=oldest.id)
