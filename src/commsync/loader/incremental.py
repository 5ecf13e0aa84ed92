"""Incremental "load more" across every channel.

One fetch per channel (and per linked account) is issued concurrently. A
failing channel is logged and skipped; only a failure of the orchestration
itself (merging, persisting state) is raised, and then no cursor moves.

Exhaustion is reported after ``empty_load_threshold`` consecutive loads that
added nothing. The counter is persisted through a :class:`KeyValueState` so it
survives a restart. Once reported, exhaustion holds for
``exhaustion_window_seconds`` and then resets so the user can retry.
"""

from __future__ import annotations

import asyncio
import time
from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass

import structlog

from commsync.config import Settings
from commsync.exceptions import LoaderError
from commsync.loader.cursors import (
    ChannelFetcher,
    Cursor,
    DateCursor,
    FetchPage,
    advance,
    initial_cursor,
)
from commsync.models import Channel, LinkedAccount
from commsync.storage import KeyValueState, MemoryState
from commsync.store import MessageStore

logger = structlog.get_logger()

EMPTY_LOAD_COUNT_KEY = "empty_load_count"

SlotKey = tuple[str, str]


@dataclass(frozen=True)
class LoadResult:
    """Outcome of one load-more call."""

    loaded: int
    exhausted: bool
    skipped: bool = False
    failed_channels: tuple[str, ...] = ()


class IncrementalLoader:
    """Coordinates fetch-more calls and exhaustion reporting."""

    def __init__(
        self,
        store: MessageStore,
        fetchers: Iterable[ChannelFetcher],
        accounts: Sequence[LinkedAccount] = (),
        *,
        state: KeyValueState | None = None,
        settings: Settings | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """Initialize the loader.

        Args:
            store: Shared message store that results are merged into.
            fetchers: One fetcher per channel.
            accounts: Linked accounts; non-Gmail fetchers run once per account
                of their channel.
            state: Where the empty-load counter is persisted.
            settings: Application settings. If None, uses default settings.
            clock: Monotonic clock in seconds; injectable for tests.
        """
        from commsync.config import get_settings

        self.settings = settings or get_settings()
        self._store = store
        self._fetchers = list(fetchers)
        self._accounts = list(accounts)
        self._state = state or MemoryState()
        self._clock = clock
        self._cursors: dict[SlotKey, Cursor] = {}
        self._busy = False
        self._exhausted_at: float | None = None
        self.last_error: Exception | None = None

    @property
    def is_loading_more(self) -> bool:
        return self._busy

    @property
    def empty_load_count(self) -> int:
        raw = self._state.get_value(EMPTY_LOAD_COUNT_KEY)
        try:
            return max(0, int(raw)) if raw is not None else 0
        except ValueError:
            return 0

    @property
    def no_more_messages(self) -> bool:
        """True while the exhaustion notice is being shown."""
        if self._exhausted_at is None:
            return False
        if self._clock() - self._exhausted_at < self.settings.exhaustion_window_seconds:
            return True
        self._exhausted_at = None
        self._state.set_value(EMPTY_LOAD_COUNT_KEY, "0")
        logger.info("load_more_exhaustion_reset")
        return False

    def set_accounts(self, accounts: Sequence[LinkedAccount]) -> None:
        self._accounts = list(accounts)

    def cursor_for(self, channel: Channel | str, account_id: str | None = None) -> Cursor:
        """The cursor the next load will use for a channel/account slot."""
        if channel == Channel.GMAIL:
            oldest = self._store.oldest(str(channel), account_id)
            return DateCursor(before=oldest.timestamp if oldest else None)
        return self._cursors.get((str(channel), account_id or ""), initial_cursor(channel))

    async def load_more(self) -> LoadResult:
        """Fetch the next page from every channel and merge the results.

        Returns:
            LoadResult with the number of new messages and whether exhaustion
            is being reported. A call made while another is running, or while
            exhaustion is shown, is skipped.

        Raises:
            LoaderError: If merging or persisting state fails.
        """
        if self._busy:
            logger.info("load_more_skipped", reason="busy")
            return LoadResult(loaded=0, exhausted=self.no_more_messages, skipped=True)
        if self.no_more_messages:
            logger.info("load_more_skipped", reason="exhausted")
            return LoadResult(loaded=0, exhausted=True, skipped=True)

        self._busy = True
        try:
            slots = self._slots()
            logger.info("load_more_started", fetches=len(slots))

            outcomes = await asyncio.gather(
                *(fetcher.fetch_more(account, cursor) for fetcher, account, cursor in slots),
                return_exceptions=True,
            )

            before = len(self._store)
            staged: dict[SlotKey, Cursor] = {}
            failed: list[str] = []

            for (fetcher, account, cursor), outcome in zip(slots, outcomes):
                channel = str(fetcher.channel)
                account_id = account.id if account is not None else ""
                if isinstance(outcome, Exception):
                    logger.warning(
                        "channel_fetch_failed",
                        channel=channel,
                        account_id=account_id or None,
                        error=str(outcome),
                    )
                    failed.append(channel if not account_id else f"{channel}:{account_id}")
                    continue
                if isinstance(outcome, BaseException):
                    raise outcome

                page: FetchPage = outcome
                self._store.merge(page.messages)
                staged[(channel, account_id)] = page.next_cursor or advance(cursor)

            loaded = len(self._store) - before
            exhausted = self._record_outcome(loaded)
            self._cursors.update(staged)
            self.last_error = None

        except Exception as exc:
            self.last_error = exc
            logger.exception("load_more_failed", error=str(exc))
            raise LoaderError(str(exc)) from exc
        finally:
            self._busy = False

        logger.info(
            "load_more_completed",
            loaded=loaded,
            exhausted=exhausted,
            failed_channels=failed,
            empty_load_count=self.empty_load_count,
        )
        return LoadResult(loaded=loaded, exhausted=exhausted, failed_channels=tuple(failed))

    def _slots(self) -> list[tuple[ChannelFetcher, LinkedAccount | None, Cursor]]:
        slots: list[tuple[ChannelFetcher, LinkedAccount | None, Cursor]] = []
        for fetcher in self._fetchers:
            if fetcher.channel == Channel.GMAIL:
                slots.append((fetcher, None, self.cursor_for(Channel.GMAIL)))
                continue
            for account in self._accounts:
                if account.channel == fetcher.channel:
                    slots.append((fetcher, account, self.cursor_for(fetcher.channel, account.id)))
        return slots

    def _record_outcome(self, loaded: int) -> bool:
        if loaded > 0:
            self._state.set_value(EMPTY_LOAD_COUNT_KEY, "0")
            return False

        count = self.empty_load_count + 1
        self._state.set_value(EMPTY_LOAD_COUNT_KEY, str(count))
        if count >= self.settings.empty_load_threshold:
            self._exhausted_at = self._clock()
            return True
        return False
