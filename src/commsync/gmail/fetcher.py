"""Gmail as a load-more channel.

Gmail pages backwards from the oldest message already in the store, using the
``before:`` search operator with epoch seconds.
"""

from __future__ import annotations

import structlog

from commsync.gmail.client import GmailClient
from commsync.gmail.parsing import gmail_to_message
from commsync.loader.cursors import Cursor, DateCursor, FetchPage
from commsync.models import Channel, LinkedAccount, Message

logger = structlog.get_logger()


def before_query(cursor: Cursor) -> str | None:
    if isinstance(cursor, DateCursor) and cursor.before is not None:
        return f"before:{int(cursor.before.timestamp())}"
    return None


class GmailFetcher:
    """Fetches pages of older Gmail messages for the incremental loader."""

    channel = Channel.GMAIL

    def __init__(self, client: GmailClient, page_size: int | None = None) -> None:
        self._client = client
        self._page_size = page_size or client.settings.gmail_page_size

    async def fetch_more(self, account: LinkedAccount | None, cursor: Cursor) -> FetchPage:
        await self._client.authenticate()

        query = before_query(cursor)
        stubs, _ = await self._client.list_message_page(self._page_size, query=query)

        messages: list[Message] = []
        for stub in stubs:
            message_id = stub.get("id")
            if not isinstance(message_id, str) or not message_id:
                continue
            raw = await self._client.get_message(message_id, format="full")
            message = gmail_to_message(
                raw, linked_account_id=account.id if account is not None else None
            )
            if message.id:
                messages.append(message)

        logger.info("gmail_page_fetched", query=query, count=len(messages))
        return FetchPage(messages=messages)
