"""Gmail API client implementation.

This module provides a client for reading the signed-in user's Gmail mailbox.

Notes:
    The Google API client is synchronous. Calls are wrapped with
    `asyncio.to_thread` so the loader can run Gmail alongside other channels.
"""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Any

import structlog

from commsync.config import Settings
from commsync.exceptions import AuthenticationError, ConfigurationError, GmailAPIError
from commsync.models import SessionUser
from commsync.utils import retry_on_failure

logger = structlog.get_logger()

# Gmail caps messages.list at 500 ids per page.
MAX_PAGE_SIZE = 500


class GmailClient:
    """Read-only Gmail client: profile, message pages and full messages."""

    def __init__(self, settings: Settings | None = None, service: Any | None = None) -> None:
        """Initialize Gmail client.

        Args:
            settings: Application settings. If None, uses default settings.
            service: A pre-built Gmail service resource; skips OAuth when given.
        """
        from commsync.config import get_settings

        self.settings = settings or get_settings()
        self._service: Any | None = service
        logger.info("gmail_client_initialized", preauthenticated=service is not None)

    @property
    def is_authenticated(self) -> bool:
        return self._service is not None

    async def authenticate(self) -> None:
        """Authenticate with Gmail API using OAuth2.

        A cached token is reused (and refreshed when expired); otherwise the
        installed-app flow runs and the new token is written back.

        Raises:
            ConfigurationError: If the credentials file is missing.
            AuthenticationError: If authentication fails.
        """
        if self.is_authenticated:
            return

        credentials_path = Path(self.settings.gmail_credentials_path)
        token_path = Path(self.settings.gmail_token_path)
        if not credentials_path.exists():
            raise ConfigurationError(f"Gmail credentials file not found: {credentials_path}")

        logger.info("gmail_authentication_started", token_path=str(token_path))
        try:
            self._service = await asyncio.to_thread(self._connect, credentials_path, token_path)
        except Exception as exc:  # noqa: BLE001
            logger.exception("gmail_authentication_failed", error=str(exc))
            raise AuthenticationError(str(exc)) from exc
        logger.info("gmail_authentication_completed")

    async def get_profile(self) -> SessionUser:
        """Return the mailbox owner as a session user.

        Raises:
            GmailAPIError: If the API request fails.
        """
        profile = await self._call("get_profile", self._get_profile_sync)
        return SessionUser(email=profile.get("emailAddress"))

    async def list_message_page(
        self,
        max_results: int,
        query: str | None = None,
        page_token: str | None = None,
    ) -> tuple[list[dict[str, Any]], str | None]:
        """List one page of message ids.

        Args:
            max_results: Page size, clamped to the API maximum.
            query: Gmail search query string, e.g. ``before:1700000000``.
            page_token: Token from a previous page.

        Returns:
            The message stubs and the next page token (None on the last page).

        Raises:
            GmailAPIError: If the API request fails.
        """
        size = min(max_results, MAX_PAGE_SIZE)
        logger.info("listing_messages", max_results=size, query=query)
        return await self._call("list_messages", self._list_page_sync, size, query, page_token)

    async def get_message(
        self,
        message_id: str,
        *,
        format: str = "full",
        metadata_headers: list[str] | None = None,
    ) -> dict[str, Any]:
        """Get a specific message by ID.

        Args:
            message_id: The Gmail message ID.
            format: Gmail response format (``full`` or ``metadata``).
            metadata_headers: Headers to include for ``metadata``.

        Raises:
            GmailAPIError: If the API request fails.
        """
        logger.debug("getting_message", message_id=message_id, format=format)
        return await self._call(
            "get_message", self._get_message_sync, message_id, format, metadata_headers
        )

    async def _call(self, operation: str, func: Any, *args: Any) -> Any:
        if not self.is_authenticated:
            raise AuthenticationError(
                "Gmail client is not authenticated. Call await GmailClient.authenticate() first."
            )
        try:
            return await asyncio.to_thread(func, *args)
        except Exception as exc:  # noqa: BLE001
            logger.exception("gmail_request_failed", operation=operation, error=str(exc))
            raise GmailAPIError(f"{operation} failed: {exc}") from exc

    def _connect(self, credentials_path: Path, token_path: Path) -> Any:
        from googleapiclient.discovery import build

        creds = self._load_credentials(credentials_path, token_path, self.settings.gmail_scope)
        return build("gmail", "v1", credentials=creds, cache_discovery=False)

    @staticmethod
    def _load_credentials(credentials_path: Path, token_path: Path, scope: str) -> Any:
        from google.auth.transport.requests import Request
        from google.oauth2.credentials import Credentials
        from google_auth_oauthlib.flow import InstalledAppFlow

        creds = None
        if token_path.exists():
            creds = Credentials.from_authorized_user_file(str(token_path), scopes=[scope])
            if creds.valid:
                return creds
            if creds.expired and creds.refresh_token:
                creds.refresh(Request())
                token_path.write_text(creds.to_json(), encoding="utf-8")
                return creds

        flow = InstalledAppFlow.from_client_secrets_file(str(credentials_path), scopes=[scope])
        creds = flow.run_local_server(port=0)
        token_path.parent.mkdir(parents=True, exist_ok=True)
        token_path.write_text(creds.to_json(), encoding="utf-8")
        return creds

    @property
    def _messages(self) -> Any:
        assert self._service is not None
        return self._service.users().messages()

    @retry_on_failure(max_retries=2, delay=0.5)
    def _get_profile_sync(self) -> dict[str, Any]:
        assert self._service is not None
        return self._service.users().getProfile(userId="me").execute()

    @retry_on_failure(max_retries=2, delay=0.5)
    def _list_page_sync(
        self,
        max_results: int,
        query: str | None,
        page_token: str | None,
    ) -> tuple[list[dict[str, Any]], str | None]:
        response = self._messages.list(
            userId="me", maxResults=max_results, q=query, pageToken=page_token
        ).execute()
        return list(response.get("messages") or []), response.get("nextPageToken")

    @retry_on_failure(max_retries=2, delay=0.5)
    def _get_message_sync(
        self,
        message_id: str,
        format: str,
        metadata_headers: list[str] | None,
    ) -> dict[str, Any]:
        return self._messages.get(
            userId="me", id=message_id, format=format, metadataHeaders=metadata_headers
        ).execute()
