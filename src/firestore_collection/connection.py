"""FirestoreConnectionManager: Firestore client lifecycle and health check."""

from __future__ import annotations

import logging
from inspect import isawaitable
from typing import TYPE_CHECKING, Any

from .exceptions import FirestoreConnectionError

if TYPE_CHECKING:
    from google.cloud.firestore import AsyncClient, Client

logger = logging.getLogger(__name__)


class FirestoreConnectionManager:
    """Wrap the Firestore clients with lifecycle and health-check helpers.

    Reads and writes go through the ``AsyncClient``. Realtime listeners need
    the synchronous ``Client`` (the async client has no ``on_snapshot``), so
    one is built from the same settings on first use.
    """

    def __init__(
        self,
        project: str | None = None,
        database: str = "(default)",
        *,
        credentials: Any = None,
        **kwargs: Any,
    ) -> None:
        self._project = project
        self._database = database
        self._credentials = credentials
        self._kwargs = kwargs
        self._client: AsyncClient | None = None
        self._sync_client: Client | None = None

    def _client_args(self) -> dict[str, Any]:
        args: dict[str, Any] = {"project": self._project, "database": self._database}
        if self._credentials is not None:
            args["credentials"] = self._credentials
        return args | self._kwargs

    async def connect(self) -> AsyncClient:
        """Create and cache the async client. Idempotent."""
        if self._client is not None:
            return self._client
        try:
            from google.cloud.firestore import AsyncClient
        except ImportError as e:
            raise FirestoreConnectionError(
                "google-cloud-firestore is required; install google-cloud-firestore>=2.16"
            ) from e
        try:
            self._client = AsyncClient(**self._client_args())
        except Exception as e:
            raise FirestoreConnectionError(str(e)) from e
        logger.debug(
            "Connected to Firestore project=%s database=%s",
            self._client.project,
            self._database,
        )
        return self._client

    @property
    def client(self) -> AsyncClient:
        """Return the async client; raises if not connected."""
        if self._client is None:
            raise FirestoreConnectionError("Not connected; call connect() first")
        return self._client

    @property
    def sync_client(self) -> Client:
        """Return the synchronous client used for listeners; raises if not connected."""
        if self._client is None:
            raise FirestoreConnectionError("Not connected; call connect() first")
        if self._sync_client is None:
            from google.cloud.firestore import Client

            try:
                self._sync_client = Client(**self._client_args())
            except Exception as e:
                raise FirestoreConnectionError(str(e)) from e
        return self._sync_client

    async def close(self) -> None:
        """Close both clients. Idempotent."""
        for client in (self._client, self._sync_client):
            closer = getattr(client, "close", None)
            if closer is None:
                continue
            result = closer()
            if isawaitable(result):
                await result
        self._client = None
        self._sync_client = None

    async def health_check(self) -> bool:
        """List collections; return True if the backend answered."""
        if self._client is None:
            return False
        try:
            async for _ in self._client.collections():
                break
            return True
        except Exception:  # noqa: BLE001
            return False
