"""
This module provides the HttpRecordStore class, a RecordStore backed by a PocketBase-style REST API.
It handles authentication, pagination and client lifecycle, and notifies subscribed hooks about the mutations issued through it.
"""

import logging
from types import TracebackType
from typing import Any, Callable, Dict, List, Optional, Type

import httpx

from upsnap_core.common.utility import LoggerMixin
from upsnap_core.core.application.events.record_events import (
    RecordAction,
    RecordChangedEvent,
)
from upsnap_core.core.domain.repositories.record_store import RecordHook, RecordStore

PAGE_SIZE = 200


class HttpRecordStore(RecordStore, LoggerMixin):
    """
    Record store that talks to a remote REST API over HTTPX.

    Change hooks only see mutations made through this instance; changes made by
    other clients of the remote store are not observed.
    """

    _client: Optional[httpx.AsyncClient]
    _hooks: List[RecordHook]

    def __init__(
        self,
        *,
        client: httpx.AsyncClient,
        logger: logging.Logger,
    ) -> None:
        """
        Initialize the store with an already configured client.
        """
        self._client = client
        self._hooks = []
        self._build_logger(logger=logger)

    @classmethod
    async def create(
        cls,
        *,
        endpoint: str,
        email: str,
        password: str,
        logger: logging.Logger,
        timeout: float = 10.0,
    ) -> "HttpRecordStore":
        """
        Authenticate as an administrator and return a store using the issued token.
        Raises RuntimeError if authentication fails or the token is missing.
        """
        endpoint = endpoint.rstrip("/")
        authentication_client = httpx.AsyncClient(base_url=endpoint, timeout=timeout)

        logger.debug("Sending admin authentication request to record store.")

        try:
            response = await authentication_client.post(
                "/api/admins/auth-with-password",
                json={"identity": email, "password": password},
            )
        finally:
            await authentication_client.aclose()

        if response.status_code != 200:
            logger.error(
                f"Failed to authenticate with record store: {response.status_code} {response.text}"
            )
            raise RuntimeError(
                f"Failed to authenticate with record store: {response.status_code} {response.text}"
            )

        token = response.json().get("token")
        if not token:
            logger.error("token not found in authentication response")
            raise RuntimeError("token not found in authentication response")

        logger.info("Successfully authenticated with record store.")

        return cls(
            client=httpx.AsyncClient(
                base_url=endpoint,
                headers={"Authorization": token},
                timeout=timeout,
            ),
            logger=logger,
        )

    @property
    def client(self) -> httpx.AsyncClient:
        """
        Returns the initialized HTTPX AsyncClient. Raises RuntimeError if not initialized.
        """
        if self._client is None:
            self._logger.error("Client is not initialized")
            raise RuntimeError("Client is not initialized")
        return self._client

    async def find_all(self, collection: str) -> List[Dict[str, Any]]:
        records: List[Dict[str, Any]] = []
        page = 1

        while True:
            response = await self.client.get(
                f"/api/collections/{collection}/records",
                params={"page": page, "perPage": PAGE_SIZE},
            )
            response.raise_for_status()
            body = response.json()
            records.extend(body.get("items", []))

            if page >= int(body.get("totalPages", 1) or 1):
                return records
            page += 1

    async def find_by_id(
        self, collection: str, record_id: str
    ) -> Optional[Dict[str, Any]]:
        response = await self.client.get(
            f"/api/collections/{collection}/records/{record_id}"
        )
        if response.status_code == 404:
            return None
        response.raise_for_status()
        return response.json()

    async def save(self, collection: str, record: Dict[str, Any]) -> Dict[str, Any]:
        record_id = record.get("id")
        action: RecordAction

        if record_id:
            payload = {k: v for k, v in record.items() if k != "id"}
            response = await self.client.patch(
                f"/api/collections/{collection}/records/{record_id}", json=payload
            )
            action = "update"
        else:
            response = await self.client.post(
                f"/api/collections/{collection}/records", json=record
            )
            action = "create"

        response.raise_for_status()
        saved = response.json()
        await self._notify(action, collection, saved)
        return saved

    async def delete(self, collection: str, record_id: str) -> bool:
        record = await self.find_by_id(collection, record_id)
        if record is None:
            return False

        response = await self.client.delete(
            f"/api/collections/{collection}/records/{record_id}"
        )
        if response.status_code == 404:
            return False
        response.raise_for_status()

        await self._notify("delete", collection, record)
        return True

    def subscribe(self, hook: RecordHook) -> Callable[[], None]:
        self._hooks.append(hook)

        def unsubscribe() -> None:
            if hook in self._hooks:
                self._hooks.remove(hook)

        return unsubscribe

    async def _notify(
        self, action: RecordAction, collection: str, record: Dict[str, Any]
    ) -> None:
        event = RecordChangedEvent(action=action, collection=collection, record=record)
        for hook in list(self._hooks):
            await hook(event)

    async def aclose(self) -> None:
        """
        Close the HTTP client.
        """
        if self._client is None:
            return
        await self._client.aclose()
        self._client = None
        self._logger.info("Closed record store client session.")

    async def __aenter__(self) -> "HttpRecordStore":
        return self

    async def __aexit__(
        self,
        exc_type: Optional[Type[BaseException]],
        exc: Optional[BaseException],
        tb: Optional[TracebackType],
    ) -> None:
        await self.aclose()
