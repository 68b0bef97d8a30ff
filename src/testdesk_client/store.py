"""Async HTTP client for the testdesk Resource Store."""
import logging
from typing import Any, Optional, Union

import httpx

from .config import ClientSettings, get_client_settings
from .errors import NetworkError, error_for_response

logger = logging.getLogger("testdesk-client.store")

ItemId = Union[int, str]


class ResourceStoreClient:
    """
    Thin wrapper around ``httpx.AsyncClient`` speaking the Resource Store API.

    Non-2xx responses and transport failures are raised as
    ``ResourceStoreError`` subclasses. The caller's identity travels in the
    ``X-User-Id`` header; ``user_id`` is also what comment ownership checks
    compare against.

    Usage:
        async with ResourceStoreClient.from_settings() as store:
            failures = await store.list_items("/failures")
    """

    def __init__(
        self,
        base_url: str = "",
        user_id: Optional[str] = None,
        timeout: float = 30.0,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.user_id = user_id
        headers = {"X-User-Id": user_id} if user_id else {}
        if client is None:
            client = httpx.AsyncClient(base_url=base_url, timeout=timeout, headers=headers)
        else:
            client.headers.update(headers)
        self._client = client

    @classmethod
    def from_settings(cls, settings: Optional[ClientSettings] = None) -> "ResourceStoreClient":
        settings = settings or get_client_settings()
        return cls(
            base_url=settings.api_base_url,
            user_id=settings.user_id,
            timeout=settings.client_timeout,
        )

    async def aclose(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> "ResourceStoreClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def _request(self, method: str, path: str, **kwargs) -> Any:
        """Send a request and return the decoded JSON body (None for 204)."""
        try:
            response = await self._client.request(method, path, **kwargs)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            error = error_for_response(e.response)
            logger.warning(f"{method} {path} failed with {e.response.status_code}: {error.detail}")
            raise error from e
        except httpx.RequestError as e:
            logger.warning(f"{method} {path} failed: {type(e).__name__}: {e}")
            raise NetworkError(f"{method} {path}: {type(e).__name__}: {e}") from e

        if response.status_code == 204 or not response.content:
            return None
        return response.json()

    # Board items

    async def list_items(self, resource_path: str) -> list[dict]:
        """Fetch every record of a board resource (``/failures`` or ``/test-cases``)."""
        return await self._request("GET", resource_path)

    async def update_item(self, resource_path: str, item_id: ItemId, changes: dict) -> dict:
        """Partially update a board record; board moves send ``{"status": ...}``."""
        return await self._request("PATCH", f"{resource_path}/{item_id}", json=changes)

    # Comments

    async def list_comments(self, test_case_id: ItemId) -> list[dict]:
        return await self._request("GET", f"/test-cases/{test_case_id}/comments")

    async def create_comment(
        self,
        test_case_id: ItemId,
        content: str,
        parent_id: Optional[ItemId] = None,
    ) -> dict:
        return await self._request(
            "POST",
            "/comments",
            json={"content": content, "test_case_id": test_case_id, "parent_id": parent_id},
        )

    async def update_comment(self, comment_id: ItemId, content: str) -> dict:
        return await self._request("PATCH", f"/comments/{comment_id}", json={"content": content})

    async def delete_comment(self, comment_id: ItemId) -> None:
        await self._request("DELETE", f"/comments/{comment_id}")
