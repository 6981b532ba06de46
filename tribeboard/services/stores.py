"""
Store interfaces consulted by the family code service.

The local store is the co-located SQL database and is assumed always
available. The remote store is the sync backend reached over HTTP; it can
disappear at any moment, so every lookup reports one of three outcomes
instead of raising.
"""
from enum import StrEnum
from typing import Optional, Protocol
import logging

import httpx
from sqlalchemy import select
from sqlalchemy.orm import Session

from ..models.family import Family

logger = logging.getLogger(__name__)


class RemoteLookupResult(StrEnum):
    FOUND = "found"
    NOT_FOUND = "not_found"
    UNREACHABLE = "unreachable"


class LocalStore(Protocol):
    async def exists_by_code(self, code: str) -> bool: ...


class RemoteStore(Protocol):
    async def exists_by_code(self, code: str) -> RemoteLookupResult: ...


class SqlAlchemyLocalStore:
    """Family-code lookups against the local ``family`` table."""

    def __init__(self, db: Session):
        self.db = db

    async def exists_by_code(self, code: str) -> bool:
        # codes are stored uppercase, so this is a case-insensitive match
        q = select(Family.id).where(Family.code == code.upper()).limit(1)
        return self.db.execute(q).first() is not None


class HttpRemoteStore:
    """
    Sync backend client built on httpx.

    Lookups:
        GET {base_url}/families/by-code/{code}
            200 -> FOUND, 404 -> NOT_FOUND, anything else -> UNREACHABLE
    Pushes:
        PUT {base_url}/families/{id}
    """

    def __init__(
        self,
        base_url: str,
        *,
        timeout: float = 5.0,
        api_key: Optional[str] = None,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self._owns_client = client is None
        headers = {"Authorization": f"Bearer {api_key}"} if api_key else {}
        self.client = client or httpx.AsyncClient(timeout=timeout, headers=headers)

    async def exists_by_code(self, code: str) -> RemoteLookupResult:
        url = f"{self.base_url}/families/by-code/{code.upper()}"
        try:
            resp = await self.client.get(url)
        except httpx.HTTPError as e:
            logger.warning(f"Remote lookup for code {code} failed: {e!r}")
            return RemoteLookupResult.UNREACHABLE

        if resp.status_code == 200:
            return RemoteLookupResult.FOUND
        if resp.status_code == 404:
            return RemoteLookupResult.NOT_FOUND
        if resp.status_code >= 500:
            logger.warning(f"Remote lookup for code {code} got server error {resp.status_code}")
        else:
            logger.error(f"Remote lookup for code {code} got unexpected status {resp.status_code}")
        return RemoteLookupResult.UNREACHABLE

    async def push_family(self, payload: dict) -> bool:
        url = f"{self.base_url}/families/{payload['id']}"
        try:
            resp = await self.client.put(url, json=payload)
        except Exception as e:
            logger.warning(f"Push of family {payload['id']} failed: {e!r}", exc_info=True)
            return False
        if resp.is_success:
            return True
        logger.warning(f"Push of family {payload['id']} rejected with status {resp.status_code}")
        return False

    async def aclose(self) -> None:
        if self._owns_client:
            await self.client.aclose()
