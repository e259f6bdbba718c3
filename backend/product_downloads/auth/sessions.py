"""Shop session store: active sessions and pending post-OAuth redirects, keyed by shop."""

import asyncio
import logging
from typing import Dict, Optional, Protocol

from sqlalchemy.ext.asyncio import async_sessionmaker

from product_downloads.auth.models import PendingRedirectRow, ShopSession, ShopSessionRow
from product_downloads.config import get_settings
from product_downloads.db.session import get_session

log = logging.getLogger(__name__)


class SessionStore(Protocol):
    async def get_session(self, shop: str) -> Optional[ShopSession]: ...

    async def save_session(self, session: ShopSession) -> None: ...

    async def delete_session(self, shop: str) -> None: ...

    async def get_redirect(self, shop: str) -> Optional[str]: ...

    async def set_redirect(self, shop: str, url: str) -> None: ...

    async def pop_redirect(self, shop: str) -> Optional[str]: ...


class MemorySessionStore:
    """
    In-process store. Sessions are lost on restart, which forces shops through
    OAuth again. All reads and writes go through one asyncio.Lock.
    """

    def __init__(self) -> None:
        self._sessions: Dict[str, ShopSession] = {}
        self._redirects: Dict[str, str] = {}
        self._lock = asyncio.Lock()

    async def get_session(self, shop: str) -> Optional[ShopSession]:
        async with self._lock:
            return self._sessions.get(shop)

    async def save_session(self, session: ShopSession) -> None:
        async with self._lock:
            self._sessions[session.shop] = session

    async def delete_session(self, shop: str) -> None:
        async with self._lock:
            self._sessions.pop(shop, None)

    async def get_redirect(self, shop: str) -> Optional[str]:
        async with self._lock:
            return self._redirects.get(shop)

    async def set_redirect(self, shop: str, url: str) -> None:
        async with self._lock:
            self._redirects[shop] = url

    async def pop_redirect(self, shop: str) -> Optional[str]:
        async with self._lock:
            return self._redirects.pop(shop, None)


class SqlSessionStore:
    """Same contract as MemorySessionStore, persisted in SQLite."""

    def __init__(self, factory: Optional[async_sessionmaker] = None) -> None:
        self._factory = factory

    async def get_session(self, shop: str) -> Optional[ShopSession]:
        async with get_session(self._factory) as db:
            row = await db.get(ShopSessionRow, shop)
            return ShopSession.model_validate(row) if row else None

    async def save_session(self, session: ShopSession) -> None:
        async with get_session(self._factory) as db:
            row = await db.get(ShopSessionRow, session.shop)
            if row:
                row.scope = session.scope
                row.access_token = session.access_token
            else:
                db.add(ShopSessionRow(**session.model_dump()))

    async def delete_session(self, shop: str) -> None:
        async with get_session(self._factory) as db:
            row = await db.get(ShopSessionRow, shop)
            if row:
                await db.delete(row)

    async def get_redirect(self, shop: str) -> Optional[str]:
        async with get_session(self._factory) as db:
            row = await db.get(PendingRedirectRow, shop)
            return row.url if row else None

    async def set_redirect(self, shop: str, url: str) -> None:
        async with get_session(self._factory) as db:
            row = await db.get(PendingRedirectRow, shop)
            if row:
                row.url = url
            else:
                db.add(PendingRedirectRow(shop=shop, url=url))

    async def pop_redirect(self, shop: str) -> Optional[str]:
        async with get_session(self._factory) as db:
            row = await db.get(PendingRedirectRow, shop)
            if not row:
                return None
            url = row.url
            await db.delete(row)
            return url


_store: Optional[SessionStore] = None


def create_session_store(backend: str) -> SessionStore:
    """Build the store named by settings.session_backend."""
    if backend == "memory":
        return MemorySessionStore()
    if backend == "sqlite":
        return SqlSessionStore()
    raise ValueError(f"Unknown session backend: {backend!r}")


def get_session_store() -> SessionStore:
    """FastAPI dependency returning the process-wide session store."""
    global _store
    if _store is None:
        backend = get_settings().session_backend
        _store = create_session_store(backend)
        log.info("Session store backend=%s", backend)
    return _store
