"""
CredentialStore backed by a SQL table, for replicas that share a database.
Session work is synchronous and runs in a worker thread so the event loop is not blocked.
"""
import asyncio
import logging

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import sessionmaker

from libwx.credential_store import Credential
from libwx.models import CachedCredential

logger = logging.getLogger(__name__)


class SqlCredentialStore:
    def __init__(self, session_factory: sessionmaker, key: str) -> None:
        self._session_factory = session_factory
        self.key = key

    @classmethod
    def for_app(cls, session_factory: sessionmaker, appid: str, kind: str = "access_token") -> "SqlCredentialStore":
        return cls(session_factory, f"{kind}:{appid}")

    async def get(self) -> Credential | None:
        return await asyncio.to_thread(self._get_sync)

    async def set(self, value: str, expires_at: float) -> None:
        await asyncio.to_thread(self._set_sync, value, expires_at)

    def _get_sync(self) -> Credential | None:
        db = self._session_factory()
        try:
            row = db.get(CachedCredential, self.key)
            if row is None:
                return None
            return Credential(value=row.value, expires_at=row.expires_at)
        finally:
            db.close()

    def _set_sync(self, value: str, expires_at: float) -> None:
        db = self._session_factory()
        try:
            row = db.get(CachedCredential, self.key)
            if row is None:
                db.add(CachedCredential(key=self.key, value=value, expires_at=expires_at))
                try:
                    db.commit()
                    return
                except IntegrityError:
                    # Another replica inserted the key first; last writer wins
                    db.rollback()
                    row = db.get(CachedCredential, self.key)
            row.value = value
            row.expires_at = expires_at
            db.commit()
            logger.debug("Stored %s in credential_cache", self.key.split(":", 1)[0])
        finally:
            db.close()
