# ==============================================================================
# USER REPOSITORY - Accounts & Sessions
# ==============================================================================

from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import Any, List, Optional

from skystage_db.core.constants import DatabaseConstants
from skystage_db.database.repositories.base_repository import BaseRepository
from skystage_db.database.types import OrderBy, QueryOptions
from skystage_db.schemas.user import (
    USER_SUMMARY_FIELDS,
    User,
    UserCreate,
    UserSession,
    UserSessionCreate,
    UserSessionUpdate,
    UserSummary,
    UserUpdate,
)
from skystage_db.utils.helpers import ensure_utc, generate_uuid, utc_now

logger = logging.getLogger(__name__)

SENSITIVE_FIELDS = frozenset({"password_hash"})


class UserSessionRepository(BaseRepository[UserSession, UserSessionCreate, UserSessionUpdate]):
    """Login sessions keyed by an opaque token."""

    table_name = DatabaseConstants.USER_SESSIONS_TABLE
    entity_schema = UserSession
    create_schema = UserSessionCreate
    update_schema = UserSessionUpdate
    default_order = (OrderBy.desc("created_at"),)

    async def create_session(
        self,
        user_id: str,
        ttl: timedelta = timedelta(days=7),
        token: Optional[str] = None,
        ip_address: Optional[str] = None,
        user_agent: Optional[str] = None,
    ) -> UserSession:
        """Open a session expiring ``ttl`` from now; a token is generated when absent."""
        now = utc_now()
        return await self.create(
            UserSessionCreate(
                user_id=user_id,
                session_token=token or generate_uuid(),
                ip_address=ip_address,
                user_agent=user_agent,
                expires_at=now + ttl,
                last_activity=now,
            )
        )

    async def find_by_token(self, token: str) -> Optional[UserSession]:
        return await self.find_one({"session_token": token})

    async def find_active_by_token(
        self,
        token: str,
        now: Optional[datetime] = None,
    ) -> Optional[UserSession]:
        """Session for ``token`` unless it has expired."""
        session = await self.find_by_token(token)
        if session is None or session.is_expired(ensure_utc(now or utc_now())):
            return None
        return session

    async def touch(self, id: str) -> UserSession:
        return await self.update(id, {"last_activity": utc_now()})

    async def delete_expired(self, now: Optional[datetime] = None) -> int:
        """
        Remove sessions whose expiry has passed.

        Filters expiry in application code since the query options only
        express equality.
        """
        cutoff = ensure_utc(now or utc_now())
        sessions = await self.find_all(QueryOptions(select=["id", "expires_at"]))
        expired = [
            row["id"]
            for row in sessions
            if row["expires_at"] is not None and ensure_utc(row["expires_at"]) <= cutoff
        ]
        if not expired:
            return 0
        removed = await self.bulk_delete(expired)
        logger.info(f"Deleted {removed} expired session(s)")
        return removed


class UserRepository(BaseRepository[User, UserCreate, UserUpdate]):
    """
    Users are never hard-deleted here; ``deactivate`` flips ``is_active``.

    Listings leave out ``password_hash`` unless explicitly asked for it.
    """

    table_name = DatabaseConstants.USERS_TABLE
    entity_schema = User
    create_schema = UserCreate
    update_schema = UserUpdate
    default_order = (OrderBy.desc("created_at"),)

    async def find_by_email(self, email: str) -> Optional[User]:
        return await self.find_one({"email": email.strip().lower()})

    async def find_all(
        self,
        options: Optional[QueryOptions] = None,
        include_sensitive: bool = False,
    ) -> List[Any]:
        """
        List users.

        Returns:
            ``User`` entities when ``include_sensitive``; otherwise
            ``UserSummary`` items, or dicts without credentials when the
            caller projects its own columns
        """
        if include_sensitive:
            return await super().find_all(options)

        opts = self._options(options)
        custom_select = opts.select is not None
        columns = (
            [column for column in opts.select if column not in SENSITIVE_FIELDS]
            if custom_select
            else []
        )
        # Nothing left to project means the summary, never every column
        opts.select = columns or list(USER_SUMMARY_FIELDS)
        rows = await self.adapter.find_all(self.table_name, opts)
        if custom_select:
            return rows
        return [UserSummary.model_validate(row) for row in rows]

    async def update_last_login(self, id: str) -> User:
        return await self.update(id, {"last_login": utc_now()})

    async def deactivate(self, id: str) -> User:
        logger.info(f"Deactivating user {id}")
        return await self.update(id, {"is_active": False})

    async def activate(self, id: str) -> User:
        return await self.update(id, {"is_active": True})

    async def find_by_session_token(self, token: str) -> Optional[User]:
        """Owner of an unexpired session, or None."""
        session = await UserSessionRepository(self._adapter).find_active_by_token(token)
        if session is None:
            return None
        return await self.find_by_id(session.user_id)
