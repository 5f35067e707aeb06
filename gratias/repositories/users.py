"""
Persistence for User documents.

Single-document operations only; each update is one atomic MongoDB call.
"""

import logging
from datetime import datetime
from typing import Optional, Tuple

from beanie import UpdateResponse
from beanie.odm.operators.update.general import Set
from pymongo.errors import DuplicateKeyError

from gratias.models.user import User

logger = logging.getLogger(__name__)


class UserRepository:
    async def find_by_identity(self, identity: str) -> Optional[User]:
        return await User.find_one(User.identity == identity)

    async def get_or_create(self, identity: str, plan: str, max_sites: int) -> Tuple[User, bool]:
        """
        Return (user, created). Find first, then insert; the unique index on
        identity decides concurrent inserts and the loser re-reads the winner.
        """
        user = await self.find_by_identity(identity)
        if user:
            return user, False
        user = User(identity=identity, plan=plan, max_sites=max_sites)
        try:
            await user.insert()
        except DuplicateKeyError:
            logger.info("User %s created concurrently; reusing existing record", identity)
            existing = await self.find_by_identity(identity)
            if existing is None:
                raise
            return existing, False
        logger.info("Created user profile for identity=%s (plan=%s, max_sites=%d)", identity, plan, max_sites)
        return user, True

    async def _update_fields(self, identity: str, **fields) -> Optional[User]:
        fields["updated_at"] = datetime.utcnow()
        return await User.find_one(User.identity == identity).update(
            Set(fields),
            response_type=UpdateResponse.NEW_DOCUMENT,
        )

    async def set_email_notifications(self, identity: str, enabled: bool) -> Optional[User]:
        return await self._update_fields(identity, email_notifications_enabled=enabled)

    async def set_push_token(self, identity: str, push_token: str) -> Optional[User]:
        return await self._update_fields(identity, push_token=push_token)

    async def delete(self, identity: str) -> bool:
        result = await User.find_one(User.identity == identity).delete()
        return bool(result and result.deleted_count)
