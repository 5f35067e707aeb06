"""
Account deletion.

Local data goes first, the remote identity last: if removing the identity
fails, no local record is left pointing at a half-deleted account. That
failure is reported as SERVER_ERROR and is not retried.
"""

import logging

from gratias.errors import ErrorCode, ServiceError
from gratias.services.identity import user_topic
from gratias.services.side_effects import run_best_effort

logger = logging.getLogger(__name__)


class AccountDeletionService:
    def __init__(self, sites, users, identity_provider):
        self.sites = sites
        self.users = users
        self.identity_provider = identity_provider

    async def delete_account(self, identity: str) -> None:
        user = await self.users.find_by_identity(identity)
        push_token = user.push_token if user else None

        if push_token:
            topic = user_topic(identity)
            await run_best_effort(
                f"unsubscribe push token from {topic}",
                self.identity_provider.unsubscribe_from_topic(push_token, topic),
            )

        deleted_sites = await self.sites.delete_by_owner(identity)
        await self.users.delete(identity)

        try:
            await self.identity_provider.delete_user(identity)
        except Exception as e:
            logger.exception(
                "Local data removed for %s but identity deletion failed: %s", identity, e
            )
            raise ServiceError(ErrorCode.SERVER_ERROR, "Identity provider account could not be deleted")
        logger.info("Account deleted for %s (%d site(s) removed)", identity, deleted_sites)
