"""
User profile operations: initialization, email preference, push token,
test notification.
"""

import logging
from dataclasses import dataclass
from typing import Any, Optional

from gratias.errors import ErrorCode, ServiceError
from gratias.services.claims import (
    CLAIM_EMAIL_NOTIFICATIONS,
    EMAIL_MESSAGE_PREFIX,
    ClaimsSynchronizer,
    email_toggle_message,
)
from gratias.services.identity import user_topic
from gratias.services.side_effects import run_best_effort

logger = logging.getLogger(__name__)

TEST_NOTIFICATION_TITLE = "Test notification"
TEST_NOTIFICATION_BODY = "This is a test push notification sent from your settings."


def _mask_token(token: str) -> str:
    if len(token) <= 16:
        return "***"
    return f"{token[:8]}...{token[-8:]}"


@dataclass
class EmailPreferenceResult:
    email_notifications_enabled: bool
    claims_synced: bool
    token: str = "reload"


class ProfileService:
    def __init__(
        self,
        users,
        claims: ClaimsSynchronizer,
        identity_provider,
        default_plan: str = "free",
        default_max_sites: int = 2,
    ):
        self.users = users
        self.claims = claims
        self.identity_provider = identity_provider
        self.default_plan = default_plan
        self.default_max_sites = default_max_sites

    async def init_user_profile(self, identity: str) -> dict:
        """Create the profile if absent and seed claims on first call."""
        user, created = await self.users.get_or_create(
            identity, plan=self.default_plan, max_sites=self.default_max_sites
        )
        if created:
            logger.info("Profile created with plan %s for %s", user.plan, identity)
        await self.claims.initialize(identity, user)
        return {"token": "reload"}

    async def set_email_notifications(self, identity: str, enabled: Any) -> EmailPreferenceResult:
        enabled = bool(enabled)
        user = await self.users.set_email_notifications(identity, enabled)
        if user is None:
            raise ServiceError(ErrorCode.SERVER_ERROR, "User profile not found")

        current = bool(user.email_notifications_enabled)
        outcome = await run_best_effort(
            f"claims sync after email preference change for {identity}",
            self.claims.sync_after_event(
                identity,
                event_message=email_toggle_message(current),
                fields={CLAIM_EMAIL_NOTIFICATIONS: current},
                replace_prefix=EMAIL_MESSAGE_PREFIX,
            ),
        )
        return EmailPreferenceResult(email_notifications_enabled=current, claims_synced=outcome.ok)

    async def register_push_token(self, identity: str, push_token: Any) -> Optional[str]:
        if not push_token or not isinstance(push_token, str):
            raise ServiceError(ErrorCode.INVALID_INPUT, "Push token missing or invalid")

        logger.info(
            "Push token received for %s (length=%d, token=%s)",
            identity, len(push_token), _mask_token(push_token),
        )
        user = await self.users.set_push_token(identity, push_token)
        if user is None:
            raise ServiceError(ErrorCode.SERVER_ERROR, "User profile not found")

        topic = user_topic(identity)
        outcome = await run_best_effort(
            f"subscribe push token to {topic}",
            self.identity_provider.subscribe_to_topic(push_token, topic),
        )
        if outcome.ok:
            logger.info("Push token subscribed to topic %s", topic)
        return user.push_token

    async def send_test_notification(self, identity: str) -> None:
        user = await self.users.find_by_identity(identity)
        if user is None or not user.push_token:
            raise ServiceError(ErrorCode.SERVER_ERROR, "No push token registered for this user")
        message_id = await self.identity_provider.send_to_topic(
            user_topic(identity), TEST_NOTIFICATION_TITLE, TEST_NOTIFICATION_BODY
        )
        logger.info("Test notification sent to %s (message_id=%s)", identity, message_id)
