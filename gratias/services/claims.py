"""
Custom-claims synchronization with the identity provider.

The provider's claims blob is shared state: other subsystems may own
fields in it. Every sync is read -> merge -> write, never from a local copy,
and only the keys this service owns are touched.

Wire keys (kept from the deployed clients):
    pl                         plan
    st                         account status
    maxSites                   site quota
    siteCount                  current number of sites
    emailNotificationsEnabled  email preference
    msg                        latest event message
    msgs                       bounded history of event messages, oldest first
"""

import logging
from collections import deque
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional

logger = logging.getLogger(__name__)

CLAIM_PLAN = "pl"
CLAIM_STATUS = "st"
CLAIM_MAX_SITES = "maxSites"
CLAIM_SITE_COUNT = "siteCount"
CLAIM_EMAIL_NOTIFICATIONS = "emailNotificationsEnabled"
CLAIM_MESSAGE = "msg"
CLAIM_MESSAGES = "msgs"

STATUS_ACTIVE = "active"
DEFAULT_MESSAGE_CAPACITY = 20

EMAIL_MESSAGE_PREFIX = "info.Email notifications "


def _timestamp(when: Optional[datetime] = None) -> str:
    """UTC ISO-8601 with milliseconds and a Z suffix. Naive datetimes are taken as UTC."""
    when = when or datetime.now(timezone.utc)
    if when.tzinfo is None:
        when = when.replace(tzinfo=timezone.utc)
    return when.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def site_created_message(site_name: str, created_at: Optional[datetime] = None) -> str:
    return f'success.Site "{site_name}" created on {_timestamp(created_at)}'


def email_toggle_message(enabled: bool, when: Optional[datetime] = None) -> str:
    state = "enabled" if enabled else "disabled"
    return f"{EMAIL_MESSAGE_PREFIX}{state} on {_timestamp(when)}"


class MessageHistory:
    """
    Fixed-capacity message queue. Appending past capacity evicts the
    oldest entries first. Non-string entries from the provider are dropped.
    """

    def __init__(self, messages: Optional[Iterable[Any]] = None, capacity: int = DEFAULT_MESSAGE_CAPACITY):
        if capacity < 1:
            raise ValueError("capacity must be at least 1")
        self.capacity = capacity
        initial = [m for m in (messages or []) if isinstance(m, str)]
        self._items: deque = deque(initial, maxlen=capacity)

    @classmethod
    def from_claims(cls, claims: Dict[str, Any], capacity: int = DEFAULT_MESSAGE_CAPACITY) -> "MessageHistory":
        raw = claims.get(CLAIM_MESSAGES)
        return cls(raw if isinstance(raw, list) else None, capacity=capacity)

    def append(self, message: str) -> None:
        self._items.append(message)

    def discard_prefix(self, prefix: str) -> int:
        """Remove every message starting with prefix; returns how many were removed."""
        kept = [m for m in self._items if not m.startswith(prefix)]
        removed = len(self._items) - len(kept)
        self._items = deque(kept, maxlen=self.capacity)
        return removed

    def to_list(self) -> List[str]:
        return list(self._items)

    def __len__(self) -> int:
        return len(self._items)


def merge_claims(
    current: Dict[str, Any],
    patch: Optional[Dict[str, Any]] = None,
    message: Optional[str] = None,
    replace_prefix: Optional[str] = None,
    capacity: int = DEFAULT_MESSAGE_CAPACITY,
) -> Dict[str, Any]:
    """
    Compute the next claims blob from the provider's current one.

    Fields in ``patch`` overwrite; every other key of ``current`` is kept.
    When ``message`` is given it becomes ``msg`` and is appended to ``msgs``;
    ``replace_prefix`` first removes earlier messages of the same category.
    ``current`` is not mutated.
    """
    merged = dict(current or {})
    merged.update(patch or {})
    if message is None:
        return merged

    history = MessageHistory.from_claims(current or {}, capacity=capacity)
    if replace_prefix:
        history.discard_prefix(replace_prefix)
    history.append(message)
    merged[CLAIM_MESSAGE] = message
    merged[CLAIM_MESSAGES] = history.to_list()
    return merged


class ClaimsSynchronizer:
    """Pushes plan, quota and event state into the identity provider's claims."""

    def __init__(self, identity_provider, capacity: int = DEFAULT_MESSAGE_CAPACITY):
        self.identity_provider = identity_provider
        self.capacity = capacity

    async def sync_after_event(
        self,
        identity: str,
        event_message: Optional[str] = None,
        fields: Optional[Dict[str, Any]] = None,
        replace_prefix: Optional[str] = None,
    ) -> Dict[str, Any]:
        current = await self.identity_provider.get_custom_claims(identity)
        claims = merge_claims(
            current,
            fields,
            message=event_message,
            replace_prefix=replace_prefix,
            capacity=self.capacity,
        )
        await self.identity_provider.set_custom_claims(identity, claims)
        logger.info("Custom claims updated for %s (keys=%s)", identity, sorted((fields or {}).keys()))
        return claims

    async def initialize(self, identity: str, user) -> bool:
        """
        First sync for an identity: seed plan, status, quota and email
        preference when the provider has no plan yet. Returns True if written.
        """
        current = await self.identity_provider.get_custom_claims(identity)
        if current.get(CLAIM_PLAN):
            logger.info("Custom claims already present for %s", identity)
            return False
        claims = merge_claims(current, profile_claims(user))
        await self.identity_provider.set_custom_claims(identity, claims)
        logger.info("Custom claims initialized for %s", identity)
        return True


def profile_claims(user, site_count: Optional[int] = None) -> Dict[str, Any]:
    """Claims owned by this service, derived from a User record."""
    fields: Dict[str, Any] = {
        CLAIM_PLAN: user.plan,
        CLAIM_STATUS: STATUS_ACTIVE,
        CLAIM_MAX_SITES: user.max_sites,
        CLAIM_EMAIL_NOTIFICATIONS: bool(user.email_notifications_enabled),
    }
    if site_count is not None:
        fields[CLAIM_SITE_COUNT] = site_count
    return fields
