"""
Site creation.

Checks run in a fixed order and the first violation wins:
required fields, name length, site type, quota, domain syntax,
locked-domain collisions, name uniqueness. Nothing is written until every
check passes.

The quota and uniqueness checks are not transactional. Two concurrent
creations for one owner can both pass the quota check; the overshoot is
bounded by the number of requests in flight. The unique index on
(owner_identity, site_name) still rejects duplicate names.
"""

import logging
import uuid
from dataclasses import dataclass
from typing import Any, List, Optional

from pymongo.errors import DuplicateKeyError

from gratias.errors import ErrorCode, ServiceError
from gratias.models.site import SITE_NAME_MAX_LENGTH, DomainEntry, SiteType
from gratias.services.claims import ClaimsSynchronizer, profile_claims, site_created_message
from gratias.services.domain_validator import is_valid_domain, normalize_domain
from gratias.services.side_effects import run_best_effort

logger = logging.getLogger(__name__)

SITE_TYPES = {t.value for t in SiteType}


@dataclass
class SiteCreationResult:
    api_key: str
    site_count: int
    claims_synced: bool
    token: str = "reload"  # client must refresh its ID token to see new claims


def _is_site_name_conflict(error: DuplicateKeyError) -> bool:
    details = error.details or {}
    key_pattern = details.get("keyPattern") or {}
    if key_pattern:
        return "site_name" in key_pattern
    return "site_name" in str(error)


class SiteCreationService:
    def __init__(
        self,
        sites,
        users,
        claims: ClaimsSynchronizer,
        api_key_prefix: str,
        default_plan: str = "free",
        default_max_sites: int = 2,
    ):
        self.sites = sites
        self.users = users
        self.claims = claims
        self.api_key_prefix = api_key_prefix
        self.default_plan = default_plan
        self.default_max_sites = default_max_sites

    async def create_site(
        self,
        owner_identity: str,
        site_name: Optional[str],
        domains: Optional[List[Any]],
        site_type: Optional[str],
    ) -> SiteCreationResult:
        user, _ = await self.users.get_or_create(
            owner_identity, plan=self.default_plan, max_sites=self.default_max_sites
        )

        if not site_name or not domains or not site_type:
            raise ServiceError(ErrorCode.MISSING_FIELDS)
        if len(site_name) > SITE_NAME_MAX_LENGTH:
            raise ServiceError(ErrorCode.SITE_NAME_TOO_LONG)
        if site_type not in SITE_TYPES:
            raise ServiceError(ErrorCode.INVALID_SITE_TYPE)

        # Admission control before any per-domain work
        current_count = await self.sites.count_by_owner(owner_identity)
        if current_count >= user.max_sites:
            logger.warning(
                "Site quota reached for %s (%d/%d)", owner_identity, current_count, user.max_sites
            )
            raise ServiceError(ErrorCode.SITE_QUOTA_EXCEEDED)

        normalized = self._normalize_domains(domains)
        for value in normalized:
            if await self.sites.find_by_locked_domain(value):
                raise ServiceError(ErrorCode.DOMAIN_ALREADY_EXISTS, f"Domain {value} is already in use")

        if await self.sites.find_by_owner_and_name(owner_identity, site_name):
            raise ServiceError(ErrorCode.SITE_NAME_EXISTS)

        suffix = str(uuid.uuid4())
        try:
            site = await self.sites.create(
                owner_identity=owner_identity,
                site_name=site_name,
                domains=[DomainEntry(value=value, locked=False) for value in normalized],
                site_type=SiteType(site_type),
                api_key_suffix=suffix,
            )
        except DuplicateKeyError as e:
            if _is_site_name_conflict(e):
                raise ServiceError(ErrorCode.SITE_NAME_EXISTS)
            logger.error("Duplicate key inserting site for %s: %s", owner_identity, e)
            raise ServiceError(ErrorCode.SERVER_ERROR)
        logger.info("Site %r created for %s", site_name, owner_identity)

        # Authoritative recount, tolerant of concurrent creations and deletions
        site_count = await self.sites.count_by_owner(owner_identity)

        outcome = await run_best_effort(
            f"claims sync after creating site {site_name!r} for {owner_identity}",
            self.claims.sync_after_event(
                owner_identity,
                event_message=site_created_message(site_name, site.created_at),
                fields=profile_claims(user, site_count=site_count),
            ),
        )
        return SiteCreationResult(
            api_key=site.api_key(self.api_key_prefix),
            site_count=site_count,
            claims_synced=outcome.ok,
        )

    @staticmethod
    def _normalize_domains(domains: List[Any]) -> List[str]:
        """Trim + lowercase every domain; the first invalid one is reported."""
        normalized = []
        for raw in domains:
            value = normalize_domain(raw) if isinstance(raw, str) else ""
            if not is_valid_domain(value):
                raise ServiceError(ErrorCode.INVALID_DOMAIN, f"Invalid domain: {value or raw}")
            normalized.append(value)
        return normalized
