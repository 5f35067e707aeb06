"""
Persistence for Site documents.

Counts are always read from the collection; nothing here caches.
"""

import logging
from typing import List, Optional

from gratias.models.site import DomainEntry, Site, SiteType

logger = logging.getLogger(__name__)


class SiteRepository:
    async def count_by_owner(self, owner_identity: str) -> int:
        return await Site.find(Site.owner_identity == owner_identity).count()

    async def find_by_locked_domain(self, domain: str) -> Optional[Site]:
        # $elemMatch so value and locked are checked on the same array element
        return await Site.find_one(
            {"domains": {"$elemMatch": {"value": domain, "locked": True}}}
        )

    async def find_by_owner_and_name(self, owner_identity: str, site_name: str) -> Optional[Site]:
        return await Site.find_one(
            Site.owner_identity == owner_identity,
            Site.site_name == site_name,
        )

    async def create(
        self,
        owner_identity: str,
        site_name: str,
        domains: List[DomainEntry],
        site_type: SiteType,
        api_key_suffix: str,
    ) -> Site:
        """Insert a new site. pymongo's DuplicateKeyError propagates to the caller."""
        site = Site(
            owner_identity=owner_identity,
            site_name=site_name,
            domains=domains,
            site_type=site_type,
            api_key_suffix=api_key_suffix,
        )
        await site.insert()
        return site

    async def delete_by_owner(self, owner_identity: str) -> int:
        result = await Site.find(Site.owner_identity == owner_identity).delete()
        deleted = result.deleted_count if result else 0
        logger.info("Deleted %d site(s) for owner=%s", deleted, owner_identity)
        return deleted
