"""
Service wiring for route handlers.

Everything is resolved through FastAPI dependencies so tests can swap
repositories and the identity provider via app.dependency_overrides.
"""

from functools import lru_cache
from typing import Annotated

from fastapi import Depends

from gratias.config import Settings, get_settings
from gratias.repositories.sites import SiteRepository
from gratias.repositories.users import UserRepository
from gratias.services.account_service import AccountDeletionService
from gratias.services.claims import ClaimsSynchronizer
from gratias.services.identity import FirebaseIdentityProvider
from gratias.services.profile_service import ProfileService
from gratias.services.site_service import SiteCreationService


@lru_cache
def get_identity_provider() -> FirebaseIdentityProvider:
    return FirebaseIdentityProvider()


def get_site_repository() -> SiteRepository:
    return SiteRepository()


def get_user_repository() -> UserRepository:
    return UserRepository()


def get_claims_synchronizer(
    identity_provider: Annotated[FirebaseIdentityProvider, Depends(get_identity_provider)],
    settings: Annotated[Settings, Depends(get_settings)],
) -> ClaimsSynchronizer:
    return ClaimsSynchronizer(identity_provider, capacity=settings.max_claim_messages)


def get_site_service(
    sites: Annotated[SiteRepository, Depends(get_site_repository)],
    users: Annotated[UserRepository, Depends(get_user_repository)],
    claims: Annotated[ClaimsSynchronizer, Depends(get_claims_synchronizer)],
    settings: Annotated[Settings, Depends(get_settings)],
) -> SiteCreationService:
    return SiteCreationService(
        sites,
        users,
        claims,
        api_key_prefix=settings.public_api_key_prefix,
        default_plan=settings.default_plan,
        default_max_sites=settings.default_max_sites,
    )


def get_profile_service(
    users: Annotated[UserRepository, Depends(get_user_repository)],
    claims: Annotated[ClaimsSynchronizer, Depends(get_claims_synchronizer)],
    identity_provider: Annotated[FirebaseIdentityProvider, Depends(get_identity_provider)],
    settings: Annotated[Settings, Depends(get_settings)],
) -> ProfileService:
    return ProfileService(
        users,
        claims,
        identity_provider,
        default_plan=settings.default_plan,
        default_max_sites=settings.default_max_sites,
    )


def get_account_service(
    sites: Annotated[SiteRepository, Depends(get_site_repository)],
    users: Annotated[UserRepository, Depends(get_user_repository)],
    identity_provider: Annotated[FirebaseIdentityProvider, Depends(get_identity_provider)],
) -> AccountDeletionService:
    return AccountDeletionService(sites, users, identity_provider)
