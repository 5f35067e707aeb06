"""
User and site APIs. Every route requires a verified Firebase ID token.

POST /user/user: initialize profile (free plan + quota) and claims.
POST /user/createSite: create a site and return its public API key.
POST /user/email: toggle email notifications.
POST /user/push-token: register an FCM token and subscribe it to the user topic.
POST /user/test-notification: push a test notification to the user topic.
POST /user/deleteUser: delete sites, profile and identity.
GET /user/profile: echo the verified identity.

Responses that change claims carry token="reload" so the client refreshes
its ID token.
"""

import logging
from typing import Annotated, Any, List, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, ConfigDict, Field

from gratias.api.auth import CurrentIdentity, get_current_identity
from gratias.api.dependencies import get_account_service, get_profile_service, get_site_service
from gratias.errors import ServiceError, server_error
from gratias.services.account_service import AccountDeletionService
from gratias.services.profile_service import ProfileService
from gratias.services.site_service import SiteCreationService

logger = logging.getLogger(__name__)
router = APIRouter()

Identity = Annotated[CurrentIdentity, Depends(get_current_identity)]


class CreateSiteRequest(BaseModel):
    # All optional: absence is reported as MISSING_FIELDS, not a 422
    model_config = ConfigDict(populate_by_name=True)

    site_name: Optional[str] = Field(default=None, alias="siteName")
    domains: Optional[List[Any]] = None
    site_type: Optional[str] = Field(default=None, alias="siteType")


class EmailNotificationsRequest(BaseModel):
    enabled: Any = False


class PushTokenRequest(BaseModel):
    token: Any = None


@router.post("/user", response_model=dict, summary="Initialize user profile")
async def init_user_profile(
    current: Identity,
    profiles: Annotated[ProfileService, Depends(get_profile_service)],
) -> dict:
    try:
        return await profiles.init_user_profile(current.identity)
    except ServiceError:
        raise
    except Exception as e:
        raise server_error(e, "init_user_profile")


@router.post("/createSite", response_model=dict, summary="Create a site")
async def create_site(
    body: CreateSiteRequest,
    current: Identity,
    sites: Annotated[SiteCreationService, Depends(get_site_service)],
) -> dict:
    logger.info(
        "Site creation requested by %s: name=%r type=%r domains=%r",
        current.identity, body.site_name, body.site_type, body.domains,
    )
    try:
        result = await sites.create_site(current.identity, body.site_name, body.domains, body.site_type)
    except ServiceError:
        raise
    except Exception as e:
        raise server_error(e, "create_site")
    return {"success": True, "apiKey": result.api_key, "token": result.token}


@router.post("/email", response_model=dict, summary="Toggle email notifications")
async def set_email_notifications(
    current: Identity,
    profiles: Annotated[ProfileService, Depends(get_profile_service)],
    body: Optional[EmailNotificationsRequest] = None,
) -> dict:
    body = body or EmailNotificationsRequest()
    try:
        result = await profiles.set_email_notifications(current.identity, body.enabled)
    except ServiceError:
        raise
    except Exception as e:
        raise server_error(e, "set_email_notifications")
    return {
        "success": True,
        "emailNotificationsEnabled": result.email_notifications_enabled,
        "token": result.token,
    }


@router.post("/push-token", response_model=dict, summary="Register a push token")
async def register_push_token(
    current: Identity,
    profiles: Annotated[ProfileService, Depends(get_profile_service)],
    body: Optional[PushTokenRequest] = None,
) -> dict:
    body = body or PushTokenRequest()
    try:
        push_token = await profiles.register_push_token(current.identity, body.token)
    except ServiceError:
        raise
    except Exception as e:
        raise server_error(e, "register_push_token")
    return {"success": True, "pushToken": push_token}


@router.post("/test-notification", response_model=dict, summary="Send a test push notification")
async def send_test_notification(
    current: Identity,
    profiles: Annotated[ProfileService, Depends(get_profile_service)],
) -> dict:
    try:
        await profiles.send_test_notification(current.identity)
    except ServiceError:
        raise
    except Exception as e:
        raise server_error(e, "send_test_notification")
    return {"success": True}


@router.post("/deleteUser", response_model=dict, summary="Delete the account")
async def delete_account(
    current: Identity,
    accounts: Annotated[AccountDeletionService, Depends(get_account_service)],
) -> dict:
    try:
        await accounts.delete_account(current.identity)
    except ServiceError:
        raise
    except Exception as e:
        raise server_error(e, "delete_account")
    return {"success": True}


@router.get("/profile", response_model=dict, summary="Current identity")
async def get_profile(current: Identity) -> dict:
    return {
        "message": "Protected user profile",
        "user": {"uid": current.identity, "email": current.email},
    }
