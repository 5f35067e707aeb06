"""
Identity provider adapter (Firebase Auth + Cloud Messaging).

The Firebase Admin SDK is synchronous; every call is moved to a worker
thread with asyncio.to_thread so request handlers never block the loop.
"""

import asyncio
import logging
from typing import Any, Dict, Optional

import firebase_admin
from firebase_admin import auth, credentials, messaging

from gratias.config import Settings, get_settings
from gratias.errors import TokenVerificationError

logger = logging.getLogger(__name__)


def user_topic(identity: str) -> str:
    """Push topic dedicated to one identity."""
    return f"user_{identity}"


def init_firebase(settings: Optional[Settings] = None) -> firebase_admin.App:
    """Initialize the default Firebase app once; later calls return it."""
    try:
        return firebase_admin.get_app()
    except ValueError:
        pass
    settings = settings or get_settings()
    if settings.google_application_credentials:
        cred = credentials.Certificate(settings.google_application_credentials)
    else:
        cred = credentials.ApplicationDefault()
    options = {"projectId": settings.firebase_project_id} if settings.firebase_project_id else None
    app = firebase_admin.initialize_app(cred, options)
    logger.info("Firebase Admin initialized for project: %s", app.project_id)
    return app


class FirebaseIdentityProvider:
    """
    Thin async facade over firebase_admin. Claims are returned as plain
    dicts; the provider stays the system of record for them.
    """

    async def verify_token(self, token: str) -> Dict[str, Any]:
        try:
            decoded = await asyncio.to_thread(auth.verify_id_token, token, check_revoked=True)
        except auth.UserDisabledError:
            raise TokenVerificationError("account_disabled", "This user account has been disabled", 403)
        except auth.ExpiredIdTokenError:
            raise TokenVerificationError("token_expired", "Token has expired. Please sign in again.")
        except auth.RevokedIdTokenError:
            raise TokenVerificationError("token_revoked", "Token has been revoked. Please sign in again.")
        except auth.UserNotFoundError:
            raise TokenVerificationError("user_not_found", "User not found", 404)
        except auth.InvalidIdTokenError as e:
            logger.warning("Firebase token rejected: %s", e)
            raise TokenVerificationError("invalid_token", "Invalid or expired token")
        except ValueError as e:
            logger.warning("Malformed Firebase token: %s", e)
            raise TokenVerificationError("invalid_token_format", "Invalid token format")
        return {
            "identity": decoded["uid"],
            "email": decoded.get("email"),
            "email_verified": decoded.get("email_verified", False),
            "name": decoded.get("name"),
            "picture": decoded.get("picture"),
            "disabled": decoded.get("disabled", False),
        }

    async def get_custom_claims(self, identity: str) -> Dict[str, Any]:
        record = await asyncio.to_thread(auth.get_user, identity)
        return dict(record.custom_claims or {})

    async def set_custom_claims(self, identity: str, claims: Dict[str, Any]) -> None:
        await asyncio.to_thread(auth.set_custom_user_claims, identity, claims)

    async def delete_user(self, identity: str) -> None:
        await asyncio.to_thread(auth.delete_user, identity)

    async def subscribe_to_topic(self, push_token: str, topic: str) -> None:
        response = await asyncio.to_thread(messaging.subscribe_to_topic, [push_token], topic)
        if response.failure_count:
            reason = response.errors[0].reason if response.errors else "unknown"
            raise RuntimeError(f"Topic subscription to {topic} failed: {reason}")

    async def unsubscribe_from_topic(self, push_token: str, topic: str) -> None:
        response = await asyncio.to_thread(messaging.unsubscribe_from_topic, [push_token], topic)
        if response.failure_count:
            reason = response.errors[0].reason if response.errors else "unknown"
            raise RuntimeError(f"Topic unsubscription from {topic} failed: {reason}")

    async def send_to_topic(self, topic: str, title: str, body: str) -> str:
        message = messaging.Message(
            notification=messaging.Notification(title=title, body=body),
            topic=topic,
        )
        return await asyncio.to_thread(messaging.send, message)
