"""
User model for MongoDB (Beanie ODM).

Identity lives in Firebase Auth; this document holds plan, quota and
notification preferences. Created lazily on first authenticated interaction.
"""

from datetime import datetime
from typing import Optional

from beanie import Document, Indexed
from pydantic import Field


class User(Document):
    """
    User document. identity is the Firebase uid (token "sub").
    """

    identity: Indexed(str, unique=True)
    plan: str = "free"
    max_sites: int = 2
    email_notifications_enabled: bool = False
    push_token: Optional[str] = None  # FCM registration token
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)

    class Settings:
        name = "users"
        use_state_management = True

    class Config:
        json_schema_extra = {
            "example": {
                "identity": "firebase-uid",
                "plan": "free",
                "max_sites": 2,
                "email_notifications_enabled": False,
                "push_token": None,
            }
        }
