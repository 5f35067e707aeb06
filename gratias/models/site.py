"""
Site model for MongoDB (Beanie ODM).

A site belongs to one owner identity, has at least one domain and a
generated API key suffix. The public prefix is configuration, never stored.
"""

import uuid
from datetime import datetime
from enum import Enum
from typing import List

import pymongo
from beanie import Document
from pydantic import BaseModel, Field, field_validator
from pymongo import IndexModel

from gratias.services.domain_validator import is_valid_domain, normalize_domain

SITE_NAME_MAX_LENGTH = 15


class SiteType(str, Enum):
    """Kinds of site a user can register."""

    FORMULAIRE = "formulaire"
    VITRINE = "vitrine"
    RESERVATION = "reservation"
    LANDING = "landing"
    AUTRES = "autres"


class DomainEntry(BaseModel):
    """
    Embedded domain. locked means the domain is claimed and active;
    locked domains are unique across all sites.
    """

    value: str
    locked: bool = False

    @field_validator("value")
    @classmethod
    def normalize_and_check(cls, v: str) -> str:
        v = normalize_domain(v)
        if not is_valid_domain(v):
            raise ValueError(f"Invalid domain: {v}")
        return v


class Site(Document):
    owner_identity: str
    site_name: str = Field(max_length=SITE_NAME_MAX_LENGTH)
    domains: List[DomainEntry] = Field(min_length=1)
    site_type: SiteType
    api_key_suffix: str = Field(default_factory=lambda: str(uuid.uuid4()))
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)

    def api_key(self, prefix: str) -> str:
        return f"{prefix}{self.api_key_suffix}"

    class Settings:
        name = "sites"
        use_state_management = True
        indexes = [
            IndexModel([("owner_identity", pymongo.ASCENDING)]),
            IndexModel(
                [("owner_identity", pymongo.ASCENDING), ("site_name", pymongo.ASCENDING)],
                unique=True,
                name="owner_site_name_unique",
            ),
            IndexModel([("api_key_suffix", pymongo.ASCENDING)], unique=True),
            IndexModel([("domains.value", pymongo.ASCENDING)]),
        ]

    class Config:
        json_schema_extra = {
            "example": {
                "owner_identity": "firebase-uid",
                "site_name": "Shop",
                "domains": [{"value": "shop.example.com", "locked": False}],
                "site_type": "vitrine",
            }
        }
