"""Beanie document models and Pydantic schemas."""

from gratias.models.site import DomainEntry, Site, SiteType
from gratias.models.user import User

__all__ = ["User", "Site", "SiteType", "DomainEntry"]
