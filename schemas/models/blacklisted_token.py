"""
Blacklisted token document model.

Maps to the `blacklisted_tokens` MongoDB collection.

A token lands here when its session ends through an explicit logout. The
entry lives until the token's own expiry: a TTL index on expires_at prunes
it, and the session janitor deletes expired entries as well so pruning does
not depend on the storage engine's TTL monitor.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from schemas.models.base import MongoBaseModel, PyObjectId


class BlacklistedTokenDoc(MongoBaseModel):
    """Document model for the `blacklisted_tokens` collection."""

    token: str
    user_id: PyObjectId
    expires_at: datetime
    created_at: Optional[datetime] = None
