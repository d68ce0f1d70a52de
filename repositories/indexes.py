"""
Index bootstrap, run once from the application lifespan.

create_index is idempotent, so running this on every start-up is safe.
"""

from __future__ import annotations

from pymongo import ASCENDING, DESCENDING
from pymongo.asynchronous.database import AsyncDatabase

from shared.logging import get_logger

log = get_logger(__name__)

USERS = "users"
BLACKLISTED_TOKENS = "blacklisted_tokens"
TASKS = "tasks"
TASK_APPLICATIONS = "task_applications"
COMPLETED_TASKS = "completed_tasks"


async def ensure_indexes(db: AsyncDatabase) -> None:
    users = db[USERS]
    await users.create_index([("email", ASCENDING)], unique=True)
    await users.create_index([("username", ASCENDING)], unique=True, sparse=True)
    await users.create_index([("active_sessions.token", ASCENDING)])
    await users.create_index([("active_sessions.expires_at", ASCENDING)])

    blacklist = db[BLACKLISTED_TOKENS]
    await blacklist.create_index([("token", ASCENDING)], unique=True)
    await blacklist.create_index([("expires_at", ASCENDING)], expireAfterSeconds=0)

    tasks = db[TASKS]
    await tasks.create_index(
        [("status", ASCENDING), ("is_active", ASCENDING), ("created_at", DESCENDING)]
    )
    await tasks.create_index([("category", ASCENDING)])
    await tasks.create_index([("payout", ASCENDING)])

    applications = db[TASK_APPLICATIONS]
    await applications.create_index(
        [("user_id", ASCENDING), ("task_id", ASCENDING)], unique=True
    )
    await applications.create_index([("status", ASCENDING)])
    await applications.create_index([("submissions._id", ASCENDING)])

    completed = db[COMPLETED_TASKS]
    await completed.create_index([("submitted_at", DESCENDING)])

    log.info("indexes_ensured")
