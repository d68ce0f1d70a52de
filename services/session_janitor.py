"""
Background sweeping of expired sessions and blacklist entries.

Two loops run side by side: a fine one (default every 30 minutes) and a
coarse one (default daily). Both run the same sweep; the coarse loop is a
backstop in case the fine one is disabled by configuration. One sweep also
runs immediately at start-up.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from repositories.blacklist_repository import BlacklistRepository
from repositories.user_repository import UserRepository
from shared.datetime_utils import utc_now
from shared.logging import get_logger, token_prefix

log = get_logger(__name__)


@dataclass
class SweepResult:
    users_affected: int = 0
    sessions_removed: int = 0
    blacklist_removed: int = 0


class SessionJanitor:
    def __init__(
        self,
        users: UserRepository,
        blacklist: BlacklistRepository,
        *,
        interval_seconds: int = 1800,
        full_interval_seconds: int = 86400,
    ) -> None:
        self._users = users
        self._blacklist = blacklist
        self.interval_seconds = interval_seconds
        self.full_interval_seconds = full_interval_seconds
        self._tasks: list[asyncio.Task] = []

    async def sweep(self, now: Optional[datetime] = None) -> SweepResult:
        now = now or utc_now()
        result = SweepResult()

        for user in await self._users.find_with_expired_sessions(now):
            expired = [s for s in user.active_sessions if s.is_expired(now)]
            for session in expired:
                log.info(
                    "session_expired",
                    user_id=str(user.id),
                    session_id=str(session.id),
                    device=session.device,
                    duration_minutes=session.age_minutes(now),
                    token_prefix=token_prefix(session.token),
                    reason="sweep",
                )
            if await self._users.pull_expired_sessions(user.id, now):
                result.users_affected += 1
                result.sessions_removed += len(expired)

        result.blacklist_removed = await self._blacklist.delete_expired(now)

        if result.sessions_removed or result.blacklist_removed:
            log.info(
                "expired_sessions_swept",
                users_affected=result.users_affected,
                sessions_removed=result.sessions_removed,
                blacklist_removed=result.blacklist_removed,
            )
        return result

    async def _safe_sweep(self, loop_name: str) -> None:
        try:
            await self.sweep()
        except asyncio.CancelledError:
            raise
        except Exception as e:
            log.error(
                "session_sweep_failed", loop=loop_name, error=str(e), exc_info=e
            )

    async def _run_every(self, interval: int, loop_name: str) -> None:
        while True:
            await asyncio.sleep(interval)
            await self._safe_sweep(loop_name)

    async def start(self) -> None:
        await self._safe_sweep("startup")
        self._tasks = [
            asyncio.create_task(
                self._run_every(self.interval_seconds, "fine"), name="janitor-fine"
            ),
            asyncio.create_task(
                self._run_every(self.full_interval_seconds, "full"),
                name="janitor-full",
            ),
        ]
        log.info(
            "session_janitor_started",
            interval_seconds=self.interval_seconds,
            full_interval_seconds=self.full_interval_seconds,
        )

    async def stop(self) -> None:
        for task in self._tasks:
            task.cancel()
        await asyncio.gather(*self._tasks, return_exceptions=True)
        self._tasks = []
        log.info("session_janitor_stopped")

    @property
    def running(self) -> bool:
        return any(not task.done() for task in self._tasks)

    async def audit_active_sessions(self, reason: str = "server_shutdown") -> int:
        """Log every still-active session. Sessions are left in place."""
        now = utc_now()
        count = 0
        for user in await self._users.find_with_sessions():
            for session in user.active_sessions:
                if session.is_expired(now):
                    continue
                count += 1
                log.info(
                    "session_active_at_shutdown",
                    user_id=str(user.id),
                    session_id=str(session.id),
                    device=session.device,
                    duration_minutes=session.age_minutes(now),
                    token_prefix=token_prefix(session.token),
                    reason=reason,
                )
        log.info("shutdown_session_audit_complete", active_sessions=count)
        return count
