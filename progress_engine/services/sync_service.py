"""
Local-first reconciliation with the remote snapshot service

Purpose
-------
Merge the local progress and XP snapshots with the remote copy, store the
merged result locally and push it back.

Architecture Notes
------------------
- Sync is caller-driven: an explicit pending flag marks unsynced local
  changes, and SyncRetryPolicy says when a failed attempt may be retried
- Delay after n consecutive failures: min(base * multiplier^(n-1), max_delay)
- Retrying is always safe because the merge is symmetric and idempotent
- A failed fetch or push never blocks local use; the local snapshot stays
  authoritative until the next successful sync
"""

from datetime import datetime, timedelta
from typing import Optional

import structlog

from progress_engine.core.config import settings
from progress_engine.core.exceptions import ConfigurationError, RemoteSyncError
from progress_engine.domain.merge import merge_snapshots
from progress_engine.domain.models import ProgressSnapshot, SyncResult, SyncState, SyncStatus
from progress_engine.services.redis_client import LocalSnapshotStore, is_guest
from progress_engine.services.snapshot_service import RemoteSnapshotService

logger = structlog.get_logger(__name__)


class SyncRetryPolicy:
    """Exponential backoff between failed sync attempts"""

    def __init__(
        self,
        base_seconds: float = settings.SYNC_RETRY_BASE_SECONDS,
        multiplier: float = settings.SYNC_RETRY_MULTIPLIER,
        max_seconds: float = settings.SYNC_RETRY_MAX_SECONDS,
        max_attempts: int = settings.SYNC_RETRY_MAX_ATTEMPTS
    ):
        self.base_seconds = base_seconds
        self.multiplier = multiplier
        self.max_seconds = max_seconds
        self.max_attempts = max_attempts

    def delay(self, failures: int) -> float:
        """Seconds to wait after a number of consecutive failures"""
        if failures <= 0:
            return 0.0
        # Past max_attempts the delay stays at its ceiling; there is no give-up state
        exponent = min(failures, self.max_attempts) - 1
        return min(self.base_seconds * (self.multiplier ** exponent), self.max_seconds)

    def retry_at(self, state: SyncState) -> Optional[datetime]:
        if state.failures <= 0 or state.last_attempt_at is None:
            return None
        return state.last_attempt_at + timedelta(seconds=self.delay(state.failures))

    def should_attempt(self, state: SyncState, now: datetime) -> bool:
        retry_at = self.retry_at(state)
        return retry_at is None or now >= retry_at


class SyncService:
    """Reconcile an identity's local snapshots with the remote copy"""

    def __init__(
        self,
        store: LocalSnapshotStore,
        remote: Optional[RemoteSnapshotService] = None,
        policy: Optional[SyncRetryPolicy] = None
    ):
        self.store = store
        self._remote = remote
        self.policy = policy or SyncRetryPolicy()

    @property
    def remote(self) -> RemoteSnapshotService:
        # Created lazily so the engine runs offline without Supabase settings
        if self._remote is None:
            self._remote = RemoteSnapshotService()
        return self._remote

    def _result(self, status: SyncStatus, state: SyncState) -> SyncResult:
        return SyncResult(
            status=status,
            pending=state.pending,
            failures=state.failures,
            retry_in_seconds=self.policy.delay(state.failures) if state.failures else None,
            last_synced_at=state.last_synced_at
        )

    async def _record_failure(self, user_id: str, state: SyncState, now: datetime) -> SyncState:
        failed = state.model_copy(update={
            "pending": True,
            "failures": state.failures + 1,
            "last_attempt_at": now,
        })
        await self.store.save_sync_state(user_id, failed)
        logger.warning("Sync attempt failed",
                       user_id=user_id,
                       failures=failed.failures,
                       retry_in_seconds=self.policy.delay(failed.failures))
        return failed

    async def reconcile(self, user_id: Optional[str], now: datetime, force: bool = False) -> SyncResult:
        """
        Merge local and remote snapshots for a user and push the result

        Must run under the identity's write lock: it reads, merges and writes
        the local snapshots.

        Args:
            user_id: Authenticated user id; None (guest) has no remote copy
            now: Current time, used for backoff bookkeeping
            force: Ignore the retry delay (app-foreground, explicit refresh)

        Returns:
            SyncResult describing the attempt
        """
        if is_guest(user_id):
            return SyncResult(status=SyncStatus.SKIPPED, pending=False)

        state = await self.store.load_sync_state(user_id)

        if not force and not self.policy.should_attempt(state, now):
            logger.debug("Sync deferred by retry policy", user_id=user_id, failures=state.failures)
            return self._result(SyncStatus.BACKOFF, state)

        local = ProgressSnapshot(
            progress=await self.store.load_progress(user_id),
            xp=await self.store.load_xp(user_id)
        )

        try:
            remote = await self.remote.fetch(user_id)
        except (RemoteSyncError, ConfigurationError):
            state = await self._record_failure(user_id, state, now)
            return self._result(SyncStatus.OFFLINE, state)

        merged = merge_snapshots(local, remote)

        if merged != local:
            await self.store.save_progress(user_id, merged.progress)
            await self.store.save_xp(user_id, merged.xp)
            logger.info("Local snapshot updated from remote",
                        user_id=user_id,
                        total_xp=merged.xp.total_xp,
                        total_problems=merged.progress.total_problems_completed)

        if remote is not None and merged == remote and not state.pending:
            # Remote already has everything; nothing to push
            pushed = True
        else:
            pushed = await self.remote.push(user_id, merged.progress, merged.xp)

        if not pushed:
            state = await self._record_failure(user_id, state, now)
            return self._result(SyncStatus.PENDING, state)

        state = SyncState(pending=False, failures=0, last_attempt_at=now, last_synced_at=now)
        await self.store.save_sync_state(user_id, state)
        logger.info("Sync completed", user_id=user_id)
        return self._result(SyncStatus.SYNCED, state)
