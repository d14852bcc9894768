"""
Remote snapshot service backed by Supabase

The remote copy of a learner's progress lives in one row per user holding
the progress and XP snapshots as JSON. Only fetch and push are needed: the
merge itself happens locally.
"""

from datetime import datetime, timezone
from typing import Optional

import structlog
from pydantic import ValidationError
from supabase import Client

from progress_engine.core.config import settings
from progress_engine.core.exceptions import RemoteSyncError
from progress_engine.db.supabase import SupabaseService
from progress_engine.domain.models import ProgressProfile, ProgressSnapshot, XPProfile

logger = structlog.get_logger(__name__)


class RemoteSnapshotService(SupabaseService):
    """Fetch and push progress snapshots in the remote store"""

    def __init__(self, client: Optional[Client] = None, table: Optional[str] = None):
        super().__init__(client=client)
        self.table = table or settings.PROGRESS_TABLE

    async def fetch(self, user_id: str) -> Optional[ProgressSnapshot]:
        """
        Fetch the remote snapshot for a user

        Returns:
            The remote snapshot, or None when the user has none yet or the
            stored row cannot be parsed

        Raises:
            RemoteSyncError: If the remote service cannot be reached
        """
        try:
            result = self.db(self.table).select(
                'progress_data, xp_data, updated_at'
            ).eq('user_id', user_id).limit(1).execute()
        except Exception as e:
            logger.error("Error fetching remote snapshot", user_id=user_id, error=str(e))
            raise RemoteSyncError(f"Failed to fetch remote snapshot for {user_id}") from e

        if not result.data:
            logger.info("No remote snapshot yet", user_id=user_id)
            return None

        row = result.data[0]
        try:
            return ProgressSnapshot(
                progress=ProgressProfile.model_validate(row.get('progress_data') or {}),
                xp=XPProfile.model_validate(row.get('xp_data') or {})
            )
        except ValidationError as e:
            logger.warning("Ignoring malformed remote snapshot", user_id=user_id, error=str(e))
            return None

    async def push(self, user_id: str, progress: ProgressProfile, xp: XPProfile) -> bool:
        """Upsert the user's snapshot; returns False when the push did not land"""
        payload = {
            'user_id': user_id,
            'progress_data': progress.model_dump(mode='json'),
            'xp_data': xp.model_dump(mode='json'),
            'updated_at': datetime.now(timezone.utc).isoformat()
        }

        try:
            result = self.db(self.table).upsert(payload, on_conflict='user_id').execute()
        except Exception as e:
            logger.error("Error pushing remote snapshot", user_id=user_id, error=str(e))
            return False

        if not result.data:
            logger.warning("Remote snapshot push returned no data", user_id=user_id)
            return False

        logger.info("Remote snapshot pushed",
                    user_id=user_id,
                    total_xp=xp.total_xp,
                    total_problems=progress.total_problems_completed)
        return True
