"""
Supabase connection for the remote snapshot table

Snapshots are upserted on behalf of users by the server, so a single
service-role client is used for every remote call.
"""
from supabase import create_client, Client
from typing import Optional
import logging

from progress_engine.core.config import settings
from progress_engine.core.exceptions import ConfigurationError

logger = logging.getLogger(__name__)

# Global Supabase client instance
_supabase_admin: Optional[Client] = None


def init_supabase() -> Client:
    """Create the service-role client from settings"""
    global _supabase_admin

    if not settings.SUPABASE_URL or not settings.SUPABASE_SERVICE_ROLE_KEY:
        raise ConfigurationError("SUPABASE_URL and SUPABASE_SERVICE_ROLE_KEY are required for remote sync")

    try:
        _supabase_admin = create_client(settings.SUPABASE_URL, settings.SUPABASE_SERVICE_ROLE_KEY)
    except Exception as e:
        logger.error(f"Failed to initialize Supabase: {e}")
        raise ConfigurationError(f"Invalid Supabase settings: {e}") from e

    logger.info(f"Supabase client initialized for {settings.SUPABASE_URL}")
    return _supabase_admin


def get_supabase_admin() -> Client:
    """Get the service-role client, creating it on first use"""
    if _supabase_admin is None:
        return init_supabase()
    return _supabase_admin


class SupabaseService:
    """Base service class with Supabase table access"""

    def __init__(self, client: Optional[Client] = None):
        self.client = client if client is not None else get_supabase_admin()

    @property
    def db(self):
        """Shorthand for database operations"""
        return self.client.table
