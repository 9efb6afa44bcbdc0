import logging

from supabase import create_client, Client
from qr_attendance.config import settings

logger = logging.getLogger(__name__)

def get_supabase_client() -> Client:
    """
    Creates and returns a Supabase client configured with the service role key.
    This client has admin privileges and bypasses RLS.
    """
    try:
        supabase: Client = create_client(
            settings.SUPABASE_URL,
            settings.SUPABASE_SERVICE_ROLE_KEY
        )
        return supabase
    except Exception:
        logger.exception("Error creating Supabase client")
        raise

# Dependency for routers
def get_db():
    """FastAPI dependency to get a Supabase client instance."""
    return get_supabase_client()
