"""
Supabase client — lazily created SDK client for the local catalog store.
Version: 1.0.0
"""
import logging

from supabase import create_client, Client

from catalog_sync.core.config import Settings
from catalog_sync.core.exceptions import ConfigurationError

logger = logging.getLogger("supabase_client")


class SupabaseClient:
    """Supabase client wrapper using the official supabase-py SDK."""

    _instance: Client | None = None

    def __init__(self, settings: Settings) -> None:
        self._url = settings.supabase_url
        self._key = settings.supabase_service_role_key

        if not self._url or not self._key:
            raise ConfigurationError(
                "SUPABASE_URL and SUPABASE_SERVICE_ROLE_KEY must be set for Supabase access"
            )

    def get_client(self) -> Client:
        """Get or create the Supabase client instance."""
        if SupabaseClient._instance is None:
            SupabaseClient._instance = create_client(self._url, self._key)
            logger.info("supabase client initialized url=%s", self._url)
        return SupabaseClient._instance

    @property
    def client(self) -> Client:
        """Property accessor for the Supabase client."""
        return self.get_client()
