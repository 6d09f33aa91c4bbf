"""Base repository with shared Supabase client."""

from supabase import Client


class BaseRepository:
    """Base class for catalog repositories.

    Wraps the sync Supabase client; query builders are executed inline.
    """

    def __init__(self, client: Client) -> None:
        self.client = client
