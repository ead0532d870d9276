"""Services package - External service integrations."""

from hangar.services.evolution import EvolutionAPIClient
from hangar.services.supabase import SupabaseService, get_supabase_service

__all__ = [
    "SupabaseService",
    "get_supabase_service",
    "EvolutionAPIClient",
]
