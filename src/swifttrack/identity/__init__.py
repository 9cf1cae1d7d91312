"""Identity provider gateways."""

from .base import IdentityGateway
from .supabase_gateway import SupabaseIdentityGateway

__all__ = ["IdentityGateway", "SupabaseIdentityGateway"]
