"""FastAPI dependency providers for shared service handles."""

from __future__ import annotations

from functools import lru_cache

from ..data.gazetteer import Gazetteer, load_gazetteer
from ..identity import SupabaseIdentityGateway
from ..persistence.accounts import SupabaseAccountStore
from ..services.accounts import AccountService


def get_gazetteer() -> Gazetteer:
    return load_gazetteer()


@lru_cache()
def get_account_service() -> AccountService:
    """Process-wide service wired to Supabase Auth and the Supabase tables."""
    return AccountService(
        gateway=SupabaseIdentityGateway(),
        store=SupabaseAccountStore(),
        gazetteer=load_gazetteer(),
    )
