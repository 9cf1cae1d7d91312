"""Account profile persistence for customers and drivers."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod

from supabase import Client, PostgrestAPIError

from ..db.supabase import get_supabase_client
from ..errors import DuplicateError, NotFoundError, UpstreamError
from ..models.domain import ACCOUNT_TYPES, Account

logger = logging.getLogger(__name__)

UNIQUE_VIOLATION = "23505"


class AccountStore(ABC):
    """Role-partitioned account records keyed by identity uid and email."""

    @abstractmethod
    def find_by_email(self, email: str) -> Account:
        raise NotImplementedError

    @abstractmethod
    def find_by_identity(self, uid: str) -> Account:
        raise NotImplementedError

    @abstractmethod
    def identifier_exists(self, role: str, account_id: str) -> bool:
        raise NotImplementedError

    @abstractmethod
    def create(self, account: Account) -> Account:
        """Persist a new account, raising DuplicateError on any unique key collision."""
        raise NotImplementedError

    @abstractmethod
    def delete_by_identity(self, uid: str) -> bool:
        """Remove the profile for ``uid``; returns False when none existed."""
        raise NotImplementedError


class SupabaseAccountStore(AccountStore):
    """Stores accounts in the ``customers`` and ``drivers`` tables."""

    def __init__(self, client: Client | None = None) -> None:
        self._client = client

    @property
    def client(self) -> Client:
        client = self._client or get_supabase_client()
        if client is None:
            raise UpstreamError(
                "Account store is not configured",
                error="Set SWIFTTRACK_SUPABASE_URL and SWIFTTRACK_SUPABASE_KEY.",
            )
        return client

    def _find_one(self, column: str, value: str) -> Account | None:
        for account_type in ACCOUNT_TYPES.values():
            try:
                response = (
                    self.client.table(account_type.table)
                    .select("*")
                    .eq(column, value)
                    .limit(1)
                    .execute()
                )
            except PostgrestAPIError as exc:
                raise UpstreamError("Error reading account", error=exc.message or str(exc)) from exc
            if response.data:
                return account_type.from_record(response.data[0])
        return None

    def find_by_email(self, email: str) -> Account:
        account = self._find_one("email", email.strip().lower())
        if account is None:
            raise NotFoundError("No account registered with this email")
        return account

    def find_by_identity(self, uid: str) -> Account:
        account = self._find_one("uid", uid)
        if account is None:
            raise NotFoundError("No account registered for this uid")
        return account

    def identifier_exists(self, role: str, account_id: str) -> bool:
        account_type = ACCOUNT_TYPES[role]
        try:
            response = (
                self.client.table(account_type.table)
                .select(account_type.id_field)
                .eq(account_type.id_field, account_id)
                .limit(1)
                .execute()
            )
        except PostgrestAPIError as exc:
            raise UpstreamError("Error reading account", error=exc.message or str(exc)) from exc
        return bool(response.data)

    def create(self, account: Account) -> Account:
        record = account.to_record()
        try:
            response = self.client.table(account.table).insert(record).execute()
        except PostgrestAPIError as exc:
            if exc.code == UNIQUE_VIOLATION:
                raise DuplicateError("User already exists", error=exc.message or str(exc)) from exc
            raise UpstreamError("Error saving account", error=exc.message or str(exc)) from exc

        logger.info(f"Stored {account.role} {account.account_id} for uid {account.uid}")
        if response.data:
            return type(account).from_record(response.data[0])
        return account

    def delete_by_identity(self, uid: str) -> bool:
        deleted = False
        for account_type in ACCOUNT_TYPES.values():
            try:
                response = self.client.table(account_type.table).delete().eq("uid", uid).execute()
            except PostgrestAPIError as exc:
                raise UpstreamError("Error deleting account", error=exc.message or str(exc)) from exc
            deleted = deleted or bool(response.data)
        if deleted:
            logger.info(f"Deleted account profile for uid {uid}")
        return deleted
