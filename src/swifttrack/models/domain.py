"""Domain models for places, identities and role-specific accounts."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from datetime import datetime
from typing import Any, ClassVar, Literal, Optional

Role = Literal["customer", "driver"]
DriverStatus = Literal["available", "busy", "offline"]

ROLES: tuple[str, ...] = ("customer", "driver")
DRIVER_STATUSES: tuple[str, ...] = ("available", "busy", "offline")


@dataclass(frozen=True, slots=True)
class PlaceRecord:
    """A gazetteer entry: canonical district name, coordinates and aliases."""

    name: str
    latitude: float
    longitude: float
    aliases: tuple[str, ...] = ()


@dataclass(slots=True)
class IdentityRecord:
    """Identity as held by the external provider."""

    uid: str
    email: str
    display_name: Optional[str] = None
    claims: dict[str, Any] = field(default_factory=dict)
    tokens_valid_after: Optional[int] = None

    @property
    def role(self) -> Optional[str]:
        return self.claims.get("role")

    def to_dict(self) -> dict[str, Any]:
        return {
            "uid": self.uid,
            "email": self.email,
            "displayName": self.display_name,
            "customClaims": dict(self.claims),
        }


@dataclass(slots=True)
class IdentitySession:
    """Tokens issued by the provider after a password check."""

    uid: str
    id_token: str
    refresh_token: str
    expires_in: int


@dataclass(slots=True)
class Location:
    address: str
    latitude: float
    longitude: float


@dataclass(slots=True)
class OrderHistoryEntry:
    order_id: str
    date: Optional[datetime]
    status: str

    def to_record(self) -> dict[str, Any]:
        return {
            "order_id": self.order_id,
            "date": self.date.isoformat() if self.date else None,
            "status": self.status,
        }

    @classmethod
    def from_record(cls, row: dict[str, Any]) -> "OrderHistoryEntry":
        raw_date = row.get("date")
        if isinstance(raw_date, str) and raw_date:
            raw_date = datetime.fromisoformat(raw_date)
        return cls(order_id=str(row["order_id"]), date=raw_date or None, status=str(row.get("status") or ""))


@dataclass(slots=True)
class Account:
    """Fields shared by every account variant."""

    uid: str
    name: str
    email: str
    phone: str
    current_location: Location

    role: ClassVar[str] = ""
    id_field: ClassVar[str] = ""
    table: ClassVar[str] = ""

    @property
    def account_id(self) -> str:
        return getattr(self, self.id_field)

    def _base_record(self) -> dict[str, Any]:
        return {
            "uid": self.uid,
            "name": self.name,
            "email": self.email,
            "role": self.role,
            "phone": self.phone,
            "current_location": asdict(self.current_location),
        }

    def to_dict(self) -> dict[str, Any]:
        return self.to_record()


@dataclass(slots=True)
class CustomerAccount(Account):
    customer_id: str = ""
    order_history: list[OrderHistoryEntry] = field(default_factory=list)

    role: ClassVar[str] = "customer"
    id_field: ClassVar[str] = "customer_id"
    table: ClassVar[str] = "customers"

    def to_record(self) -> dict[str, Any]:
        record = self._base_record()
        record["customer_id"] = self.customer_id
        record["order_history"] = [entry.to_record() for entry in self.order_history]
        return record

    @classmethod
    def from_record(cls, row: dict[str, Any]) -> "CustomerAccount":
        return cls(
            uid=str(row["uid"]),
            name=str(row["name"]),
            email=str(row["email"]),
            phone=str(row.get("phone") or ""),
            current_location=Location(**row["current_location"]),
            customer_id=str(row["customer_id"]),
            order_history=[OrderHistoryEntry.from_record(item) for item in row.get("order_history") or []],
        )


@dataclass(slots=True)
class DriverAccount(Account):
    driver_id: str = ""
    license_number: str = ""
    vehicle_info: Optional[dict[str, Any]] = None
    status: DriverStatus = "available"
    assigned_orders: list[str] = field(default_factory=list)
    completed_orders: list[str] = field(default_factory=list)

    role: ClassVar[str] = "driver"
    id_field: ClassVar[str] = "driver_id"
    table: ClassVar[str] = "drivers"

    def to_record(self) -> dict[str, Any]:
        record = self._base_record()
        record.update(
            {
                "driver_id": self.driver_id,
                "license_number": self.license_number,
                "vehicle_info": self.vehicle_info,
                "status": self.status,
                "assigned_orders": list(self.assigned_orders),
                "completed_orders": list(self.completed_orders),
            }
        )
        return record

    @classmethod
    def from_record(cls, row: dict[str, Any]) -> "DriverAccount":
        status = row.get("status") or "available"
        if status not in DRIVER_STATUSES:
            raise ValueError(f"Unknown driver status '{status}'")
        return cls(
            uid=str(row["uid"]),
            name=str(row["name"]),
            email=str(row["email"]),
            phone=str(row.get("phone") or ""),
            current_location=Location(**row["current_location"]),
            driver_id=str(row["driver_id"]),
            license_number=str(row.get("license_number") or ""),
            vehicle_info=row.get("vehicle_info"),
            status=status,
            assigned_orders=[str(item) for item in row.get("assigned_orders") or []],
            completed_orders=[str(item) for item in row.get("completed_orders") or []],
        )


ACCOUNT_TYPES: dict[str, type[Account]] = {
    CustomerAccount.role: CustomerAccount,
    DriverAccount.role: DriverAccount,
}
