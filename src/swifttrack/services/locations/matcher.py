"""Free-text address to district resolution."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Literal, Optional

from ...data.gazetteer import Gazetteer, load_gazetteer

MatchType = Literal["district_name", "alias"]


@dataclass(frozen=True, slots=True)
class AddressMatch:
    district: str
    latitude: float
    longitude: float
    match_type: MatchType
    matched_alias: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "district": self.district,
            "latitude": self.latitude,
            "longitude": self.longitude,
            "matchType": self.match_type,
        }
        if self.matched_alias is not None:
            payload["matchedAlias"] = self.matched_alias
        return payload


def match_address(address: Any, gazetteer: Gazetteer | None = None) -> AddressMatch | None:
    """Return the first district whose name or alias occurs in ``address``.

    Districts are scanned in dataset order. Each district's canonical name is
    tried before its aliases, and the first containment hit wins; there is no
    ranking by length or specificity. Matching is an unanchored, case-insensitive
    substring test, so short aliases embedded in unrelated words also match.
    Empty or non-string input yields ``None``.
    """

    if not address or not isinstance(address, str):
        return None

    table = gazetteer if gazetteer is not None else load_gazetteer()
    lowered = address.lower()

    for record in table:
        if record.name.lower() in lowered:
            return AddressMatch(
                district=record.name,
                latitude=record.latitude,
                longitude=record.longitude,
                match_type="district_name",
            )
        for alias in record.aliases:
            if alias.lower() in lowered:
                return AddressMatch(
                    district=record.name,
                    latitude=record.latitude,
                    longitude=record.longitude,
                    match_type="alias",
                    matched_alias=alias,
                )
    return None
