"""District gazetteer loaded from the packaged JSON dataset."""

from __future__ import annotations

import functools
import json
import logging
from pathlib import Path
from typing import Any, Iterator, Optional

from ..config import settings
from ..models.domain import PlaceRecord

logger = logging.getLogger(__name__)


class Gazetteer:
    """Read-only table of districts kept in dataset order."""

    def __init__(self, records: tuple[PlaceRecord, ...]) -> None:
        self._records = records
        self._by_name = {record.name: record for record in records}

    def __len__(self) -> int:
        return len(self._records)

    def __iter__(self) -> Iterator[PlaceRecord]:
        return iter(self._records)

    def names(self) -> list[str]:
        return [record.name for record in self._records]

    def get(self, name: str) -> PlaceRecord | None:
        return self._by_name.get(name)

    def records(self) -> tuple[PlaceRecord, ...]:
        return self._records

    def to_dict(self) -> dict[str, dict[str, Any]]:
        return {
            record.name: {
                "latitude": record.latitude,
                "longitude": record.longitude,
                "aliases": list(record.aliases),
            }
            for record in self._records
        }


def _coerce_coordinate(value: Any, *, name: str, field: str, limit: float) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValueError(f"District '{name}' has a non-numeric {field}: {value!r}")
    coordinate = float(value)
    if not -limit <= coordinate <= limit:
        raise ValueError(f"District '{name}' {field} {coordinate} is out of range")
    return coordinate


def parse_gazetteer(payload: Any) -> Gazetteer:
    """Validate a decoded dataset and build the gazetteer from it."""

    if not isinstance(payload, dict) or not isinstance(payload.get("districts"), dict):
        raise ValueError("Gazetteer dataset must contain a 'districts' object.")

    records: list[PlaceRecord] = []
    for name, info in payload["districts"].items():
        if not name.strip():
            raise ValueError("District names must not be blank.")
        if not isinstance(info, dict):
            raise ValueError(f"District '{name}' must map to an object.")
        aliases = info.get("aliases", [])
        if not isinstance(aliases, list) or not all(isinstance(alias, str) and alias.strip() for alias in aliases):
            raise ValueError(f"District '{name}' aliases must be a list of non-empty strings.")
        records.append(
            PlaceRecord(
                name=name,
                latitude=_coerce_coordinate(info.get("latitude"), name=name, field="latitude", limit=90.0),
                longitude=_coerce_coordinate(info.get("longitude"), name=name, field="longitude", limit=180.0),
                aliases=tuple(aliases),
            )
        )

    if not records:
        raise ValueError("Gazetteer dataset contains no districts.")
    return Gazetteer(tuple(records))


@functools.lru_cache(maxsize=1)
def load_gazetteer(source: Optional[Path] = None) -> Gazetteer:
    """Load the gazetteer from the configured JSON file."""

    path = source or settings.gazetteer_file
    if not path.exists():
        raise FileNotFoundError(f"Gazetteer file not found: {path}")

    with path.open(mode="r", encoding="utf-8") as handle:
        try:
            payload = json.load(handle)
        except json.JSONDecodeError as exc:
            raise ValueError(f"Gazetteer file '{path}' is not valid JSON: {exc}") from exc

    gazetteer = parse_gazetteer(payload)
    logger.info(f"Loaded {len(gazetteer)} districts from {path}")
    return gazetteer
