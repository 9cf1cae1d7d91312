"""District gazetteer API schemas."""

from __future__ import annotations

from typing import List

from pydantic import BaseModel


class DistrictModel(BaseModel):
    latitude: float
    longitude: float
    aliases: List[str]


class DistrictDetailModel(DistrictModel):
    name: str


class DistrictsResponse(BaseModel):
    districts: dict[str, DistrictModel]
    count: int
