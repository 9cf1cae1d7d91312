"""District gazetteer endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Query, status

from ...data.gazetteer import Gazetteer
from ...schemas.accounts import LocationMatchModel
from ...schemas.districts import DistrictDetailModel, DistrictModel, DistrictsResponse
from ...services.locations import match_address
from ..dependencies import get_gazetteer

router = APIRouter(prefix="/districts", tags=["districts"])


@router.get("", response_model=DistrictsResponse, status_code=status.HTTP_200_OK)
def list_districts(gazetteer: Gazetteer = Depends(get_gazetteer)) -> DistrictsResponse:
    districts = {name: DistrictModel(**info) for name, info in gazetteer.to_dict().items()}
    return DistrictsResponse(districts=districts, count=len(districts))


@router.get("/match", response_model=LocationMatchModel, status_code=status.HTTP_200_OK)
def match_district(
    address: str = Query(..., min_length=1, description="Free-text address to resolve"),
    gazetteer: Gazetteer = Depends(get_gazetteer),
) -> LocationMatchModel:
    """Resolve an address the same way signup does."""
    match = match_address(address, gazetteer)
    if match is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"No district found in address '{address}'",
        )
    return LocationMatchModel(**match.to_dict())


@router.get("/{name}", response_model=DistrictDetailModel, status_code=status.HTTP_200_OK)
def get_district(name: str, gazetteer: Gazetteer = Depends(get_gazetteer)) -> DistrictDetailModel:
    record = gazetteer.get(name)
    if record is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"District '{name}' not found")
    return DistrictDetailModel(
        name=record.name,
        latitude=record.latitude,
        longitude=record.longitude,
        aliases=list(record.aliases),
    )
