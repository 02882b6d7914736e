"""Location API endpoints."""
from fastapi import APIRouter, HTTPException, status

from shoptracker.api.deps import DB
from shoptracker.schemas.location import LocationCreate, LocationResponse
from shoptracker.services.location_service import LocationService


router = APIRouter(tags=["Locations"])


@router.get("", response_model=list[LocationResponse])
async def list_locations(db: DB):
    """Locations in sequence order."""
    service = LocationService(db)
    locations = await service.list_locations()
    return [LocationResponse.model_validate(loc) for loc in locations]


@router.post("", response_model=LocationResponse, status_code=status.HTTP_201_CREATED)
async def create_location(data: LocationCreate, db: DB):
    service = LocationService(db)
    location = await service.create_location(data)
    return LocationResponse.model_validate(location)


@router.get("/{location_id}", response_model=LocationResponse)
async def get_location(location_id: int, db: DB):
    """Get location by ID."""
    service = LocationService(db)
    location = await service.get_location(location_id)

    if not location:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Location not found"
        )

    return LocationResponse.model_validate(location)
