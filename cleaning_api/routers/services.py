from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from motor.motor_asyncio import AsyncIOMotorDatabase

from .. import crud
from ..auth import require_admin
from ..database import get_database
from ..models import ServiceCategory, ServiceModel
from ..schemas import DataResponse, MessageResponse, ServiceCreate, ServiceUpdate

router = APIRouter(prefix="/services", tags=["services"])

SERVICE_NOT_FOUND = "Service not found"


@router.get("", response_model=DataResponse[list[ServiceModel]])
async def list_services(
    category: Optional[ServiceCategory] = None,
    featured: Optional[bool] = None,
    search: Optional[str] = None,
    db: AsyncIOMotorDatabase = Depends(get_database),
):
    services = await crud.list_services(
        db, category=category.value if category else None, featured=featured, search=search
    )
    return {"data": services}


@router.get("/featured", response_model=DataResponse[list[ServiceModel]])
async def list_featured_services(db: AsyncIOMotorDatabase = Depends(get_database)):
    return {"data": await crud.list_services(db, featured=True)}


@router.get("/category/{category}", response_model=DataResponse[list[ServiceModel]])
async def list_services_by_category(category: ServiceCategory, db: AsyncIOMotorDatabase = Depends(get_database)):
    return {"data": await crud.list_services(db, category=category.value)}


@router.get("/{service_id}", response_model=DataResponse[ServiceModel])
async def get_service(service_id: str, db: AsyncIOMotorDatabase = Depends(get_database)):
    """Look a service up by id, falling back to its slug."""
    service = await crud.get_by_id(db.services, service_id)
    if service is None:
        service = await crud.get_service_by_slug(db, service_id)
    if service is None or not service.get("isActive", True):
        raise HTTPException(status_code=404, detail=SERVICE_NOT_FOUND)
    return {"data": service}


@router.post("", response_model=DataResponse[ServiceModel], status_code=201)
async def create_service(
    service: ServiceCreate,
    db: AsyncIOMotorDatabase = Depends(get_database),
    current_user: dict = Depends(require_admin),
):
    record = ServiceModel(
        **service.model_dump(),
        slug=crud.slugify(service.name),
        created_by=current_user["_id"],
    )
    created = await crud.create_service(db, record.model_dump(by_alias=True, exclude={"id"}))
    return {"data": created, "message": "Service created successfully"}


@router.patch("/{service_id}", response_model=DataResponse[ServiceModel])
async def update_service(
    service_id: str,
    update: ServiceUpdate,
    db: AsyncIOMotorDatabase = Depends(get_database),
    current_user: dict = Depends(require_admin),
):
    changes = update.model_dump(by_alias=True, exclude_unset=True, exclude_none=True)
    if "name" in changes:
        changes["slug"] = crud.slugify(changes["name"])
    changes["updatedBy"] = current_user["_id"]
    service = await crud.update_by_id(db.services, service_id, {"$set": changes})
    if service is None:
        raise HTTPException(status_code=404, detail=SERVICE_NOT_FOUND)
    return {"data": service, "message": "Service updated successfully"}


@router.delete("/{service_id}", response_model=MessageResponse)
async def delete_service(
    service_id: str,
    db: AsyncIOMotorDatabase = Depends(get_database),
    current_user: dict = Depends(require_admin),
):
    if not await crud.delete_by_id(db.services, service_id):
        raise HTTPException(status_code=404, detail=SERVICE_NOT_FOUND)
    return {"message": "Service deleted successfully"}
