import logging
from typing import Literal, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from motor.motor_asyncio import AsyncIOMotorDatabase

from .. import crud
from ..auth import require_admin, require_staff
from ..config import Settings, get_settings
from ..database import get_database
from ..models import TestimonialModel, TestimonialSource, is_auto_approved
from ..schemas import (
    BulkAction,
    BulkUpdateResult,
    DataResponse,
    MessageResponse,
    PaginatedResponse,
    PublicTestimonial,
    PublicTestimonialCreate,
    TestimonialBulkUpdate,
    TestimonialCreate,
    TestimonialUpdate,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/testimonials", tags=["testimonials"])

TESTIMONIAL_NOT_FOUND = "Testimonial not found"

BULK_CHANGES = {
    BulkAction.APPROVE: {"isApproved": True},
    BulkAction.DISAPPROVE: {"isApproved": False},
    BulkAction.ACTIVATE: {"isActive": True},
    BulkAction.DEACTIVATE: {"isActive": False},
    BulkAction.FEATURE: {"isFeatured": True},
    BulkAction.UNFEATURE: {"isFeatured": False},
}


async def _get_or_404(db: AsyncIOMotorDatabase, testimonial_id: str) -> dict:
    testimonial = await crud.get_by_id(db.testimonials, testimonial_id)
    if testimonial is None:
        raise HTTPException(status_code=404, detail=TESTIMONIAL_NOT_FOUND)
    return testimonial


@router.get("", response_model=PaginatedResponse[PublicTestimonial])
async def list_testimonials(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    rating: Optional[int] = Query(None, ge=1, le=5),
    service_type: Optional[str] = Query(None, alias="serviceType"),
    featured: bool = False,
    search: Optional[str] = None,
    db: AsyncIOMotorDatabase = Depends(get_database),
):
    testimonials, total = await crud.list_public_testimonials(
        db, page=page, limit=limit, rating=rating, service_type=service_type, featured=featured, search=search
    )
    return {"count": len(testimonials), "pagination": crud.pagination(page, limit, total), "data": testimonials}


@router.get("/featured", response_model=DataResponse[list[PublicTestimonial]])
async def list_featured_testimonials(
    limit: int = Query(5, ge=1, le=50),
    db: AsyncIOMotorDatabase = Depends(get_database),
):
    return {"data": await crud.list_featured_testimonials(db, limit=limit)}


@router.post("/public", response_model=DataResponse[PublicTestimonial], status_code=201)
async def create_public_testimonial(
    testimonial: PublicTestimonialCreate,
    db: AsyncIOMotorDatabase = Depends(get_database),
    settings: Settings = Depends(get_settings),
):
    approved = settings.TESTIMONIAL_AUTO_APPROVE
    record = TestimonialModel(
        **testimonial.model_dump(),
        source=TestimonialSource.WEBSITE,
        is_active=True,
        is_approved=approved,
        is_featured=False,
    )
    created = await crud.create_testimonial(db, record.model_dump(by_alias=True, exclude={"id"}))
    logger.info(f"Public testimonial {created['_id']} submitted, approved={approved}")
    if approved:
        message = "Thank you for your review!"
    else:
        message = "Thank you for your review! It will be published after approval."
    return {"data": created, "message": message}


@router.get("/admin", response_model=PaginatedResponse[TestimonialModel])
async def list_all_testimonials(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    status: Optional[Literal["pending", "approved", "inactive"]] = None,
    rating: Optional[int] = Query(None, ge=1, le=5),
    service_type: Optional[str] = Query(None, alias="serviceType"),
    search: Optional[str] = None,
    sort_by: Literal["createdAt", "rating", "sortOrder", "name"] = Query("createdAt", alias="sortBy"),
    sort_order: Literal["asc", "desc"] = Query("desc", alias="sortOrder"),
    db: AsyncIOMotorDatabase = Depends(get_database),
    current_user: dict = Depends(require_staff),
):
    testimonials, total = await crud.list_all_testimonials(
        db,
        page=page,
        limit=limit,
        status=status,
        rating=rating,
        service_type=service_type,
        search=search,
        sort_by=sort_by,
        descending=sort_order == "desc",
    )
    return {"count": len(testimonials), "pagination": crud.pagination(page, limit, total), "data": testimonials}


@router.post("", response_model=DataResponse[TestimonialModel], status_code=201)
async def create_testimonial(
    testimonial: TestimonialCreate,
    db: AsyncIOMotorDatabase = Depends(get_database),
    current_user: dict = Depends(require_staff),
):
    record = TestimonialModel(**testimonial.model_dump(), created_by=current_user["_id"])
    if is_auto_approved(record.rating, record.source):
        record.is_approved = True
    created = await crud.create_testimonial(db, record.model_dump(by_alias=True, exclude={"id"}))
    return {"data": created, "message": "Testimonial created successfully"}


@router.patch("/bulk", response_model=DataResponse[BulkUpdateResult])
async def bulk_update_testimonials(
    bulk: TestimonialBulkUpdate,
    db: AsyncIOMotorDatabase = Depends(get_database),
    current_user: dict = Depends(require_admin),
):
    changes = {**BULK_CHANGES[BulkAction(bulk.action)], "updatedBy": current_user["_id"]}
    matched, modified = await crud.bulk_update_testimonials(db, bulk.ids, changes)
    return {
        "data": {"matched": matched, "modified": modified},
        "message": f"{modified} testimonials updated successfully",
    }


@router.get("/{testimonial_id}", response_model=DataResponse[TestimonialModel])
async def get_testimonial(
    testimonial_id: str,
    db: AsyncIOMotorDatabase = Depends(get_database),
    current_user: dict = Depends(require_staff),
):
    return {"data": await _get_or_404(db, testimonial_id)}


@router.patch("/{testimonial_id}", response_model=DataResponse[TestimonialModel])
async def update_testimonial(
    testimonial_id: str,
    update: TestimonialUpdate,
    db: AsyncIOMotorDatabase = Depends(get_database),
    current_user: dict = Depends(require_staff),
):
    existing = await _get_or_404(db, testimonial_id)
    changes = update.model_dump(by_alias=True, exclude_unset=True, exclude_none=True)
    rating = changes.get("rating", existing.get("rating", 0))
    source = changes.get("source", existing.get("source"))
    if is_auto_approved(rating, source):
        changes["isApproved"] = True
    changes["updatedBy"] = current_user["_id"]
    testimonial = await crud.update_by_id(db.testimonials, testimonial_id, {"$set": changes})
    return {"data": testimonial, "message": "Testimonial updated successfully"}


@router.patch("/{testimonial_id}/approve", response_model=DataResponse[TestimonialModel])
async def approve_testimonial(
    testimonial_id: str,
    db: AsyncIOMotorDatabase = Depends(get_database),
    current_user: dict = Depends(require_staff),
):
    await _get_or_404(db, testimonial_id)
    testimonial = await crud.update_by_id(
        db.testimonials, testimonial_id, {"$set": {"isApproved": True, "updatedBy": current_user["_id"]}}
    )
    return {"data": testimonial, "message": "Testimonial approved successfully"}


@router.patch("/{testimonial_id}/featured", response_model=DataResponse[TestimonialModel])
async def toggle_featured(
    testimonial_id: str,
    db: AsyncIOMotorDatabase = Depends(get_database),
    current_user: dict = Depends(require_staff),
):
    existing = await _get_or_404(db, testimonial_id)
    featured = not existing.get("isFeatured", False)
    testimonial = await crud.update_by_id(
        db.testimonials, testimonial_id, {"$set": {"isFeatured": featured, "updatedBy": current_user["_id"]}}
    )
    state = "featured" if featured else "unfeatured"
    return {"data": testimonial, "message": f"Testimonial {state} successfully"}


@router.delete("/{testimonial_id}", response_model=MessageResponse)
async def delete_testimonial(
    testimonial_id: str,
    db: AsyncIOMotorDatabase = Depends(get_database),
    current_user: dict = Depends(require_admin),
):
    if not await crud.delete_by_id(db.testimonials, testimonial_id):
        raise HTTPException(status_code=404, detail=TESTIMONIAL_NOT_FOUND)
    return {"message": "Testimonial deleted successfully"}
