import logging
from datetime import datetime, time
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from motor.motor_asyncio import AsyncIOMotorDatabase

from .. import crud
from ..auth import require_admin, require_staff
from ..config import Settings, get_settings
from ..database import get_database
from ..models import BookingModel, BookingStatus, ServiceType
from ..notification import (
    NotificationDispatcher,
    booking_created_requests,
    booking_status_requests,
    get_dispatcher,
)
from ..schemas import (
    BookingCreate,
    BookingDisplay,
    BookingUpdate,
    DataResponse,
    MessageResponse,
    PaginatedResponse,
)
from ..sequences import BOOKING_NUMBER, SequenceAllocator, get_allocator

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/bookings", tags=["bookings"])

BOOKING_NOT_FOUND = "Booking not found"


@router.post("", response_model=DataResponse[BookingDisplay], status_code=201)
async def create_booking(
    booking: BookingCreate,
    db: AsyncIOMotorDatabase = Depends(get_database),
    settings: Settings = Depends(get_settings),
    allocator: SequenceAllocator = Depends(get_allocator),
    dispatcher: NotificationDispatcher = Depends(get_dispatcher),
):
    if booking.preferred_date < allocator.business_date():
        raise HTTPException(status_code=400, detail="Preferred date cannot be in the past")

    record = BookingModel(
        contact_name=booking.contact_name,
        contact_email=str(booking.contact_email).lower(),
        contact_phone=booking.contact_phone,
        service_type=booking.service_type,
        package_type=booking.package_type or "",
        address=booking.address,
        preferred_date=datetime.combine(booking.preferred_date, time()),
        preferred_time=booking.preferred_time,
        notes=booking.notes or "",
    )
    store = crud.booking_store(db)
    created = await allocator.create_with_identifier(
        BOOKING_NUMBER, store, record.model_dump(by_alias=True, exclude={"id"})
    )

    requests = booking_created_requests(created, settings)
    report = await dispatcher.dispatch_and_record(store, created["_id"], requests)
    logger.info(f"Booking {created['bookingNumber']} created, notifications: {report.outcome_flags()}")

    return {
        "data": created,
        "message": "Booking submitted successfully! We will contact you soon to confirm your appointment.",
    }


@router.get("", response_model=PaginatedResponse[BookingModel])
async def list_bookings(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    status: Optional[BookingStatus] = None,
    service_type: Optional[ServiceType] = Query(None, alias="serviceType"),
    search: Optional[str] = None,
    db: AsyncIOMotorDatabase = Depends(get_database),
    current_user: dict = Depends(require_staff),
):
    bookings, total = await crud.list_bookings(
        db,
        page=page,
        limit=limit,
        status=status.value if status else None,
        service_type=service_type.value if service_type else None,
        search=search,
    )
    return {"count": len(bookings), "pagination": crud.pagination(page, limit, total), "data": bookings}


@router.get("/{booking_id}", response_model=DataResponse[BookingModel])
async def get_booking(
    booking_id: str,
    db: AsyncIOMotorDatabase = Depends(get_database),
    current_user: dict = Depends(require_staff),
):
    booking = await crud.get_by_id(db.bookings, booking_id)
    if booking is None:
        raise HTTPException(status_code=404, detail=BOOKING_NOT_FOUND)
    return {"data": booking}


@router.patch("/{booking_id}", response_model=DataResponse[BookingModel])
async def update_booking(
    booking_id: str,
    update: BookingUpdate,
    db: AsyncIOMotorDatabase = Depends(get_database),
    settings: Settings = Depends(get_settings),
    allocator: SequenceAllocator = Depends(get_allocator),
    dispatcher: NotificationDispatcher = Depends(get_dispatcher),
    current_user: dict = Depends(require_staff),
):
    existing = await crud.get_by_id(db.bookings, booking_id)
    if existing is None:
        raise HTTPException(status_code=404, detail=BOOKING_NOT_FOUND)
    if update.preferred_date is not None and update.preferred_date < allocator.business_date():
        raise HTTPException(status_code=400, detail="Preferred date cannot be in the past")

    changes = update.model_dump(by_alias=True, exclude_unset=True, exclude_none=True)
    if "preferredDate" in changes:
        changes["preferredDate"] = datetime.combine(changes["preferredDate"], time())
    booking = await crud.update_by_id(db.bookings, booking_id, {"$set": changes})

    requests = booking_status_requests(existing.get("status"), booking, settings)
    if requests:
        await dispatcher.dispatch_and_record(crud.booking_store(db), booking_id, requests)
        booking = await crud.get_by_id(db.bookings, booking_id)
    if existing.get("status") != booking.get("status"):
        logger.info(
            f"Booking {booking.get('bookingNumber')} status changed from {existing.get('status')} "
            f"to {booking.get('status')} by {current_user.get('email')}"
        )

    return {"data": booking, "message": "Booking updated successfully"}


@router.delete("/{booking_id}", response_model=MessageResponse)
async def delete_booking(
    booking_id: str,
    db: AsyncIOMotorDatabase = Depends(get_database),
    current_user: dict = Depends(require_admin),
):
    if not await crud.delete_by_id(db.bookings, booking_id):
        raise HTTPException(status_code=404, detail=BOOKING_NOT_FOUND)
    return {"message": "Booking deleted successfully"}
