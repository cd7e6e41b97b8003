import logging
from datetime import date, datetime, time
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from motor.motor_asyncio import AsyncIOMotorDatabase

from .. import crud
from ..auth import require_admin, require_staff
from ..config import Settings, get_settings
from ..database import get_database
from ..models import (
    ConcernType,
    ContactModel,
    ContactNote,
    ContactStatus,
    Priority,
    concern_type_label,
    default_priority,
)
from ..notification import Channel, NotificationDispatcher, contact_submitted_requests, get_dispatcher
from ..schemas import (
    ContactCreate,
    ContactSubmitResponse,
    ContactUpdate,
    DataResponse,
    MessageResponse,
    PaginatedResponse,
)
from ..sequences import CONTACT_NUMBER, SequenceAllocator, get_allocator
from ..sms import format_phone_number, validate_phone_number

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/contact", tags=["contact"])

CONTACT_NOT_FOUND = "Contact submission not found"
RESPONDED_STATUSES = {ContactStatus.IN_PROGRESS.value, ContactStatus.RESOLVED.value}


def _years_from(day: date, years: int) -> date:
    try:
        return day.replace(year=day.year + years)
    except ValueError:
        # 29 February in a non-leap target year
        return day.replace(year=day.year + years, day=28)


def _check_service_date(service_date: date, today: date):
    if service_date < _years_from(today, -1):
        raise HTTPException(status_code=400, detail="Service date cannot be more than 1 year in the past")
    if service_date > _years_from(today, 1):
        raise HTTPException(status_code=400, detail="Service date cannot be more than 1 year in the future")


@router.post("", response_model=ContactSubmitResponse, status_code=201)
async def submit_contact_form(
    contact: ContactCreate,
    db: AsyncIOMotorDatabase = Depends(get_database),
    settings: Settings = Depends(get_settings),
    allocator: SequenceAllocator = Depends(get_allocator),
    dispatcher: NotificationDispatcher = Depends(get_dispatcher),
):
    if not validate_phone_number(contact.phone):
        raise HTTPException(status_code=400, detail="Please provide a valid phone number")
    if contact.service_date:
        _check_service_date(contact.service_date, allocator.business_date())

    record = ContactModel(
        name=contact.name,
        email=str(contact.email).lower(),
        phone=format_phone_number(contact.phone),
        concern_type=contact.concern_type,
        subject=contact.subject,
        message=contact.message,
        preferred_contact=contact.preferred_contact,
        service_date=datetime.combine(contact.service_date, time()) if contact.service_date else None,
        service_location=contact.service_location or None,
        reference_number=contact.reference_number or None,
        priority=default_priority(contact.concern_type),
    )
    store = crud.contact_store(db)
    created = await allocator.create_with_identifier(
        CONTACT_NUMBER, store, record.model_dump(by_alias=True, exclude={"id"})
    )

    requests = contact_submitted_requests(created, settings)
    report = await dispatcher.dispatch_and_record(store, created["_id"], requests)

    display = {
        **created,
        "id": created["_id"],
        "concernTypeLabel": concern_type_label(created["concernType"]),
    }
    return {
        "data": display,
        "message": "Contact form submitted successfully! We will respond within 24 hours.",
        "smsNotifications": {
            "adminNotified": report.succeeded(Channel.ADMIN_SMS),
            "customerConfirmed": report.succeeded(Channel.CUSTOMER_SMS),
        },
    }


@router.get("", response_model=PaginatedResponse[ContactModel])
async def list_contact_submissions(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    status: Optional[ContactStatus] = None,
    concern_type: Optional[ConcernType] = Query(None, alias="concernType"),
    priority: Optional[Priority] = None,
    search: Optional[str] = None,
    db: AsyncIOMotorDatabase = Depends(get_database),
    current_user: dict = Depends(require_staff),
):
    contacts, total = await crud.list_contacts(
        db,
        page=page,
        limit=limit,
        status=status.value if status else None,
        concern_type=concern_type.value if concern_type else None,
        priority=priority.value if priority else None,
        search=search,
    )
    return {"count": len(contacts), "pagination": crud.pagination(page, limit, total), "data": contacts}


@router.get("/{contact_id}", response_model=DataResponse[ContactModel])
async def get_contact_submission(
    contact_id: str,
    db: AsyncIOMotorDatabase = Depends(get_database),
    current_user: dict = Depends(require_staff),
):
    contact = await crud.get_by_id(db.contacts, contact_id)
    if contact is None:
        raise HTTPException(status_code=404, detail=CONTACT_NOT_FOUND)
    return {"data": contact}


@router.patch("/{contact_id}", response_model=DataResponse[ContactModel])
async def update_contact_submission(
    contact_id: str,
    update: ContactUpdate,
    db: AsyncIOMotorDatabase = Depends(get_database),
    current_user: dict = Depends(require_staff),
):
    existing = await crud.get_by_id(db.contacts, contact_id)
    if existing is None:
        raise HTTPException(status_code=404, detail=CONTACT_NOT_FOUND)

    changes = update.model_dump(by_alias=True, exclude_unset=True, exclude_none=True, exclude={"notes"})
    if changes.get("status") in RESPONDED_STATUSES and not existing.get("respondedAt"):
        changes["respondedAt"] = datetime.utcnow()

    operations = {"$set": changes}
    if update.notes:
        note = ContactNote(content=update.notes, added_by=current_user["_id"])
        operations["$push"] = {"notes": note.model_dump(by_alias=True)}

    contact = await crud.update_by_id(db.contacts, contact_id, operations)
    return {"data": contact, "message": "Contact submission updated successfully"}


@router.delete("/{contact_id}", response_model=MessageResponse)
async def delete_contact_submission(
    contact_id: str,
    db: AsyncIOMotorDatabase = Depends(get_database),
    current_user: dict = Depends(require_admin),
):
    if not await crud.delete_by_id(db.contacts, contact_id):
        raise HTTPException(status_code=404, detail=CONTACT_NOT_FOUND)
    return {"message": "Contact submission deleted successfully"}
