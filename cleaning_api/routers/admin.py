import asyncio
import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from motor.motor_asyncio import AsyncIOMotorDatabase

from .. import crud
from ..auth import require_admin
from ..config import Settings, get_settings
from ..database import get_database
from ..models import UserRole
from ..notification import NotificationDispatcher, get_dispatcher
from ..schemas import (
    DataResponse,
    PaginatedResponse,
    RoleUpdate,
    StaffMember,
    StaffUpdate,
    TestSmsReport,
    TestSmsRequest,
    User,
    UserDetail,
)
from ..templates import Template, render

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin", tags=["admin"])

USER_NOT_FOUND = "User not found"
STAFF_NOT_FOUND = "Staff member not found"


def _resolve_template(name: str) -> Template:
    if name in Template.__members__:
        template = Template[name]
    else:
        try:
            template = Template(name)
        except ValueError:
            raise HTTPException(status_code=400, detail=f"Unknown template: {name}")
    if not template.is_sms:
        raise HTTPException(status_code=400, detail=f"{template.value} is not an SMS template")
    return template


def _staff_member(user: dict) -> dict:
    preferences = user.get("preferences") or {}
    return {
        **user,
        "serviceTypes": preferences.get("serviceTypes", []),
        "smsNotifications": (preferences.get("notifications") or {}).get("sms", True),
    }


@router.get("/users", response_model=PaginatedResponse[User])
async def list_users(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    role: Optional[UserRole] = None,
    db: AsyncIOMotorDatabase = Depends(get_database),
    current_user: dict = Depends(require_admin),
):
    users, total = await crud.list_users(db, page=page, limit=limit, role=role.value if role else None)
    return {"count": len(users), "pagination": crud.pagination(page, limit, total), "data": users}


@router.get("/users/{user_id}", response_model=DataResponse[UserDetail])
async def get_user(
    user_id: str,
    db: AsyncIOMotorDatabase = Depends(get_database),
    current_user: dict = Depends(require_admin),
):
    user = await crud.get_by_id(db.users, user_id)
    if user is None:
        raise HTTPException(status_code=404, detail=USER_NOT_FOUND)
    return {"data": {"user": user, "stats": await crud.booking_stats(db, user["email"])}}


@router.patch("/users/{user_id}/role", response_model=DataResponse[User])
async def update_user_role(
    user_id: str,
    update: RoleUpdate,
    db: AsyncIOMotorDatabase = Depends(get_database),
    current_user: dict = Depends(require_admin),
):
    user = await crud.update_by_id(db.users, user_id, {"$set": {"role": update.role}})
    if user is None:
        raise HTTPException(status_code=404, detail=USER_NOT_FOUND)
    logger.info(f"{current_user['email']} changed role of {user['email']} to {update.role}")
    return {"data": user, "message": "User role updated successfully"}


@router.patch("/users/{user_id}/deactivate", response_model=DataResponse[User])
async def deactivate_user(
    user_id: str,
    db: AsyncIOMotorDatabase = Depends(get_database),
    current_user: dict = Depends(require_admin),
):
    if user_id == current_user["_id"]:
        raise HTTPException(status_code=400, detail="You cannot deactivate your own account")
    user = await crud.update_by_id(db.users, user_id, {"$set": {"isActive": False}})
    if user is None:
        raise HTTPException(status_code=404, detail=USER_NOT_FOUND)
    return {"data": user, "message": "User deactivated successfully"}


@router.get("/staff", response_model=DataResponse[list[StaffMember]])
async def list_staff(
    db: AsyncIOMotorDatabase = Depends(get_database),
    current_user: dict = Depends(require_admin),
):
    staff = await crud.list_staff(db)
    return {"data": [_staff_member(user) for user in staff]}


@router.patch("/staff/{staff_id}", response_model=DataResponse[StaffMember])
async def update_staff(
    staff_id: str,
    update: StaffUpdate,
    db: AsyncIOMotorDatabase = Depends(get_database),
    current_user: dict = Depends(require_admin),
):
    staff = await crud.get_by_id(db.users, staff_id)
    if staff is None:
        raise HTTPException(status_code=404, detail=STAFF_NOT_FOUND)
    if staff.get("role") != UserRole.STAFF.value:
        raise HTTPException(status_code=400, detail="User is not a staff member")

    changes = {}
    if update.service_types is not None:
        changes["preferences.serviceTypes"] = update.service_types
    if update.sms_notifications is not None:
        changes["preferences.notifications.sms"] = update.sms_notifications
    if update.phone is not None:
        changes["phone"] = update.phone
    staff = await crud.update_by_id(db.users, staff_id, {"$set": changes})
    logger.info(f"{current_user['email']} updated staff member {staff['email']}")
    return {"data": _staff_member(staff), "message": "Staff member updated successfully"}


@router.post("/test-sms", response_model=DataResponse[TestSmsReport])
async def send_test_sms(
    request: TestSmsRequest,
    db: AsyncIOMotorDatabase = Depends(get_database),
    settings: Settings = Depends(get_settings),
    dispatcher: NotificationDispatcher = Depends(get_dispatcher),
    current_user: dict = Depends(require_admin),
):
    """Send a raw or templated SMS to check the provider configuration.

    With a ``serviceType`` the same message also goes to every active staff member
    who takes SMS alerts for that service type, greeted by name.
    """
    to = request.to or settings.ADMIN_PHONE_NUMBER
    if not to:
        raise HTTPException(status_code=400, detail="No recipient given and admin phone number not configured")

    if request.template:
        body = render(_resolve_template(request.template), request.data).body
    elif request.message:
        body = request.message
    elif request.service_type:
        body = (
            f"🧹 TEST SMS: This is a test notification for {request.service_type} service bookings. "
            "SMS system is working correctly!"
        )
    else:
        raise HTTPException(status_code=400, detail="Provide either a message or a template")

    receipt = await dispatcher.send_sms(to, body)

    staff_results = []
    if request.service_type:
        staff = await crud.find_staff_for_service(db, request.service_type)
        receipts = await asyncio.gather(
            *(dispatcher.send_sms(member["phone"], f"Hi {member['name']}! {body}") for member in staff)
        )
        for member, staff_receipt in zip(staff, receipts):
            staff_results.append({
                "name": member["name"],
                "phone": member["phone"],
                "success": staff_receipt.success,
                "messageId": staff_receipt.message_id,
                "error": staff_receipt.error,
            })
        logger.info(f"Test SMS for {request.service_type} sent to {len(staff_results)} staff member(s)")

    message = "Test SMS sent successfully" if receipt.success else "Failed to send test SMS"
    return {
        "success": receipt.success,
        "data": {
            "success": receipt.success,
            "messageId": receipt.message_id,
            "error": receipt.error,
            "to": to,
            "staff": staff_results,
        },
        "message": message,
    }
