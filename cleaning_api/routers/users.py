import logging
from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException
from motor.motor_asyncio import AsyncIOMotorDatabase

from .. import crud
from ..auth import get_current_user
from ..database import get_database
from ..schemas import DataResponse, MessageResponse, PreferencesUpdate, ProfileUpdate, User, UserDetail

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/users", tags=["users"])


@router.get("/profile", response_model=DataResponse[UserDetail])
async def read_profile(
    db: AsyncIOMotorDatabase = Depends(get_database),
    current_user: dict = Depends(get_current_user),
):
    stats = await crud.booking_stats(db, current_user["email"])
    return {"data": {"user": current_user, "stats": stats}}


@router.patch("/profile", response_model=DataResponse[User])
async def update_profile(
    update: ProfileUpdate,
    db: AsyncIOMotorDatabase = Depends(get_database),
    current_user: dict = Depends(get_current_user),
):
    changes = update.model_dump(by_alias=True, exclude_unset=True, exclude_none=True)
    user = await crud.update_by_id(db.users, current_user["_id"], {"$set": changes})
    return {"data": user, "message": "Profile updated successfully"}


@router.patch("/preferences", response_model=DataResponse[User])
async def update_preferences(
    update: PreferencesUpdate,
    db: AsyncIOMotorDatabase = Depends(get_database),
    current_user: dict = Depends(get_current_user),
):
    changes = {}
    if update.service_types is not None:
        changes["preferences.serviceTypes"] = update.service_types
    if update.notifications is not None:
        for key, value in update.notifications.model_dump(exclude_none=True).items():
            changes[f"preferences.notifications.{key}"] = value
    user = await crud.update_by_id(db.users, current_user["_id"], {"$set": changes})
    return {"data": user, "message": "Preferences updated successfully"}


@router.delete("/account", response_model=MessageResponse)
async def delete_account(
    db: AsyncIOMotorDatabase = Depends(get_database),
    current_user: dict = Depends(get_current_user),
):
    if await crud.count_active_bookings(db, current_user["email"]) > 0:
        raise HTTPException(
            status_code=400,
            detail="Cannot delete account with active bookings. Please cancel or complete all bookings first.",
        )

    # Soft delete; the email is released so it can be registered again.
    released_email = f"deleted_{int(datetime.utcnow().timestamp())}_{current_user['email']}"
    await crud.update_by_id(
        db.users, current_user["_id"], {"$set": {"isActive": False, "email": released_email}}
    )
    logger.info(f"User {current_user['email']} deleted their account")
    return {"message": "Account deactivated successfully"}
