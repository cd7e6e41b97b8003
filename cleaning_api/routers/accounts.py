import logging
from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.security import OAuth2PasswordRequestForm
from motor.motor_asyncio import AsyncIOMotorDatabase

from .. import crud
from ..auth import authenticate_user, create_access_token, get_current_user, hash_password, verify_password
from ..config import Settings, get_settings
from ..database import get_database
from ..models import UserModel, UserRole
from ..schemas import DataResponse, MessageResponse, PasswordUpdate, Token, User, UserCreate

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post("/register", response_model=DataResponse[User], status_code=201)
async def register_user(user: UserCreate, db: AsyncIOMotorDatabase = Depends(get_database)):
    if await crud.get_user_by_email(db, user.email):
        raise HTTPException(status_code=400, detail="User with this email already exists")
    record = UserModel(
        name=user.name,
        email=str(user.email).lower(),
        phone=user.phone,
        role=UserRole.CUSTOMER,
        hashed_password=hash_password(user.password),
    )
    created = await crud.create_user(db, record.model_dump(by_alias=True, exclude={"id"}))
    return {"data": created, "message": "User registered successfully"}


@router.post("/login", response_model=Token)
async def login(
    form_data: OAuth2PasswordRequestForm = Depends(),
    db: AsyncIOMotorDatabase = Depends(get_database),
    settings: Settings = Depends(get_settings),
):
    user = await authenticate_user(db, form_data.username, form_data.password)
    if not user:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Incorrect email or password",
            headers={"WWW-Authenticate": "Bearer"},
        )
    if not user.get("isActive", True):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Account is deactivated")

    await crud.update_by_id(db.users, user["_id"], {"$set": {"lastLogin": datetime.utcnow()}})
    access_token = create_access_token(data={"sub": user["_id"], "role": user.get("role")}, settings=settings)
    logger.info(f"User {user['email']} logged in")
    return {"access_token": access_token, "token_type": "bearer"}


@router.get("/me", response_model=DataResponse[User])
async def read_current_user(current_user: dict = Depends(get_current_user)):
    return {"data": current_user}


@router.post("/logout", response_model=MessageResponse)
async def logout(current_user: dict = Depends(get_current_user)):
    # Tokens are stateless; the client discards its copy.
    logger.info(f"User {current_user['email']} logged out")
    return {"message": "Logged out successfully"}


@router.patch("/update-password", response_model=Token)
async def update_password(
    update: PasswordUpdate,
    db: AsyncIOMotorDatabase = Depends(get_database),
    settings: Settings = Depends(get_settings),
    current_user: dict = Depends(get_current_user),
):
    if not verify_password(update.current_password, current_user["hashedPassword"]):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Current password is incorrect")

    await crud.update_by_id(
        db.users, current_user["_id"], {"$set": {"hashedPassword": hash_password(update.password)}}
    )
    access_token = create_access_token(
        data={"sub": current_user["_id"], "role": current_user.get("role")}, settings=settings
    )
    logger.info(f"User {current_user['email']} changed their password")
    return {"access_token": access_token, "token_type": "bearer"}
