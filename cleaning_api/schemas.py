from datetime import date, datetime
from enum import Enum
from typing import Any, Generic, Optional, TypeVar

from pydantic import ConfigDict, EmailStr, Field

from .models import (
    BookingStatus,
    CamelModel,
    ConcernType,
    ContactStatus,
    PreferredContact,
    PreferredTime,
    Priority,
    ServiceCategory,
    ServiceDescription,
    ServicePackage,
    ServicePricing,
    ServiceType,
    TestimonialServiceType,
    TestimonialSource,
    UserPreferences,
    UserRole,
)

T = TypeVar("T")

IMAGE_URL_PATTERN = r"^https?://\S+$"


class InputModel(CamelModel):
    model_config = ConfigDict(str_strip_whitespace=True)


class Pagination(CamelModel):
    page: int
    limit: int
    pages: int
    total: int


class DataResponse(CamelModel, Generic[T]):
    success: bool = True
    data: T
    message: Optional[str] = None


class PaginatedResponse(CamelModel, Generic[T]):
    success: bool = True
    count: int
    pagination: Pagination
    data: list[T]


class MessageResponse(CamelModel):
    success: bool = True
    message: str


# Bookings

class BookingCreate(InputModel):
    contact_name: str = Field(..., min_length=1, max_length=100)
    contact_email: EmailStr
    contact_phone: str = Field(..., min_length=1)
    service_type: ServiceType
    package_type: Optional[str] = None
    address: str = Field(..., min_length=1)
    preferred_date: date
    preferred_time: PreferredTime
    notes: Optional[str] = Field(None, max_length=1000)

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "contactName": "Jane Doe",
                "contactEmail": "jane@example.com",
                "contactPhone": "(555) 234-5678",
                "serviceType": "residential",
                "packageType": "deep-clean",
                "address": "12 Main St, Springfield",
                "preferredDate": "2026-11-02",
                "preferredTime": "morning",
                "notes": "Two dogs, friendly",
            }
        }
    )


class BookingUpdate(InputModel):
    status: Optional[BookingStatus] = None
    admin_notes: Optional[str] = None
    package_type: Optional[str] = None
    address: Optional[str] = None
    preferred_date: Optional[date] = None
    preferred_time: Optional[PreferredTime] = None
    notes: Optional[str] = Field(None, max_length=1000)


class BookingDisplay(CamelModel):
    """Customer facing view of a booking; notification flags and admin notes stay private."""

    booking_number: Optional[str] = None
    contact_name: str
    contact_email: str
    contact_phone: str
    service_type: ServiceType
    package_type: str = ""
    address: str
    preferred_date: datetime
    preferred_time: PreferredTime
    notes: str = ""
    status: BookingStatus
    submitted_at: datetime


# Contact submissions

class ContactCreate(InputModel):
    name: str = Field(..., min_length=1, max_length=100)
    email: EmailStr
    phone: str = Field(..., min_length=1)
    concern_type: ConcernType
    subject: str = Field(..., min_length=1, max_length=200)
    message: str = Field(..., min_length=1, max_length=2000)
    preferred_contact: PreferredContact = PreferredContact.EMAIL
    service_date: Optional[date] = None
    service_location: Optional[str] = Field(None, max_length=300)
    reference_number: Optional[str] = Field(None, max_length=50)


class ContactUpdate(InputModel):
    status: Optional[ContactStatus] = None
    assigned_to: Optional[str] = None
    priority: Optional[Priority] = None
    notes: Optional[str] = None


class ContactDisplay(CamelModel):
    id: str
    contact_number: Optional[str] = None
    name: str
    email: str
    phone: str
    concern_type: ConcernType
    concern_type_label: str
    subject: str
    message: str
    preferred_contact: PreferredContact
    service_date: Optional[datetime] = None
    service_location: Optional[str] = None
    reference_number: Optional[str] = None
    status: ContactStatus
    priority: Priority
    submitted_at: datetime


class SmsNotifications(CamelModel):
    admin_notified: bool
    customer_confirmed: bool


class ContactSubmitResponse(DataResponse[ContactDisplay]):
    sms_notifications: SmsNotifications


# Services

class ServiceCreate(InputModel):
    name: str = Field(..., min_length=1, max_length=100)
    category: ServiceCategory
    description: ServiceDescription
    pricing: ServicePricing
    packages: list[ServicePackage] = Field(default_factory=list)
    is_active: bool = True
    is_featured: bool = False
    sort_order: int = 0
    tags: list[str] = Field(default_factory=list)


class ServiceUpdate(InputModel):
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    category: Optional[ServiceCategory] = None
    description: Optional[ServiceDescription] = None
    pricing: Optional[ServicePricing] = None
    packages: Optional[list[ServicePackage]] = None
    is_active: Optional[bool] = None
    is_featured: Optional[bool] = None
    sort_order: Optional[int] = None
    tags: Optional[list[str]] = None


# Testimonials

class TestimonialCreate(InputModel):
    name: str = Field(..., min_length=1, max_length=100)
    rating: int = Field(..., ge=1, le=5)
    text: str = Field(..., min_length=1, max_length=1000)
    location: str = Field(..., min_length=1, max_length=100)
    image: str = Field(..., pattern=IMAGE_URL_PATTERN)
    service_type: TestimonialServiceType = TestimonialServiceType.GENERAL
    customer_email: Optional[EmailStr] = None
    customer_phone: Optional[str] = None
    source: TestimonialSource = TestimonialSource.MANUAL
    is_active: bool = True
    is_approved: bool = False
    is_featured: bool = False
    sort_order: int = 0


class PublicTestimonialCreate(InputModel):
    name: str = Field(..., min_length=1, max_length=100)
    rating: int = Field(..., ge=1, le=5)
    text: str = Field(..., min_length=1, max_length=1000)
    location: str = Field(..., min_length=1, max_length=100)
    image: str = Field(..., pattern=IMAGE_URL_PATTERN)
    service_type: TestimonialServiceType = TestimonialServiceType.GENERAL
    customer_email: Optional[EmailStr] = None
    customer_phone: Optional[str] = None


class TestimonialUpdate(InputModel):
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    rating: Optional[int] = Field(None, ge=1, le=5)
    text: Optional[str] = Field(None, min_length=1, max_length=1000)
    location: Optional[str] = Field(None, min_length=1, max_length=100)
    image: Optional[str] = Field(None, pattern=IMAGE_URL_PATTERN)
    service_type: Optional[TestimonialServiceType] = None
    customer_email: Optional[EmailStr] = None
    customer_phone: Optional[str] = None
    source: Optional[TestimonialSource] = None
    is_active: Optional[bool] = None
    is_approved: Optional[bool] = None
    is_featured: Optional[bool] = None
    sort_order: Optional[int] = None


class PublicTestimonial(CamelModel):
    id: str = Field(..., alias="_id")
    name: str
    rating: int
    text: str
    location: str
    image: str
    is_featured: bool = False
    sort_order: int = 0
    service_type: TestimonialServiceType
    source: TestimonialSource
    created_at: Optional[datetime] = None


class BulkAction(str, Enum):
    APPROVE = "approve"
    DISAPPROVE = "disapprove"
    ACTIVATE = "activate"
    DEACTIVATE = "deactivate"
    FEATURE = "feature"
    UNFEATURE = "unfeature"


class TestimonialBulkUpdate(InputModel):
    ids: list[str] = Field(..., min_length=1)
    action: BulkAction


class BulkUpdateResult(CamelModel):
    matched: int
    modified: int
# Users and auth

class UserCreate(InputModel):
    name: str = Field(..., min_length=1, max_length=100)
    email: EmailStr
    password: str = Field(..., min_length=6)
    phone: Optional[str] = None


class User(CamelModel):
    id: str = Field(..., alias="_id")
    name: str
    email: str
    phone: Optional[str] = None
    address: Optional[str] = None
    role: UserRole
    is_active: bool
    preferences: UserPreferences = Field(default_factory=UserPreferences)
    last_login: Optional[datetime] = None
    created_at: Optional[datetime] = None


class BookingStats(CamelModel):
    total_bookings: int
    bookings_by_status: dict[str, int]


class UserDetail(CamelModel):
    user: User
    stats: BookingStats


class ProfileUpdate(InputModel):
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    phone: Optional[str] = None
    address: Optional[str] = Field(None, max_length=300)


class NotificationPreferencesUpdate(InputModel):
    email: Optional[bool] = None
    sms: Optional[bool] = None
    marketing: Optional[bool] = None


class PreferencesUpdate(InputModel):
    service_types: Optional[list[ServiceType]] = None
    notifications: Optional[NotificationPreferencesUpdate] = None


class PasswordUpdate(InputModel):
    current_password: str
    password: str = Field(..., min_length=6)


class RoleUpdate(InputModel):
    role: UserRole


class StaffUpdate(InputModel):
    service_types: Optional[list[ServiceType]] = None
    sms_notifications: Optional[bool] = None
    phone: Optional[str] = Field(None, min_length=1)


class StaffMember(CamelModel):
    id: str = Field(..., alias="_id")
    name: str
    email: str
    phone: Optional[str] = None
    service_types: list[ServiceType] = Field(default_factory=list)
    sms_notifications: bool = True
    is_active: bool = True


class Token(CamelModel):
    access_token: str
    token_type: str = "bearer"

    model_config = ConfigDict(alias_generator=None)


# Admin SMS check

class TestSmsRequest(InputModel):
    to: Optional[str] = None
    message: Optional[str] = Field(None, min_length=1)
    template: Optional[str] = None
    data: dict[str, Any] = Field(default_factory=dict)
    service_type: Optional[ServiceType] = None


class DeliveryReceiptOut(CamelModel):
    success: bool
    message_id: Optional[str] = None
    error: Optional[str] = None


class StaffSmsResult(DeliveryReceiptOut):
    name: str
    phone: str


class TestSmsReport(DeliveryReceiptOut):
    """Outcome of the admin check message plus one entry per staff member texted."""

    to: str
    staff: list[StaffSmsResult] = Field(default_factory=list)
