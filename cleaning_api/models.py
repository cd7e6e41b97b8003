from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Documents are stored with camelCase keys; attributes stay snake_case."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        use_enum_values=True,
        validate_default=True,
    )


class ServiceType(str, Enum):
    COMMERCIAL = "commercial"
    RESIDENTIAL = "residential"
    AIRBNB = "airbnb"


class BookingStatus(str, Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class PreferredTime(str, Enum):
    MORNING = "morning"
    AFTERNOON = "afternoon"
    EVENING = "evening"


class ConcernType(str, Enum):
    COMPLAINT = "complaint"
    FEEDBACK = "feedback"
    SERVICE_ISSUE = "service-issue"
    GENERAL = "general"


class Priority(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    URGENT = "urgent"


class PreferredContact(str, Enum):
    EMAIL = "email"
    PHONE = "phone"


class ContactStatus(str, Enum):
    NEW = "new"
    IN_PROGRESS = "in-progress"
    RESOLVED = "resolved"
    CLOSED = "closed"


class ServiceCategory(str, Enum):
    COMMERCIAL = "commercial"
    RESIDENTIAL = "residential"
    AIRBNB = "airbnb"
    PRESSURE_WASHING = "pressure-washing"
    WINDOW_CLEANING = "window-cleaning"
    SPECIALTY = "specialty"


class PriceType(str, Enum):
    FIXED = "fixed"
    PER_HOUR = "per_hour"
    PER_SQFT = "per_sqft"
    PER_ROOM = "per_room"
    CUSTOM = "custom"


class TestimonialServiceType(str, Enum):
    COMMERCIAL = "commercial"
    RESIDENTIAL = "residential"
    AIRBNB = "airbnb"
    PRESSURE_WASHING = "pressure-washing"
    WINDOW_CLEANING = "window-cleaning"
    GENERAL = "general"


class TestimonialSource(str, Enum):
    WEBSITE = "website"
    GOOGLE = "google"
    FACEBOOK = "facebook"
    YELP = "yelp"
    MANUAL = "manual"


class UserRole(str, Enum):
    CUSTOMER = "customer"
    STAFF = "staff"
    ADMIN = "admin"


CONCERN_TYPE_LABELS = {
    ConcernType.COMPLAINT.value: "Complaint",
    ConcernType.FEEDBACK.value: "Feedback",
    ConcernType.SERVICE_ISSUE.value: "Service Issue",
    ConcernType.GENERAL.value: "General Inquiry",
}

DEFAULT_PRIORITY = {
    ConcernType.COMPLAINT.value: Priority.HIGH.value,
    ConcernType.SERVICE_ISSUE.value: Priority.HIGH.value,
    ConcernType.FEEDBACK.value: Priority.MEDIUM.value,
    ConcernType.GENERAL.value: Priority.LOW.value,
}

TRUSTED_REVIEW_SOURCES = {
    TestimonialSource.GOOGLE.value,
    TestimonialSource.FACEBOOK.value,
    TestimonialSource.YELP.value,
}


def default_priority(concern_type: str) -> str:
    return DEFAULT_PRIORITY.get(concern_type, Priority.MEDIUM.value)


def concern_type_label(concern_type: str) -> str:
    return CONCERN_TYPE_LABELS.get(concern_type, concern_type)


def is_auto_approved(rating: int, source: str) -> bool:
    return rating >= 4 and source in TRUSTED_REVIEW_SOURCES


class ChannelFlags(CamelModel):
    admin: bool = False
    customer: bool = False


class BookingModel(CamelModel):
    id: str = Field(default_factory=str, alias="_id")
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
    submitted_at: datetime = Field(default_factory=datetime.utcnow)
    status: BookingStatus = BookingStatus.PENDING
    admin_notes: Optional[str] = None
    email_sent: ChannelFlags = Field(default_factory=ChannelFlags)
    sms_sent: ChannelFlags = Field(default_factory=ChannelFlags)
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: Optional[datetime] = None


class ContactNote(CamelModel):
    content: str
    added_by: str
    added_at: datetime = Field(default_factory=datetime.utcnow)


class ContactModel(CamelModel):
    id: str = Field(default_factory=str, alias="_id")
    contact_number: Optional[str] = None
    name: str
    email: str
    phone: str
    concern_type: ConcernType
    subject: str
    message: str
    preferred_contact: PreferredContact = PreferredContact.EMAIL
    service_date: Optional[datetime] = None
    service_location: Optional[str] = None
    reference_number: Optional[str] = None
    status: ContactStatus = ContactStatus.NEW
    priority: Priority
    submitted_at: datetime = Field(default_factory=datetime.utcnow)
    responded_at: Optional[datetime] = None
    assigned_to: Optional[str] = None
    sms_sent: ChannelFlags = Field(default_factory=ChannelFlags)
    email_sent: ChannelFlags = Field(default_factory=ChannelFlags)
    notes: list[ContactNote] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: Optional[datetime] = None


class ServiceDescription(CamelModel):
    short: str = Field(..., max_length=200)
    detailed: str


class ServicePricing(CamelModel):
    base_price: float
    price_type: PriceType = PriceType.FIXED
    currency: str = "USD"
    minimum_charge: Optional[float] = None


class ServicePackage(CamelModel):
    name: str
    description: Optional[str] = None
    price: float
    duration: Optional[int] = None
    features: list[str] = Field(default_factory=list)
    popular: bool = False


class ServiceModel(CamelModel):
    id: str = Field(default_factory=str, alias="_id")
    name: str
    slug: str
    category: ServiceCategory
    description: ServiceDescription
    pricing: ServicePricing
    packages: list[ServicePackage] = Field(default_factory=list)
    is_active: bool = True
    is_featured: bool = False
    sort_order: int = 0
    tags: list[str] = Field(default_factory=list)
    created_by: Optional[str] = None
    updated_by: Optional[str] = None
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: Optional[datetime] = None


class TestimonialModel(CamelModel):
    id: str = Field(default_factory=str, alias="_id")
    name: str
    rating: int = Field(..., ge=1, le=5)
    text: str
    location: str
    image: str
    is_active: bool = True
    is_approved: bool = False
    is_featured: bool = False
    sort_order: int = 0
    service_type: TestimonialServiceType = TestimonialServiceType.GENERAL
    customer_email: Optional[str] = None
    customer_phone: Optional[str] = None
    source: TestimonialSource = TestimonialSource.MANUAL
    created_by: Optional[str] = None
    updated_by: Optional[str] = None
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: Optional[datetime] = None


class NotificationPreferences(CamelModel):
    email: bool = True
    sms: bool = True
    marketing: bool = False


class UserPreferences(CamelModel):
    # Staff receive SMS alerts for the service types listed here.
    service_types: list[ServiceType] = Field(default_factory=list)
    notifications: NotificationPreferences = Field(default_factory=NotificationPreferences)


class UserModel(CamelModel):
    id: str = Field(default_factory=str, alias="_id")
    name: str
    email: str
    phone: Optional[str] = None
    address: Optional[str] = None
    role: UserRole = UserRole.CUSTOMER
    is_active: bool = True
    preferences: UserPreferences = Field(default_factory=UserPreferences)
    hashed_password: str
    last_login: Optional[datetime] = None
    created_at: datetime = Field(default_factory=datetime.utcnow)
