import logging
import math
import re
from datetime import datetime
from typing import Any, Optional

from bson import ObjectId
from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import ASCENDING, DESCENDING, ReturnDocument

logger = logging.getLogger(__name__)


def _normalize(doc: Optional[dict]) -> Optional[dict]:
    if doc and "_id" in doc and not isinstance(doc["_id"], str):
        doc["_id"] = str(doc["_id"])
    return doc


def object_id(value: str) -> Optional[ObjectId]:
    if isinstance(value, ObjectId):
        return value
    if not ObjectId.is_valid(str(value)):
        return None
    return ObjectId(str(value))


def _search(term: str, fields: list[str]) -> dict:
    pattern = re.escape(term)
    return {"$or": [{name: {"$regex": pattern, "$options": "i"}} for name in fields]}


def pagination(page: int, limit: int, total: int) -> dict:
    return {"page": page, "limit": limit, "pages": math.ceil(total / limit) if limit else 0, "total": total}


class RecordStore:
    """Collection of records identified by a per-day human readable number."""

    def __init__(self, collection, identifier_field: str):
        self.collection = collection
        self.identifier_field = identifier_field

    async def find_latest_by_prefix(self, prefix: str) -> Optional[str]:
        doc = await self.collection.find_one(
            {self.identifier_field: {"$regex": f"^{re.escape(prefix)}"}},
            sort=[(self.identifier_field, DESCENDING)],
        )
        return doc[self.identifier_field] if doc else None

    async def create(self, document: dict) -> dict:
        document = dict(document)
        result = await self.collection.insert_one(document)
        document["_id"] = str(result.inserted_id)
        logger.info(f"Created record {document.get(self.identifier_field)} ({document['_id']})")
        return document

    async def update_outcome_flags(self, record_id: str, flags: dict[str, bool]):
        await self.collection.update_one(
            {"_id": object_id(record_id)},
            {"$set": {**flags, "updatedAt": datetime.utcnow()}},
        )


def booking_store(db: AsyncIOMotorDatabase) -> RecordStore:
    return RecordStore(db.bookings, "bookingNumber")


def contact_store(db: AsyncIOMotorDatabase) -> RecordStore:
    return RecordStore(db.contacts, "contactNumber")


# Generic helpers

async def get_by_id(collection, record_id: str) -> Optional[dict]:
    query_id = object_id(record_id)
    if query_id is None:
        return None
    return _normalize(await collection.find_one({"_id": query_id}))


async def find_page(collection, query: dict, sort: list, page: int, limit: int) -> tuple[list[dict], int]:
    skip = (page - 1) * limit
    cursor = collection.find(query).sort(sort).skip(skip).limit(limit)
    docs = await cursor.to_list(length=limit)
    total = await collection.count_documents(query)
    return [_normalize(doc) for doc in docs], total


async def update_by_id(collection, record_id: str, update: dict) -> Optional[dict]:
    query_id = object_id(record_id)
    if query_id is None:
        return None
    update.setdefault("$set", {})["updatedAt"] = datetime.utcnow()
    doc = await collection.find_one_and_update(
        {"_id": query_id}, update, return_document=ReturnDocument.AFTER
    )
    return _normalize(doc)


async def delete_by_id(collection, record_id: str) -> bool:
    query_id = object_id(record_id)
    if query_id is None:
        return False
    result = await collection.delete_one({"_id": query_id})
    return result.deleted_count > 0


# Bookings

async def list_bookings(
    db: AsyncIOMotorDatabase,
    page: int = 1,
    limit: int = 10,
    status: Optional[str] = None,
    service_type: Optional[str] = None,
    search: Optional[str] = None,
):
    query: dict[str, Any] = {}
    if status:
        query["status"] = status
    if service_type:
        query["serviceType"] = service_type
    if search:
        query.update(_search(search, ["bookingNumber", "contactName", "contactEmail", "address"]))
    return await find_page(db.bookings, query, [("createdAt", DESCENDING)], page, limit)


# Contact submissions

async def list_contacts(
    db: AsyncIOMotorDatabase,
    page: int = 1,
    limit: int = 20,
    status: Optional[str] = None,
    concern_type: Optional[str] = None,
    priority: Optional[str] = None,
    search: Optional[str] = None,
):
    query: dict[str, Any] = {}
    if status:
        query["status"] = status
    if concern_type:
        query["concernType"] = concern_type
    if priority:
        query["priority"] = priority
    if search:
        query.update(_search(search, ["name", "email", "contactNumber", "subject"]))
    return await find_page(db.contacts, query, [("submittedAt", DESCENDING)], page, limit)


# Services

def slugify(name: str) -> str:
    slug = re.sub(r"[^a-z0-9]", "-", name.lower())
    slug = re.sub(r"-+", "-", slug)
    return slug.strip("-")


async def list_services(
    db: AsyncIOMotorDatabase,
    category: Optional[str] = None,
    featured: Optional[bool] = None,
    search: Optional[str] = None,
    active_only: bool = True,
):
    query: dict[str, Any] = {}
    if active_only:
        query["isActive"] = True
    if category:
        query["category"] = category
    if featured is not None:
        query["isFeatured"] = featured
    if search:
        query.update(_search(search, ["name", "description.short", "tags"]))
    cursor = db.services.find(query).sort([("sortOrder", ASCENDING), ("name", ASCENDING)])
    return [_normalize(doc) for doc in await cursor.to_list(length=100)]


async def get_service_by_slug(db: AsyncIOMotorDatabase, slug: str) -> Optional[dict]:
    return _normalize(await db.services.find_one({"slug": slug}))


async def create_service(db: AsyncIOMotorDatabase, service: dict) -> dict:
    result = await db.services.insert_one(service)
    service["_id"] = str(result.inserted_id)
    return service


# Testimonials

PUBLIC_TESTIMONIAL_SORT = [("isFeatured", DESCENDING), ("sortOrder", ASCENDING), ("createdAt", DESCENDING)]


async def list_public_testimonials(
    db: AsyncIOMotorDatabase,
    page: int = 1,
    limit: int = 10,
    rating: Optional[int] = None,
    service_type: Optional[str] = None,
    featured: bool = False,
    search: Optional[str] = None,
):
    query: dict[str, Any] = {"isActive": True, "isApproved": True}
    if rating:
        query["rating"] = {"$gte": rating}
    if service_type and service_type != "all":
        query["serviceType"] = service_type
    if featured:
        query["isFeatured"] = True
    if search:
        query.update(_search(search, ["name", "text", "location"]))
    return await find_page(db.testimonials, query, PUBLIC_TESTIMONIAL_SORT, page, limit)


async def list_featured_testimonials(db: AsyncIOMotorDatabase, limit: int = 5) -> list[dict]:
    query = {"isActive": True, "isApproved": True, "isFeatured": True}
    cursor = db.testimonials.find(query).sort([("sortOrder", ASCENDING), ("createdAt", DESCENDING)]).limit(limit)
    return [_normalize(doc) for doc in await cursor.to_list(length=limit)]


async def list_all_testimonials(
    db: AsyncIOMotorDatabase,
    page: int = 1,
    limit: int = 20,
    status: Optional[str] = None,
    rating: Optional[int] = None,
    service_type: Optional[str] = None,
    search: Optional[str] = None,
    sort_by: str = "createdAt",
    descending: bool = True,
):
    query: dict[str, Any] = {}
    if status == "pending":
        query["isApproved"] = False
    elif status == "approved":
        query["isApproved"] = True
    elif status == "inactive":
        query["isActive"] = False
    if rating:
        query["rating"] = {"$gte": rating}
    if service_type and service_type != "all":
        query["serviceType"] = service_type
    if search:
        query.update(_search(search, ["name", "text", "location"]))
    sort = [(sort_by, DESCENDING if descending else ASCENDING)]
    return await find_page(db.testimonials, query, sort, page, limit)


async def create_testimonial(db: AsyncIOMotorDatabase, testimonial: dict) -> dict:
    result = await db.testimonials.insert_one(testimonial)
    testimonial["_id"] = str(result.inserted_id)
    return testimonial


async def bulk_update_testimonials(db: AsyncIOMotorDatabase, ids: list[str], changes: dict) -> tuple[int, int]:
    object_ids = [oid for oid in (object_id(value) for value in ids) if oid is not None]
    result = await db.testimonials.update_many(
        {"_id": {"$in": object_ids}},
        {"$set": {**changes, "updatedAt": datetime.utcnow()}},
    )
    return result.matched_count, result.modified_count


# Users

async def get_user_by_email(db: AsyncIOMotorDatabase, email: str) -> Optional[dict]:
    return _normalize(await db.users.find_one({"email": email.lower()}))


async def create_user(db: AsyncIOMotorDatabase, user: dict) -> dict:
    result = await db.users.insert_one(user)
    user["_id"] = str(result.inserted_id)
    logger.info(f"Created user {user['email']} with role {user.get('role')}")
    return user


async def list_users(db: AsyncIOMotorDatabase, page: int = 1, limit: int = 20, role: Optional[str] = None):
    query = {"role": role} if role else {}
    return await find_page(db.users, query, [("createdAt", DESCENDING)], page, limit)


async def admin_exists(db: AsyncIOMotorDatabase) -> bool:
    return await db.users.count_documents({"role": "admin"}, limit=1) > 0


async def list_staff(db: AsyncIOMotorDatabase) -> list[dict]:
    cursor = db.users.find({"role": "staff"}).sort([("name", ASCENDING)])
    return [_normalize(doc) for doc in await cursor.to_list(length=500)]


async def find_staff_for_service(db: AsyncIOMotorDatabase, service_type: str) -> list[dict]:
    """Active staff with a phone number who take SMS alerts for ``service_type``."""
    query = {
        "role": "staff",
        "isActive": True,
        "phone": {"$exists": True, "$nin": [None, ""]},
        "preferences.serviceTypes": service_type,
        "preferences.notifications.sms": {"$ne": False},
    }
    cursor = db.users.find(query).sort([("name", ASCENDING)])
    return [_normalize(doc) for doc in await cursor.to_list(length=500)]


ACTIVE_BOOKING_STATUSES = ["pending", "confirmed"]


async def booking_stats(db: AsyncIOMotorDatabase, email: str) -> dict:
    # Bookings are taken without an account, so they are matched on contact email.
    by_status = {}
    for status in ("pending", "confirmed", "completed", "cancelled"):
        by_status[status] = await db.bookings.count_documents({"contactEmail": email.lower(), "status": status})
    return {"totalBookings": sum(by_status.values()), "bookingsByStatus": by_status}


async def count_active_bookings(db: AsyncIOMotorDatabase, email: str) -> int:
    return await db.bookings.count_documents(
        {"contactEmail": email.lower(), "status": {"$in": ACTIVE_BOOKING_STATUSES}}
    )
