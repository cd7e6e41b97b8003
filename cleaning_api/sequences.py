"""
Per-day human readable identifiers for bookings and contact submissions.

Each (prefix, date) scope owns a counter document in the ``counters`` collection
that is advanced with an atomic ``$inc``, so two requests landing on the same day
can never read the same "last" number.
"""
import logging
import re
from dataclasses import dataclass
from datetime import date, datetime
from typing import Any, Optional
from zoneinfo import ZoneInfo

from fastapi import Depends
from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import ReturnDocument
from pymongo.errors import DuplicateKeyError

from .config import Settings, get_settings
from .database import get_database

logger = logging.getLogger(__name__)

_TRAILING_DIGITS = re.compile(r"(\d+)$")


@dataclass(frozen=True)
class SequenceSpec:
    prefix: str
    date_format: str
    width: int
    field: str
    separator: str = ""

    def scope(self, day: date) -> str:
        return f"{self.prefix}{day.strftime(self.date_format)}{self.separator}"

    def counter_key(self, day: date) -> str:
        return f"{self.field}:{self.scope(day)}"

    def format(self, day: date, sequence: int) -> str:
        return f"{self.scope(day)}{sequence:0{self.width}d}"


BOOKING_NUMBER = SequenceSpec(prefix="BK", date_format="%y%m%d", width=4, field="bookingNumber")
CONTACT_NUMBER = SequenceSpec(
    prefix="CT-", date_format="%Y%m%d", width=3, field="contactNumber", separator="-"
)


def parse_sequence(identifier: str, scope: str = "") -> int:
    """Sequence number of ``identifier``, read after its ``scope`` when it carries one."""
    identifier = identifier or ""
    if scope and identifier.startswith(scope):
        identifier = identifier[len(scope):]
    match = _TRAILING_DIGITS.search(identifier)
    if not match:
        raise ValueError(f"Identifier has no numeric suffix: {identifier!r}")
    return int(match.group(1))


class SequenceAllocator:
    def __init__(self, counters, settings: Settings):
        self.counters = counters
        self.timezone = ZoneInfo(settings.BUSINESS_TIMEZONE)

    def business_date(self, now: Optional[datetime] = None) -> date:
        if now is None:
            return datetime.now(self.timezone).date()
        if now.tzinfo is not None:
            return now.astimezone(self.timezone).date()
        return now.date()

    async def next_identifier(self, spec: SequenceSpec, records, now: Optional[datetime] = None) -> str:
        day = self.business_date(now)
        key = spec.counter_key(day)

        if await self.counters.find_one({"_id": key}) is None:
            await self._seed_counter(key, spec.scope(day), records)

        counter = await self.counters.find_one_and_update(
            {"_id": key},
            {"$inc": {"seq": 1}},
            upsert=True,
            return_document=ReturnDocument.AFTER,
        )
        identifier = spec.format(day, counter["seq"])
        logger.debug(f"Allocated {spec.field} {identifier}")
        return identifier

    async def _seed_counter(self, key: str, scope: str, records):
        # Records written before this counter existed must not be numbered twice.
        latest = await records.find_latest_by_prefix(scope)
        if latest is None:
            return
        await self.counters.update_one(
            {"_id": key},
            {"$max": {"seq": parse_sequence(latest, scope)}},
            upsert=True,
        )
        logger.info(f"Seeded counter {key} from existing identifier {latest}")

    async def create_with_identifier(
        self,
        spec: SequenceSpec,
        records,
        document: dict[str, Any],
        now: Optional[datetime] = None,
        attempts: int = 2,
    ) -> dict[str, Any]:
        """Allocate an identifier and insert ``document`` carrying it.

        A uniqueness conflict on insert is retried with a freshly allocated
        identifier; the last conflict propagates to the caller.
        """
        for attempt in range(1, attempts + 1):
            identifier = await self.next_identifier(spec, records, now)
            try:
                return await records.create({**document, spec.field: identifier})
            except DuplicateKeyError:
                if attempt >= attempts:
                    logger.error(f"Giving up on {spec.field} after duplicate {identifier}")
                    raise
                logger.warning(f"Duplicate {spec.field} {identifier}, allocating again")
        raise RuntimeError("unreachable")


def get_allocator(
    db: AsyncIOMotorDatabase = Depends(get_database),
    settings: Settings = Depends(get_settings),
) -> SequenceAllocator:
    return SequenceAllocator(db.counters, settings)
