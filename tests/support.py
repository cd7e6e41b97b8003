"""
In-memory stand-ins for the Motor collection API and the notification transports.

Only the operators the service actually issues are understood; anything else raises
so a test never silently passes against a query the fake cannot evaluate.
"""
import asyncio
import copy
import re
from types import SimpleNamespace
from typing import Any, Optional

from bson import ObjectId
from pymongo import ReturnDocument
from pymongo.errors import DuplicateKeyError

from cleaning_api.auth import create_access_token, hash_password
from cleaning_api.sms import DeliveryReceipt

_MISSING = object()


def _get_path(doc: dict, path: str) -> Any:
    value: Any = doc
    for part in path.split("."):
        if isinstance(value, dict) and part in value:
            value = value[part]
        else:
            return _MISSING
    return value


def _set_path(doc: dict, path: str, value: Any):
    parts = path.split(".")
    target = doc
    for part in parts[:-1]:
        target = target.setdefault(part, {})
    target[parts[-1]] = value


def _matches_condition(value: Any, condition: Any) -> bool:
    if isinstance(condition, dict) and any(key.startswith("$") for key in condition):
        for op, operand in condition.items():
            if op == "$regex":
                flags = re.IGNORECASE if "i" in condition.get("$options", "") else 0
                if value is _MISSING or value is None:
                    return False
                candidates = value if isinstance(value, list) else [value]
                if not any(re.search(operand, str(item), flags) for item in candidates):
                    return False
            elif op == "$options":
                continue
            elif op == "$in":
                if value is _MISSING or value not in operand:
                    return False
            elif op == "$nin":
                if value is not _MISSING and value in operand:
                    return False
            elif op == "$ne":
                if value is not _MISSING and value == operand:
                    return False
            elif op == "$gte":
                if value is _MISSING or value is None or value < operand:
                    return False
            elif op == "$lte":
                if value is _MISSING or value is None or value > operand:
                    return False
            elif op == "$exists":
                if (value is not _MISSING) != bool(operand):
                    return False
            else:
                raise NotImplementedError(f"Unsupported query operator {op}")
        return True
    if value is _MISSING:
        return condition is None
    if isinstance(value, list) and not isinstance(condition, list):
        return condition in value
    return value == condition


def matches(doc: dict, query: dict) -> bool:
    for key, condition in query.items():
        if key == "$or":
            if not any(matches(doc, clause) for clause in condition):
                return False
        elif not _matches_condition(_get_path(doc, key), condition):
            return False
    return True


def _sort_key(value: Any):
    if value is _MISSING or value is None:
        return (0, "")
    if isinstance(value, bool):
        return (1, int(value))
    return (1, value)


def sort_documents(docs: list[dict], sort: list) -> list[dict]:
    ordered = list(docs)
    for field, direction in reversed(sort):
        ordered.sort(key=lambda doc: _sort_key(_get_path(doc, field)), reverse=direction < 0)
    return ordered


def _apply_update(doc: dict, update: dict, inserting: bool = False):
    for op, changes in update.items():
        if op == "$set":
            for path, value in changes.items():
                _set_path(doc, path, copy.deepcopy(value))
        elif op == "$inc":
            for path, amount in changes.items():
                current = _get_path(doc, path)
                _set_path(doc, path, (0 if current is _MISSING else current) + amount)
        elif op == "$max":
            for path, value in changes.items():
                current = _get_path(doc, path)
                if current is _MISSING or value > current:
                    _set_path(doc, path, value)
        elif op == "$push":
            for path, value in changes.items():
                current = _get_path(doc, path)
                items = [] if current is _MISSING else list(current)
                items.append(copy.deepcopy(value))
                _set_path(doc, path, items)
        else:
            raise NotImplementedError(f"Unsupported update operator {op}")


class FakeCursor:
    def __init__(self, docs: list[dict]):
        self._docs = docs
        self._skip = 0
        self._limit = 0

    def sort(self, key_or_list, direction: Optional[int] = None):
        sort = key_or_list if isinstance(key_or_list, list) else [(key_or_list, direction or 1)]
        self._docs = sort_documents(self._docs, sort)
        return self

    def skip(self, count: int):
        self._skip = count
        return self

    def limit(self, count: int):
        self._limit = count
        return self

    async def to_list(self, length: Optional[int] = None):
        await asyncio.sleep(0)
        docs = self._docs[self._skip:]
        if self._limit:
            docs = docs[: self._limit]
        if length:
            docs = docs[:length]
        return [copy.deepcopy(doc) for doc in docs]


class FakeCollection:
    def __init__(self, name: str):
        self.name = name
        self.docs: list[dict] = []
        self.unique_fields: set[str] = set()
        self.indexes: list[Any] = []

    async def create_index(self, keys, unique: bool = False, **kwargs):
        await asyncio.sleep(0)
        self.indexes.append(keys)
        if unique and isinstance(keys, str):
            self.unique_fields.add(keys)
        return keys if isinstance(keys, str) else "_".join(f"{k}_{d}" for k, d in keys)

    def _check_unique(self, candidate: dict, ignore: Optional[dict] = None):
        for field in self.unique_fields | {"_id"}:
            value = _get_path(candidate, field)
            if value is _MISSING:
                continue
            for doc in self.docs:
                if doc is ignore:
                    continue
                if _get_path(doc, field) == value:
                    raise DuplicateKeyError(
                        f"E11000 duplicate key error collection: {self.name} index: {field}",
                        code=11000,
                        details={"keyPattern": {field: 1}, "keyValue": {field: value}},
                    )

    def _find(self, query: dict) -> list[dict]:
        return [doc for doc in self.docs if matches(doc, query)]

    def _insert(self, document: dict):
        if "_id" not in document:
            document["_id"] = ObjectId()
        stored = copy.deepcopy(document)
        self._check_unique(stored)
        self.docs.append(stored)

    async def insert_one(self, document: dict):
        await asyncio.sleep(0)
        self._insert(document)
        return SimpleNamespace(inserted_id=document["_id"], acknowledged=True)

    async def find_one(self, query: Optional[dict] = None, sort: Optional[list] = None, **kwargs):
        await asyncio.sleep(0)
        found = self._find(query or {})
        if sort:
            found = sort_documents(found, sort)
        return copy.deepcopy(found[0]) if found else None

    def find(self, query: Optional[dict] = None, *args, **kwargs) -> FakeCursor:
        return FakeCursor(self._find(query or {}))

    async def count_documents(self, query: dict, limit: int = 0, **kwargs) -> int:
        await asyncio.sleep(0)
        count = len(self._find(query))
        return min(count, limit) if limit else count

    def _upsert_seed(self, query: dict) -> dict:
        return {key: copy.deepcopy(value) for key, value in query.items() if not key.startswith("$")
                and not isinstance(value, dict)}

    async def update_one(self, query: dict, update: dict, upsert: bool = False):
        await asyncio.sleep(0)
        found = self._find(query)
        if found:
            candidate = copy.deepcopy(found[0])
            _apply_update(candidate, update)
            self._check_unique(candidate, ignore=found[0])
            modified = candidate != found[0]
            found[0].clear()
            found[0].update(candidate)
            return SimpleNamespace(matched_count=1, modified_count=int(modified), upserted_id=None)
        if upsert:
            doc = self._upsert_seed(query)
            _apply_update(doc, update, inserting=True)
            self._insert(doc)
            return SimpleNamespace(matched_count=0, modified_count=0, upserted_id=doc["_id"])
        return SimpleNamespace(matched_count=0, modified_count=0, upserted_id=None)

    async def update_many(self, query: dict, update: dict):
        await asyncio.sleep(0)
        found = self._find(query)
        modified = 0
        for doc in found:
            before = copy.deepcopy(doc)
            _apply_update(doc, update)
            modified += int(doc != before)
        return SimpleNamespace(matched_count=len(found), modified_count=modified)

    async def find_one_and_update(
        self,
        query: dict,
        update: dict,
        upsert: bool = False,
        return_document: Any = ReturnDocument.BEFORE,
        **kwargs,
    ):
        await asyncio.sleep(0)
        found = self._find(query)
        if found:
            before = copy.deepcopy(found[0])
            _apply_update(found[0], update)
            return copy.deepcopy(found[0]) if return_document == ReturnDocument.AFTER else before
        if not upsert:
            return None
        doc = self._upsert_seed(query)
        _apply_update(doc, update, inserting=True)
        self._insert(doc)
        return copy.deepcopy(doc) if return_document == ReturnDocument.AFTER else None

    async def delete_one(self, query: dict):
        await asyncio.sleep(0)
        found = self._find(query)
        if found:
            self.docs.remove(found[0])
        return SimpleNamespace(deleted_count=1 if found else 0)


class FakeDatabase:
    def __init__(self):
        self._collections: dict[str, FakeCollection] = {}

    def __getattr__(self, name: str) -> FakeCollection:
        if name.startswith("_"):
            raise AttributeError(name)
        return self[name]

    def __getitem__(self, name: str) -> FakeCollection:
        if name not in self._collections:
            self._collections[name] = FakeCollection(name)
        return self._collections[name]


class FakeSmsTransport:
    """Records every send; numbers can be told to fail, raise or hang."""

    def __init__(self, fail_for=(), raise_for=(), hang_for=()):
        self.sent: list[tuple[str, str]] = []
        self.fail_for = set(fail_for)
        self.raise_for = set(raise_for)
        self.hang_for = set(hang_for)
        self._counter = 0

    async def send(self, to: str, body: str) -> DeliveryReceipt:
        self.sent.append((to, body))
        if to in self.raise_for:
            raise ConnectionError(f"gateway unreachable for {to}")
        if to in self.hang_for:
            await asyncio.sleep(3600)
        if to in self.fail_for:
            return DeliveryReceipt(success=False, error="rejected by provider")
        self._counter += 1
        return DeliveryReceipt(success=True, message_id=f"SM{self._counter:04d}")


class FakeEmailTransport:
    def __init__(self, fail_for=(), raise_for=()):
        self.sent: list[tuple[str, str, str]] = []
        self.fail_for = set(fail_for)
        self.raise_for = set(raise_for)

    async def send(self, to: str, subject: str, html: str) -> DeliveryReceipt:
        self.sent.append((to, subject, html))
        if to in self.raise_for:
            raise ConnectionError(f"smtp unreachable for {to}")
        if to in self.fail_for:
            return DeliveryReceipt(success=False, error="mailbox unavailable")
        return DeliveryReceipt(success=True, message_id=f"<{len(self.sent)}@test>")


def add_user(
    db: FakeDatabase, role: str = "admin", email: Optional[str] = None, password: str = "secret123", **fields
):
    email = email or f"{role}@example.com"
    doc = {
        "_id": ObjectId(),
        "name": role.title(),
        "email": email,
        "role": role,
        "isActive": True,
        "hashedPassword": hash_password(password),
    }
    doc.update(fields)
    db.users.docs.append(copy.deepcopy(doc))
    return {**doc, "_id": str(doc["_id"])}


def auth_headers(user: dict, settings) -> dict:
    token = create_access_token({"sub": user["_id"], "role": user["role"]}, settings=settings)
    return {"Authorization": f"Bearer {token}"}
