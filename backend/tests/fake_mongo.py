"""
backend/tests/fake_mongo.py

Purpose:
    In-memory stand-ins for the motor collection calls the services make.
    Every coroutine runs without awaiting, so each call is atomic with respect
    to other tasks, like a single-document update on the server.
"""

from __future__ import annotations

import copy
from types import SimpleNamespace
from typing import Any

from bson import ObjectId
from pymongo.errors import DuplicateKeyError

_MISSING = object()


def _resolve(value: Any, parts: list[str]) -> list[Any]:
    if not parts:
        return [value]
    if isinstance(value, list):
        out: list[Any] = []
        for item in value:
            out.extend(_resolve(item, parts))
        return out
    if isinstance(value, dict) and parts[0] in value:
        return _resolve(value[parts[0]], parts[1:])
    return []


def _equals(values: list[Any], expected: Any) -> bool:
    if not values:
        return expected is None
    for v in values:
        if v == expected:
            return True
        if isinstance(v, list) and expected in v:
            return True
    return False


def _compare(values: list[Any], op: str, arg: Any) -> bool:
    for v in values:
        if v is None:
            continue
        try:
            if op == "$gt" and v > arg:
                return True
            if op == "$gte" and v >= arg:
                return True
            if op == "$lt" and v < arg:
                return True
            if op == "$lte" and v <= arg:
                return True
        except TypeError:
            continue
    return False


def _match_condition(values: list[Any], cond: Any) -> bool:
    if isinstance(cond, dict) and cond and all(k.startswith("$") for k in cond):
        for op, arg in cond.items():
            if op in ("$gt", "$gte", "$lt", "$lte"):
                if not _compare(values, op, arg):
                    return False
            elif op == "$ne":
                if _equals(values, arg):
                    return False
            elif op == "$in":
                if not any(_equals(values, a) for a in arg):
                    return False
            elif op == "$elemMatch":
                if not any(
                    isinstance(v, list) and any(isinstance(el, dict) and matches(el, arg) for el in v)
                    for v in values
                ):
                    return False
            elif op == "$exists":
                if bool(values) != bool(arg):
                    return False
            else:
                raise NotImplementedError(op)
        return True
    return _equals(values, cond)


def matches(doc: dict, query: dict | None) -> bool:
    for key, cond in (query or {}).items():
        if key == "$or":
            if not any(matches(doc, sub) for sub in cond):
                return False
            continue
        if not _match_condition(_resolve(doc, key.split(".")), cond):
            return False
    return True


def _positional_index(doc: dict, query: dict, array_field: str) -> int:
    """Index of the first element of ``array_field`` matched by the query."""
    array = doc.get(array_field) or []
    for key, cond in query.items():
        if key == array_field and isinstance(cond, dict) and "$elemMatch" in cond:
            for i, el in enumerate(array):
                if matches(el, cond["$elemMatch"]):
                    return i
        if key.startswith(array_field + ".") and not isinstance(cond, dict):
            sub = key[len(array_field) + 1:]
            for i, el in enumerate(array):
                if matches(el, {sub: cond}):
                    return i
    raise AssertionError(f"positional update on {array_field} without a matching query element")


def _expand_path(doc: dict, query: dict, path: str) -> list[str]:
    parts = path.split(".")
    if "$" in parts:
        idx = parts.index("$")
        array_field = ".".join(parts[:idx])
        parts[idx] = str(_positional_index(doc, query, array_field))
    return parts


def _container(doc: Any, parts: list[str], create: bool) -> tuple[Any, str] | None:
    target = doc
    for part in parts[:-1]:
        if isinstance(target, list):
            target = target[int(part)]
            continue
        if part not in target or target[part] is None:
            if not create:
                return None
            target[part] = {}
        target = target[part]
    return target, parts[-1]


def _set(doc: dict, parts: list[str], value: Any) -> None:
    target, last = _container(doc, parts, create=True)
    if isinstance(target, list):
        target[int(last)] = copy.deepcopy(value)
    else:
        target[last] = copy.deepcopy(value)


def _get(doc: dict, parts: list[str]) -> Any:
    found = _container(doc, parts, create=False)
    if found is None:
        return _MISSING
    target, last = found
    if isinstance(target, list):
        return target[int(last)]
    return target.get(last, _MISSING)


def apply_update(doc: dict, query: dict, update: dict, inserting: bool = False) -> None:
    # The positional operator binds to the array element matched before the
    # update, so resolve every "$" path against one snapshot.
    snapshot = copy.deepcopy(doc)
    for op, fields in update.items():
        if op == "$setOnInsert" and not inserting:
            continue
        for path, value in fields.items():
            parts = _expand_path(snapshot, query, path)
            if op in ("$set", "$setOnInsert"):
                _set(doc, parts, value)
            elif op == "$unset":
                found = _container(doc, parts, create=False)
                if found is not None and isinstance(found[0], dict):
                    found[0].pop(found[1], None)
            elif op == "$inc":
                current = _get(doc, parts)
                _set(doc, parts, (0 if current is _MISSING or current is None else current) + value)
            elif op == "$push":
                current = _get(doc, parts)
                if current is _MISSING or current is None:
                    _set(doc, parts, [value])
                else:
                    current.append(copy.deepcopy(value))
            else:
                raise NotImplementedError(op)


def project(doc: dict | None, projection: dict | None) -> dict | None:
    if doc is None:
        return None
    doc = copy.deepcopy(doc)
    if not projection:
        return doc
    if any(not v for k, v in projection.items() if k != "_id"):
        return {k: v for k, v in doc.items() if projection.get(k, 1)}
    keep = {k for k, v in projection.items() if v}
    if projection.get("_id", 1):
        keep.add("_id")
    return {k: v for k, v in doc.items() if k in keep}


class FakeCursor:
    def __init__(self, docs: list[dict]):
        self._docs = docs
        self._sort: list[tuple[str, int]] = []
        self._skip = 0
        self._limit: int | None = None

    def sort(self, key, direction: int | None = None):
        if isinstance(key, list):
            self._sort = list(key)
        else:
            self._sort = [(key, direction if direction is not None else 1)]
        return self

    def skip(self, value: int):
        self._skip = int(value)
        return self

    def limit(self, value: int):
        self._limit = int(value)
        return self

    async def to_list(self, length: int | None = None):
        rows = list(self._docs)
        for key, direction in reversed(self._sort):
            present = [r for r in rows if r.get(key) is not None]
            absent = [r for r in rows if r.get(key) is None]
            present.sort(key=lambda r: r[key], reverse=direction < 0)
            rows = present + absent
        rows = rows[self._skip:]
        if self._limit:
            rows = rows[: self._limit]
        if length is not None:
            rows = rows[:length]
        return rows


class FakeCollection:
    """List-backed collection. ``unique`` names fields with a unique index."""

    def __init__(self, docs: list[dict] | None = None, unique: tuple[str, ...] = ()):
        self.docs: list[dict] = [copy.deepcopy(d) for d in (docs or [])]
        self.unique = unique
        self.indexes: list[Any] = []

    def _first(self, query: dict | None) -> dict | None:
        for doc in self.docs:
            if matches(doc, query):
                return doc
        return None

    def _check_unique(self, candidate: dict, ignore: dict | None = None) -> None:
        for field in self.unique:
            if field not in candidate:
                continue
            for doc in self.docs:
                if doc is not ignore and doc.get(field) == candidate[field]:
                    raise DuplicateKeyError(f"E11000 duplicate key error: {field}")

    async def create_index(self, keys, **kwargs):
        self.indexes.append((keys, kwargs))
        return str(keys)

    async def find_one(self, query: dict | None = None, projection: dict | None = None):
        return project(self._first(query), projection)

    def find(self, query: dict | None = None, projection: dict | None = None):
        return FakeCursor([project(d, projection) for d in self.docs if matches(d, query)])

    async def count_documents(self, query: dict):
        return sum(1 for d in self.docs if matches(d, query))

    async def insert_one(self, doc: dict):
        if "_id" not in doc:
            doc["_id"] = ObjectId()
        self._check_unique(doc)
        self.docs.append(copy.deepcopy(doc))
        return SimpleNamespace(inserted_id=doc["_id"])

    def _upsert_doc(self, query: dict, update: dict) -> dict:
        doc = {
            k: copy.deepcopy(v) for k, v in query.items()
            if not k.startswith("$") and "." not in k and not isinstance(v, dict)
        }
        doc.setdefault("_id", ObjectId())
        apply_update(doc, query, update, inserting=True)
        self._check_unique(doc)
        self.docs.append(doc)
        return doc

    async def update_one(self, query: dict, update: dict, upsert: bool = False):
        doc = self._first(query)
        if doc is None:
            if upsert:
                created = self._upsert_doc(query, update)
                return SimpleNamespace(matched_count=0, modified_count=0, upserted_id=created["_id"])
            return SimpleNamespace(matched_count=0, modified_count=0, upserted_id=None)
        before = copy.deepcopy(doc)
        apply_update(doc, query, update)
        return SimpleNamespace(
            matched_count=1, modified_count=int(before != doc), upserted_id=None,
        )

    async def find_one_and_update(
        self, query: dict, update: dict, projection: dict | None = None,
        return_document: bool = False, upsert: bool = False,
    ):
        doc = self._first(query)
        if doc is None:
            if not upsert:
                return None
            created = self._upsert_doc(query, update)
            return project(created, projection) if return_document else None
        before = copy.deepcopy(doc)
        apply_update(doc, query, update)
        return project(doc if return_document else before, projection)

    async def delete_one(self, query: dict):
        doc = self._first(query)
        if doc is None:
            return SimpleNamespace(deleted_count=0)
        self.docs.remove(doc)
        return SimpleNamespace(deleted_count=1)


class FakeDB:
    """Attribute access creates empty collections on demand."""

    def __init__(self, **collections: FakeCollection):
        for name, coll in collections.items():
            setattr(self, name, coll)

    def __getattr__(self, name: str) -> FakeCollection:
        if name.startswith("__"):
            raise AttributeError(name)
        coll = FakeCollection()
        setattr(self, name, coll)
        return coll

    async def command(self, name: str):
        return {"ok": 1.0}
