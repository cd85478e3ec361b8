"""
Query dialect -> MongoDB.

Translates the content API's `filters`, `sort` and `pagination` parameters
into pymongo arguments. Filters look like:

    {"rating": {"$gte": 8}, "publishedAt": {"$notNull": True},
     "$or": [{"valid_until": {"$null": True}}, {"valid_until": {"$gte": now}}],
     "casino_review": {"id": "665f..."}}

Values that arrive through a query string are strings; they are coerced
using the content type's pydantic schema.
"""

import math
import re
import typing
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple, Type

from pydantic import BaseModel

import database
from content_types import MANY_TO_ONE, ContentType, get_content_type
from querystring import QueryError

_FIELD_NAME = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")
_DATETIME_FIELDS = ("createdAt", "updatedAt", "publishedAt")


# ----------------------------------------------------------------------------
# Value coercion
# ----------------------------------------------------------------------------

def _unwrap(annotation):
    """Strip Optional/Annotated down to a concrete type."""
    origin = typing.get_origin(annotation)
    if origin is typing.Annotated:
        return _unwrap(typing.get_args(annotation)[0])
    if origin is typing.Union:
        args = [a for a in typing.get_args(annotation) if a is not type(None)]
        return _unwrap(args[0]) if len(args) == 1 else annotation
    return annotation


def field_kind(schema: Type[BaseModel], name: str) -> str:
    if name in _DATETIME_FIELDS:
        return "datetime"
    info = schema.model_fields.get(name)
    if info is None:
        return "unknown"
    annotation = _unwrap(info.annotation)
    if annotation is bool:
        return "bool"
    if annotation in (int, float):
        return "number"
    if annotation is datetime:
        return "datetime"
    return "string"


def parse_datetime(value: Any) -> datetime:
    if isinstance(value, datetime):
        return database.naive_utc(value)
    try:
        parsed = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    except ValueError:
        raise QueryError(f"Invalid date value: {value!r}")
    return database.naive_utc(parsed)


def coerce(kind: str, value: Any) -> Any:
    if value is None or not isinstance(value, (str, datetime)):
        return value
    if kind == "datetime":
        return parse_datetime(value)
    if not isinstance(value, str):
        return value
    if kind == "bool" or (kind == "unknown" and value in ("true", "false")):
        if value not in ("true", "false", "1", "0"):
            raise QueryError(f"Invalid boolean value: {value!r}")
        return value in ("true", "1")
    if kind == "number":
        try:
            number = float(value)
        except ValueError:
            raise QueryError(f"Invalid numeric value: {value!r}")
        return int(number) if number.is_integer() and "." not in value else number
    return value


def _truthy(value: Any) -> bool:
    if isinstance(value, str):
        return value.lower() not in ("false", "0", "")
    return bool(value)


def _as_list(value: Any) -> List[Any]:
    if isinstance(value, (list, tuple)):
        return list(value)
    if isinstance(value, str) and "," in value:
        return value.split(",")
    return [value]


# ----------------------------------------------------------------------------
# Filters
# ----------------------------------------------------------------------------

def _regex(pattern: str, insensitive: bool) -> Dict[str, Any]:
    clause: Dict[str, Any] = {"$regex": pattern}
    if insensitive:
        clause["$options"] = "i"
    return clause


def _operator_clause(field: str, operator: str, value: Any, kind: str) -> Dict[str, Any]:
    if operator == "$eq":
        return {field: {"$eq": coerce(kind, value)}}
    if operator == "$eqi":
        return {field: _regex(f"^{re.escape(str(value))}$", True)}
    if operator == "$ne":
        return {field: {"$ne": coerce(kind, value)}}
    if operator in ("$lt", "$lte", "$gt", "$gte"):
        return {field: {operator: coerce(kind, value)}}
    if operator == "$in":
        return {field: {"$in": [coerce(kind, v) for v in _as_list(value)]}}
    if operator == "$notIn":
        return {field: {"$nin": [coerce(kind, v) for v in _as_list(value)]}}
    if operator in ("$contains", "$containsi"):
        return {field: _regex(re.escape(str(value)), operator == "$containsi")}
    if operator in ("$notContains", "$notContainsi"):
        return {"$nor": [{field: _regex(re.escape(str(value)), operator == "$notContainsi")}]}
    if operator == "$startsWith":
        return {field: _regex(f"^{re.escape(str(value))}", False)}
    if operator == "$endsWith":
        return {field: _regex(f"{re.escape(str(value))}$", False)}
    if operator == "$null":
        return {field: {"$eq": None}} if _truthy(value) else {field: {"$ne": None}}
    if operator == "$notNull":
        return {field: {"$ne": None}} if _truthy(value) else {field: {"$eq": None}}
    if operator == "$between":
        bounds = _as_list(value)
        if len(bounds) != 2:
            raise QueryError("$between expects two values")
        low, high = (coerce(kind, v) for v in bounds)
        return {field: {"$gte": low, "$lte": high}}
    raise QueryError(f"Invalid filter operator: {operator}")


def _combine(clauses: List[Dict[str, Any]]) -> Dict[str, Any]:
    clauses = [c for c in clauses if c]
    if not clauses:
        return {}
    if len(clauses) == 1:
        return clauses[0]
    return {"$and": clauses}


def _id_values(value: Any) -> Any:
    try:
        if not isinstance(value, dict):
            return database.to_object_id(value)
        converted = {}
        for operator, operand in value.items():
            if operator in ("$null", "$notNull"):
                converted[operator] = operand
            elif operator in ("$in", "$notIn"):
                converted[operator] = [database.to_object_id(v) for v in _as_list(operand)]
            else:
                converted[operator] = database.to_object_id(operand)
        return converted
    except ValueError as error:
        raise QueryError(str(error))


def _field_filter(ct: ContentType, field: str, value: Any) -> Dict[str, Any]:
    if not _FIELD_NAME.match(field):
        raise QueryError(f"Invalid filter key: {field}")

    if field == "id":
        ids = _id_values(value)
        if isinstance(ids, dict):
            return _combine([_operator_clause("_id", op, v, "id") for op, v in ids.items()])
        return {"_id": ids}

    relation = ct.relations.get(field)
    if relation is not None:
        return _relation_filter(ct, field, value)

    if isinstance(value, dict):
        clauses = []
        for operator, operand in value.items():
            if operator == "$not":
                clauses.append({"$nor": [_field_filter(ct, field, operand)]})
            else:
                clauses.append(_operator_clause(field, operator, operand, field_kind(ct.schema, field)))
        return _combine(clauses)

    kind = field_kind(ct.schema, field)
    if isinstance(value, list):
        return {field: {"$in": [coerce(kind, v) for v in value]}}
    return {field: coerce(kind, value)}


def _relation_filter(ct: ContentType, name: str, value: Any) -> Dict[str, Any]:
    relation = ct.relations[name]
    target = get_content_type(relation.target)
    if not isinstance(value, dict):
        # shorthand: casino_review=<id>
        value = {"id": value}

    if relation.kind == MANY_TO_ONE:
        if set(value) == {"id"} and not isinstance(value["id"], dict):
            return {name: str(value["id"])}
        if set(value) <= {"$null", "$notNull"}:
            return _combine([_operator_clause(name, op, v, "string") for op, v in value.items()])
        matched = database.get_documents(target.collection, build_filter(value, target), projection={"_id": 1})
        return {name: {"$in": [str(doc["_id"]) for doc in matched]}}

    matched = database.get_documents(
        target.collection, build_filter(value, target), projection={relation.foreign_key: 1}
    )
    parent_ids = {doc.get(relation.foreign_key) for doc in matched} - {None}
    object_ids = []
    for parent_id in parent_ids:
        try:
            object_ids.append(database.to_object_id(parent_id))
        except ValueError:
            continue
    return {"_id": {"$in": object_ids}}


def build_filter(filters: Optional[Dict[str, Any]], ct: ContentType) -> Dict[str, Any]:
    """Translate a (possibly nested) filters object into a Mongo query."""
    if not filters:
        return {}
    if not isinstance(filters, dict):
        raise QueryError("filters must be an object")

    clauses = []
    for key, value in filters.items():
        if key in ("$or", "$and"):
            branches = value if isinstance(value, list) else list(value.values()) if isinstance(value, dict) else None
            if branches is None:
                raise QueryError(f"{key} expects a list of filters")
            built = [build_filter(branch, ct) for branch in branches]
            built = [b for b in built if b]
            if built:
                clauses.append({key: built})
        elif key == "$not":
            clauses.append({"$nor": [build_filter(value, ct)]})
        elif key.startswith("$"):
            raise QueryError(f"Invalid filter operator: {key}")
        else:
            clauses.append(_field_filter(ct, key, value))
    return _combine(clauses)


def merge_filters(*queries: Dict[str, Any]) -> Dict[str, Any]:
    return _combine(list(queries))


# ----------------------------------------------------------------------------
# Sort / fields / pagination
# ----------------------------------------------------------------------------

def parse_sort(value: Any) -> List[Tuple[str, int]]:
    """'rating:desc,name:asc' or ['rating:desc', 'name'] -> pymongo sort spec"""
    if not value:
        return []
    if isinstance(value, str):
        parts = value.split(",")
    elif isinstance(value, (list, tuple)):
        parts = [p for item in value for p in str(item).split(",")]
    else:
        raise QueryError("sort must be a string or a list")

    spec = []
    for part in parts:
        part = part.strip()
        if not part:
            continue
        name, _, direction = part.partition(":")
        direction = (direction or "asc").lower()
        if not _FIELD_NAME.match(name):
            raise QueryError(f"Invalid sort field: {name}")
        if direction not in ("asc", "desc"):
            raise QueryError(f"Invalid sort direction: {direction}")
        spec.append(("_id" if name == "id" else name, 1 if direction == "asc" else -1))
    return spec


def parse_fields(value: Any) -> Optional[List[str]]:
    if not value:
        return None
    names = _as_list(value) if not isinstance(value, str) else value.split(",")
    fields = [str(name).strip() for name in names if str(name).strip()]
    for name in fields:
        if not _FIELD_NAME.match(name):
            raise QueryError(f"Invalid field: {name}")
    return fields


def _to_int(value: Any, name: str) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        raise QueryError(f"Invalid pagination parameter {name}: {value!r}")


@dataclass
class Pagination:
    skip: int
    limit: Optional[int]
    page: Optional[int] = None
    page_size: Optional[int] = None

    def meta(self, total: int) -> Dict[str, int]:
        if self.page is not None:
            return {
                "page": self.page,
                "pageSize": self.page_size,
                "pageCount": math.ceil(total / self.page_size) if self.page_size else 0,
                "total": total,
            }
        return {"start": self.skip, "limit": self.limit or 0, "total": total}


def parse_pagination(pagination: Any, default_limit: int = 25, max_limit: int = 100) -> Pagination:
    if not pagination:
        return Pagination(skip=0, limit=default_limit, page=1, page_size=default_limit)
    if not isinstance(pagination, dict):
        raise QueryError("pagination must be an object")

    if "start" in pagination or "limit" in pagination:
        if "page" in pagination or "pageSize" in pagination:
            raise QueryError("Cannot mix page/pageSize with start/limit pagination")
        start = max(_to_int(pagination.get("start", 0), "start"), 0)
        limit = _to_int(pagination.get("limit", default_limit), "limit")
        if limit < 0 or limit > max_limit:
            limit = max_limit
        return Pagination(skip=start, limit=limit or default_limit)

    page = max(_to_int(pagination.get("page", 1), "page"), 1)
    page_size = _to_int(pagination.get("pageSize", default_limit), "pageSize")
    if page_size < 1:
        page_size = default_limit
    page_size = min(page_size, max_limit)
    return Pagination(skip=(page - 1) * page_size, limit=page_size, page=page, page_size=page_size)
