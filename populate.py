"""
Relation population.

A populate request says which relations (and media) to include in a
response, optionally with per-relation filters, field selection, sort,
limit and nested populate:

    {"casino_review": {"fields": ["name", "slug"], "populate": ["logo"]}}
    ["casino_review.logo", "category"]
    "*"

Controllers declare their default graphs in the same dialect; they are
parsed (and so validated against the content type registry) once at import.
"""

from collections import defaultdict
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import database
from content_types import MANY_TO_ONE, ContentType, get_content_type
from filters import build_filter, merge_filters, parse_fields, parse_sort
from querystring import QueryError


@dataclass
class PopulateSpec:
    filters: Optional[Dict[str, Any]] = None
    fields: Optional[List[str]] = None
    sort: Any = None
    limit: Optional[int] = None
    populate: Dict[str, "PopulateSpec"] = field(default_factory=dict)


Populate = Dict[str, PopulateSpec]


def _merge(into: Populate, name: str, spec: PopulateSpec) -> None:
    existing = into.get(name)
    if existing is None:
        into[name] = spec
        return
    for child, child_spec in spec.populate.items():
        _merge(existing.populate, child, child_spec)


def _check_name(ct: ContentType, name: str) -> None:
    if name not in ct.relations and name not in ct.media:
        raise QueryError(f"Invalid populate key '{name}' for {ct.uid}")


def _path(ct: ContentType, dotted: str) -> Populate:
    head, _, rest = dotted.strip().partition(".")
    if head == "*":
        return everything(ct)
    _check_name(ct, head)
    spec = PopulateSpec()
    if rest:
        if head in ct.media:
            raise QueryError(f"Media field '{head}' cannot be populated further")
        spec.populate = _path(get_content_type(ct.relations[head].target), rest)
    return {head: spec}


def everything(ct: ContentType) -> Populate:
    return {name: PopulateSpec() for name in list(ct.relations) + list(ct.media)}


def _limit(options: Dict[str, Any]) -> Optional[int]:
    raw = options.get("limit")
    pagination = options.get("pagination")
    if raw is None and isinstance(pagination, dict):
        raw = pagination.get("limit", pagination.get("pageSize"))
    if raw is None:
        return None
    try:
        return int(raw)
    except (TypeError, ValueError):
        raise QueryError(f"Invalid populate limit: {raw!r}")


def parse_populate(raw: Any, ct: ContentType) -> Populate:
    """Normalize every accepted populate shape into a PopulateSpec tree."""
    result: Populate = {}
    if raw is None or raw is False or raw == "":
        return result

    if isinstance(raw, str):
        for item in raw.split(","):
            for name, spec in _path(ct, item).items():
                _merge(result, name, spec)
        return result

    if isinstance(raw, (list, tuple)):
        for item in raw:
            for name, spec in parse_populate(item, ct).items():
                _merge(result, name, spec)
        return result

    if not isinstance(raw, dict):
        raise QueryError("populate must be a string, a list or an object")

    for name, options in raw.items():
        if name == "*":
            for key, spec in everything(ct).items():
                _merge(result, key, spec)
            continue
        _check_name(ct, name)
        if options in (False, "false", None):
            continue
        if options in (True, "true", "*"):
            _merge(result, name, PopulateSpec())
            continue
        if not isinstance(options, dict):
            raise QueryError(f"Invalid populate options for '{name}'")
        if name in ct.media:
            _merge(result, name, PopulateSpec())
            continue
        target = get_content_type(ct.relations[name].target)
        spec = PopulateSpec(
            filters=options.get("filters"),
            fields=parse_fields(options.get("fields")),
            sort=options.get("sort"),
            limit=_limit(options),
            populate=parse_populate(options.get("populate"), target),
        )
        # surface bad nested filters now, not on first request
        _validate_filter_keys(spec.filters, target)
        _merge(result, name, spec)
    return result


def _validate_filter_keys(filters: Optional[Dict[str, Any]], ct: ContentType) -> None:
    if not filters:
        return
    for key, value in filters.items():
        if key in ("$or", "$and"):
            for branch in value if isinstance(value, list) else []:
                _validate_filter_keys(branch, ct)
        elif key == "$not":
            _validate_filter_keys(value, ct)
        elif key not in ct.relations and not ct.is_attribute(key):
            raise QueryError(f"Invalid filter key '{key}' for {ct.uid}")


# ----------------------------------------------------------------------------
# Resolution
# ----------------------------------------------------------------------------

def select_fields(doc: dict, fields: Optional[List[str]], keep: List[str]) -> dict:
    if not fields:
        return doc
    wanted = set(fields) | set(keep) | {"id"}
    return {key: value for key, value in doc.items() if key in wanted}


def strip_unpopulated(doc: dict, ct: ContentType, populate: Populate) -> dict:
    for name in list(ct.relations) + list(ct.media):
        if name not in populate:
            doc.pop(name, None)
    return doc


def resolve(docs: List[dict], populate: Populate, ct: ContentType) -> List[dict]:
    """Expand relations in place on serialized documents."""
    if not docs:
        return docs
    for name, spec in populate.items():
        if name in ct.media:
            continue
        relation = ct.relations[name]
        target = get_content_type(relation.target)
        query = build_filter(spec.filters, target)
        if relation.kind == MANY_TO_ONE:
            _resolve_many_to_one(docs, name, spec, target, query)
        else:
            _resolve_one_to_many(docs, name, spec, target, query, relation.foreign_key)
    for doc in docs:
        strip_unpopulated(doc, ct, populate)
    return docs


def _present(raw: List[dict], spec: PopulateSpec, target: ContentType) -> List[dict]:
    related = [database.serialize(doc) for doc in raw]
    resolve(related, spec.populate, target)
    return [select_fields(doc, spec.fields, list(spec.populate)) for doc in related]


def _resolve_many_to_one(docs, name, spec, target, query):
    object_ids = []
    for doc in docs:
        value = doc.get(name)
        if isinstance(value, str):
            try:
                object_ids.append(database.to_object_id(value))
            except ValueError:
                continue
    related = {}
    if object_ids:
        raw = database.get_documents(target.collection, merge_filters({"_id": {"$in": object_ids}}, query))
        related = {item["id"]: item for item in _present(raw, spec, target)}
    for doc in docs:
        value = doc.get(name)
        doc[name] = related.get(value) if isinstance(value, str) else None


def _resolve_one_to_many(docs, name, spec, target, query, foreign_key):
    parent_ids = [doc["id"] for doc in docs]
    raw = database.get_documents(
        target.collection,
        merge_filters({foreign_key: {"$in": parent_ids}}, query),
        sort=parse_sort(spec.sort) or None,
    )
    # read owners before field selection can drop the foreign key
    owners = [item.get(foreign_key) for item in raw]
    grouped = defaultdict(list)
    for owner, item in zip(owners, _present(raw, spec, target)):
        grouped[owner].append(item)
    for doc in docs:
        items = grouped.get(doc["id"], [])
        doc[name] = items[: spec.limit] if spec.limit and spec.limit > 0 else items
