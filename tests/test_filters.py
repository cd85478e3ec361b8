from datetime import datetime

import pytest
from bson import ObjectId

from content_types import CONTENT_TYPES
from filters import build_filter, field_kind, merge_filters, parse_fields, parse_pagination, parse_sort
from querystring import QueryError
from schemas import Slot

SLOT = CONTENT_TYPES["slot"]
BONUS = CONTENT_TYPES["bonus"]
CATEGORY = CONTENT_TYPES["category"]


def test_field_kind_reads_schema_annotations():
    assert field_kind(Slot, "rtp") == "number"
    assert field_kind(Slot, "is_popular") == "bool"
    assert field_kind(Slot, "release_date") == "datetime"
    assert field_kind(Slot, "publishedAt") == "datetime"
    assert field_kind(Slot, "provider") == "string"
    assert field_kind(Slot, "nope") == "unknown"


def test_query_string_values_are_coerced():
    assert build_filter({"rtp": {"$gte": "96"}}, SLOT) == {"rtp": {"$gte": 96}}
    assert build_filter({"rtp": {"$lt": "96.5"}}, SLOT) == {"rtp": {"$lt": 96.5}}
    assert build_filter({"is_popular": "true"}, SLOT) == {"is_popular": True}
    assert build_filter({"valid_until": {"$gte": "2030-01-01T00:00:00Z"}}, BONUS) == {
        "valid_until": {"$gte": datetime(2030, 1, 1)}
    }


def test_string_operators():
    assert build_filter({"provider": {"$containsi": "netent"}}, SLOT) == {
        "provider": {"$regex": "netent", "$options": "i"}
    }
    assert build_filter({"slug": {"$startsWith": "book"}}, SLOT) == {"slug": {"$regex": "^book"}}
    assert build_filter({"name": {"$notContainsi": "demo"}}, SLOT) == {
        "$nor": [{"name": {"$regex": "demo", "$options": "i"}}]
    }


def test_null_in_and_between():
    assert build_filter({"valid_until": {"$null": True}}, BONUS) == {"valid_until": {"$eq": None}}
    assert build_filter({"publishedAt": {"$notNull": "true"}}, BONUS) == {"publishedAt": {"$ne": None}}
    assert build_filter({"volatility": {"$in": ["low", "high"]}}, SLOT) == {"volatility": {"$in": ["low", "high"]}}
    assert build_filter({"rtp": {"$between": ["94", "97"]}}, SLOT) == {"rtp": {"$gte": 94, "$lte": 97}}


def test_logical_operators_nest():
    built = build_filter(
        {"$or": [{"release_date": {"$null": True}}, {"rtp": {"$gt": 90}}], "is_popular": True},
        SLOT,
    )

    assert built == {
        "$and": [
            {"$or": [{"release_date": {"$eq": None}}, {"rtp": {"$gt": 90}}]},
            {"is_popular": True},
        ]
    }


def test_field_level_not():
    assert build_filter({"rating": {"$not": {"$lt": 8}}}, SLOT) == {"$nor": [{"rating": {"$lt": 8}}]}


def test_id_filters_become_object_ids():
    oid = ObjectId()

    assert build_filter({"id": str(oid)}, SLOT) == {"_id": oid}
    assert build_filter({"id": {"$in": [str(oid)]}}, SLOT) == {"_id": {"$in": [oid]}}
    with pytest.raises(QueryError):
        build_filter({"id": "not-an-id"}, SLOT)


def test_many_to_one_relation_by_id_needs_no_lookup():
    assert build_filter({"casino_review": {"id": "abc123"}}, BONUS) == {"casino_review": "abc123"}
    assert build_filter({"casino_review": "abc123"}, BONUS) == {"casino_review": "abc123"}


def test_relation_filter_on_target_fields(mongo, seed):
    first = seed("casino-review", name="Lucky", slug="lucky", license="Malta")
    seed("casino-review", name="Other", slug="other", license="Curacao")

    built = build_filter({"casino_review": {"license": {"$eqi": "malta"}}}, BONUS)

    assert built == {"casino_review": {"$in": [first]}}


def test_one_to_many_relation_filter(mongo, seed):
    category = seed("category", name="Egypt", slug="egypt")
    seed("slot", name="Book of Ra", slug="book-of-ra", category=category)
    seed("category", name="Fruit", slug="fruit")

    built = build_filter({"slots": {"slug": "book-of-ra"}}, CATEGORY)

    assert built == {"_id": {"$in": [ObjectId(category)]}}


def test_unknown_operator_and_bad_keys_raise():
    with pytest.raises(QueryError):
        build_filter({"rating": {"$regex": ".*"}}, SLOT)
    with pytest.raises(QueryError):
        build_filter({"$where": "1"}, SLOT)
    with pytest.raises(QueryError):
        build_filter({"rating.nested": 1}, SLOT)
    with pytest.raises(QueryError):
        build_filter({"rtp": {"$gt": "lots"}}, SLOT)


def test_merge_filters_skips_empty():
    assert merge_filters({}, {"a": 1}) == {"a": 1}
    assert merge_filters({"a": 1}, {}, {"b": 2}) == {"$and": [{"a": 1}, {"b": 2}]}
    assert merge_filters() == {}


def test_parse_sort():
    assert parse_sort("rating:desc,name") == [("rating", -1), ("name", 1)]
    assert parse_sort(["sort_order:asc", "id:desc"]) == [("sort_order", 1), ("_id", -1)]
    assert parse_sort(None) == []
    with pytest.raises(QueryError):
        parse_sort("rating:sideways")


def test_parse_fields():
    assert parse_fields("name,slug") == ["name", "slug"]
    assert parse_fields(["title", "slug"]) == ["title", "slug"]
    assert parse_fields(None) is None


def test_page_pagination_meta():
    page = parse_pagination({"page": "2", "pageSize": "10"})

    assert (page.skip, page.limit) == (10, 10)
    assert page.meta(25) == {"page": 2, "pageSize": 10, "pageCount": 3, "total": 25}


def test_default_and_capped_pagination():
    assert parse_pagination(None).meta(0) == {"page": 1, "pageSize": 25, "pageCount": 0, "total": 0}
    assert parse_pagination({"pageSize": "500"}).page_size == 100


def test_offset_pagination():
    page = parse_pagination({"start": "5", "limit": "6"})

    assert (page.skip, page.limit) == (5, 6)
    assert page.meta(40) == {"start": 5, "limit": 6, "total": 40}


def test_mixed_pagination_is_rejected():
    with pytest.raises(QueryError):
        parse_pagination({"page": 1, "limit": 5})
