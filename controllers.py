"""
Content controllers.

`CollectionController` is the generic CRUD every content type gets
(find / findOne / create / update / delete over its MongoDB collection).
Each content type subclasses it to layer default populate graphs, sort
orders, base filters and its custom listing endpoints on top.
"""

import logging
import math
from typing import Any, Dict, List, Optional

from fastapi import HTTPException
from pydantic import ValidationError

import config
import database
from content_types import MANY_TO_ONE, get_content_type
from filters import build_filter, merge_filters, parse_fields, parse_pagination, parse_sort
from populate import parse_populate, resolve, select_fields
from schemas import BonusType, CommentStatus

logger = logging.getLogger(__name__)

PROTECTED_FIELDS = ("id", "_id", "createdAt", "updatedAt")


def active_bonus_filters() -> Dict[str, Any]:
    """Published and not expired (valid_until unset or still in the future)."""
    return {
        "publishedAt": {"$notNull": True},
        "$or": [
            {"valid_until": {"$null": True}},
            {"valid_until": {"$gte": database.now_utc()}},
        ],
    }


PUBLISHED = {"publishedAt": {"$notNull": True}}
PUBLISHED_COMMENTS = {"filters": {"status": CommentStatus.PUBLISHED.value}}


def _validation_message(error: ValidationError) -> str:
    parts = []
    for item in error.errors():
        location = ".".join(str(part) for part in item.get("loc", ()))
        parts.append(f"{location}: {item.get('msg')}" if location else str(item.get("msg")))
    return "; ".join(parts) or "Invalid data"


def parse_limit(query: Dict[str, Any], default: int) -> int:
    """`limit` or `pagination[limit]` for the custom listing routes."""
    raw = query.get("limit")
    pagination = query.get("pagination")
    if raw is None and isinstance(pagination, dict):
        raw = pagination.get("limit", pagination.get("pageSize"))
    if raw is None:
        return default
    try:
        limit = int(raw)
    except (TypeError, ValueError):
        raise HTTPException(status_code=400, detail="Invalid limit")
    if limit < 1:
        return default
    return min(limit, config.REST_MAX_LIMIT)


class CollectionController:
    uid = ""
    default_sort = "createdAt:desc"

    def __init__(self):
        self.ct = get_content_type(self.uid)
        # defaults are declared in the query dialect; parse once so a typo fails at import
        parse_populate(self.default_populate(), self.ct)
        parse_populate(self.detail_populate(), self.ct)

    # -- overridable defaults -------------------------------------------------

    def default_populate(self) -> Dict[str, Any]:
        return {}

    def detail_populate(self) -> Dict[str, Any]:
        return self.default_populate()

    def base_filters(self) -> Dict[str, Any]:
        return {}

    def detail_filters(self) -> Dict[str, Any]:
        return {}

    # -- helpers ---------------------------------------------------------------

    def object_id(self, value: Any):
        try:
            return database.to_object_id(value)
        except ValueError:
            raise HTTPException(status_code=400, detail="Invalid id")

    def locale_clause(self, locale: Optional[str]) -> Dict[str, Any]:
        if locale == "all":
            return {}
        locale = locale or config.DEFAULT_LOCALE
        if locale not in config.LOCALES:
            raise HTTPException(status_code=400, detail="Invalid locale")
        if locale == config.DEFAULT_LOCALE:
            # untagged entries belong to the default locale
            return {"$or": [{"locale": locale}, {"locale": None}]}
        return {"locale": locale}

    @staticmethod
    def published_clause(preview: bool) -> Dict[str, Any]:
        return {} if preview else {"publishedAt": {"$ne": None}}

    def present(self, docs: List[dict], populate: Any, fields: Any = None) -> List[dict]:
        spec = parse_populate(populate, self.ct)
        data = [database.serialize(doc) for doc in docs]
        resolve(data, spec, self.ct)
        selected = parse_fields(fields)
        return [select_fields(doc, selected, list(spec)) for doc in data]

    def validate(self, payload: Dict[str, Any]):
        try:
            return self.ct.schema.model_validate(payload)
        except ValidationError as error:
            raise HTTPException(status_code=400, detail=_validation_message(error))

    def check_relations(self, doc: Dict[str, Any]) -> None:
        for name, relation in self.ct.relations.items():
            value = doc.get(name)
            if relation.kind != MANY_TO_ONE or value is None:
                continue
            target = get_content_type(relation.target)
            try:
                target_id = database.to_object_id(value)
            except ValueError:
                raise HTTPException(status_code=400, detail=f"Invalid {name} id")
            if database.get_document(target.collection, {"_id": target_id}) is None:
                raise HTTPException(status_code=400, detail=f"Related {name} does not exist")

    def check_unique_slug(self, doc: Dict[str, Any], exclude_id=None) -> None:
        slug = doc.get("slug")
        if not slug:
            return
        query: Dict[str, Any] = {"slug": slug, "locale": doc.get("locale")}
        if exclude_id is not None:
            query["_id"] = {"$ne": exclude_id}
        if database.get_document(self.ct.collection, query) is not None:
            raise HTTPException(status_code=400, detail="Slug already exists")

    # -- core actions ------------------------------------------------------------

    def find(self, query: Dict[str, Any], preview: bool = False) -> Dict[str, Any]:
        where = merge_filters(
            build_filter(query.get("filters"), self.ct),
            build_filter(self.base_filters(), self.ct),
            self.locale_clause(query.get("locale")),
            self.published_clause(preview),
        )
        sort = parse_sort(query.get("sort") or self.default_sort)
        page = parse_pagination(query.get("pagination"), config.REST_DEFAULT_LIMIT, config.REST_MAX_LIMIT)

        total = database.count_documents(self.ct.collection, where)
        docs = database.get_documents(self.ct.collection, where, sort=sort, skip=page.skip, limit=page.limit)
        data = self.present(docs, query.get("populate") or self.default_populate(), query.get("fields"))
        return {"data": data, "meta": {"pagination": page.meta(total)}}

    def find_one(self, entity_id: str, query: Dict[str, Any], preview: bool = False) -> Dict[str, Any]:
        where = merge_filters(
            {"_id": self.object_id(entity_id)},
            build_filter(self.detail_filters(), self.ct),
            self.published_clause(preview),
        )
        doc = database.get_document(self.ct.collection, where)
        if doc is None:
            raise HTTPException(status_code=404, detail="Not Found")
        data = self.present([doc], query.get("populate") or self.detail_populate(), query.get("fields"))
        return {"data": data[0], "meta": {}}

    def find_many(
        self,
        filters: Dict[str, Any],
        populate: Optional[Dict[str, Any]] = None,
        sort: Optional[str] = None,
        limit: Optional[int] = None,
        locale: Optional[str] = None,
    ) -> Dict[str, Any]:
        """Published entries matching `filters`, for the custom listing routes."""
        where = merge_filters(
            build_filter(filters, self.ct),
            self.locale_clause(locale),
            self.published_clause(False),
        )
        docs = database.get_documents(
            self.ct.collection, where, sort=parse_sort(sort or self.default_sort), limit=limit
        )
        return {"data": self.present(docs, populate or {}), "meta": {}}

    def create(self, data: Dict[str, Any]) -> Dict[str, Any]:
        payload = {k: v for k, v in data.items() if k not in PROTECTED_FIELDS}
        payload.setdefault("locale", config.DEFAULT_LOCALE)
        if payload["locale"] not in config.LOCALES:
            raise HTTPException(status_code=400, detail="Invalid locale")
        if "publishedAt" not in payload:
            payload["publishedAt"] = database.now_utc()

        doc = self.validate(payload).model_dump()
        self.check_relations(doc)
        self.check_unique_slug(doc)

        new_id = database.create_document(self.ct.collection, doc)
        created = database.get_document(self.ct.collection, {"_id": database.to_object_id(new_id)})
        logger.info("Created %s %s", self.uid, new_id)
        return {"data": self.present([created], self.detail_populate())[0], "meta": {}}

    def update(self, entity_id: str, data: Dict[str, Any]) -> Dict[str, Any]:
        oid = self.object_id(entity_id)
        existing = database.get_document(self.ct.collection, {"_id": oid})
        if existing is None:
            raise HTTPException(status_code=404, detail="Not Found")

        changes = {k: v for k, v in data.items() if k not in PROTECTED_FIELDS}
        # slugs are URL keys: fixed once set
        if existing.get("slug") and changes.get("slug", existing["slug"]) != existing["slug"]:
            raise HTTPException(status_code=400, detail="Slug is immutable")
        current = {k: v for k, v in existing.items() if k not in PROTECTED_FIELDS}
        validated = self.validate({**current, **changes}).model_dump()
        stored = {k: validated[k] for k in changes if k in validated}
        self.check_relations(stored)
        if "slug" in stored or "locale" in stored:
            self.check_unique_slug(validated, exclude_id=oid)

        updated = database.update_document(self.ct.collection, oid, stored)
        return {"data": self.present([updated], self.detail_populate())[0], "meta": {}}

    def delete(self, entity_id: str) -> Dict[str, Any]:
        deleted = database.delete_document(self.ct.collection, self.object_id(entity_id))
        if deleted is None:
            raise HTTPException(status_code=404, detail="Not Found")
        logger.info("Deleted %s %s", self.uid, entity_id)
        return {"data": self.present([deleted], {})[0], "meta": {}}


# ----------------------------------------------------------------------------
# Articles
# ----------------------------------------------------------------------------

class ArticleController(CollectionController):
    uid = "article"

    def default_populate(self):
        return {"preview_image": True, "category": True, "comments": PUBLISHED_COMMENTS}

    def find_one(self, entity_id, query, preview=False):
        result = super().find_one(entity_id, query, preview)
        # atomic $inc; concurrent readers never lose a view
        updated = database.increment_field(self.ct.collection, self.object_id(entity_id), "view_count")
        if updated is not None:
            result["data"]["view_count"] = updated.get("view_count")
        return result

    def featured(self, limit: int = 6, locale: Optional[str] = None):
        return self.find_many(
            {"is_featured": True},
            populate={"preview_image": True, "category": True},
            sort="createdAt:desc",
            limit=limit,
            locale=locale,
        )

    def popular(self, limit: int = 6, locale: Optional[str] = None):
        return self.find_many(
            {},
            populate={"preview_image": True, "category": True},
            sort="view_count:desc",
            limit=limit,
            locale=locale,
        )


# ----------------------------------------------------------------------------
# Casino reviews
# ----------------------------------------------------------------------------

class CasinoController(CollectionController):
    uid = "casino-review"
    default_sort = "rating:desc"

    def default_populate(self):
        return {
            "logo": True,
            "bonuses": {"filters": active_bonus_filters()},
            "comments": PUBLISHED_COMMENTS,
        }

    def top_rated(self, limit: int = 10, locale: Optional[str] = None):
        return self.find_many(
            {"rating": {"$gte": 8}},
            populate={"logo": True, "bonuses": {"filters": active_bonus_filters()}},
            sort="rating:desc",
            limit=limit,
            locale=locale,
        )

    def by_license(self, license_name: str, locale: Optional[str] = None):
        return self.find_many(
            {"license": {"$containsi": license_name}},
            populate={"logo": True, "bonuses": {"filters": active_bonus_filters()}},
            sort="rating:desc",
            locale=locale,
        )


# ----------------------------------------------------------------------------
# Slots
# ----------------------------------------------------------------------------

class SlotController(CollectionController):
    uid = "slot"
    default_sort = "rating:desc"

    def default_populate(self):
        return {"cover_image": True, "category": True, "comments": PUBLISHED_COMMENTS}

    def popular(self, limit: int = 12, locale: Optional[str] = None):
        return self.find_many(
            {"is_popular": True},
            populate={"cover_image": True, "category": True},
            sort="rating:desc",
            limit=limit,
            locale=locale,
        )

    def high_rtp(self, limit: int = 12, locale: Optional[str] = None):
        return self.find_many(
            {"rtp": {"$gte": 96}},
            populate={"cover_image": True, "category": True},
            sort="rtp:desc",
            limit=limit,
            locale=locale,
        )

    def by_provider(self, provider: str, locale: Optional[str] = None):
        return self.find_many(
            {"provider": {"$containsi": provider}},
            populate={"cover_image": True, "category": True},
            sort="rating:desc",
            locale=locale,
        )


# ----------------------------------------------------------------------------
# Bonuses
# ----------------------------------------------------------------------------

BONUS_CASINO = {"casino_review": {"fields": ["name", "slug", "rating"], "populate": ["logo"]}}


class BonusController(CollectionController):
    uid = "bonus"

    def default_populate(self):
        return BONUS_CASINO

    def detail_populate(self):
        return {"casino_review": {"populate": ["logo"]}}

    def base_filters(self):
        return active_bonus_filters()

    def by_type(self, bonus_type: str, limit: int = 20, locale: Optional[str] = None):
        valid_types = [t.value for t in BonusType]
        if bonus_type not in valid_types:
            raise HTTPException(status_code=400, detail="Invalid bonus type")
        return self.find_many(
            merge_filters({"bonus_type": bonus_type}, active_bonus_filters()),
            populate=BONUS_CASINO,
            limit=limit,
            locale=locale,
        )

    def featured(self, limit: int = 6, locale: Optional[str] = None):
        return self.find_many(active_bonus_filters(), populate=BONUS_CASINO, limit=limit, locale=locale)

    def by_casino(self, casino_id: str, locale: Optional[str] = None):
        self.object_id(casino_id)
        return self.find_many(
            merge_filters({"casino_review": {"id": casino_id}}, active_bonus_filters()),
            populate=BONUS_CASINO,
            locale=locale,
        )


# ----------------------------------------------------------------------------
# Comments
# ----------------------------------------------------------------------------

COMMENT_PARENTS = {
    "casino_review": {"fields": ["name", "slug"]},
    "article": {"fields": ["title", "slug"]},
    "slot": {"fields": ["name", "slug"]},
}


class CommentController(CollectionController):
    uid = "comment"

    def default_populate(self):
        return COMMENT_PARENTS

    def base_filters(self):
        return {"status": CommentStatus.PUBLISHED.value}

    def detail_filters(self):
        return {"status": CommentStatus.PUBLISHED.value}

    def create(self, data):
        # moderation is mandatory: whatever the client sends, new comments wait for review
        return super().create({**data, "status": CommentStatus.PENDING.value})

    def _by_parent(self, parent: str, parent_id: str, limit: int, locale: Optional[str]):
        self.object_id(parent_id)
        return self.find_many(
            {parent: {"id": parent_id}, "status": CommentStatus.PUBLISHED.value},
            populate={parent: COMMENT_PARENTS[parent]},
            sort="createdAt:desc",
            limit=limit,
            locale=locale,
        )

    def by_casino(self, casino_id: str, limit: int = 10, locale: Optional[str] = None):
        return self._by_parent("casino_review", casino_id, limit, locale)

    def by_article(self, article_id: str, limit: int = 10, locale: Optional[str] = None):
        return self._by_parent("article", article_id, limit, locale)

    def by_slot(self, slot_id: str, limit: int = 10, locale: Optional[str] = None):
        return self._by_parent("slot", slot_id, limit, locale)

    def stats(self) -> Dict[str, Any]:
        counts = {
            status.value: database.count_documents(self.ct.collection, {"status": status.value})
            for status in CommentStatus
        }
        rated = database.get_documents(
            self.ct.collection,
            {"status": CommentStatus.PUBLISHED.value, "rating": {"$ne": None}},
            projection={"rating": 1},
        )
        average = sum(doc.get("rating") or 0 for doc in rated) / len(rated) if rated else 0
        return {
            "data": {
                "published": counts["published"],
                "pending": counts["pending"],
                "rejected": counts["rejected"],
                "total": sum(counts.values()),
                # half-up to one decimal
                "average_rating": math.floor(average * 10 + 0.5) / 10,
            }
        }


# ----------------------------------------------------------------------------
# Categories
# ----------------------------------------------------------------------------

class CategoryController(CollectionController):
    uid = "category"
    default_sort = "sort_order:asc,name:asc"

    def default_populate(self):
        return {
            "icon": True,
            "articles": {"filters": PUBLISHED, "fields": ["id", "title", "slug"], "pagination": {"limit": 5}},
            "slots": {"filters": PUBLISHED, "fields": ["id", "name", "slug"], "pagination": {"limit": 5}},
        }

    def detail_populate(self):
        return {
            "icon": True,
            "articles": {"filters": PUBLISHED, "populate": ["preview_image"], "sort": "createdAt:desc"},
            "slots": {"filters": PUBLISHED, "populate": ["cover_image"], "sort": "rating:desc"},
        }

    def featured(self, limit: int = 6, locale: Optional[str] = None):
        return self.find_many(
            {"is_featured": True},
            populate={
                "icon": True,
                "articles": {"filters": PUBLISHED, "fields": ["id"], "pagination": {"limit": 1}},
                "slots": {"filters": PUBLISHED, "fields": ["id"], "pagination": {"limit": 1}},
            },
            sort="sort_order:asc",
            limit=limit,
            locale=locale,
        )

    def stats(self, category_id: str) -> Dict[str, Any]:
        oid = self.object_id(category_id)
        if database.get_document(self.ct.collection, {"_id": oid}) is None:
            raise HTTPException(status_code=404, detail="Category not found")
        live = {"category": str(oid), "publishedAt": {"$ne": None}}
        articles_count = database.count_documents("article", live)
        slots_count = database.count_documents("slot", live)
        return {
            "data": {
                "articles_count": articles_count,
                "slots_count": slots_count,
                "total_content": articles_count + slots_count,
            }
        }


articles = ArticleController()
casinos = CasinoController()
slots = SlotController()
bonuses = BonusController()
comments = CommentController()
categories = CategoryController()

CONTROLLERS = {c.uid: c for c in (articles, casinos, slots, bonuses, comments, categories)}
