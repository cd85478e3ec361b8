"""
Content Type Registry

One entry per CMS content type: where its documents live, which pydantic
schema validates them, which attributes are relations to other content types
and which are embedded media. Controllers, filters and populate all read
relation metadata from here.
"""

from dataclasses import dataclass, field
from typing import Dict, Optional, Tuple, Type

from pydantic import BaseModel

from schemas import Article, Bonus, Casino, Category, Comment, Slot

MANY_TO_ONE = "many_to_one"
ONE_TO_MANY = "one_to_many"


@dataclass(frozen=True)
class Relation:
    target: str
    kind: str = MANY_TO_ONE
    # field on the target that points back at us (one_to_many only)
    foreign_key: Optional[str] = None


@dataclass(frozen=True)
class ContentType:
    uid: str
    plural: str
    schema: Type[BaseModel]
    relations: Dict[str, Relation] = field(default_factory=dict)
    media: Tuple[str, ...] = ()

    @property
    def collection(self) -> str:
        return self.uid

    def action(self, name: str) -> str:
        return f"api::{self.uid}.{self.uid}.{name}"

    def is_attribute(self, name: str) -> bool:
        return name in self.schema.model_fields or name in ("id", "createdAt", "updatedAt")


CONTENT_TYPES: Dict[str, ContentType] = {
    "article": ContentType(
        uid="article",
        plural="articles",
        schema=Article,
        relations={
            "category": Relation("category"),
            "comments": Relation("comment", ONE_TO_MANY, "article"),
        },
        media=("preview_image",),
    ),
    "casino-review": ContentType(
        uid="casino-review",
        plural="casino-reviews",
        schema=Casino,
        relations={
            "bonuses": Relation("bonus", ONE_TO_MANY, "casino_review"),
            "comments": Relation("comment", ONE_TO_MANY, "casino_review"),
        },
        media=("logo",),
    ),
    "slot": ContentType(
        uid="slot",
        plural="slots",
        schema=Slot,
        relations={
            "category": Relation("category"),
            "comments": Relation("comment", ONE_TO_MANY, "slot"),
        },
        media=("cover_image",),
    ),
    "bonus": ContentType(
        uid="bonus",
        plural="bonuses",
        schema=Bonus,
        relations={
            "casino_review": Relation("casino-review"),
        },
    ),
    "comment": ContentType(
        uid="comment",
        plural="comments",
        schema=Comment,
        relations={
            "casino_review": Relation("casino-review"),
            "article": Relation("article"),
            "slot": Relation("slot"),
        },
    ),
    "category": ContentType(
        uid="category",
        plural="categories",
        schema=Category,
        relations={
            "articles": Relation("article", ONE_TO_MANY, "category"),
            "slots": Relation("slot", ONE_TO_MANY, "category"),
        },
        media=("icon",),
    ),
}


def get_content_type(uid: str) -> ContentType:
    try:
        return CONTENT_TYPES[uid]
    except KeyError:
        raise ValueError(f"Unknown content type: {uid}")


def _check_registry():
    for ct in CONTENT_TYPES.values():
        for name, relation in ct.relations.items():
            target = get_content_type(relation.target)
            if relation.kind == ONE_TO_MANY:
                back = target.relations.get(relation.foreign_key or "")
                if back is None or back.target != ct.uid:
                    raise ValueError(f"{ct.uid}.{name}: {relation.target} has no back reference")


_check_registry()
