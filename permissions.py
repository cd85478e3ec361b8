"""
Role permission bootstrap.

At startup the desired grants for the `public` and `authenticated` roles
are compared with what the `permission` collection already holds and only
the missing entries are inserted, so the step can run on every boot.
"""

import logging
from typing import Dict, Iterable, List, Tuple

import database
from content_types import CONTENT_TYPES
from schemas import Permission, Role

logger = logging.getLogger(__name__)

PUBLIC = "public"
AUTHENTICATED = "authenticated"

ROLES = (
    Role(name="Public", type=PUBLIC, description="Default role given to unauthenticated visitors."),
    Role(name="Authenticated", type=AUTHENTICATED, description="Default role given to logged in users."),
)

READ_ACTIONS = ("find", "findOne")
WRITE_ACTIONS = ("create", "update", "delete")


def desired_permissions() -> List[Dict[str, str]]:
    desired = []
    for ct in CONTENT_TYPES.values():
        for action in READ_ACTIONS:
            desired.append({"action": ct.action(action), "role": PUBLIC})
    # visitors may submit comments; they land as pending
    desired.append({"action": CONTENT_TYPES["comment"].action("create"), "role": PUBLIC})

    for ct in CONTENT_TYPES.values():
        for action in READ_ACTIONS + WRITE_ACTIONS:
            desired.append({"action": ct.action(action), "role": AUTHENTICATED})
    return desired


def _key(permission: Dict[str, str]) -> Tuple[str, str]:
    return permission["action"], permission["role"]


def permissions_to_create(
    existing: Iterable[Dict[str, str]], desired: Iterable[Dict[str, str]]
) -> List[Dict[str, str]]:
    """Desired grants not present yet, in desired order, without duplicates."""
    seen = {_key(p) for p in existing}
    missing = []
    for permission in desired:
        key = _key(permission)
        if key in seen:
            continue
        seen.add(key)
        missing.append({"action": permission["action"], "role": permission["role"]})
    return missing


def ensure_roles() -> None:
    roles = database.collection("role")
    for role in ROLES:
        roles.update_one({"type": role.type}, {"$setOnInsert": role.model_dump()}, upsert=True)


def bootstrap_permissions() -> List[Dict[str, str]]:
    ensure_roles()
    permissions = database.collection("permission")
    existing = permissions.find({}, {"_id": 0, "action": 1, "role": 1})
    missing = permissions_to_create(existing, desired_permissions())
    for permission in missing:
        permissions.insert_one(Permission(**permission).model_dump())
        logger.info("Created %s permission: %s", permission["role"], permission["action"])
    logger.info("Permission bootstrap completed (%d created)", len(missing))
    return missing


def has_permission(role: str, action: str) -> bool:
    return database.get_document("permission", {"action": action, "role": role}) is not None
