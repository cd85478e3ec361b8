from permissions import (
    AUTHENTICATED,
    PUBLIC,
    bootstrap_permissions,
    desired_permissions,
    has_permission,
    permissions_to_create,
)


def test_desired_permissions_cover_every_type():
    desired = {(p["action"], p["role"]) for p in desired_permissions()}

    assert ("api::slot.slot.find", PUBLIC) in desired
    assert ("api::casino-review.casino-review.findOne", PUBLIC) in desired
    assert ("api::comment.comment.create", PUBLIC) in desired
    assert ("api::article.article.create", PUBLIC) not in desired
    assert ("api::bonus.bonus.delete", AUTHENTICATED) in desired
    # 6 types x 2 read actions + comment.create, then 6 x 5 for authenticated
    assert len(desired) == 13 + 30


def test_permissions_to_create_only_returns_missing():
    existing = [{"action": "api::slot.slot.find", "role": PUBLIC}]
    desired = [
        {"action": "api::slot.slot.find", "role": PUBLIC},
        {"action": "api::slot.slot.findOne", "role": PUBLIC},
        {"action": "api::slot.slot.findOne", "role": PUBLIC},
        {"action": "api::slot.slot.find", "role": AUTHENTICATED},
    ]

    assert permissions_to_create(existing, desired) == [
        {"action": "api::slot.slot.findOne", "role": PUBLIC},
        {"action": "api::slot.slot.find", "role": AUTHENTICATED},
    ]


def test_permissions_to_create_nothing_when_complete():
    desired = desired_permissions()

    assert permissions_to_create(desired, desired) == []
    assert permissions_to_create([], []) == []


def test_bootstrap_is_idempotent(mongo):
    created = bootstrap_permissions()

    assert len(created) == len(desired_permissions())
    assert mongo["role"].count_documents({}) == 2
    assert bootstrap_permissions() == []
    assert mongo["permission"].count_documents({}) == len(created)


def test_bootstrap_keeps_existing_grants(mongo):
    mongo["permission"].insert_one({"action": "api::slot.slot.find", "role": PUBLIC})

    created = bootstrap_permissions()

    assert {"action": "api::slot.slot.find", "role": PUBLIC} not in created
    assert mongo["permission"].count_documents({"action": "api::slot.slot.find", "role": PUBLIC}) == 1


def test_has_permission(mongo):
    bootstrap_permissions()

    assert has_permission(PUBLIC, "api::article.article.find")
    assert not has_permission(PUBLIC, "api::article.article.delete")
    assert has_permission(AUTHENTICATED, "api::article.article.delete")
