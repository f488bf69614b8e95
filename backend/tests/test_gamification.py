import pytest
from bson import ObjectId

from ecopromise.models.badge import BADGE_CATALOG, describe_badges
from ecopromise.services import gamification_service


@pytest.fixture
def user(db):
    user_id = db.users.insert_one({
        "email": "gamer@example.com",
        "name": "Gamer",
        "total_commitments": 0,
        "total_carbon_saved": 0.0,
        "completed_milestones": 0,
        "level": 1,
        "badges": [],
    }).inserted_id
    return user_id


@pytest.mark.parametrize("carbon, level", [
    (0, 1),
    (49.9, 1),
    (50, 2),
    (260, 6),
    (-10, 1),
    (1_000_000, gamification_service.MAX_LEVEL),
])
def test_level_for(carbon, level):
    assert gamification_service.level_for(carbon) == level


def test_stats_update_recomputes_level(db, user):
    updated = gamification_service.update_user_stats(db, user, commitments_delta=1, carbon_delta=120.0)
    assert updated["total_commitments"] == 1
    assert updated["total_carbon_saved"] == 120.0
    assert updated["level"] == 3


def test_counters_never_go_negative(db, user):
    updated = gamification_service.update_user_stats(db, user, commitments_delta=-1, milestones_delta=-2)
    assert updated["total_commitments"] == 0
    assert updated["completed_milestones"] == 0


def test_stats_update_for_unknown_user(db):
    assert gamification_service.update_user_stats(db, ObjectId(), commitments_delta=1) == {}


def test_badges_are_granted_once_per_event(db, user):
    gamification_service.update_user_stats(db, user, commitments_delta=5)

    granted = gamification_service.award_badges(db, user, "commitment_created")
    assert granted == ["first_commitment", "committed_5"]
    assert gamification_service.award_badges(db, user, "commitment_created") == []

    # Carbon badges only react to progress events
    gamification_service.update_user_stats(db, user, carbon_delta=150.0)
    assert gamification_service.award_badges(db, user, "commitment_created") == []
    assert gamification_service.award_badges(db, user, "progress_logged") == ["carbon_10kg", "carbon_100kg"]

    assert db.users.find_one({"_id": user})["badges"] == [
        "first_commitment", "committed_5", "carbon_10kg", "carbon_100kg",
    ]
    assert db.notifications.count_documents({"user_id": user, "type": "badge"}) == 4


def test_every_badge_key_is_unique():
    keys = [badge.key for badge in gamification_service.BADGES]
    assert len(keys) == len(set(keys))


def test_every_rule_has_a_catalogue_entry():
    assert {rule.key for rule in gamification_service.BADGES} == set(BADGE_CATALOG)
    assert {badge.tier.value for badge in BADGE_CATALOG.values()} == {"bronze", "silver", "gold"}


def test_describe_badges_keeps_unknown_keys():
    described = describe_badges(["carbon_100kg", "retired_badge"])
    assert [(b.key, b.name, b.tier.value) for b in described] == [
        ("carbon_100kg", "Tree Hugger", "silver"),
        ("retired_badge", "retired_badge", "bronze"),
    ]
