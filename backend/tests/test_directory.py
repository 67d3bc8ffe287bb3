import pytest
from sqlalchemy import create_engine

from hearth.core.database import create_session_factory
from hearth.models import DirectoryBase, Household, HouseholdRole, User, UserHousehold
from hearth.models.base import utcnow
from hearth.services.directory import TenancyDirectory


@pytest.fixture
def sessions(tmp_path):
    engine = create_engine(f"sqlite:///{tmp_path}/directory.db")
    DirectoryBase.metadata.create_all(engine)
    yield create_session_factory(engine)
    engine.dispose()


@pytest.fixture
def directory(sessions):
    return TenancyDirectory(sessions)


@pytest.fixture
def seeded(sessions):
    with sessions() as db:
        live = Household(name="Live")
        gone = Household(name="Gone", deleted_at=utcnow())
        ann = User(email="ann@example.com", first_name="Ann")
        ben = User(email="ben@example.com", is_active=False)
        db.add_all([live, gone, ann, ben])
        db.flush()
        db.add_all([
            UserHousehold(user_id=ann.id, household_id=live.id, role="admin"),
            UserHousehold(user_id=ann.id, household_id=gone.id, role="admin"),
            UserHousehold(user_id=ben.id, household_id=live.id, role="member"),
        ])
        db.commit()
        return {"live": live.id, "gone": gone.id, "ann": ann.id, "ben": ben.id}


def test_household_exists(directory, seeded):
    assert directory.household_exists(seeded["live"])
    assert not directory.household_exists(seeded["gone"])
    assert not directory.household_exists(999)


def test_get_role(directory, seeded):
    assert directory.get_role(seeded["ann"], seeded["live"]) is HouseholdRole.ADMIN
    assert directory.get_role(seeded["ann"], seeded["gone"]) is None
    assert directory.get_role(seeded["ben"], seeded["live"]) is None
    assert directory.get_role(seeded["ann"], 999) is None


def test_unknown_role_value_grants_nothing(directory, sessions, seeded):
    with sessions() as db:
        db.get(UserHousehold, (seeded["ann"], seeded["live"])).role = "owner"
        db.commit()

    assert directory.get_role(seeded["ann"], seeded["live"]) is None


def test_role_hierarchy():
    assert HouseholdRole.ADMIN.allows(HouseholdRole.MEMBER)
    assert HouseholdRole.MEMBER.allows(HouseholdRole.VIEWER)
    assert not HouseholdRole.VIEWER.allows(HouseholdRole.MEMBER)
    assert not HouseholdRole.MEMBER.allows(HouseholdRole.ADMIN)


def test_user_names_and_active_households(directory, seeded):
    assert directory.user_names([seeded["ann"], seeded["ben"]]) == {
        seeded["ann"]: "Ann",
        seeded["ben"]: f"User {seeded['ben']}",
    }
    assert directory.active_household_ids() == [seeded["live"]]
