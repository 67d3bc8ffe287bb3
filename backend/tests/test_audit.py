from datetime import timedelta
from types import SimpleNamespace

import pytest
from sqlalchemy import create_engine, func, select

from hearth.core.database import create_session_factory
from hearth.models import AuditLog, DirectoryBase
from hearth.models.base import utcnow
from hearth.services.audit import AuditRecorder, RequestContext


@pytest.fixture
def sessions(tmp_path):
    engine = create_engine(f"sqlite:///{tmp_path}/directory.db")
    DirectoryBase.metadata.create_all(engine)
    yield create_session_factory(engine)
    engine.dispose()


@pytest.fixture
def recorder(sessions):
    return AuditRecorder(sessions)


def test_same_action_twice_gives_two_rows(recorder, sessions):
    first = recorder.record(1, 10, "MEMBERS_UPDATE", "members", 5, {"fields": ["alias"]})
    second = recorder.record(1, 10, "MEMBERS_UPDATE", "members", 5, {"fields": ["alias"]})

    assert first != second
    with sessions() as db:
        assert db.scalar(select(func.count()).select_from(AuditLog)) == 2


def test_entries_have_the_export_shape(recorder):
    recorder.record(
        1, 10, "VEHICLES_CREATE", "vehicles", 3, {"version": 1},
        context=RequestContext(ip_address="10.0.0.1", user_agent="pytest"),
    )

    (entry,) = recorder.entries(1)

    assert {k: entry[k] for k in (
        "householdId", "actorUserId", "action", "entityType", "entityId",
        "metadata", "ipAddress", "userAgent",
    )} == {
        "householdId": 1,
        "actorUserId": 10,
        "action": "VEHICLES_CREATE",
        "entityType": "vehicles",
        "entityId": 3,
        "metadata": {"version": 1},
        "ipAddress": "10.0.0.1",
        "userAgent": "pytest",
    }
    assert entry["createdAt"]


def test_entries_are_scoped_and_newest_first(recorder):
    recorder.record(1, 10, "A_CREATE", "a", 1)
    recorder.record(2, 20, "B_CREATE", "b", 1)
    recorder.record(1, 10, "A_UPDATE", "a", 1)

    actions = [entry["action"] for entry in recorder.entries(1)]

    assert actions == ["A_UPDATE", "A_CREATE"]
    assert len(recorder.entries(1, limit=1)) == 1


def test_existing_entries_cannot_be_modified(recorder, sessions):
    recorder.record(1, 10, "MEMBERS_DELETE", "members", 5)

    with sessions() as db:
        entry = db.execute(select(AuditLog)).scalar_one()
        entry.action = "TAMPERED"
        with pytest.raises(RuntimeError):
            db.commit()
        db.rollback()

        entry = db.execute(select(AuditLog)).scalar_one()
        db.delete(entry)
        with pytest.raises(RuntimeError):
            db.commit()


def test_persistence_failure_does_not_raise(tmp_path):
    engine = create_engine(f"sqlite:///{tmp_path}/empty.db")
    recorder = AuditRecorder(create_session_factory(engine))

    assert recorder.record(1, 10, "MEMBERS_CREATE", "members", 1) is None


def test_activity_heatmap_groups_by_module_and_actor(recorder, sessions):
    for _ in range(3):
        recorder.record(1, 10, "MEMBERS_UPDATE", "members", 1)
    recorder.record(1, 11, "MEMBERS_CREATE", "members", 2)
    recorder.record(1, 10, "VEHICLES_CREATE", "vehicles", 1)
    recorder.record(2, 10, "MEMBERS_CREATE", "members", 1)

    with sessions() as db:
        db.add(AuditLog(
            household_id=1, user_id=10, action="MEMBERS_UPDATE", entity_type="members",
            entity_id=1, created_at=utcnow() - timedelta(days=45),
        ))
        db.commit()

    heatmap = recorder.activity_heatmap(1, days=30, name_lookup=lambda ids: {10: "Alice"})

    assert heatmap["modules"] == ["members", "vehicles"]
    assert heatmap["members"] == ["Alice", "User 11"]
    assert heatmap["data"] == [
        {"module": "members", "Alice": 3, "User 11": 1},
        {"module": "vehicles", "Alice": 1},
    ]


def test_activity_heatmap_keeps_actors_with_the_same_name_apart(recorder):
    recorder.record(1, 10, "MEMBERS_UPDATE", "members", 1)
    recorder.record(1, 10, "MEMBERS_UPDATE", "members", 1)
    recorder.record(1, 12, "MEMBERS_CREATE", "members", 2)
    recorder.record(1, 13, "MEMBERS_CREATE", "members", 3)

    heatmap = recorder.activity_heatmap(1, name_lookup=lambda ids: {10: "Alice", 12: "Alice", 13: "Bob"})

    assert heatmap["members"] == ["Alice (10)", "Alice (12)", "Bob"]
    assert heatmap["data"] == [{"module": "members", "Alice (10)": 2, "Alice (12)": 1, "Bob": 1}]
    assert sum(v for k, v in heatmap["data"][0].items() if k != "module") == 4


def test_request_context_prefers_forwarded_for():
    request = SimpleNamespace(
        headers={"x-forwarded-for": "203.0.113.9, 10.0.0.1", "user-agent": "curl"},
        client=SimpleNamespace(host="10.0.0.1"),
    )

    context = RequestContext.from_request(request)

    assert context == RequestContext(ip_address="203.0.113.9", user_agent="curl")


def test_request_context_falls_back_to_client_host():
    request = SimpleNamespace(headers={}, client=SimpleNamespace(host="127.0.0.1"))

    assert RequestContext.from_request(request).ip_address == "127.0.0.1"
