"""
Tests for SqlSubscriptionStore against in-memory SQLite.
"""
import uuid

import pytest
from sqlalchemy import select
from sqlalchemy.exc import OperationalError

from taskvision.models.push_subscription import PushSubscription
from taskvision.services.subscription_store import SqlSubscriptionStore, SubscriptionStoreError
from tests.conftest import create_employee

ENDPOINT = "https://fcm.googleapis.com/fcm/send/device-1"


async def all_rows(db):
    db.expire_all()
    result = await db.execute(select(PushSubscription))
    return result.scalars().all()


@pytest.mark.asyncio
async def test_upsert_creates_subscription(store, employee, db):
    sub = await store.upsert(employee.id, ENDPOINT, "p256dh-1", "auth-1")

    assert sub.id is not None
    assert sub.employee_id == employee.id
    rows = await all_rows(db)
    assert len(rows) == 1
    assert rows[0].p256dh == "p256dh-1"


@pytest.mark.asyncio
async def test_upsert_same_device_overwrites_keys(store, employee, db):
    first = await store.upsert(employee.id, ENDPOINT, "p256dh-1", "auth-1")
    second = await store.upsert(employee.id, ENDPOINT, "p256dh-2", "auth-2")

    assert second.id == first.id
    rows = await all_rows(db)
    assert len(rows) == 1
    assert rows[0].p256dh == "p256dh-2"
    assert rows[0].auth == "auth-2"


@pytest.mark.asyncio
async def test_same_endpoint_different_employees_are_separate(store, employee, department_head, db):
    await store.upsert(employee.id, ENDPOINT, "k", "a")
    await store.upsert(department_head.id, ENDPOINT, "k", "a")

    assert len(await all_rows(db)) == 2


@pytest.mark.asyncio
async def test_upsert_replaces_rotated_endpoint(store, employee, db):
    await store.upsert(employee.id, ENDPOINT, "k", "a")
    await store.upsert(employee.id, ENDPOINT + "-new", "k2", "a2", replaces_endpoint=ENDPOINT)

    rows = await all_rows(db)
    assert [r.endpoint for r in rows] == [ENDPOINT + "-new"]


@pytest.mark.asyncio
async def test_list_by_owners_filters(store, employee, department_head, db):
    other = await create_employee(db, name="Sunil Fernando")
    await store.upsert(employee.id, ENDPOINT + "/a", "k", "a")
    await store.upsert(employee.id, ENDPOINT + "/b", "k", "a")
    await store.upsert(department_head.id, ENDPOINT + "/c", "k", "a")
    await store.upsert(other.id, ENDPOINT + "/d", "k", "a")

    subs = await store.list_by_owners([employee.id, department_head.id])

    assert sorted(s.endpoint for s in subs) == [ENDPOINT + "/a", ENDPOINT + "/b", ENDPOINT + "/c"]
    assert len(await store.list_all()) == 4
    assert len(await store.list_for_owner(other.id)) == 1


@pytest.mark.asyncio
async def test_list_by_owners_empty_input_is_invalid(store):
    with pytest.raises(ValueError):
        await store.list_by_owners([])


@pytest.mark.asyncio
async def test_delete_by_id_is_idempotent(store, employee, db):
    sub = await store.upsert(employee.id, ENDPOINT, "k", "a")

    await store.delete_by_id(sub.id)
    await store.delete_by_id(sub.id)
    await store.delete_by_id(uuid.uuid4())

    assert await all_rows(db) == []


@pytest.mark.asyncio
async def test_delete_by_endpoint(store, employee, department_head, db):
    await store.upsert(employee.id, ENDPOINT, "k", "a")
    await store.upsert(department_head.id, ENDPOINT, "k", "a")

    assert await store.delete_by_endpoint(ENDPOINT, owner_id=employee.id) == 1
    assert await store.delete_by_endpoint(ENDPOINT) == 1
    assert await store.delete_by_endpoint(ENDPOINT) == 0


@pytest.mark.asyncio
async def test_read_error_is_wrapped():
    class BrokenSession:
        async def __aenter__(self):
            return self

        async def __aexit__(self, *exc):
            return False

        async def execute(self, stmt):
            raise OperationalError("SELECT", {}, Exception("database is locked"))

    store = SqlSubscriptionStore(lambda: BrokenSession())

    with pytest.raises(SubscriptionStoreError):
        await store.list_all()
    with pytest.raises(SubscriptionStoreError):
        await store.list_by_owners([uuid.uuid4()])


def test_default_session_factory_is_app_sessionmaker():
    from taskvision.core.database import AsyncSessionLocal, get_session_factory

    assert get_session_factory() is AsyncSessionLocal
