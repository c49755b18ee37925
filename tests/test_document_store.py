from __future__ import annotations

import asyncio


def test_get_missing_returns_none(store):
    assert asyncio.run(store.get("users", "nobody")) is None


def test_documents_are_copied_in_and_out(store):
    data = {"tags": ["a"]}

    async def scenario():
        await store.set("things", "t-1", data)
        data["tags"].append("b")
        fetched = await store.get("things", "t-1")
        fetched["tags"].append("c")
        return await store.get("things", "t-1")

    assert asyncio.run(scenario()) == {"tags": ["a"]}


def test_merge_updates_only_given_fields_and_is_idempotent(store):
    async def scenario():
        await store.set("users", "u-1", {"email": "a@example.com", "xp": 10})
        await store.set("users", "u-1", {"xp": 50}, merge=True)
        once = await store.get("users", "u-1")
        await store.set("users", "u-1", {"xp": 50}, merge=True)
        twice = await store.get("users", "u-1")
        return once, twice

    once, twice = asyncio.run(scenario())

    assert once == {"email": "a@example.com", "xp": 50}
    assert twice == once


def test_merge_creates_missing_document(store):
    async def scenario():
        await store.set("users", "u-2", {"xp": 5}, merge=True)
        return await store.get("users", "u-2")

    assert asyncio.run(scenario()) == {"xp": 5}


def test_plain_set_replaces_document(store):
    async def scenario():
        await store.set("users", "u-1", {"email": "a@example.com", "xp": 10})
        await store.set("users", "u-1", {"xp": 1})
        return await store.get("users", "u-1")

    assert asyncio.run(scenario()) == {"xp": 1}


def test_query_filters_orders_and_limits(store):
    async def scenario():
        await store.set("sessions", "s-1", {"userId": "u", "startedAt": 1})
        await store.set("sessions", "s-2", {"userId": "u", "startedAt": 3})
        await store.set("sessions", "s-3", {"userId": "u", "startedAt": 2})
        await store.set("sessions", "s-4", {"userId": "other", "startedAt": 4})
        await store.set("sessions", "s-5", {"userId": "u"})
        newest = await store.query("sessions", where=[("userId", "u")], order_by="startedAt", descending=True)
        limited = await store.query("sessions", where=[("userId", "u")], order_by="startedAt", limit=2)
        unordered = await store.query("sessions", where=[("userId", "u")])
        return newest, limited, unordered

    newest, limited, unordered = asyncio.run(scenario())

    assert [document.id for document in newest] == ["s-2", "s-3", "s-1"]
    assert [document.id for document in limited] == ["s-1", "s-3"]
    assert len(unordered) == 4


def test_delete_is_quiet_for_missing_documents(store):
    async def scenario():
        await store.set("users", "u-1", {"xp": 1})
        await store.delete("users", "u-1")
        await store.delete("users", "u-1")

    asyncio.run(scenario())

    assert store.document_count("users") == 0
