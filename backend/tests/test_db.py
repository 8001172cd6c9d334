import asyncio

import pytest

from feedback_api.db import DocumentStore


def run_with_store(scenario):
    """Run an async scenario against a fresh in-memory store"""
    async def runner():
        async with DocumentStore(":memory:") as store:
            return await scenario(store)
    return asyncio.run(runner())


class TestDocumentStore:
    def test_insert_assigns_id_and_keeps_input(self):
        async def scenario(store):
            doc = {"title": "Kickoff"}
            result = await store.insert_one("meetings", doc)
            stored = await store.find("meetings")
            return doc, result, stored

        doc, result, stored = run_with_store(scenario)
        assert "_id" not in doc
        assert len(result.inserted_id) == 32
        assert stored == [{"title": "Kickoff", "_id": result.inserted_id}]
        assert result.to_dict() == {"acknowledged": True, "insertedId": result.inserted_id}

    def test_find_filters_by_collection_and_fields_in_insertion_order(self):
        async def scenario(store):
            await store.insert_one("feedback", {"meetingId": "m1", "n": 1})
            await store.insert_one("feedback", {"meetingId": "m2", "n": 2})
            await store.insert_one("meetings", {"meetingId": "m1"})
            await store.insert_one("feedback", {"meetingId": "m1", "n": 3})
            return await store.find("feedback", {"meetingId": "m1"}), await store.find("feedback")

        matching, everything = run_with_store(scenario)
        assert [doc["n"] for doc in matching] == [1, 3]
        assert [doc["n"] for doc in everything] == [1, 2, 3]

    def test_string_match_is_exact(self):
        async def scenario(store):
            await store.insert_one("users", {"email": "a@b.com"})
            return (
                await store.find_one("users", {"email": "A@B.com"}),
                await store.find_one("users", {"email": "a@b.com"}),
            )

        upper, exact = run_with_store(scenario)
        assert upper is None
        assert exact["email"] == "a@b.com"

    def test_find_one_any_returns_first_stored_match(self):
        async def scenario(store):
            await store.insert_one("meetings", {"id": "x", "meetingId": "x", "title": "first"})
            await store.insert_one("meetings", {"id": "y", "meetingId": "y", "title": "second"})
            return (
                await store.find_one_any("meetings", [{"meetingId": "y"}, {"id": "y"}]),
                await store.find_one_any("meetings", [{"meetingId": "z"}, {"id": "z"}]),
            )

        found, missing = run_with_store(scenario)
        assert found["title"] == "second"
        assert missing is None

    def test_update_merges_fields(self):
        async def scenario(store):
            inserted = await store.insert_one("users", {"email": "a@b.com", "name": "Ann", "team": "red"})
            result = await store.update_one("users", {"email": "a@b.com"}, {"team": "blue", "_id": "other"})
            return inserted, result, await store.find("users")

        inserted, result, users = run_with_store(scenario)
        assert result.matched_count == 1
        assert result.modified_count == 1
        assert users == [{"email": "a@b.com", "name": "Ann", "team": "blue", "_id": inserted.inserted_id}]

    def test_update_without_changes_reports_unmodified(self):
        async def scenario(store):
            await store.insert_one("users", {"email": "a@b.com", "name": "Ann"})
            return await store.update_one("users", {"email": "a@b.com"}, {"name": "Ann"})

        result = run_with_store(scenario)
        assert (result.matched_count, result.modified_count) == (1, 0)

    def test_update_missing_without_upsert(self):
        async def scenario(store):
            result = await store.update_one("teams", {"_id": "nope"}, {"name": "A"})
            return result, await store.find("teams")

        result, teams = run_with_store(scenario)
        assert result.matched_count == 0
        assert result.upserted_id is None
        assert teams == []

    def test_upsert_creates_then_updates_single_document(self):
        async def scenario(store):
            key = {"meetId": "m1", "userId": "u1"}
            first = await store.update_one("questions", key, {"questions": [{"id": "q1"}]}, upsert=True)
            second = await store.update_one("questions", key, {"questions": [{"id": "q2"}]}, upsert=True)
            return first, second, await store.find("questions")

        first, second, docs = run_with_store(scenario)
        assert first.upserted_id is not None
        assert first.to_dict()["upsertedCount"] == 1
        assert second.upserted_id is None
        assert len(docs) == 1
        assert docs[0]["questions"] == [{"id": "q2"}]
        assert docs[0]["meetId"] == "m1"

    def test_delete_one(self):
        async def scenario(store):
            inserted = await store.insert_one("teams", {"name": "A"})
            first = await store.delete_one("teams", {"_id": inserted.inserted_id})
            second = await store.delete_one("teams", {"_id": inserted.inserted_id})
            return first, second, await store.find("teams")

        first, second, teams = run_with_store(scenario)
        assert first.deleted_count == 1
        assert second.deleted_count == 0
        assert teams == []

    def test_duplicate_id_rolls_back(self):
        async def scenario(store):
            await store.insert_one("ai_insights", {"_id": "fixed", "n": 1})
            with pytest.raises(Exception):
                await store.insert_one("ai_insights", {"_id": "fixed", "n": 2})
            return await store.find("ai_insights")

        docs = run_with_store(scenario)
        assert docs == [{"_id": "fixed", "n": 1}]

    def test_operations_require_connection(self):
        store = DocumentStore(":memory:")
        with pytest.raises(RuntimeError):
            asyncio.run(store.find("meetings"))
