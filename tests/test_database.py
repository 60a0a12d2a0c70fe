"""
Unit tests for the JSON document store and its file backing.
"""

import json

import pytest

from db.database import MockDataStore
from db.seed_data import generate_mock_user
from db.user_repository import MockUserRepository
from models.marketplace import UserRole


# Tests

def test_upsert_writes_through_to_file(tmp_path):
    path = tmp_path / "mock_data.json"
    store = MockDataStore(str(path))

    store.upsert("users", {"id": "x", "name": "First"})

    assert json.loads(path.read_text(encoding="utf-8")) == {"users": [{"id": "x", "name": "First"}]}
    assert MockDataStore(str(path)).get("users") == [{"id": "x", "name": "First"}]


def test_put_and_clear_are_persisted(tmp_path):
    path = tmp_path / "mock_data.json"
    store = MockDataStore(str(path))
    store.put("rfqs", [{"id": "rfq-001"}, {"id": "rfq-002"}])
    store.put("quotes", [{"id": "quote-001"}])

    store.clear("rfqs")

    reloaded = MockDataStore(str(path))
    assert reloaded.collections() == ["quotes"]
    assert reloaded.find("quotes", "quote-001") == {"id": "quote-001"}


def test_in_memory_store_writes_no_file(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    store = MockDataStore()

    store.upsert("users", {"id": "x"})
    store.flush()

    assert list(tmp_path.iterdir()) == []


def test_load_rejects_non_object_file(tmp_path):
    path = tmp_path / "mock_data.json"
    path.write_text("[1, 2, 3]", encoding="utf-8")

    with pytest.raises(ValueError):
        MockDataStore(str(path))


def test_upsert_requires_key():
    with pytest.raises(ValueError):
        MockDataStore().upsert("users", {"name": "No id"})


def test_persisted_users_survive_restart(tmp_path):
    """An edited user saved before a restart wins over the regenerated one."""
    path = str(tmp_path / "mock_data.json")
    repository = MockUserRepository(MockDataStore(path), per_role=2, seed=42)
    repository.seed()
    edited = generate_mock_user(UserRole.HOMEOWNER, 1, seed=42).model_copy(update={"full_name": "Edited Name"})
    repository.save_user(edited)

    restarted = MockUserRepository(MockDataStore(path), per_role=2, seed=42)
    count = restarted.seed()

    assert count == 6
    assert restarted.get_user_by_id("homeowner-user-001").full_name == "Edited Name"
