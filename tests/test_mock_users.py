"""
Unit tests for mock user generation and the user repository.
"""

from datetime import date

from db.database import MockDataStore
from db.seed_data import generate_mock_user, generate_mock_users
from db.user_repository import MockUserRepository
from models.marketplace import MockUser, UserRole


# Tests

def test_generated_ids_follow_role_pattern():
    """Ids are {role}-user-{NNN}, numbered from 1 within each role."""
    users = generate_mock_users(per_role=3)

    assert [u.id for u in users] == [
        "homeowner-user-001", "homeowner-user-002", "homeowner-user-003",
        "installer-user-001", "installer-user-002", "installer-user-003",
        "supplier-user-001", "supplier-user-002", "supplier-user-003",
    ]


def test_generated_ids_and_emails_are_unique():
    users = generate_mock_users(per_role=10)

    assert len({u.id for u in users}) == 30
    assert len({u.email for u in users}) == 30


def test_generation_is_deterministic_for_a_seed():
    assert generate_mock_user(UserRole.INSTALLER, 4, seed=7) == generate_mock_user(UserRole.INSTALLER, 4, seed=7)
    assert generate_mock_users(per_role=2, seed=1) != generate_mock_users(per_role=2, seed=2)


def test_role_specific_fields():
    """Installers carry specialties and project counts; suppliers carry product lines and ratings."""
    homeowner = generate_mock_user(UserRole.HOMEOWNER, 1)
    installer = generate_mock_user(UserRole.INSTALLER, 1)
    supplier = generate_mock_user(UserRole.SUPPLIER, 1)

    assert homeowner.company_name is None
    assert homeowner.specialties is None

    assert installer.company_name.endswith("Solar Solutions")
    assert len(installer.specialties) == 2
    assert 10 <= installer.project_count < 60

    assert supplier.company_name.endswith("Energy Supplies")
    assert len(supplier.products_offered) == 2
    assert 3.5 <= supplier.store_rating <= 5.0

    assert date(2020, 1, 1) <= homeowner.member_since < date(2024, 1, 1)


def test_seed_stores_generated_users():
    repository = MockUserRepository(MockDataStore(), per_role=4, seed=42)

    assert repository.seed() == 12
    assert len(repository.get_users_by_role(UserRole.SUPPLIER)) == 4
    assert repository.get_user_by_id("installer-user-004").role == UserRole.INSTALLER
    assert repository.get_user_by_id("installer-user-005") is None


def test_seed_keeps_persisted_users():
    """A persisted user overrides the generated one; persisted-only users are appended."""
    store = MockDataStore()
    edited = generate_mock_user(UserRole.HOMEOWNER, 1).model_copy(update={"full_name": "Edited Name"})
    extra = MockUser(id="homeowner-user-099", full_name="Late Joiner", email="late@example.com", role="homeowner")
    store.put("users", [edited.model_dump(mode="json"), extra.model_dump(mode="json")])

    repository = MockUserRepository(store, per_role=2, seed=42)

    assert repository.seed() == 7
    users = repository.list_users()
    assert users[0].full_name == "Edited Name"
    assert users[-1].id == "homeowner-user-099"


def test_save_user_replaces_existing(user_repository):
    user = user_repository.get_user_by_id("supplier-user-002")
    user.store_rating = 4.9

    user_repository.save_user(user)

    assert user_repository.get_user_by_id("supplier-user-002").store_rating == 4.9
    assert len(user_repository.list_users()) == 15
