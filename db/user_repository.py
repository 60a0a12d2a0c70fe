"""
Repository for marketplace users.

Replaces the process-global mock user array with an injected repository:
generated demonstration users are merged with users already persisted in
the data store.
"""

import os
import logging
from typing import List, Optional

from db.database import MockDataStore, get_data_store
from db.seed_data import generate_mock_users
from models.marketplace import MockUser, UserRole

logger = logging.getLogger(__name__)


class MockUserRepository:
    """
    User records held in the mock data store.

    Usage:
        repo = MockUserRepository()
        repo.seed()
        installer = repo.get_user_by_id("installer-user-001")
    """

    COLLECTION = "users"

    def __init__(
        self,
        store: Optional[MockDataStore] = None,
        per_role: Optional[int] = None,
        seed: Optional[int] = None,
    ):
        """
        Initialize repository.

        Args:
            store: Data store (defaults to the global store)
            per_role: Users generated per role (MOCK_USERS_PER_ROLE, default 10)
            seed: Generation seed (MOCK_DATA_SEED, default 42)
        """
        self.store = store or get_data_store()
        self.per_role = per_role if per_role is not None else int(os.getenv("MOCK_USERS_PER_ROLE", "10"))
        self.seed_value = seed if seed is not None else int(os.getenv("MOCK_DATA_SEED", "42"))

    def seed(self) -> int:
        """
        Merge generated users with persisted ones and store the result.

        A persisted user replaces the generated user with the same id;
        persisted users with other ids are kept after the generated ones.

        Returns:
            Number of users in the store after seeding
        """
        persisted = {u["id"]: u for u in self.store.get(self.COLLECTION)}
        generated = generate_mock_users(self.per_role, self.seed_value)

        merged = []
        for user in generated:
            if user.id in persisted:
                merged.append(persisted.pop(user.id))
            else:
                merged.append(user.model_dump(mode="json"))
        merged.extend(persisted.values())

        self.store.put(self.COLLECTION, merged)
        logger.info(
            f"Seeded {len(merged)} users ({len(generated)} generated, "
            f"{len(merged) - len(generated)} persisted-only)"
        )
        return len(merged)

    def list_users(self) -> List[MockUser]:
        return [MockUser(**u) for u in self.store.get(self.COLLECTION)]

    def get_user_by_id(self, user_id: str) -> Optional[MockUser]:
        record = self.store.find(self.COLLECTION, user_id)
        return MockUser(**record) if record else None

    def get_users_by_role(self, role: UserRole) -> List[MockUser]:
        role = UserRole(role)
        return [u for u in self.list_users() if u.role == role]

    def save_user(self, user: MockUser) -> MockUser:
        """Insert or replace a user record."""
        stored = self.store.upsert(self.COLLECTION, user.model_dump(mode="json"))
        logger.info(f"Saved user {user.id}")
        return MockUser(**stored)
