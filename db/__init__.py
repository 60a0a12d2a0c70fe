"""
Data access layer for the marketplace.

This module provides:
- A JSON document store standing in for browser local storage
- Deterministic mock user generation and seeding
- Repositories for users and marketplace records
"""

from .database import init_data_store, close_data_store, get_data_store, MockDataStore
from .seed_data import generate_mock_users
from .user_repository import MockUserRepository
from .marketplace_repository import MarketplaceRepository

__all__ = [
    'init_data_store',
    'close_data_store',
    'get_data_store',
    'MockDataStore',
    'generate_mock_users',
    'MockUserRepository',
    'MarketplaceRepository',
]
