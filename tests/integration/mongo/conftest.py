"""
Fixtures for MongoDB integration tests.
"""
import pytest


@pytest.fixture
async def users(mongo_adapter, user_rows):
    """Adapter on the container with the `users` collection seeded."""
    await mongo_adapter.insert_many('users', user_rows)
    return mongo_adapter
