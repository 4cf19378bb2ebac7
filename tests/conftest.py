"""
Pytest configuration and fixtures for Nekovilo tests.
"""

import sys
from pathlib import Path

import pytest_asyncio

# Add src directory to path so imports work without an editable install
src_path = Path(__file__).parent.parent / "src"
sys.path.insert(0, str(src_path))

from nekovilo.database.db_connection import ConnectionManager  # noqa: E402
from nekovilo.database.db_schema import SchemaManager  # noqa: E402


@pytest_asyncio.fixture
async def connection_manager(tmp_path):
    """A connection manager backed by a fresh on-disk database with schema."""
    manager = ConnectionManager()
    await manager.open(tmp_path / "rules.db")
    await SchemaManager.initialize_schema(manager.connection)
    yield manager
    await manager.close()
