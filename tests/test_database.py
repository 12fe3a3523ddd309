"""
Test engine lifecycle guards without a live database.
"""

import pytest

from stakeflow.core import database
from stakeflow.core.exceptions import DatabaseError


@pytest.mark.asyncio
async def test_session_requires_initialised_engine():
    with pytest.raises(DatabaseError):
        async with database.get_async_session():
            pass


@pytest.mark.asyncio
async def test_schema_changes_require_initialised_engine():
    with pytest.raises(DatabaseError):
        await database.create_schema()
    with pytest.raises(DatabaseError):
        await database.drop_schema()


@pytest.mark.asyncio
async def test_connection_check_reports_failure():
    assert await database.check_connection() is False


@pytest.mark.asyncio
async def test_close_without_engine_is_a_no_op():
    await database.close_database()

    assert database.async_engine is None
    assert database.async_session_maker is None
