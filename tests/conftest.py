import asyncio

import pytest

import planboard.storage.db_config as db_config
import planboard.storage.user as user_storage
from planboard.metrics import runtime_metrics


@pytest.fixture
def run_db():
    """Run an async scenario against a fresh in-memory database."""
    def runner(scenario):
        async def _main():
            await db_config.init_db(":memory:")
            try:
                return await scenario()
            finally:
                await db_config.close_db()
        return asyncio.run(_main())
    return runner


@pytest.fixture(autouse=True)
def _reset_metrics():
    runtime_metrics.reset()
    yield
    runtime_metrics.reset()


async def make_user(name: str = "ana", timezone: str = "UTC"):
    return await user_storage.create_user(user_name=name, email=f"{name}@example.com", timezone=timezone)
