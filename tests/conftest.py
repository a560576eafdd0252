"""
Shared fixtures

Each test gets its own SQLite file so transactions behave like they do on
a real server: separate connections, a real unique index, real rollback.
"""
import httpx
import pytest
from sqlalchemy import func, select

from ecoduino.config import Settings
from ecoduino.database import Database
from ecoduino.dependencies import build_services
from ecoduino.main import create_app
from ecoduino.models import ControlState, Greenhouse, Ownership, SensorReading


@pytest.fixture
def test_settings(tmp_path):
    return Settings(
        environment="test",
        database_url=f"sqlite+aiosqlite:///{tmp_path / 'ecoduino.db'}",
        create_tables_on_startup=True,
        bcrypt_rounds=4,
        json_logs=False,
        log_level="WARNING",
    )


@pytest.fixture
async def db(test_settings):
    database = Database(config=test_settings)
    await database.initialize()
    await database.create_all()
    yield database
    await database.close()


@pytest.fixture
def services(db, test_settings):
    return build_services(db, test_settings)


@pytest.fixture
async def client(test_settings):
    """HTTP client against the app, with lifespan started"""
    app = create_app(test_settings)
    async with app.router.lifespan_context(app):
        transport = httpx.ASGITransport(app=app)
        async with httpx.AsyncClient(transport=transport, base_url="http://test") as ac:
            yield ac


async def count_rows(db, model, **filters) -> int:
    """Row count for a table, optionally filtered by column equality"""
    query = select(func.count()).select_from(model)
    for column, value in filters.items():
        query = query.where(getattr(model, column) == value)
    async with db.transaction() as session:
        return (await session.execute(query)).scalar_one()


async def table_counts(db) -> dict:
    return {
        "greenhouses": await count_rows(db, Greenhouse),
        "control_states": await count_rows(db, ControlState),
        "ownerships": await count_rows(db, Ownership),
        "readings": await count_rows(db, SensorReading),
    }


@pytest.fixture
def counts(db):
    """Awaitable snapshot of row counts for every table the core writes"""
    async def _counts() -> dict:
        return await table_counts(db)
    return _counts
