"""Shared pytest fixtures."""

import pytest
import yaml
from sqlalchemy import event
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

import vellum.db.models  # noqa: F401  (registers tables on Base.metadata)
from vellum.config import get_settings
from vellum.db.base import Base
from vellum.db.services import page_service, project_service
from vellum.lib.hooks import hooks

from factories import ACTOR_ID


def _enable_foreign_keys(dbapi_connection, _record):
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


@pytest.fixture(autouse=True)
def clean_settings(monkeypatch, tmp_path):
    """Point settings at an empty config and drop the cached instance around each test."""
    monkeypatch.setenv("VELLUM_CONFIG", str(tmp_path / "missing-app.yaml"))
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture(autouse=True)
def clean_hooks():
    """Run each test with an empty hook registry."""
    hooks.clear()
    yield
    hooks.clear()


@pytest.fixture
def app_yaml(tmp_path, monkeypatch):
    """Write an app.yaml and point VELLUM_CONFIG at it."""
    config_path = tmp_path / "app.yaml"

    def _write(config: dict):
        with open(config_path, "w") as f:
            yaml.safe_dump(config, f)
        monkeypatch.setenv("VELLUM_CONFIG", str(config_path))
        get_settings.cache_clear()
        return config_path

    return _write


@pytest.fixture
async def engine():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    event.listen(engine.sync_engine, "connect", _enable_foreign_keys)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
async def db_session(engine):
    async with async_sessionmaker(engine, expire_on_commit=False)() as session:
        yield session


@pytest.fixture
async def project(db_session):
    return await project_service.create_project(db_session, "Handbook")


@pytest.fixture
def make_page(db_session, project):
    """Create published pages in the default project."""

    async def _make(title, parent=None, **kwargs):
        kwargs.setdefault("is_published", True)
        return await page_service.create_page(
            db_session,
            kwargs.pop("project_id", project.id),
            title,
            actor_id=kwargs.pop("actor_id", ACTOR_ID),
            parent_page_id=parent.id if parent is not None else None,
            **kwargs,
        )

    return _make

