"""Application wiring: lifespan, health check and error rendering."""

import logging

from freelancehub.core.config import settings
from freelancehub.main import create_app
from freelancehub.services.accounts import AccountService

from conftest import PASSWORD


async def test_lifespan_sets_up_logging_and_tables(database, tmp_path, monkeypatch):
    monkeypatch.setattr(settings, "LOG_DIR", str(tmp_path / "logs"))
    app = create_app(database)
    root_handlers = list(logging.getLogger().handlers)

    try:
        async with app.router.lifespan_context(app):
            assert app.state.db is database
            assert await database.ping() is True
        assert (tmp_path / "logs" / "freelancehub.log").exists()
    finally:
        for handler in logging.getLogger().handlers[:]:
            if handler not in root_handlers:
                logging.getLogger().removeHandler(handler)
                handler.close()


async def test_health(client):
    res = await client.get("/health")
    assert res.status_code == 200
    assert res.json() == {"status": "healthy", "service": "freelancehub", "database": "connected"}


async def test_unexpected_error_renders_internal_error(client, monkeypatch):
    async def boom(self, email, password):
        raise RuntimeError("something broke")

    monkeypatch.setattr(AccountService, "login", boom)
    res = await client.post(
        "/api/auth/login", json={"email": "alice@example.com", "password": PASSWORD}
    )
    assert res.status_code == 500
    body = res.json()
    assert body["success"] is False
    assert body["message"] == "Internal server error"
    # Details only leak in development
    assert "error" not in body
    assert "something broke" not in res.text


async def test_storage_outage_renders_service_unavailable(client, monkeypatch):
    from sqlalchemy.exc import TimeoutError as PoolTimeoutError
    from sqlalchemy.ext.asyncio import AsyncSession

    async def pool_exhausted(self, *args, **kwargs):
        raise PoolTimeoutError("QueuePool limit of size 5 overflow 10 reached")

    monkeypatch.setattr(AsyncSession, "flush", pool_exhausted)
    res = await client.post(
        "/api/auth/signup", json={"email": "alice@example.com", "password": PASSWORD}
    )
    assert res.status_code == 503
    assert res.json() == {
        "success": False,
        "message": "Database temporarily unavailable. Please retry.",
        "data": None,
        "errors": None,
    }

    # Nothing was committed and the request session let go of the database
    monkeypatch.undo()
    res = await client.post(
        "/api/auth/signup", json={"email": "alice@example.com", "password": PASSWORD}
    )
    assert res.status_code == 201
