from __future__ import annotations

import asyncio

import pytest
from fastapi.testclient import TestClient

from qrlink.core.config import Settings
from qrlink.core.db import create_tables, make_engine, make_session_factory
from qrlink.main import create_app
from qrlink.services.store import ShortLinkStore


@pytest.fixture()
def settings(tmp_path) -> Settings:
    return Settings(
        DATABASE_URL=f"sqlite:///{tmp_path / 'qrlink.db'}",
        PUBLIC_BASE_URL="https://qr.example.test",
        SECRET_KEY="test-secret",
        REDIRECT_TICK_SECONDS=0.01,
        LOG_LEVEL="WARNING",
    )


@pytest.fixture()
def store(settings: Settings) -> ShortLinkStore:
    engine = make_engine(settings.DATABASE_URL)
    create_tables(engine)
    yield ShortLinkStore(make_session_factory(engine), settings.SHORT_CODE_LENGTH)
    engine.dispose()


@pytest.fixture()
def owner_id(store: ShortLinkStore) -> int:
    user = asyncio.run(store.create_user("owner@example.com", "not-a-real-hash"))
    return user.id


@pytest.fixture()
def client(settings: Settings):
    app = create_app(settings)
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture()
def signed_in(client: TestClient) -> TestClient:
    response = client.post(
        "/auth/signup", json={"email": "maker@example.com", "password": "correct horse"}
    )
    assert response.status_code == 201
    return client
