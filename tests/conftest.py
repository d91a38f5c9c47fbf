from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from app.config import get_settings
from tests.fakes import FakeGateway, FakeGenerator


@pytest.fixture(autouse=True)
def _clear_settings_cache():
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def gateway() -> FakeGateway:
    return FakeGateway()


@pytest.fixture
def generator() -> FakeGenerator:
    return FakeGenerator()


@pytest.fixture
def make_client():
    from app.main import create_app

    clients = []

    def _make(components) -> TestClient:
        client = TestClient(create_app(components))
        client.__enter__()
        clients.append(client)
        return client

    yield _make
    for client in clients:
        client.__exit__(None, None, None)
