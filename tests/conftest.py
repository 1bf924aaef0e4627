"""Pytest configuration and shared fixtures."""

from __future__ import annotations

import os

os.environ.setdefault("JWT_SECRET", "test-access-secret-0123456789abcdef0123")
os.environ.setdefault("JWT_REFRESH_SECRET", "test-refresh-secret-0123456789abcdef01")
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("BCRYPT_ROUNDS", "4")
os.environ.setdefault("DATABASE_NAME", "elearning_test")

import pytest
from fastapi.testclient import TestClient
from mongomock_motor import AsyncMongoMockClient

import main
from config import settings
from database import mongodb
from utils.rate_limiter import rate_limit_store


@pytest.fixture()
def mongo_client(monkeypatch):
    client = AsyncMongoMockClient()
    mongodb.client = client

    async def _close():
        mongodb.client = None

    # The mock client has nothing to close, shutdown only has to forget it
    monkeypatch.setattr(main, "close_mongo_connection", _close)
    rate_limit_store.clear()
    try:
        yield client
    finally:
        mongodb.client = None
        rate_limit_store.clear()


@pytest.fixture()
def db(mongo_client):
    return mongo_client[settings.DATABASE_NAME]


@pytest.fixture()
def client(mongo_client):
    with TestClient(main.app) as test_client:
        yield test_client


@pytest.fixture()
def privileged_signup(monkeypatch):
    monkeypatch.setattr(settings, "ALLOW_PRIVILEGED_SIGNUP", True)
