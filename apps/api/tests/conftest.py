from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from fakes import BROOKLYN, MANHATTAN, FakeLLM, FakeSocialClient, FakeUpdatesClient, StaticGeocoder, make_client


@pytest.fixture
def geocoder() -> StaticGeocoder:
    return StaticGeocoder({"Manhattan, NYC": MANHATTAN, "Brooklyn": BROOKLYN})


@pytest.fixture
def llm() -> FakeLLM:
    return FakeLLM(location="Manhattan, NYC")


@pytest.fixture
def social() -> FakeSocialClient:
    return FakeSocialClient()


@pytest.fixture
def updates() -> FakeUpdatesClient:
    return FakeUpdatesClient()


@pytest.fixture
def client(
    geocoder: StaticGeocoder,
    llm: FakeLLM,
    social: FakeSocialClient,
    updates: FakeUpdatesClient,
) -> TestClient:
    return make_client(geocoder=geocoder, llm=llm, social=social, updates=updates)
