"""Shared fixtures for the wealthify test suite."""
from __future__ import annotations

import asyncio
import json

import httpx
import pytest

from wealthify.client import WealthifyClient
from wealthify.config import Config, Settings
from wealthify.credentials import MemoryCredentialStore
from wealthify.models.auth import Credentials

BASE_URL = "https://api.wealthify.test/api"


class FakeBackend:
    """MockTransport handler standing in for the Wealthify backend.

    Accepts only ``valid_token``; the refresh endpoint swaps it for
    ``new_access``. Each call awaits ``latency`` so concurrent requests
    genuinely interleave.
    """

    def __init__(
        self,
        valid_token: str = "fresh-access",
        new_access: str = "fresh-access",
        new_refresh: str = "fresh-refresh",
        refresh_status: int = 200,
        latency: float = 0.01,
        refresh_latency: float = 0.05,
    ) -> None:
        self.valid_token = valid_token
        self.new_access = new_access
        self.new_refresh = new_refresh
        self.refresh_status = refresh_status
        self.latency = latency
        self.refresh_latency = refresh_latency
        self.calls: list[httpx.Request] = []
        self.refresh_bodies: list[dict] = []

    @property
    def refresh_calls(self) -> int:
        return len(self.refresh_bodies)

    def calls_to(self, path: str) -> list[httpx.Request]:
        return [r for r in self.calls if r.url.path == "/api" + path]

    async def __call__(self, request: httpx.Request) -> httpx.Response:
        self.calls.append(request)
        await asyncio.sleep(self.latency)

        if request.url.path == "/api/auth/refresh-token":
            self.refresh_bodies.append(json.loads(request.content))
            await asyncio.sleep(self.refresh_latency)
            if self.refresh_status != 200:
                return httpx.Response(
                    self.refresh_status,
                    json={"success": False, "message": "Invalid refresh token"},
                )
            self.valid_token = self.new_access
            return httpx.Response(
                200,
                json={
                    "success": True,
                    "message": "Token refreshed",
                    "data": {"accessToken": self.new_access, "refreshToken": self.new_refresh},
                },
            )

        if request.headers.get("Authorization") != f"Bearer {self.valid_token}":
            return httpx.Response(401, json={"success": False, "message": "Token expired"})

        return httpx.Response(
            200,
            json={
                "success": True,
                "data": {
                    "path": request.url.path,
                    "marker": request.url.params.get("marker"),
                },
            },
        )


@pytest.fixture
def fake_settings() -> Settings:
    return Settings(
        base_url=BASE_URL,
        timeout=5.0,
        max_retries=3,
        retry_delay=1.0,
        credentials_path="/nonexistent/credentials.json",
    )


@pytest.fixture
def fake_config(fake_settings) -> Config:
    return Config(settings=fake_settings)


@pytest.fixture
def stale_credentials() -> Credentials:
    return Credentials(
        access_token="stale-access",
        refresh_token="old-refresh",
        profile={"email": "asha@example.com", "name": "Asha"},
    )


@pytest.fixture
def store(stale_credentials) -> MemoryCredentialStore:
    return MemoryCredentialStore(stale_credentials)


@pytest.fixture
def sleeps() -> list[float]:
    """Delays requested by the retry executor, recorded instead of slept."""
    return []


@pytest.fixture
def make_client(fake_config, store, sleeps):
    """Factory: WealthifyClient wired to a MockTransport handler and the memory store."""

    async def fake_sleep(delay: float) -> None:
        sleeps.append(delay)

    def _make(handler, on_session_expired=None, config=None) -> WealthifyClient:
        return WealthifyClient(
            config or fake_config,
            store,
            on_session_expired=on_session_expired,
            transport=httpx.MockTransport(handler),
            sleep=fake_sleep,
        )

    return _make
