import json

import pytest
from fastapi.testclient import TestClient

from walkin.api.app import create_app
from walkin.api.core.config import Settings

ADMIN_TOKEN = "test-admin-token"
WEBHOOK_SECRET = "test-webhook-secret"
ADMIN_HEADERS = {"X-Admin-Session": ADMIN_TOKEN, "X-Admin-User": "owner"}


class FakeSocket:
    """Records frames sent by the hub; optionally fails every send."""

    def __init__(self, fail: bool = False):
        self.fail = fail
        self.sent: list[str] = []
        self.closed = False

    async def send_text(self, data: str) -> None:
        if self.fail:
            raise ConnectionResetError("peer went away")
        self.sent.append(data)

    async def close(self, code: int = 1000) -> None:
        self.closed = True

    def frames(self) -> list[dict]:
        return [json.loads(s) for s in self.sent]


@pytest.fixture
def fake_socket():
    return FakeSocket


@pytest.fixture
def settings() -> Settings:
    return Settings(
        _env_file=None,
        database_url="",
        environment="test",
        admin_gate="header",
        admin_token=ADMIN_TOKEN,
        webhook_secret=WEBHOOK_SECRET,
        snapshot_refresh_interval=3600,
    )


@pytest.fixture
def client(settings):
    with TestClient(create_app(settings)) as c:
        yield c
