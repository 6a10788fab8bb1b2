# tests/conftest.py
from datetime import datetime, timedelta, timezone

import pytest
from fastapi.testclient import TestClient

from secureshare.config.settings import Settings
from secureshare.main import create_app
from secureshare.services.slot_service import SlotService


class FakeClock:
    """Reloj controlable para probar expiración sin esperar 24 h."""

    def __init__(self, start: datetime) -> None:
        self.current = start

    def __call__(self) -> datetime:
        return self.current

    def advance(self, **kwargs) -> None:
        self.current += timedelta(**kwargs)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock(datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc))


@pytest.fixture
def settings(tmp_path) -> Settings:
    return Settings(
        _env_file=None,
        database_path=str(tmp_path / "data" / "secureshare.db"),
        uploads_dir=str(tmp_path / "uploads"),
        argon2_time_cost=1,
        argon2_memory_cost=8,
        argon2_parallelism=1,
        sweep_enabled=False,
        secret_key="test-secret",
    )


@pytest.fixture
def service(settings, clock):
    svc = SlotService.from_settings(settings, clock=clock)
    yield svc
    svc.close()


@pytest.fixture
def client(settings, service):
    app = create_app(settings=settings, service=service)
    with TestClient(app) as c:
        yield c
