from datetime import date

import pytest

from src.slotgrid.config import EngineConfig
from src.slotgrid.models import Teacher

API_URL = "https://feed.test"
TODAY = date(2025, 7, 23)


@pytest.fixture
def config():
    return EngineConfig(
        scheduling_api_url=API_URL,
        fetch_retry_wait_seconds=0,
        success_close_delay_seconds=0,
        _env_file=None,
    )


@pytest.fixture
def today():
    return lambda: TODAY


@pytest.fixture
def teacher():
    return Teacher(id="7", uid="TJL9", full_name="Bob Smith", email="bob@example.com")
