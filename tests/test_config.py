import pytest
from pydantic import ValidationError

from src.slotgrid.config import EngineConfig


def test_defaults():
    config = EngineConfig(_env_file=None)
    assert config.slot_granularity_minutes == 60
    assert (config.list_page_size, config.popup_page_size, config.calendar_page_size) == (10, 5, 12)
    assert config.default_timezone == "(GMT+02:00) CET"


def test_environment_overrides(monkeypatch):
    monkeypatch.setenv("LIST_PAGE_SIZE", "20")
    monkeypatch.setenv("SLOT_GRANULARITY_MINUTES", "30")
    config = EngineConfig(_env_file=None)
    assert config.list_page_size == 20
    assert config.slot_granularity_minutes == 30


def test_rejects_unsupported_granularity():
    with pytest.raises(ValidationError):
        EngineConfig(slot_granularity_minutes=45, _env_file=None)
