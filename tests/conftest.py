from zoneinfo import ZoneInfo

import pytest


@pytest.fixture(autouse=True)
def _clean_icecal_env(monkeypatch):
    for name in (
        "ICECAL_TIMEZONE",
        "ICECAL_CALENDAR_NAME",
        "ICECAL_CALENDAR_DESCRIPTION",
        "ICECAL_STORE_PATH",
        "ICECAL_INGEST_TOKEN",
    ):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def tz() -> ZoneInfo:
    return ZoneInfo("Europe/Copenhagen")
