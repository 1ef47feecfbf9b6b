import pytest

from tests.fakes import FakeDatabase


@pytest.fixture(autouse=True)
def no_keyword_delay(monkeypatch):
    monkeypatch.setattr("services.google_places.KEYWORD_DELAY_S", 0)


@pytest.fixture
def store():
    from services.radar_cache import InMemoryRadarStore
    return InMemoryRadarStore()


@pytest.fixture
def fake_db():
    return FakeDatabase()
