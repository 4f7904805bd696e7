from datetime import datetime
from types import SimpleNamespace

import pytest
from fastapi.testclient import TestClient

from salat.api.server import create_app
from salat.prayer.alerts import PrayerAlertScheduler
from salat.prayer.service import PrayerTimesService
from salat.prayer.storage import MemoryStorage

from .helpers import FakeAudio, FakeClock, FakeNotifier, FakeTaskManager, make_record


class StubScraper:
    def __init__(self, **times):
        self.times = times
        self.calls = 0

    def scrape_prayer_times(self):
        self.calls += 1
        return make_record(**self.times)


class BrokenStorage(MemoryStorage):
    def upsert_record(self, record):
        raise RuntimeError("disk full")

    def get_settings(self, user_id="default"):
        raise RuntimeError("disk full")


def _salat_app(storage=None, scraper=None):
    clock = FakeClock(datetime(2026, 10, 18, 15, 0))
    task_manager = FakeTaskManager()
    alert_scheduler = PrayerAlertScheduler(task_manager, FakeNotifier(), FakeAudio(), clock=clock)
    service = PrayerTimesService(
        storage or MemoryStorage(),
        scraper or StubScraper(),
        alert_scheduler,
        clock=clock,
    )
    return SimpleNamespace(
        service=service,
        alert_scheduler=alert_scheduler,
        task_manager=task_manager,
        adhan_manager=FakeAudio(),
    )


@pytest.fixture
def salat_app():
    return _salat_app()


@pytest.fixture
def client(salat_app):
    return TestClient(create_app(salat_app))


def test_get_prayer_times_scrapes_once_then_reads(client, salat_app):
    first = client.get("/api/prayer-times")
    second = client.get("/api/prayer-times")

    assert first.status_code == 200
    body = first.json()
    assert body["date"] == "2026-10-18"
    assert body["fajr"] == "5:45"
    assert body["location"] == "Beirut, Lebanon"
    assert body["scrapedAt"] is not None
    assert second.json() == body
    assert salat_app.service.scraper.calls == 1


def test_update_prayer_times_replaces_record_and_arms_alert(salat_app):
    salat_app.service.scraper = StubScraper(asr="15:40")
    client = TestClient(create_app(salat_app))

    response = client.post("/api/prayer-times/update")

    assert response.status_code == 200
    assert response.json()["asr"] == "15:40"
    assert salat_app.service.storage.get_record_by_date("2026-10-18").asr == "15:40"
    assert salat_app.alert_scheduler.status()["fires_at"] == "2026-10-18T15:40:00"


def test_storage_errors_become_500():
    client = TestClient(create_app(_salat_app(storage=BrokenStorage())))

    response = client.get("/api/prayer-times")
    assert response.status_code == 500
    assert response.json() == {"detail": "Failed to fetch prayer times"}

    response = client.post("/api/prayer-times/update")
    assert response.status_code == 500
    assert response.json() == {"detail": "Failed to update prayer times"}


def test_get_notification_settings_defaults(client):
    response = client.get("/api/notification-settings")

    assert response.status_code == 200
    body = response.json()
    assert body["userId"] == "default"
    assert body["fajrEnabled"] is True
    assert body["dhuhrEnabled"] is False
    assert body["adhanAutoPlay"] is True
    assert body["volume"] == "80"


def test_patch_notification_settings_rearms_alert(client, salat_app):
    client.get("/api/prayer-times")

    response = client.patch(
        "/api/notification-settings",
        json={"asrEnabled": False, "maghribEnabled": True, "volume": "55"},
    )

    assert response.status_code == 200
    body = response.json()
    assert body["asrEnabled"] is False
    assert body["volume"] == "55"
    assert body["fajrEnabled"] is True
    status = salat_app.alert_scheduler.status()
    assert status["prayer"] == "maghrib"


@pytest.mark.parametrize(
    "payload",
    [{"fajrEnabled": "yes"}, {"volume": "loud"}, {"volume": 150}, {"ishaEnabled": 1}],
)
def test_patch_invalid_payload_is_400(client, payload):
    response = client.patch("/api/notification-settings", json=payload)

    assert response.status_code == 400
    detail = response.json()["detail"]
    assert detail["message"] == "Invalid data"
    assert detail["errors"]


def test_patch_invalid_leaves_settings_untouched(client):
    client.patch("/api/notification-settings", json={"fajrEnabled": False, "volume": "loud"})

    assert client.get("/api/notification-settings").json()["fajrEnabled"] is True


def test_tasks_lists_timers_and_alert(client):
    client.get("/api/prayer-times")
    client.patch("/api/notification-settings", json={"asrEnabled": True})

    response = client.get("/api/tasks")

    assert response.status_code == 200
    body = response.json()
    assert body["active_timers"] == [{"name": "prayer_alert", "next_run_at": None}]
    assert body["alert"]["state"] == "armed"
    assert body["alert"]["prayer"] == "asr"


def test_adhan_test_and_stop(client, salat_app):
    client.patch("/api/notification-settings", json={"volume": "30"})

    played = client.post("/api/adhan/test", json={"prayer": "Fajr"})
    stopped = client.post("/api/adhan/stop")

    assert played.json() == {"playing": True, "prayer": "Fajr"}
    assert stopped.json() == {"playing": False}
    assert salat_app.adhan_manager.played == [("Fajr", 0.3)]
    assert salat_app.adhan_manager.stopped == 1


def test_adhan_test_without_body_uses_default_name(client, salat_app):
    response = client.post("/api/adhan/test")

    assert response.json()["prayer"] == "Test"
    assert salat_app.adhan_manager.played == [("Test", 0.8)]
