from pipeline_studio.config import NotificationConfig
from pipeline_studio.domain.base_enums import NoticeVariant
from pipeline_studio.services.notification_service import NotificationCenter


def test_durations_by_variant(notifications):
    info = notifications.notify("Saved")
    success = notifications.success("Connection successful", "Connected")
    failure = notifications.failure("Connection failed", "Timed out")
    error = notifications.notify("Oops", variant=NoticeVariant.ERROR)

    assert info.duration_ms == success.duration_ms == 3000
    assert failure.duration_ms == error.duration_ms == 8000
    assert failure.variant == NoticeVariant.DESTRUCTIVE
    assert failure.is_destructive
    assert not success.is_destructive


def test_drain_returns_pending_once(notifications):
    notifications.notify("one")
    notifications.notify("two")

    assert [n.title for n in notifications.drain()] == ["one", "two"]
    assert notifications.drain() == []
    assert [n.title for n in notifications.history()] == ["one", "two"]


def test_latest_and_clear(notifications):
    assert notifications.latest() is None
    notifications.notify("one")
    assert notifications.latest().title == "one"

    notifications.clear()
    assert notifications.history() == []
    assert notifications.latest() is None


def test_history_is_bounded():
    center = NotificationCenter(NotificationConfig(max_history=3))
    for index in range(5):
        center.notify(f"n{index}")

    assert [n.title for n in center.history()] == ["n2", "n3", "n4"]
