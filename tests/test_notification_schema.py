import pytest
from pydantic import ValidationError

from models.notification import Notification, NotificationIn


def _data(**overrides):
    data = {
        "line_id": "line1",
        "stop_id": "stop1",
        "distance": 100,
        "distance_unit": "km",
        "start_time": 3600,
        "end_time": 7200,
        "week_days": ["monday", "tuesday"],
    }
    data.update(overrides)
    return data


def test_valid_notification():
    notification = Notification(**_data())

    assert notification.id
    assert notification.created_at is not None
    assert notification.week_days == ["monday", "tuesday"]


def test_ids_are_unique():
    assert Notification(**_data()).id != Notification(**_data()).id


@pytest.mark.parametrize(
    "overrides, message",
    [
        ({"end_time": 1800}, "End time must be greater than start time"),
        ({"start_time": 7201}, "End time must be greater than start time"),
        ({"end_time": 3600}, "End time must be greater than start time"),
        ({"week_days": ["mon", "tue"]}, "Invalid week day"),
        ({"start_time": -1, "end_time": 86400}, "Start time must be between 0 and 86400"),
        ({"start_time": 0, "end_time": 86401}, "End time must be between 0 and 86400"),
        ({"week_days": []}, "At least one week day is required"),
    ],
)
def test_invalid_notification(overrides, message):
    with pytest.raises(ValidationError, match=message):
        NotificationIn(**_data(**overrides))


def test_rejects_unknown_distance_unit_and_negative_distance():
    with pytest.raises(ValidationError):
        NotificationIn(**_data(distance_unit="miles"))
    with pytest.raises(ValidationError):
        NotificationIn(**_data(distance=-1))


def test_full_day_window_is_valid():
    notification = NotificationIn(**_data(start_time=0, end_time=86400))
    assert notification.end_time - notification.start_time == 86400
