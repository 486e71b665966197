from models.account import Account, Device
from models.notification import Notification
from services.account_merge import merge_accounts, union


def _notification(notification_id, line_id="L1"):
    return Notification(
        id=notification_id,
        line_id=line_id,
        stop_id="S1",
        distance=2,
        distance_unit="km",
        start_time=3600,
        end_time=7200,
        week_days=["monday"],
    )


def test_union_keeps_first_seen_order():
    assert union([1, 2, 3], [3, 4, 1], [5]) == [1, 2, 3, 4, 5]
    assert union([], []) == []


def test_union_by_key():
    items = union([("a", 1)], [("a", 2), ("b", 3)], key=lambda item: item[0])
    assert items == [("a", 1), ("b", 3)]


def test_merge_unions_favorites_and_devices():
    primary = Account(devices=[Device(device_id="d1")], favorite_lines=["A", "B"])
    secondary = Account(devices=[Device(device_id="d2")], favorite_lines=["B", "C"], favorite_stops=["S9"])

    merged = merge_accounts(primary, secondary)

    assert merged.device_ids() == ["d1", "d2"]
    assert merged.favorite_lines == ["A", "B", "C"]
    assert merged.favorite_stops == ["S9"]
    assert merged.id is None
    assert merged.version is None


def test_merge_profile_prefers_primary_unless_missing():
    primary = Account(devices=[Device(device_id="d1")], first_name="Ana", email=None, birth_year=None)
    secondary = Account(devices=[Device(device_id="d2")], first_name="Bea", email="b@example.com", birth_year=1990)

    merged = merge_accounts(primary, secondary)

    assert merged.first_name == "Ana"
    assert merged.email == "b@example.com"
    assert merged.birth_year == 1990
    assert merged.last_name is None


def test_merge_keeps_primary_role():
    primary = Account(devices=[Device(device_id="d1")])
    secondary = Account(devices=[Device(device_id="d2")], role="admin")

    assert merge_accounts(primary, secondary).role == "user"
    assert merge_accounts(secondary, primary).role == "admin"


def test_merge_notifications_by_id():
    shared = _notification("n1")
    primary = Account(devices=[Device(device_id="d1")], notifications=[shared])
    secondary = Account(
        devices=[Device(device_id="d2")],
        notifications=[_notification("n1", line_id="OTHER"), _notification("n2")],
    )

    merged = merge_accounts(primary, secondary)

    assert [n.id for n in merged.notifications] == ["n1", "n2"]
    assert merged.notifications[0].line_id == "L1"


def test_merge_collapses_shared_device():
    primary = Account(devices=[Device(device_id="d1", name="phone")])
    secondary = Account(devices=[Device(device_id="d1", name="other"), Device(device_id="d2")])

    merged = merge_accounts(primary, secondary)

    assert merged.device_ids() == ["d1", "d2"]
    assert merged.devices[0].name == "phone"
