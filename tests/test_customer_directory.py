from datetime import datetime, timedelta, timezone

import pytest

from storefront.services.customer_directory import (
    OrderRecord,
    ProfileRecord,
    SubscriberRecord,
    UnifiedCustomer,
    filter_customers,
    matches_search,
    normalize_email,
    unify_customers,
)

T0 = datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc)


def _at(days: int) -> datetime:
    return T0 + timedelta(days=days)


def test_profile_only_vip():
    """A VIP profile with no orders or subscription still shows up."""
    [c] = unify_customers([ProfileRecord(email="vip@example.com", name="Val", vip=True, updated_at=_at(3))], [], [])

    assert c.email == "vip@example.com"
    assert c.vip is True
    assert c.ordered is False
    assert c.subscribed is False
    assert c.first_seen is None
    assert c.last_seen == _at(3)
    assert c.sms_opt_in is None


def test_orders_only_customer_uses_latest_order():
    orders = [
        OrderRecord(email="ada@example.com", customer_name="Ada L", phone="+13125550100",
                    sms_opt_in=False, paid=False, status="pending", created_at=_at(1)),
        OrderRecord(email="ada@example.com", customer_name="Ada Lovelace", phone="+13125550199",
                    sms_opt_in=True, paid=True, status="confirmed", created_at=_at(5)),
    ]
    [c] = unify_customers([], [], orders)

    assert c.name == "Ada Lovelace"
    assert c.phone == "+13125550199"
    assert c.sms_opt_in is True
    assert c.ordered is True
    assert c.vip is False
    assert c.first_seen == _at(1)
    assert c.last_seen == _at(5)
    assert c.last_order_status == "confirmed"
    assert c.last_order_paid is True


def test_precedence_profile_then_subscriber_then_order():
    profile = ProfileRecord(email="ada@example.com", name=None, phone="+13125550111",
                            sms_opt_in=False, updated_at=_at(0))
    sub = SubscriberRecord(email="ada@example.com", name="Subscriber Ada", phone="+13125550122", created_at=_at(2))
    order = OrderRecord(email="ada@example.com", customer_name="Order Ada", phone="+13125550133",
                        sms_opt_in=True, paid=True, status="confirmed", created_at=_at(4))

    [c] = unify_customers([profile], [sub], [order])

    assert c.name == "Subscriber Ada"
    assert c.phone == "+13125550111"
    # An explicit False on the profile beats the order's opt-in
    assert c.sms_opt_in is False
    assert c.ordered is True
    assert c.subscribed is True
    assert c.first_seen == _at(2)
    assert c.last_seen == _at(4)


def test_blank_profile_name_falls_through():
    profile = ProfileRecord(email="ada@example.com", name="   ", updated_at=_at(0))
    order = OrderRecord(email="ada@example.com", customer_name="Ada", created_at=_at(1))

    [c] = unify_customers([profile], [], [order])

    assert c.name == "Ada"


def test_emails_are_merged_case_insensitively():
    sub = SubscriberRecord(email="  Ada@Example.COM ", created_at=_at(1))
    order = OrderRecord(email="ada@example.com", customer_name="Ada", created_at=_at(2))

    customers = unify_customers([], [sub], [order])

    assert len(customers) == 1
    assert customers[0].email == "ada@example.com"
    assert customers[0].ordered and customers[0].subscribed


def test_colliding_profiles_keep_newest():
    old = ProfileRecord(email="Ada@example.com", name="Old", updated_at=_at(1))
    new = ProfileRecord(email="ada@example.com", name="New", updated_at=_at(2))

    [c] = unify_customers([new, old], [], [])

    assert c.name == "New"


def test_sorted_by_last_seen_with_unseen_last():
    customers = unify_customers(
        [ProfileRecord(email="never@example.com")],
        [SubscriberRecord(email="early@example.com", created_at=_at(1))],
        [OrderRecord(email="late@example.com", created_at=_at(9))],
    )

    assert [c.email for c in customers] == ["late@example.com", "early@example.com", "never@example.com"]


def test_naive_timestamps_are_treated_as_utc():
    naive = OrderRecord(email="a@example.com", created_at=datetime(2026, 1, 5, 12, 0))
    aware = SubscriberRecord(email="a@example.com", created_at=_at(1))

    [c] = unify_customers([], [aware], [naive])

    assert c.last_seen == datetime(2026, 1, 5, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def directory():
    return [
        UnifiedCustomer(email="ada@example.com", name="Ada Lovelace", phone="+13125550100",
                        ordered=True, subscribed=False, vip=True),
        UnifiedCustomer(email="bob@example.com", name="Bob", phone=None, ordered=False, subscribed=True),
        UnifiedCustomer(email="cy@example.com", name=None, phone="+17735550000", ordered=True, subscribed=True),
    ]


def test_flags_filter(directory):
    assert [c.email for c in filter_customers(directory, ordered=True)] == ["ada@example.com", "cy@example.com"]
    assert [c.email for c in filter_customers(directory, subscribed=True)] == ["bob@example.com", "cy@example.com"]
    assert [c.email for c in filter_customers(directory, vip=True)] == ["ada@example.com"]
    assert [c.email for c in filter_customers(directory, ordered=True, subscribed=True)] == ["cy@example.com"]


@pytest.mark.parametrize(
    "term,expected",
    [
        ("lovelace", ["ada@example.com"]),
        ("BOB@", ["bob@example.com"]),
        ("(312) 555", ["ada@example.com"]),
        ("773", ["cy@example.com"]),
        ("example", ["ada@example.com", "bob@example.com", "cy@example.com"]),
        ("nobody", []),
    ],
)
def test_search(directory, term, expected):
    assert [c.email for c in filter_customers(directory, search=term)] == expected


def test_search_with_letters_does_not_match_on_digits():
    customer = UnifiedCustomer(email="x@example.com", phone="+13125550100")
    assert matches_search(customer, "a312") is False


def test_normalize_email_casefolds():
    assert normalize_email("  Straße@Example.COM ") == "strasse@example.com"
