from datetime import timedelta

from backspace.models.subscription import PlanType, Subscription, SubscriptionStatus
from backspace.services.subscription_coverage import SubscriptionCoverage


def make_sub(now, start_offset_days, length_days, customer_id="cust-1",
             plan_type=PlanType.MONTHLY, status=SubscriptionStatus.ACTIVE, sub_id=None):
    start = now + timedelta(days=start_offset_days)
    fields = dict(
        customer_id=customer_id,
        plan_type=plan_type,
        price=50000,
        start_date=start,
        end_date=start + timedelta(days=length_days),
        status=status,
    )
    if sub_id:
        fields["id"] = sub_id
    return Subscription(**fields)


def test_no_subscriptions_not_covered(now):
    coverage = SubscriptionCoverage.resolve([], now, "cust-1")
    assert coverage.is_covered is False
    assert coverage.subscription_id is None


def test_active_subscription_covers(now):
    sub = make_sub(now, -3, 30)
    coverage = SubscriptionCoverage.resolve([sub], now, "cust-1")
    assert coverage.is_covered is True
    assert coverage.subscription_id == sub.id


def test_expired_inactive_and_future_do_not_cover(now):
    subs = [
        make_sub(now, -40, 30),
        make_sub(now, -3, 30, status=SubscriptionStatus.INACTIVE),
        make_sub(now, 2, 30),
    ]
    assert SubscriptionCoverage.resolve(subs, now, "cust-1").is_covered is False


def test_window_is_inclusive_at_both_ends(now):
    ends_now = make_sub(now, -7, 7)
    starts_now = make_sub(now, 0, 7)
    assert ends_now.is_active(now)
    assert starts_now.is_active(now)
    assert not ends_now.is_active(now + timedelta(seconds=1))


def test_other_customers_subscriptions_ignored(now):
    other = make_sub(now, -1, 30, customer_id="cust-2")
    assert SubscriptionCoverage.resolve([other], now, "cust-1").is_covered is False


def test_tie_break_is_deterministic(now):
    later_end = make_sub(now, -5, 30, plan_type=PlanType.MONTHLY)
    earlier_end = make_sub(now, -5, 15, plan_type=PlanType.HALF_MONTHLY)
    same_end_later_start = make_sub(now, -4, 14, plan_type=PlanType.WEEKLY)

    for subs in ([later_end, earlier_end, same_end_later_start],
                 [same_end_later_start, earlier_end, later_end]):
        assert SubscriptionCoverage.resolve(subs, now, "cust-1").subscription_id == earlier_end.id


def test_tie_break_falls_back_to_id(now):
    a = make_sub(now, -1, 7, sub_id="aaaaaaaaaaaaaaaaaaaaaaaa")
    b = make_sub(now, -1, 7, sub_id="bbbbbbbbbbbbbbbbbbbbbbbb")
    assert SubscriptionCoverage.resolve([b, a], now).subscription_id == a.id


def test_customer_type_for(now):
    assert SubscriptionCoverage.customer_type_for([], now) == "visitor"
    weekly = make_sub(now, -1, 7, plan_type=PlanType.WEEKLY)
    assert SubscriptionCoverage.customer_type_for([weekly], now) == "weekly"
