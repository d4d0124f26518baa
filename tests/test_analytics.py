# tests/test_analytics.py
from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest

from cart_recovery.services import abandoned_cart_service, analytics_service, reminder_service

T0 = datetime(2025, 1, 1, tzinfo=timezone.utc)


@pytest.mark.asyncio
async def test_stats_are_zero_without_data(async_db_session):
    stats = await analytics_service.get_abandoned_cart_stats(async_db_session)

    assert stats.total_abandoned == 0
    assert stats.recovery_rate == 0.0
    assert stats.total_value == Decimal("0.00")
    assert stats.average_cart_value == Decimal("0.00")
    assert stats.reminder_stats.pending == 0


@pytest.mark.asyncio
async def test_stats_cover_every_episode(make_user, make_product, fill_cart, sender, async_db_session):
    cheap = make_product(title="Paperback Novel", price="10.00")
    pricey = make_product(title="Teak Side Table", price="50.00")
    recovered, expired, open_ = make_user(), make_user(), make_user()
    fill_cart(recovered, (cheap, 1))
    fill_cart(expired, (pricey, 1))
    fill_cart(open_, (cheap, 3))

    await abandoned_cart_service.track_abandonment(recovered.id, now=T0)
    await abandoned_cart_service.track_abandonment(expired.id, now=T0 - timedelta(days=40))
    await abandoned_cart_service.track_abandonment(open_.id, now=T0)
    await reminder_service.process_pending_reminders(sender=sender, now=T0 + timedelta(hours=1))
    await abandoned_cart_service.mark_recovered(recovered.id, now=T0 + timedelta(hours=2))
    await abandoned_cart_service.expire_stale_carts(now=T0 + timedelta(hours=3))

    stats = await analytics_service.get_abandoned_cart_stats(async_db_session)

    assert stats.total_abandoned == 3
    assert stats.total_recovered == 1
    assert stats.total_expired == 1
    assert stats.recovery_rate == pytest.approx(0.3333)
    assert stats.total_value == Decimal("90.00")
    assert stats.average_cart_value == Decimal("30.00")
    # expired: 3 sent. recovered: 1 sent, 2 cancelled. open: 1 sent, 2 pending.
    assert stats.reminder_stats.sent == 5
    assert stats.reminder_stats.cancelled == 2
    assert stats.reminder_stats.pending == 2
    assert stats.reminder_stats.failed == 0
