# tests/test_reminder_templates.py
import uuid
from decimal import Decimal

import pytest

from cart_recovery.core.config import settings
from cart_recovery.domain.enums import ReminderType
from cart_recovery.schemas.abandoned_cart import CartSnapshotItem
from cart_recovery.services.reminder_templates import (
    DISPLAY_NAME_MAX_LENGTH,
    PLACEHOLDER_THUMBNAIL,
    format_money,
    render_reminder,
)


def _item(**overrides) -> CartSnapshotItem:
    data = {
        "product_id": 1,
        "title": "Vintage Denim Jacket",
        "price": Decimal("45.00"),
        "quantity": 1,
        "thumbnail": "https://cdn.example.com/jacket.jpg",
        "seller_id": uuid.uuid4(),
    }
    data.update(overrides)
    return CartSnapshotItem(**data)


def _render(reminder_type=ReminderType.first, items=None, **overrides):
    items = items if items is not None else [_item()]
    kwargs = {
        "recipient": "jane@example.com",
        "display_name": "Jane",
        "items": items,
        "total_value": Decimal("45.00"),
        "item_count": len(items),
    }
    kwargs.update(overrides)
    return render_reminder(reminder_type, **kwargs)


@pytest.mark.parametrize(
    "reminder_type,subject,cta",
    [
        (ReminderType.first, "Jane, you left some great items in your cart!", "Complete Your Purchase"),
        (ReminderType.second, "Still thinking about those items, Jane?", "Return to Cart"),
        (ReminderType.final, "Last chance for your cart items, Jane!", "Complete Purchase Now"),
    ],
)
def test_each_reminder_has_its_own_tone(reminder_type, subject, cta):
    notification = _render(reminder_type)

    assert notification.to == "jane@example.com"
    assert notification.subject == subject
    assert f"{cta}: {settings.cart_url}" in notification.body
    assert cta in notification.html


def test_body_lists_items_count_and_total():
    items = [_item(), _item(product_id=2, title="Retro Coffee Mug", price=Decimal("12.50"), quantity=2)]

    notification = _render(items=items, total_value=Decimal("70.00"))

    assert "Hi Jane!" in notification.body
    assert "Your Cart (2 items):" in notification.body
    assert "- Vintage Denim Jacket (Qty: 1) - $45.00" in notification.body
    assert "- Retro Coffee Mug (Qty: 2) - $12.50" in notification.body
    assert "Total: $70.00" in notification.body
    assert settings.SUPPORT_EMAIL in notification.body


def test_single_item_is_not_pluralised():
    notification = _render()

    assert "Your Cart (1 item):" in notification.body


def test_html_escapes_listing_titles():
    notification = _render(items=[_item(title="<b>Rare</b> & Signed")])

    assert "&lt;b&gt;Rare&lt;/b&gt; &amp; Signed" in notification.html
    assert "<b>Rare</b>" not in notification.html


def test_html_uses_placeholder_when_listing_has_no_image():
    notification = _render(items=[_item(thumbnail=None)])

    assert f'src="{PLACEHOLDER_THUMBNAIL}"' in notification.html
    assert settings.preferences_url in notification.html


def test_format_money_always_shows_cents():
    assert format_money(Decimal("5")) == "$5.00"
    assert format_money(Decimal("1234.5")) == "$1234.50"


@pytest.mark.parametrize("reminder_type", list(ReminderType))
def test_long_display_name_is_shortened_to_fit_the_subject(reminder_type):
    name = "Bartholomew" * 19  # 209 chars, longer than users.full_name allows

    notification = _render(reminder_type, display_name=name)

    assert len(notification.subject) <= 200
    assert name[:DISPLAY_NAME_MAX_LENGTH] in notification.subject
    assert name[: DISPLAY_NAME_MAX_LENGTH + 1] not in notification.subject
    assert f"Hi {name[:DISPLAY_NAME_MAX_LENGTH]}!" in notification.body


def test_blank_display_name_falls_back_to_greeting():
    notification = _render(display_name="   ")

    assert notification.subject == "there, you left some great items in your cart!"
