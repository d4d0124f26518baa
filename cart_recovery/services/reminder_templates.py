"""Abandoned-cart reminder emails.

Each reminder type has a fixed tone; the cart summary (items, count, total
and the link back to the cart) is rendered identically for all of them, as
plain text for the body and as an HTML alternative.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from html import escape
from typing import Sequence

from cart_recovery.core.config import settings
from cart_recovery.domain.enums import ReminderType
from cart_recovery.schemas.abandoned_cart import CartSnapshotItem, Notification

PLACEHOLDER_THUMBNAIL = "/placeholder.svg"
# Keeps every subject line within Notification.subject's length cap.
DISPLAY_NAME_MAX_LENGTH = 40

STORE_BENEFITS = (
    "Sustainable shopping - give items a second life",
    "Unique, one-of-a-kind finds",
    "Great prices on quality pre-loved items",
    "Supporting local Australian sellers",
)


@dataclass(frozen=True)
class ReminderTone:
    subject: str
    urgency: str
    message: str
    cta: str


def _tone(reminder_type: ReminderType, name: str) -> ReminderTone:
    if reminder_type == ReminderType.first:
        return ReminderTone(
            subject=f"{name}, you left some great items in your cart!",
            urgency="Don't miss out on these sustainable finds!",
            message=(
                "We noticed you were interested in some amazing pre-loved items. "
                "Complete your purchase before someone else discovers these treasures."
            ),
            cta="Complete Your Purchase",
        )
    if reminder_type == ReminderType.second:
        return ReminderTone(
            subject=f"Still thinking about those items, {name}?",
            urgency="These unique items won't last long!",
            message=(
                "Your cart is waiting! These one-of-a-kind items are popular choices "
                "and may sell out. Secure yours before they're gone."
            ),
            cta="Return to Cart",
        )
    if reminder_type == ReminderType.final:
        return ReminderTone(
            subject=f"Last chance for your cart items, {name}!",
            urgency="Final reminder - don't let these go!",
            message=(
                "This is your final reminder about the items in your cart. After this, "
                "we'll need to release them for other buyers to discover."
            ),
            cta="Complete Purchase Now",
        )
    raise ValueError(f"Unknown reminder type: {reminder_type}")


def format_money(value: Decimal) -> str:
    return f"${Decimal(value):.2f}"


def _items_label(item_count: int) -> str:
    return f"{item_count} item{'' if item_count == 1 else 's'}"


def _render_text(
    tone: ReminderTone,
    name: str,
    items: Sequence[CartSnapshotItem],
    total_value: Decimal,
    item_count: int,
) -> str:
    lines = [
        f"Hi {name}!",
        "",
        tone.urgency,
        "",
        tone.message,
        "",
        f"Your Cart ({_items_label(item_count)}):",
    ]
    for item in items:
        lines.append(f"- {item.title} (Qty: {item.quantity}) - {format_money(item.price)}")
        if item.thumbnail:
            lines.append(f"  {item.thumbnail}")
    lines += [
        "",
        f"Total: {format_money(total_value)}",
        "",
        f"{tone.cta}: {settings.cart_url}",
        "",
        f"Why Choose {settings.STORE_NAME}?",
        *[f"* {benefit}" for benefit in STORE_BENEFITS],
        "",
        f"Need help? Contact us at {settings.SUPPORT_EMAIL}",
    ]
    return "\n".join(lines)


def _render_item_row(item: CartSnapshotItem) -> str:
    thumbnail = escape(item.thumbnail or PLACEHOLDER_THUMBNAIL, quote=True)
    title = escape(item.title)
    return (
        "<tr><td style=\"padding: 15px; border-bottom: 1px solid #eee;\">"
        f"<img src=\"{thumbnail}\" alt=\"{escape(item.title, quote=True)}\" "
        "style=\"width: 60px; height: 60px; border-radius: 8px; object-fit: cover; float: left; margin-right: 15px;\">"
        f"<h4 style=\"margin: 0 0 5px 0; color: #333;\">{title}</h4>"
        f"<p style=\"margin: 0; color: #666;\">Quantity: {item.quantity}</p>"
        f"<p style=\"margin: 5px 0 0 0; color: #2e7d32; font-weight: bold;\">{format_money(item.price)}</p>"
        "</td></tr>"
    )


def _render_html(
    tone: ReminderTone,
    name: str,
    items: Sequence[CartSnapshotItem],
    total_value: Decimal,
    item_count: int,
    recipient: str,
) -> str:
    cart_url = escape(settings.cart_url, quote=True)
    rows = "".join(_render_item_row(item) for item in items)
    benefits = "".join(f"<li>{escape(benefit)}</li>" for benefit in STORE_BENEFITS)
    return (
        "<!DOCTYPE html><html><head><meta charset=\"utf-8\">"
        f"<title>{escape(tone.subject)}</title></head>"
        "<body style=\"margin: 0; padding: 0; font-family: Arial, sans-serif; background-color: #f5f5f5;\">"
        "<div style=\"max-width: 600px; margin: 0 auto; background-color: #ffffff;\">"
        "<div style=\"background: #2e7d32; padding: 30px 20px; text-align: center;\">"
        f"<h1 style=\"color: white; margin: 0;\">{escape(settings.STORE_NAME)}</h1>"
        f"<p style=\"color: #e8f5e8; margin: 10px 0 0 0;\">{escape(settings.STORE_TAGLINE)}</p></div>"
        "<div style=\"padding: 30px 20px;\">"
        f"<h2 style=\"color: #333;\">Hi {escape(name)}!</h2>"
        f"<p style=\"color: #ff5722; font-weight: bold;\">{escape(tone.urgency)}</p>"
        f"<p style=\"color: #666; line-height: 1.6;\">{escape(tone.message)}</p>"
        "<div style=\"background-color: #f9f9f9; padding: 20px; border-radius: 8px;\">"
        f"<h3 style=\"margin: 0 0 15px 0;\">Your Cart ({_items_label(item_count)})</h3>"
        f"<table style=\"width: 100%; border-collapse: collapse;\">{rows}</table>"
        "<div style=\"text-align: right; margin-top: 20px; border-top: 2px solid #2e7d32;\">"
        f"<p style=\"font-size: 20px; font-weight: bold; color: #2e7d32;\">Total: {format_money(total_value)}</p>"
        "</div></div>"
        "<div style=\"text-align: center; margin: 30px 0;\">"
        f"<a href=\"{cart_url}\" style=\"display: inline-block; background-color: #ff5722; color: white; "
        f"text-decoration: none; padding: 15px 30px; border-radius: 6px; font-weight: bold;\">{escape(tone.cta)}</a>"
        "</div>"
        f"<h4 style=\"color: #2e7d32;\">Why Choose {escape(settings.STORE_NAME)}?</h4><ul>{benefits}</ul>"
        "</div>"
        "<div style=\"background-color: #f5f5f5; padding: 20px; text-align: center; color: #999;\">"
        f"<p>Need help? Contact us at <a href=\"mailto:{escape(settings.SUPPORT_EMAIL, quote=True)}\">"
        f"{escape(settings.SUPPORT_EMAIL)}</a></p>"
        f"<p>This email was sent to {escape(recipient)}. <a href=\"{cart_url}\">Visit your cart</a> | "
        f"<a href=\"{escape(settings.preferences_url, quote=True)}\">Manage preferences</a></p>"
        "</div></div></body></html>"
    )


def render_reminder(
    reminder_type: ReminderType,
    *,
    recipient: str,
    display_name: str,
    items: Sequence[CartSnapshotItem],
    total_value: Decimal,
    item_count: int,
) -> Notification:
    display_name = display_name.strip()[:DISPLAY_NAME_MAX_LENGTH].rstrip() or "there"
    tone = _tone(reminder_type, display_name)
    return Notification(
        to=recipient,
        subject=tone.subject,
        body=_render_text(tone, display_name, items, total_value, item_count),
        html=_render_html(tone, display_name, items, total_value, item_count, recipient),
    )
