"""
Confirmation email composition.

Pure rendering: order + tickets + passes in, one self-contained HTML document
out. Styles are inline and there are no scripts; QR images are referenced by
their public URLs. The same inputs always produce the same document.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP
from typing import Dict, List, Sequence

from jinja2 import DictLoader, Environment, select_autoescape

from models.delivery import ComposedEmail
from models.order import Order, OrderPass
from models.ticket import Ticket


@dataclass(frozen=True)
class EmailBranding:
    """Presentation settings for the confirmation email."""

    brand_name: str = "Andiamo Events"
    support_url: str = "https://andiamo-events.tn/contact"
    currency: str = "TND"
    subject: str = "Order Confirmation - Your Digital Tickets Are Ready!"


_CONFIRMATION_TEMPLATE = """<!DOCTYPE html>
<html>
<head>
<meta charset="utf-8">
<meta name="viewport" content="width=device-width, initial-scale=1.0">
<title>Order Confirmation - {{ brand_name }}</title>
</head>
<body style="font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', sans-serif; line-height: 1.7; color: #1A1A1A; background: #F4F4F4; margin: 0; padding: 20px;">
<div style="max-width: 600px; margin: 0 auto; background: #FFFFFF; border-radius: 10px; overflow: hidden;">
  <div style="background: #E21836; color: #FFFFFF; padding: 30px; text-align: center;">
    <h1 style="margin: 0; font-size: 26px;">Order Confirmed!</h1>
    <p style="margin: 8px 0 0 0;">Your Digital Tickets Are Ready</p>
  </div>
  <div style="padding: 30px;">
    <p>Dear <strong>{{ customer_name }}</strong>,</p>
    <p>Your order has been successfully processed. Your digital tickets with unique QR codes are below.</p>

    <div style="background: #F9F9F9; padding: 20px; border-radius: 8px; margin: 20px 0;">
      <h3 style="margin-top: 0; color: #E21836;">Order Details</h3>
      <p style="margin: 6px 0;"><strong>Order ID:</strong> {{ order_ref }}</p>
      <p style="margin: 6px 0;"><strong>Event:</strong> {{ event_name }}</p>
      {% if event_venue %}<p style="margin: 6px 0;"><strong>Venue:</strong> {{ event_venue }}</p>{% endif %}
      <p style="margin: 6px 0;"><strong>Total Amount:</strong> {{ total }}</p>
      {% if ambassador_name %}<p style="margin: 6px 0;"><strong>Delivered by:</strong> {{ ambassador_name }}</p>{% endif %}
    </div>

    <div style="background: #F9F9F9; padding: 20px; border-radius: 8px; margin: 20px 0;">
      <h3 style="margin-top: 0; color: #E21836;">Passes Purchased</h3>
      <table style="width: 100%; border-collapse: collapse;">
        <thead>
          <tr>
            <th style="padding: 10px 0; text-align: left; border-bottom: 1px solid #DDDDDD;">Pass Type</th>
            <th style="padding: 10px 0; text-align: center; border-bottom: 1px solid #DDDDDD;">Quantity</th>
            <th style="padding: 10px 0; text-align: right; border-bottom: 1px solid #DDDDDD;">Price</th>
          </tr>
        </thead>
        <tbody>
          {% for row in passes %}
          <tr>
            <td style="padding: 10px 0; border-bottom: 1px solid #EEEEEE;">{{ row.pass_type }}</td>
            <td style="padding: 10px 0; text-align: center; border-bottom: 1px solid #EEEEEE;">{{ row.quantity }}</td>
            <td style="padding: 10px 0; text-align: right; border-bottom: 1px solid #EEEEEE;">{{ row.price }}</td>
          </tr>
          {% endfor %}
          <tr>
            <td colspan="2" style="padding: 12px 0; font-weight: bold; color: #E21836;">Total Amount Paid:</td>
            <td style="padding: 12px 0; text-align: right; font-weight: bold; color: #E21836;">{{ total }}</td>
          </tr>
        </tbody>
      </table>
    </div>

    <div style="background: #F9F9F9; padding: 20px; border-radius: 8px; margin: 20px 0;">
      <h3 style="margin-top: 0; color: #E21836;">Your Digital Tickets</h3>
      <p>Please present these QR codes at the event entrance. Each ticket has a unique QR code for verification.</p>
      {% for group in ticket_groups %}
      <div style="margin: 30px 0;">
        <h3 style="color: #E21836; margin-bottom: 15px;">{{ group.pass_type }} Tickets ({{ group.tickets|length }})</h3>
        {% for ticket in group.tickets %}
        <div style="margin: 20px 0; padding: 20px; background: #E8E8E8; border-radius: 8px; text-align: center;">
          <h4 style="margin: 0 0 15px 0; color: #E21836;">{{ group.pass_type }} - Ticket {{ loop.index }}</h4>
          <img src="{{ ticket.qr_code_url }}" alt="QR Code for {{ group.pass_type }}" width="250" style="max-width: 250px; height: auto; display: block; margin: 0 auto;" />
          <p style="margin: 10px 0 0 0; font-size: 12px; color: #666666; font-family: 'Courier New', monospace;">Token: {{ ticket.token_preview }}...</p>
        </div>
        {% endfor %}
      </div>
      {% endfor %}
    </div>

    <div style="background: #F9F9F9; padding: 20px; border-radius: 8px; margin: 20px 0;">
      <h3 style="margin-top: 0; color: #E21836;">Payment Confirmation</h3>
      <p>Your payment of <strong>{{ total }}</strong> has been successfully received{% if ambassador_name %} by our ambassador <strong>{{ ambassador_name }}</strong>{% endif %}. Your order is now fully validated and confirmed.</p>
    </div>

    <div style="background: #F9F9F9; padding: 20px; border-radius: 8px; margin: 20px 0;">
      <h3 style="margin-top: 0; color: #E21836;">Need Help?</h3>
      <p>If you have any questions about your order, please contact our support team.</p>
      <a href="{{ support_url }}" style="display: inline-block; margin-top: 10px; padding: 12px 24px; background: #E21836; color: #FFFFFF; text-decoration: none; border-radius: 5px;">Contact Support</a>
    </div>

    <p>Thank you for choosing {{ brand_name }}! We look forward to seeing you at the event.</p>
    <p><strong>Best regards,<br>The {{ brand_name }} Team</strong></p>
  </div>
  <div style="text-align: center; padding: 20px; border-top: 1px solid #EEEEEE; color: #666666; font-size: 14px;">
    <p style="margin: 0;">{{ brand_name }}. All rights reserved.</p>
  </div>
</div>
</body>
</html>
"""

_env = Environment(
    loader=DictLoader({"confirmation.html": _CONFIRMATION_TEMPLATE}),
    autoescape=select_autoescape(["html"]),
)


def format_amount(amount, currency: str) -> str:
    value = Decimal(str(amount or 0)).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)
    return f"{value} {currency}"


def _group_tickets(tickets: Sequence[Ticket], passes: Sequence[OrderPass]) -> List[Dict]:
    """Group tickets with a QR image by pass type, in pass order."""
    groups: Dict[str, List[Dict]] = {}
    pass_types = {p.id: p.pass_type for p in passes}
    for pass_ in passes:
        groups.setdefault(pass_.pass_type, [])
    for ticket in tickets:
        pass_type = pass_types.get(ticket.order_pass_id)
        if pass_type is None or not ticket.qr_code_url:
            continue
        groups[pass_type].append(
            {"qr_code_url": ticket.qr_code_url, "token_preview": ticket.secure_token[:8]}
        )
    return [{"pass_type": k, "tickets": v} for k, v in groups.items() if v]


def compose_confirmation_email(
    order: Order,
    tickets: Sequence[Ticket],
    passes: Sequence[OrderPass],
    branding: EmailBranding = EmailBranding(),
) -> ComposedEmail:
    """Render the confirmation email embedding every generated ticket's QR image."""
    context = {
        "brand_name": branding.brand_name,
        "support_url": branding.support_url,
        "customer_name": order.user_name or "Valued Customer",
        "order_ref": order.id[:8].upper(),
        "event_name": (order.event.name if order.event and order.event.name else "Event"),
        "event_venue": order.event.venue if order.event else None,
        "ambassador_name": (order.ambassador.full_name or "Our Ambassador") if order.ambassador else None,
        "total": format_amount(order.total_price, branding.currency),
        "passes": [
            {
                "pass_type": p.pass_type,
                "quantity": p.quantity,
                "price": format_amount(p.price, branding.currency),
            }
            for p in passes
        ],
        "ticket_groups": _group_tickets(tickets, passes),
    }
    html = _env.get_template("confirmation.html").render(**context)
    return ComposedEmail(subject=branding.subject, html=html)
