import logging
from typing import List

from django.conf import settings
from django.core.mail import EmailMultiAlternatives
from django.template import engines
from django.template.loader import render_to_string

from accounts.models import contact_email, display_name

logger = logging.getLogger(__name__)


def _fail_silently() -> bool:
    return getattr(settings, "EMAIL_FAIL_SILENTLY", True)


def _template_exists(path: str) -> bool:
    try:
        engines["django"].get_template(path)
        return True
    except Exception:
        return False


def _admin_recipients() -> List[str]:
    # Comma-separated list; fall back to DEFAULT_FROM_EMAIL/host user
    raw = getattr(settings, "ORDERS_ADMIN_EMAILS", None) or getattr(settings, "ADMIN_EMAILS", None)
    if not raw:
        raw = ",".join([
            getattr(settings, "EMAIL_HOST_USER", "") or "",
            getattr(settings, "DEFAULT_FROM_EMAIL", "") or "",
        ])
    emails = [e.strip() for e in (raw or "").split(",") if e and e.strip()]
    seen = set()
    uniq: List[str] = []
    for e in emails:
        if e.lower() not in seen:
            seen.add(e.lower())
            uniq.append(e)
    return uniq


def _format_amount(minor_units: int, currency: str) -> str:
    return f"{currency} {minor_units / 100:.2f}"


def _render(name: str, context: dict, fallback: str) -> str:
    path = f"emails/{name}"
    if _template_exists(path):
        return render_to_string(path, context)
    return fallback


def send_order_confirmation_email(order, user) -> bool:
    """Email the customer a confirmation and copy the shop admins.

    Returns True when the customer message was handed to the mail backend.
    """
    to_email = contact_email(user)
    if not to_email:
        logger.info("No email address for user=%s; skipping confirmation for order=%s", getattr(user, "pk", None), order.pk)
        return False

    context = {
        "order": order,
        "customer_name": display_name(user),
        "amount": _format_amount(order.total, order.currency),
        "items": order.items or [],
        "is_pending": order.status == "pending",
    }
    from_email = getattr(settings, "DEFAULT_FROM_EMAIL", None) or getattr(settings, "EMAIL_HOST_USER", None)

    subject = f"Order #{order.pk} confirmed - {context['amount']}"
    if context["is_pending"]:
        subject = f"Order #{order.pk} received - payment pending verification"
    lines = "\n".join(f"- {i.get('title', i.get('productId', 'Item'))} x{i.get('qty', 1)}" for i in context["items"])
    text = _render(
        "order_confirmation.txt",
        context,
        f"Hi {context['customer_name']},\n\nThank you for your order #{order.pk}.\n{lines}\n\nTotal: {context['amount']}\n",
    )
    msg = EmailMultiAlternatives(subject, text, from_email, [to_email])
    if _template_exists("emails/order_confirmation.html"):
        try:
            msg.attach_alternative(render_to_string("emails/order_confirmation.html", context), "text/html")
        except Exception:
            logger.exception("Failed to render HTML order confirmation; sending text-only")
    sent = msg.send(fail_silently=_fail_silently())

    try:
        admins = _admin_recipients()
        if admins:
            admin_subject = f"New order #{order.pk}: {context['amount']} ({order.payment_method}, {order.status})"
            admin_text = _render(
                "order_notification_admin.txt",
                context,
                f"Order #{order.pk} by {context['customer_name']} <{to_email}>\n{lines}\n\nTotal: {context['amount']}\n",
            )
            EmailMultiAlternatives(admin_subject, admin_text, from_email, admins).send(fail_silently=_fail_silently())
    except Exception:
        logger.exception("Failed to send admin order notification for order=%s", order.pk)

    return bool(sent)
