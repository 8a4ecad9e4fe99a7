"""Background dispatch of order confirmation emails.

Dispatch happens after the checkout transaction commits and never raises into
the request that triggered it.
"""

import logging
import threading

from django.conf import settings
from django.db import connections, transaction

from . import emails

logger = logging.getLogger(__name__)


def _deliver(order, user) -> None:
    try:
        if not emails.send_order_confirmation_email(order, user):
            logger.warning("Order confirmation not sent for order=%s", order.pk)
    except Exception:
        logger.exception("Failed to send confirmation email for order=%s", order.pk)


def _deliver_in_thread(order, user) -> None:
    try:
        _deliver(order, user)
    finally:
        # this thread opened its own connections
        connections.close_all()


def _start(order, user) -> None:
    if getattr(settings, "ORDER_EMAIL_ASYNC", True):
        threading.Thread(
            target=_deliver_in_thread, args=(order, user), name=f"order-email-{order.pk}", daemon=True,
        ).start()
    else:
        _deliver(order, user)


def notify_order_placed(order, user) -> None:
    transaction.on_commit(lambda: _start(order, user))
