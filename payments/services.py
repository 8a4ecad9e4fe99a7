"""Checkout: gateway order creation, payment confirmation and manual payments.

All amounts are integers in the currency's minor unit (paise for INR). The
client sends them already scaled; nothing here multiplies or rounds.
"""

import logging
import time
from decimal import Decimal, InvalidOperation
from typing import List, Optional

from django.conf import settings
from django.db import DatabaseError, transaction

from accounts.models import display_name, shipping_defaults
from catalog.inventory import StockLine, reserve_items
from orders.models import Order
from orders.notifications import notify_order_placed
from storefront.exceptions import PersistenceError, ValidationError

from .forms import ShippingForm
from .integrations.razorpay import RazorpayGateway

logger = logging.getLogger(__name__)


def _default_currency() -> str:
    return getattr(settings, "RAZORPAY_DEFAULT_CURRENCY", "INR")


def _clean_str(value) -> str:
    return value.strip() if isinstance(value, str) else ""


def _bounded(value: str, field: str, message: str) -> str:
    if len(value) > Order._meta.get_field(field).max_length:
        raise ValidationError(message)
    return value


def _clip(value: str, field: str) -> str:
    return (value or "")[:Order._meta.get_field(field).max_length]


def _to_int(raw, *, allow_zero: bool) -> Optional[int]:
    if raw is None or isinstance(raw, bool):
        return None
    try:
        value = Decimal(str(raw).strip())
    except (InvalidOperation, ValueError):
        return None
    if not value.is_finite() or value != value.to_integral_value():
        return None
    value = int(value)
    if value < 0 or (value == 0 and not allow_zero):
        return None
    return value


def parse_amount(raw) -> int:
    """Positive integer minor units, or ValidationError."""
    amount = _to_int(raw, allow_zero=False)
    if amount is None:
        raise ValidationError("Invalid amount")
    return amount


def parse_total(raw, *, default: Optional[int] = None) -> int:
    if raw in (None, "") and default is not None:
        return default
    total = _to_int(raw, allow_zero=True)
    if total is None:
        raise ValidationError("Invalid amount")
    return total


def require_items(items) -> list:
    if not isinstance(items, list) or not items:
        raise ValidationError("No items in order")
    return items


def stock_lines(items: list) -> List[StockLine]:
    """Validate every line up front so nothing is touched for a bad cart."""
    lines = []
    for item in items:
        if not isinstance(item, dict):
            raise ValidationError("Invalid item in order")
        qty = _to_int(item.get("qty") or 1, allow_zero=False)
        if qty is None:
            raise ValidationError(f"Invalid quantity for {item.get('title') or 'item'}")
        product_id = item.get("id") or item.get("productId")
        size = item.get("size")
        lines.append(StockLine(
            str(product_id) if product_id else None,
            qty,
            str(size) if size not in (None, "") else None,
        ))
    return lines


def shipping_details(payload: dict, user) -> dict:
    """Validated shipping fields, falling back to the profile for optional ones."""
    form = ShippingForm({k: payload.get(k) for k in ("name", "phone", "address", "city", "state", "pincode")
                         if payload.get(k) not in (None, "")})
    if not form.is_valid():
        raise ValidationError(form.first_error())
    defaults = shipping_defaults(user)
    return {k: form.cleaned_data.get(k) or _clip(defaults.get(k, ""), k) for k in ShippingForm.base_fields}


def _items_note(items: list) -> str:
    parts = []
    for i in items:
        if isinstance(i, dict):
            parts.append(f"{i.get('title') or i.get('productId') or i.get('id') or 'item'} x{i.get('qty') or 1}")
    return ", ".join(parts)


def _coupon_code(coupon) -> str:
    if isinstance(coupon, dict):
        return str(coupon.get("code") or "none")
    return str(coupon) if coupon else "none"


def request_gateway_order(payload: dict, *, gateway: Optional[RazorpayGateway] = None) -> dict:
    """Create a Razorpay order for the client to pay. Writes nothing locally."""
    gateway = gateway or RazorpayGateway()
    amount = parse_amount(payload.get("amount"))
    items = require_items(payload.get("items"))
    currency = _clean_str(payload.get("currency")) or _default_currency()

    creds = gateway.credentials()
    remote = gateway.create_remote_order(
        amount,
        currency,
        f"order_{int(time.time() * 1000)}",
        {"items": _items_note(items), "appliedCoupon": _coupon_code(payload.get("appliedCoupon"))},
        credentials=creds,
    )
    logger.info("Razorpay order created id=%s amount=%s %s", remote.remote_order_id, remote.amount, remote.currency)
    return {
        "orderId": remote.remote_order_id,
        "amount": amount,
        "currency": remote.currency or currency,
        "keyId": creds.key_id,
    }


def _place_order(*, user, items: list, shipping: dict, **fields) -> Order:
    lines = stock_lines(items)
    try:
        with transaction.atomic():
            reserve_items(lines)
            order = Order.objects.create(user=user, items=items, **shipping, **fields)
    except DatabaseError as e:
        logger.exception("Failed to persist order for user=%s", getattr(user, "pk", None))
        raise PersistenceError("Failed to save order") from e
    notify_order_placed(order, user)
    return order


def confirm_gateway_payment(payload: dict, user, *, gateway: Optional[RazorpayGateway] = None) -> dict:
    """Verify a Razorpay checkout callback and, when a cart is included, place the order.

    Without items this is a pure signature check and is safe to repeat.
    """
    gateway = gateway or RazorpayGateway()
    remote_order_id = _clean_str(payload.get("razorpayOrderId"))
    remote_payment_id = _clean_str(payload.get("razorpayPaymentId"))
    signature = _clean_str(payload.get("razorpaySignature"))
    if not (remote_order_id and remote_payment_id and signature):
        raise ValidationError("Missing payment verification details")

    secret = gateway.secret()
    if not gateway.verify_signature(remote_order_id, remote_payment_id, signature, secret):
        logger.warning("Invalid Razorpay signature order=%s payment=%s", remote_order_id, remote_payment_id)
        raise ValidationError("Invalid payment signature")

    result = {"razorpayPaymentId": remote_payment_id, "razorpayOrderId": remote_order_id}
    items = payload.get("items")
    if items is not None and not isinstance(items, list):
        raise ValidationError("Invalid items in order")
    if not items:
        return result

    shipping = shipping_details(payload, user)
    method = _bounded(_clean_str(payload.get("paymentMethod")), "payment_method", "Payment method is too long")
    currency = _bounded(_clean_str(payload.get("currency")), "currency", "Invalid currency")
    _bounded(remote_order_id, "razorpay_order_id", "Invalid payment identifiers")
    _bounded(remote_payment_id, "razorpay_payment_id", "Invalid payment identifiers")
    order = _place_order(
        user=user,
        items=items,
        shipping=shipping,
        payment_method=method or "Razorpay",
        total=parse_total(payload.get("total"), default=0),
        currency=currency or _default_currency(),
        status="paid",
        razorpay_order_id=remote_order_id,
        razorpay_payment_id=remote_payment_id,
        applied_coupon=payload.get("appliedCoupon"),
    )
    logger.info("Order %s paid via Razorpay payment=%s", order.pk, remote_payment_id)
    result["order"] = order
    return result


def submit_manual_payment(payload: dict, user) -> Order:
    """Record an offline (UPI / bank transfer) payment awaiting admin reconciliation."""
    txn_id = _clean_str(payload.get("transactionId"))
    if not txn_id:
        raise ValidationError("Transaction ID is required")
    _bounded(txn_id, "upi_txn_id", "Transaction ID is too long")
    method = _bounded(_clean_str(payload.get("paymentMethod")), "payment_method", "Payment method is too long")
    currency = _bounded(_clean_str(payload.get("currency")), "currency", "Invalid currency")
    items = require_items(payload.get("items"))
    shipping = shipping_details(payload, user)
    total = parse_total(payload.get("amount"))

    order = _place_order(
        user=user,
        items=items,
        shipping=shipping,
        payment_method=method or "UPI",
        total=total,
        currency=currency or _default_currency(),
        status="pending",
        upi_txn_id=txn_id,
        upi_payer_name=_clip(display_name(user), "upi_payer_name"),
        applied_coupon=payload.get("appliedCoupon"),
    )
    logger.info("Manual payment order %s recorded txn=%s", order.pk, txn_id)
    return order
