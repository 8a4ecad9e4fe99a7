"""Stock reservation for checkout.

Quantities are only ever changed through conditional ``UPDATE`` statements
(``qty = qty - n WHERE qty >= n``), so two concurrent checkouts can never drive
a row negative: the loser sees zero affected rows and gets a 409.
"""

import logging
from typing import Iterable, NamedTuple, Optional

from django.db import transaction
from django.db.models import F
from django.utils import timezone

from storefront.exceptions import InsufficientStockError

from .models import Product, SizeStock

logger = logging.getLogger(__name__)


class StockLine(NamedTuple):
    product_id: Optional[str]
    qty: int
    size: Optional[str] = None


def _take_size(product: Product, line: StockLine) -> bool:
    entry = SizeStock.objects.filter(product=product, code=line.size).first()
    if entry is None:
        return False
    updated = SizeStock.objects.filter(pk=entry.pk, qty__gte=line.qty).update(qty=F("qty") - line.qty)
    if not updated:
        entry.refresh_from_db(fields=["qty"])
        raise InsufficientStockError(
            product_id=product.pk, title=product.title, size=line.size, available=entry.qty,
        )
    return True


def _take_flat(product: Product, line: StockLine) -> bool:
    updated = (
        Product.objects
        .filter(pk=product.pk, track_inventory_by_size=False, stock__gte=line.qty)
        .update(stock=F("stock") - line.qty, updated_at=timezone.now())
    )
    if not updated:
        product.refresh_from_db(fields=["stock"])
        raise InsufficientStockError(product_id=product.pk, title=product.title, available=product.stock)
    return True


def reserve_line(line: StockLine) -> bool:
    """Decrement stock for one line. Returns False when the line has no stock effect.

    Lines without a known product, and size-tracked products where the line
    names no size (or an unknown size), are skipped.
    """
    if not line.product_id:
        return False
    product = Product.objects.filter(pk=line.product_id).first()
    if product is None:
        return False
    if product.track_inventory_by_size:
        if not line.size:
            return False
        return _take_size(product, line)
    return _take_flat(product, line)


def reserve_items(lines: Iterable[StockLine]) -> int:
    """Reserve every line or none of them.

    Must run inside the caller's transaction when the caller also persists
    something that depends on the reservation (the order row).
    """
    taken = 0
    with transaction.atomic():
        for line in lines:
            try:
                if reserve_line(line):
                    taken += 1
            except InsufficientStockError as e:
                logger.warning(
                    "Stock conflict product=%s size=%s requested=%s available=%s",
                    e.product_id, e.size, line.qty, e.available,
                )
                raise
    return taken


def restock(line: StockLine) -> bool:
    """Put quantity back, e.g. when an unpaid order is cancelled."""
    if not line.product_id or line.qty <= 0:
        return False
    product = Product.objects.filter(pk=line.product_id).first()
    if product is None:
        return False
    if product.track_inventory_by_size:
        if not line.size:
            return False
        return bool(
            SizeStock.objects.filter(product=product, code=line.size).update(qty=F("qty") + line.qty)
        )
    return bool(
        Product.objects.filter(pk=product.pk).update(stock=F("stock") + line.qty, updated_at=timezone.now())
    )
