from django.conf import settings
from django.db import models

from accounts.models import PINCODE_VALIDATOR


class Order(models.Model):
    STATUS = [("pending", "Pending"), ("paid", "Paid"), ("shipped", "Shipped"),
              ("delivered", "Delivered"), ("cancelled", "Cancelled")]

    user = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.PROTECT, related_name="orders")

    name = models.CharField(max_length=150, blank=True, default="")
    phone = models.CharField(max_length=20, blank=True, default="")
    address = models.CharField(max_length=255, blank=True, default="")
    city = models.CharField(max_length=100)
    state = models.CharField(max_length=100)
    pincode = models.CharField(max_length=8, validators=[PINCODE_VALIDATOR])

    payment_method = models.CharField(max_length=32, default="Razorpay")
    # Snapshot of the cart at purchase time, not a reference to live products
    items = models.JSONField(default=list)
    total = models.PositiveBigIntegerField(default=0, help_text="Minor currency units (paise)")
    currency = models.CharField(max_length=8, default="INR")
    status = models.CharField(max_length=12, choices=STATUS, default="pending", db_index=True)

    upi_txn_id = models.CharField(max_length=128, blank=True, default="", db_index=True)
    upi_payer_name = models.CharField(max_length=150, blank=True, default="")

    razorpay_order_id = models.CharField(max_length=64, blank=True, default="", db_index=True)
    razorpay_payment_id = models.CharField(max_length=64, blank=True, default="")

    applied_coupon = models.JSONField(blank=True, null=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ("-created_at", "-id")

    @property
    def is_paid(self) -> bool:
        return self.status == "paid"

    @property
    def upi(self):
        if not self.upi_txn_id:
            return None
        return {"txnId": self.upi_txn_id, "payerName": self.upi_payer_name}

    def to_dict(self) -> dict:
        return {
            "id": self.pk,
            "userId": self.user_id,
            "name": self.name,
            "phone": self.phone,
            "address": self.address,
            "city": self.city,
            "state": self.state,
            "pincode": self.pincode,
            "paymentMethod": self.payment_method,
            "items": self.items,
            "total": self.total,
            "currency": self.currency,
            "status": self.status,
            "upi": self.upi,
            "razorpayOrderId": self.razorpay_order_id or None,
            "razorpayPaymentId": self.razorpay_payment_id or None,
            "appliedCoupon": self.applied_coupon,
            "createdAt": self.created_at.isoformat() if self.created_at else None,
        }

    def __str__(self):
        return f"Order #{self.pk} ({self.status})"
