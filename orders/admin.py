from django.contrib import admin, messages
from django.db import transaction

from catalog.inventory import StockLine, restock

from .models import Order


@admin.register(Order)
class OrderAdmin(admin.ModelAdmin):
    list_display = ("id", "user", "status", "payment_method", "total", "currency", "upi_txn_id", "created_at")
    search_fields = ("id", "user__username", "user__email", "upi_txn_id", "razorpay_order_id", "razorpay_payment_id")
    list_filter = ("status", "payment_method", "created_at")
    readonly_fields = ("created_at", "updated_at", "items", "razorpay_order_id", "razorpay_payment_id", "applied_coupon")
    ordering = ("-created_at",)
    actions = ["mark_paid", "mark_cancelled"]

    @admin.action(description="Mark selected pending orders as paid")
    def mark_paid(self, request, queryset):
        updated = queryset.filter(status="pending").update(status="paid")
        self.message_user(request, f"{updated} order(s) marked as paid.", messages.SUCCESS)

    @admin.action(description="Cancel selected orders and return their stock")
    def mark_cancelled(self, request, queryset):
        cancelled = 0
        for order in queryset.filter(status__in=["pending", "paid"]):
            with transaction.atomic():
                locked = Order.objects.select_for_update().get(pk=order.pk)
                if locked.status not in ("pending", "paid"):
                    continue
                for item in locked.items or []:
                    try:
                        qty = int(item.get("qty") or 1)
                    except (TypeError, ValueError):
                        continue
                    restock(StockLine(item.get("productId") or item.get("id"), qty, item.get("size") or None))
                locked.status = "cancelled"
                locked.save(update_fields=["status", "updated_at"])
                cancelled += 1
        self.message_user(request, f"{cancelled} order(s) cancelled.", messages.SUCCESS)
