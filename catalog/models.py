from django.db import models

from .utils import generate_product_id


class Product(models.Model):
    id = models.CharField(primary_key=True, max_length=32, default=generate_product_id, editable=False)
    title = models.CharField(max_length=200)
    price = models.PositiveIntegerField(default=0, help_text="Price in minor currency units (paise)")
    stock = models.PositiveIntegerField(default=0)
    # When set, SizeStock rows are authoritative and ``stock`` is ignored
    track_inventory_by_size = models.BooleanField(default=False)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ("title",)

    def __str__(self):
        return self.title or self.id

    @property
    def available(self) -> int:
        if self.track_inventory_by_size:
            return sum(s.qty for s in self.size_inventory.all())
        return self.stock


class SizeStock(models.Model):
    product = models.ForeignKey(Product, on_delete=models.CASCADE, related_name="size_inventory")
    code = models.CharField(max_length=16)
    qty = models.PositiveIntegerField(default=0)
    position = models.PositiveSmallIntegerField(default=0)

    class Meta:
        ordering = ("product", "position", "id")
        constraints = [
            models.UniqueConstraint(fields=["product", "code"], name="uniq_size_per_product"),
        ]

    def __str__(self):
        return f"{self.product_id}:{self.code} ({self.qty})"
