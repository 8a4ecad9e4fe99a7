from django.contrib import admin

from .models import Product, SizeStock


class SizeStockInline(admin.TabularInline):
    model = SizeStock
    extra = 0
    fields = ("code", "qty", "position")


@admin.register(Product)
class ProductAdmin(admin.ModelAdmin):
    list_display = ("id", "title", "price", "stock", "track_inventory_by_size", "updated_at")
    search_fields = ("id", "title")
    list_filter = ("track_inventory_by_size",)
    readonly_fields = ("created_at", "updated_at")
    inlines = [SizeStockInline]
