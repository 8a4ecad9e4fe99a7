from django.contrib import admin
from .models import Customer


@admin.register(Customer)
class CustomerAdmin(admin.ModelAdmin):
    list_display = ("customer_id", "user", "name", "email", "city", "pincode", "created_at")
    search_fields = ("customer_id", "user__username", "name", "email", "phone")
    list_filter = ("created_at", "state")
    raw_id_fields = ("user",)
    readonly_fields = ("created_at", "updated_at")
