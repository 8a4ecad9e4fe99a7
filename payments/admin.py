from django.contrib import admin
from .models import SiteSetting

@admin.register(SiteSetting)
class SiteSettingAdmin(admin.ModelAdmin):
    list_display = ("id", "razorpay_key_id", "updated_at")
    readonly_fields = ("updated_at",)
