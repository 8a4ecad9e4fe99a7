from django.db import models


class SiteSetting(models.Model):
    """Per-deployment settings editable from the admin.

    Razorpay credentials stored here are only used when the matching
    environment variable is unset.
    """
    razorpay_key_id = models.CharField(max_length=64, blank=True, default="")
    razorpay_key_secret = models.CharField(max_length=128, blank=True, default="")
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = "site setting"

    @classmethod
    def current(cls):
        return cls.objects.order_by("pk").first()

    def __str__(self):
        return f"Site settings ({self.razorpay_key_id or 'razorpay not set'})"
