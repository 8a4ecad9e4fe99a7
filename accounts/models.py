from django.conf import settings
from django.core.validators import RegexValidator
from django.db import models

PINCODE_VALIDATOR = RegexValidator(r"^[0-9]{4,8}$", "Invalid pincode")


class Customer(models.Model):
    user = models.OneToOneField(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name="customer")
    customer_id = models.CharField(max_length=50, unique=True)
    name = models.CharField(max_length=150, blank=True)
    email = models.EmailField(blank=True)
    phone = models.CharField(max_length=20, blank=True)
    address1 = models.CharField(max_length=255, blank=True)
    city = models.CharField(max_length=100, blank=True)
    state = models.CharField(max_length=100, blank=True)
    pincode = models.CharField(max_length=8, blank=True, validators=[PINCODE_VALIDATOR])
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ("-created_at",)

    def __str__(self) -> str:
        return f"{self.customer_id} - {self.name}".strip(" -")

    def shipping_defaults(self) -> dict:
        return {
            "name": self.name,
            "phone": self.phone,
            "address": self.address1,
            "city": self.city,
            "state": self.state,
            "pincode": self.pincode,
        }


def display_name(user) -> str:
    customer = getattr(user, "customer", None) if user is not None else None
    if customer is not None and customer.name:
        return customer.name
    if user is None:
        return ""
    return user.get_full_name() or user.get_username()


def contact_email(user) -> str:
    customer = getattr(user, "customer", None) if user is not None else None
    return (getattr(user, "email", "") or (customer.email if customer else "") or "").strip()


def shipping_defaults(user) -> dict:
    """Shipping fields from the user's profile; empty strings when there is none."""
    try:
        customer = user.customer
    except (AttributeError, Customer.DoesNotExist):
        customer = None
    if customer is None:
        return {
            "name": display_name(user),
            "phone": "",
            "address": "",
            "city": "",
            "state": "",
            "pincode": "",
        }
    return customer.shipping_defaults()
