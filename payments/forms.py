from django import forms

from accounts.models import PINCODE_VALIDATOR


class ShippingForm(forms.Form):
    name = forms.CharField(max_length=150, required=False)
    phone = forms.CharField(max_length=20, required=False)
    address = forms.CharField(max_length=255, required=False)
    city = forms.CharField(max_length=100)
    state = forms.CharField(max_length=100)
    pincode = forms.CharField(max_length=8, validators=[PINCODE_VALIDATOR])

    REQUIRED = ("city", "state", "pincode")

    def first_error(self) -> str:
        for field in self.REQUIRED:
            if any(e.code == "required" for e in self.errors.as_data().get(field, [])):
                return "City, state, and pincode are required"
        if "pincode" in self.errors:
            return "Invalid pincode"
        for field, errors in self.errors.items():
            return f"{field}: {errors[0]}"
        return "Invalid shipping details"
