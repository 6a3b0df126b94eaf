from __future__ import annotations

import re

from django import forms

_NON_DIGITS = re.compile(r"\D")


class LeadContactForm(forms.Form):
    name = forms.CharField(min_length=3, max_length=100)
    email = forms.EmailField()
    phone = forms.CharField(
        max_length=32,
        widget=forms.TextInput(attrs={"inputmode": "numeric", "placeholder": "Area code + number"}),
    )
    cpf = forms.CharField(required=False, max_length=32)
    cnpj = forms.CharField(required=False, max_length=32)
    address = forms.CharField(required=False, max_length=200)
    number = forms.CharField(required=False, max_length=20)
    complement = forms.CharField(required=False, max_length=100)
    neighborhood = forms.CharField(required=False, max_length=100)
    city = forms.CharField(required=False, max_length=100)
    state = forms.CharField(required=False, max_length=50)
    zip_code = forms.CharField(required=False, max_length=20)
    reference = forms.CharField(required=False, max_length=200)

    def clean_phone(self) -> str:
        digits = _NON_DIGITS.sub("", self.cleaned_data.get("phone") or "")
        if len(digits) < 10:
            raise forms.ValidationError("Phone must have at least 10 digits, including the area code.")
        if len(digits) > 15:
            raise forms.ValidationError("Phone number is too long.")
        return digits
