from django import forms

from apps.catalog.models import Product
from apps.employees.models import Employee


class TargetForm(forms.Form):
    employee_id = forms.ModelChoiceField(
        label="Employee",
        queryset=Employee.active.all(),
        error_messages={"invalid_choice": "Select an active employee."},
    )
    product_id = forms.ModelChoiceField(
        label="Product",
        queryset=Product.objects.all(),
        error_messages={"invalid_choice": "Select an existing product."},
    )
    nominal = forms.IntegerField(label="Nominal", min_value=0)
    month = forms.IntegerField(label="Month", min_value=1, max_value=12)
    year = forms.IntegerField(label="Year", min_value=1000, max_value=9999)


class TargetUpdateForm(forms.Form):
    product_id = forms.IntegerField(label="Product")
    nominal = forms.IntegerField(label="Nominal", min_value=0)
    achievement_nominal = forms.IntegerField(
        label="Achievement nominal",
        min_value=0,
        required=False,
    )


class AchievementForm(forms.Form):
    target_id = forms.IntegerField(label="Target")
    nominal = forms.IntegerField(label="Nominal", min_value=0)
