from django import forms

from apps.common.domain import POSITION_CHOICES


class EmployeeForm(forms.Form):
    name = forms.CharField(label="Name", max_length=128)
    position = forms.ChoiceField(label="Position", choices=POSITION_CHOICES)
    office_location = forms.CharField(label="Office location", max_length=128)
    entry_date = forms.DateField(label="Entry date")

    def clean_name(self):
        return self.cleaned_data["name"].strip()

    def clean_office_location(self):
        return self.cleaned_data["office_location"].strip()
