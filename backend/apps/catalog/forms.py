from django import forms

from .models import Category


class CategoryForm(forms.Form):
    name = forms.CharField(label="Name", max_length=64)

    def __init__(self, *args, instance=None, **kwargs):
        super().__init__(*args, **kwargs)
        self.instance = instance

    def clean_name(self):
        name = self.cleaned_data["name"].strip()
        duplicates = Category.objects.filter(name__iexact=name)
        if self.instance is not None:
            duplicates = duplicates.exclude(id=self.instance.id)
        if duplicates.exists():
            raise forms.ValidationError("A category with this name already exists.")
        return name


class ProductForm(forms.Form):
    name = forms.CharField(label="Name", max_length=128)
    category_id = forms.ModelChoiceField(
        label="Category",
        queryset=Category.objects.all(),
        error_messages={"invalid_choice": "Select an existing category."},
    )

    def clean_name(self):
        return self.cleaned_data["name"].strip()
