from django.urls import path

from .views import employee_collection, employee_detail

urlpatterns = [
    path("employees", employee_collection, name="employee_collection"),
    path("employees/<int:employee_id>", employee_detail, name="employee_detail"),
]
