from django.urls import path

from .views import (
    achievement_collection,
    achievement_detail,
    employee_targets,
    target_collection,
    target_detail,
)

urlpatterns = [
    path("targets", target_collection, name="target_collection"),
    path("targets/employee/<int:employee_id>", employee_targets, name="employee_targets"),
    path("targets/<int:target_id>", target_detail, name="target_detail"),
    path("achievements", achievement_collection, name="achievement_collection"),
    path("achievements/<int:target_id>", achievement_detail, name="achievement_detail"),
]
