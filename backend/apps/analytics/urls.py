from django.urls import path

from .views import (
    employee_performance_series,
    product_targets,
    summary_monthly,
    summary_monthly_by_category,
    top_achievers,
    years,
)

urlpatterns = [
    path("analytics/years", years, name="analytics_years"),
    path("analytics/summary/monthly", summary_monthly, name="analytics_summary_monthly"),
    path(
        "analytics/summary/monthly-by-category",
        summary_monthly_by_category,
        name="analytics_summary_monthly_by_category",
    ),
    path("analytics/products/targets", product_targets, name="analytics_product_targets"),
    path(
        "analytics/employee/<int:employee_id>/performance",
        employee_performance_series,
        name="analytics_employee_performance",
    ),
    path("analytics/employees/top-achievers", top_achievers, name="analytics_top_achievers"),
]
