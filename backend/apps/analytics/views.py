from django.conf import settings
from django.http import HttpRequest, HttpResponse, JsonResponse
from django.shortcuts import get_object_or_404

from apps.common.api import json_endpoint
from apps.common.errors import ValidationFailed
from apps.employees.models import Employee
from apps.targets.selectors import load_targets

from .aggregation import (
    available_years,
    employee_performance,
    monthly_summary,
    monthly_summary_by_category,
    product_target_summary,
)
from .ranking import top_employees


def _int_param(request: HttpRequest, name: str, *, required: bool = False) -> int | None:
    raw = (request.GET.get(name) or "").strip()
    if not raw or raw == "all":
        if required:
            raise ValidationFailed(f"{name}: this query parameter is required")
        return None
    try:
        return int(raw)
    except ValueError:
        raise ValidationFailed(f"{name}: must be a whole number") from None


def _month_range(request: HttpRequest) -> tuple[int | None, int | None]:
    bounds = (_int_param(request, "from_month"), _int_param(request, "to_month"))
    for name, bound in zip(("from_month", "to_month"), bounds):
        if bound is not None and not 1 <= bound <= 12:
            raise ValidationFailed(f"{name}: must be between 1 and 12")
    return bounds


@json_endpoint("GET")
def years(request: HttpRequest) -> HttpResponse:
    return JsonResponse(available_years(load_targets()), safe=False)


@json_endpoint("GET")
def summary_monthly(request: HttpRequest) -> HttpResponse:
    year = _int_param(request, "year", required=True)
    return JsonResponse(monthly_summary(load_targets(year=year), year), safe=False)


@json_endpoint("GET")
def summary_monthly_by_category(request: HttpRequest) -> HttpResponse:
    year = _int_param(request, "year", required=True)
    rows = monthly_summary_by_category(load_targets(year=year), year, _month_range(request))
    return JsonResponse(rows, safe=False)


@json_endpoint("GET")
def product_targets(request: HttpRequest) -> HttpResponse:
    year = _int_param(request, "year", required=True)
    rows = product_target_summary(load_targets(year=year), year, _month_range(request))
    return JsonResponse(rows, safe=False)


@json_endpoint("GET")
def employee_performance_series(request: HttpRequest, employee_id: int) -> HttpResponse:
    employee = get_object_or_404(Employee, id=employee_id)
    year = _int_param(request, "year", required=True)
    product_id = _int_param(request, "productId")
    rows = employee_performance(load_targets(employee=employee, year=year), employee.id, year, product_id)
    return JsonResponse(rows, safe=False)


@json_endpoint("GET")
def top_achievers(request: HttpRequest) -> HttpResponse:
    limit = _int_param(request, "limit")
    if limit is None:
        limit = settings.TOP_ACHIEVERS_LIMIT
    if limit < 0:
        raise ValidationFailed("limit: must be zero or positive")
    year = _int_param(request, "year")
    targets = load_targets(year=year) if year is not None else load_targets()
    return JsonResponse(top_employees(targets, limit), safe=False)
