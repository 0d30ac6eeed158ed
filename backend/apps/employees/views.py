import logging

from django.http import HttpRequest, HttpResponse, JsonResponse
from django.shortcuts import get_object_or_404

from apps.common.api import filtered_list_response, form_errors, json_endpoint, read_json
from apps.common.filters import employee_fields
from apps.common.payloads import employee_payload

from .forms import EmployeeForm
from .models import Employee

logger = logging.getLogger(__name__)


def _employee_queryset():
    return Employee.active.prefetch_related(
        "targets__product__category",
        "targets__achievement",
    )


def _employee_with_targets(employee: Employee) -> dict:
    targets = [target.to_record(with_employee=False) for target in employee.targets.all()]
    return employee_payload(employee.to_record(), targets=targets)


def _validated_form(data) -> EmployeeForm:
    form = EmployeeForm(data)
    if not form.is_valid():
        raise form_errors(form)
    return form


@json_endpoint("GET", "POST")
def employee_collection(request: HttpRequest) -> HttpResponse:
    if request.method == "POST":
        form = _validated_form(read_json(request))
        employee = Employee.objects.create(**form.cleaned_data)
        logger.info("Created employee %s (%s)", employee.id, employee.position)
        return JsonResponse(employee_payload(employee.to_record(), targets=[]), status=201)

    employees = {employee.id: employee for employee in _employee_queryset()}
    return filtered_list_response(
        request,
        [employee.to_record() for employee in employees.values()],
        fields=employee_fields,
        serialize=lambda record: _employee_with_targets(employees[record.id]),
    )


@json_endpoint("GET", "PUT", "DELETE")
def employee_detail(request: HttpRequest, employee_id: int) -> HttpResponse:
    employee = get_object_or_404(_employee_queryset(), id=employee_id)

    if request.method == "DELETE":
        employee.is_active = False
        employee.save(update_fields=["is_active", "updated_at"])
        logger.info("Deactivated employee %s; their targets are kept", employee.id)
        return HttpResponse(status=204)

    if request.method == "PUT":
        current = {
            "name": employee.name,
            "position": employee.position,
            "office_location": employee.office_location,
            "entry_date": employee.entry_date.isoformat(),
        }
        form = _validated_form({**current, **read_json(request)})
        for field, value in form.cleaned_data.items():
            setattr(employee, field, value)
        employee.save(update_fields=[*form.cleaned_data.keys(), "updated_at"])
        logger.info("Updated employee %s", employee.id)

    return JsonResponse(_employee_with_targets(employee))
