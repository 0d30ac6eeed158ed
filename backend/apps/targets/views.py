import logging

from django.http import HttpRequest, HttpResponse, JsonResponse
from django.shortcuts import get_object_or_404

from apps.common.api import filtered_list_response, form_errors, json_endpoint, read_json
from apps.common.errors import NotFoundError
from apps.common.filters import achievement_fields, target_fields
from apps.common.payloads import achievement_payload, target_payload
from apps.employees.models import Employee

from .forms import AchievementForm, TargetForm, TargetUpdateForm
from .models import Target
from .selectors import load_achievements, load_targets, target_queryset
from .services import (
    create_achievement,
    delete_target,
    save_target_and_achievement,
    update_achievement,
)

logger = logging.getLogger(__name__)


def _target_response(target_id: int, *, status: int = 200) -> JsonResponse:
    target = get_object_or_404(target_queryset(), id=target_id)
    return JsonResponse(target_payload(target.to_record()), status=status)


@json_endpoint("GET", "POST")
def target_collection(request: HttpRequest) -> HttpResponse:
    if request.method == "POST":
        form = TargetForm(read_json(request))
        if not form.is_valid():
            raise form_errors(form)
        target = Target.objects.create(
            employee=form.cleaned_data["employee_id"],
            product=form.cleaned_data["product_id"],
            nominal=form.cleaned_data["nominal"],
            month=form.cleaned_data["month"],
            year=form.cleaned_data["year"],
        )
        logger.info(
            "Created target %s for employee %s (%s-%02d)",
            target.id,
            target.employee_id,
            target.year,
            target.month,
        )
        return _target_response(target.id, status=201)

    return filtered_list_response(
        request,
        load_targets(),
        fields=target_fields,
        serialize=target_payload,
    )


@json_endpoint("GET")
def employee_targets(request: HttpRequest, employee_id: int) -> HttpResponse:
    targets = load_targets(employee_id=employee_id)
    if not targets:
        if not Employee.objects.filter(id=employee_id).exists():
            raise NotFoundError(f"Employee {employee_id} not found")
        raise NotFoundError("No targets found for this employee")
    return JsonResponse([target_payload(target) for target in targets], safe=False)


@json_endpoint("GET", "PUT", "DELETE")
def target_detail(request: HttpRequest, target_id: int) -> HttpResponse:
    target = get_object_or_404(Target, id=target_id)

    if request.method == "DELETE":
        delete_target(target.id)
        return HttpResponse(status=204)

    if request.method == "PUT":
        form = TargetUpdateForm({"product_id": target.product_id, **read_json(request)})
        if not form.is_valid():
            raise form_errors(form)
        outcome = save_target_and_achievement(
            target,
            form.cleaned_data["product_id"],
            form.cleaned_data["nominal"],
            form.cleaned_data["achievement_nominal"],
        )
        logger.info("Saved target %s (achievement %s)", target.id, outcome.achievement_action)

    return _target_response(target.id)


@json_endpoint("GET", "POST")
def achievement_collection(request: HttpRequest) -> HttpResponse:
    if request.method == "POST":
        form = AchievementForm(read_json(request))
        if not form.is_valid():
            raise form_errors(form)
        achievement = create_achievement(form.cleaned_data["target_id"], form.cleaned_data["nominal"])
        return JsonResponse(achievement_payload(achievement.to_record(), include_target=True), status=201)

    return filtered_list_response(
        request,
        load_achievements(),
        fields=achievement_fields,
        serialize=lambda record: achievement_payload(record, include_target=True),
    )


@json_endpoint("PUT")
def achievement_detail(request: HttpRequest, target_id: int) -> HttpResponse:
    form = AchievementForm({**read_json(request), "target_id": target_id})
    if not form.is_valid():
        raise form_errors(form)
    achievement = update_achievement(target_id, form.cleaned_data["nominal"])
    return JsonResponse(achievement_payload(achievement.to_record(), include_target=True))
