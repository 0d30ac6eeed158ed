import json
import logging
from functools import wraps

from django.http import Http404, HttpRequest, HttpResponse, JsonResponse
from django.views.decorators.csrf import csrf_exempt

from .errors import TrackerError, ValidationFailed
from .filters import FilterState, apply_filters, paginate
from .payloads import page_payload

logger = logging.getLogger(__name__)

REQUEST_TOKEN_HEADER = "X-Request-Token"


def error_response(message, *, status: int) -> JsonResponse:
    return JsonResponse({"message": message}, status=status)


def json_endpoint(*allowed_methods: str):
    """Gate a JSON view on HTTP methods and translate domain errors to JSON bodies."""

    def decorator(view_func):
        @csrf_exempt
        @wraps(view_func)
        def wrapper(request: HttpRequest, *args, **kwargs) -> HttpResponse:
            if request.method not in allowed_methods:
                response = error_response(f"Method {request.method} not allowed", status=405)
                response["Allow"] = ", ".join(allowed_methods)
            else:
                try:
                    response = view_func(request, *args, **kwargs)
                except TrackerError as exc:
                    log = logger.error if exc.status_code >= 500 else logger.info
                    log("%s %s failed: %s", request.method, request.path, exc.message)
                    response = JsonResponse(exc.payload(), status=exc.status_code)
                except Http404 as exc:
                    response = error_response(str(exc) or "Not found", status=404)
            token = request.headers.get(REQUEST_TOKEN_HEADER)
            if token:
                response[REQUEST_TOKEN_HEADER] = token
            return response

        return wrapper

    return decorator


def read_json(request: HttpRequest) -> dict:
    if not request.body:
        return {}
    try:
        data = json.loads(request.body)
    except (UnicodeDecodeError, ValueError):
        raise ValidationFailed("Request body must be valid JSON") from None
    if not isinstance(data, dict):
        raise ValidationFailed("Request body must be a JSON object")
    return data


def form_errors(form) -> ValidationFailed:
    messages = []
    for field_name, errors in form.errors.items():
        for error in errors:
            if field_name == "__all__":
                messages.append(error)
            else:
                messages.append(f"{field_name}: {error}")
    return ValidationFailed(messages)


def filtered_list_response(request: HttpRequest, records, *, fields, serialize) -> JsonResponse:
    state = FilterState.from_query(request.GET)
    matched = apply_filters(records, state, fields=fields)
    if "page" not in request.GET:
        return JsonResponse([serialize(record) for record in matched], safe=False)
    return JsonResponse(page_payload(paginate(matched, state.page), serialize))


def extract_error_message(response) -> str:
    """Read the error text of a non-2xx response the way API clients do.

    A JSON ``message`` is used as-is, or joined with ", " when it is a list.
    Without a JSON body the raw text is used, then the reason phrase.
    """
    text = response.content.decode("utf-8", errors="replace") if response.content else ""
    try:
        data = json.loads(text)
    except ValueError:
        return text or response.reason_phrase
    if isinstance(data, dict) and data.get("message"):
        message = data["message"]
        if isinstance(message, list):
            return ", ".join(str(part) for part in message)
        return str(message)
    if isinstance(data, str) and data:
        return data
    return text or response.reason_phrase
