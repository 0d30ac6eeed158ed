import logging

from django.http import HttpRequest, HttpResponse, JsonResponse
from django.shortcuts import get_object_or_404

from apps.common.api import form_errors, json_endpoint, read_json
from apps.common.payloads import category_payload, product_payload
from apps.targets.services import delete_category, delete_product

from .forms import CategoryForm, ProductForm
from .models import Category, Product

logger = logging.getLogger(__name__)


def _categories():
    return Category.objects.prefetch_related("products")


def _products():
    return Product.objects.select_related("category")


@json_endpoint("GET", "POST")
def category_collection(request: HttpRequest) -> HttpResponse:
    if request.method == "POST":
        form = CategoryForm(read_json(request))
        if not form.is_valid():
            raise form_errors(form)
        category = Category.objects.create(name=form.cleaned_data["name"])
        logger.info("Created category %s (%s)", category.id, category.name)
        return JsonResponse(category_payload(category.to_record()), status=201)

    return JsonResponse([category_payload(category.to_record()) for category in _categories()], safe=False)


@json_endpoint("GET", "PATCH", "DELETE")
def category_detail(request: HttpRequest, category_id: int) -> HttpResponse:
    category = get_object_or_404(_categories(), id=category_id)

    if request.method == "DELETE":
        delete_category(category)
        return HttpResponse(status=204)

    if request.method == "PATCH":
        form = CategoryForm({"name": category.name, **read_json(request)}, instance=category)
        if not form.is_valid():
            raise form_errors(form)
        category.name = form.cleaned_data["name"]
        category.save(update_fields=["name", "updated_at"])
        logger.info("Renamed category %s to %s", category.id, category.name)

    return JsonResponse(category_payload(category.to_record()))


@json_endpoint("GET", "POST")
def product_collection(request: HttpRequest) -> HttpResponse:
    if request.method == "POST":
        form = ProductForm(read_json(request))
        if not form.is_valid():
            raise form_errors(form)
        product = Product.objects.create(
            name=form.cleaned_data["name"],
            category=form.cleaned_data["category_id"],
        )
        logger.info("Created product %s in category %s", product.id, product.category_id)
        return JsonResponse(product_payload(product.to_record()), status=201)

    return JsonResponse([product_payload(product.to_record()) for product in _products()], safe=False)


@json_endpoint("GET", "PATCH", "DELETE")
def product_detail(request: HttpRequest, product_id: int) -> HttpResponse:
    product = get_object_or_404(_products(), id=product_id)

    if request.method == "DELETE":
        delete_product(product)
        return HttpResponse(status=204)

    if request.method == "PATCH":
        current = {"name": product.name, "category_id": product.category_id}
        form = ProductForm({**current, **read_json(request)})
        if not form.is_valid():
            raise form_errors(form)
        product.name = form.cleaned_data["name"]
        product.category = form.cleaned_data["category_id"]
        product.save(update_fields=["name", "category", "updated_at"])
        logger.info("Updated product %s", product.id)

    return JsonResponse(product_payload(product.to_record()))
