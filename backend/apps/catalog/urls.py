from django.urls import path

from .views import category_collection, category_detail, product_collection, product_detail

urlpatterns = [
    path("categories", category_collection, name="category_collection"),
    path("categories/<int:category_id>", category_detail, name="category_detail"),
    path("products", product_collection, name="product_collection"),
    path("products/<int:product_id>", product_detail, name="product_detail"),
]
