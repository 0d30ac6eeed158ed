from django.db import models

from apps.common.domain import CategoryRecord, ProductRecord


class Category(models.Model):
    name = models.CharField(max_length=64, unique=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["name", "id"]
        verbose_name_plural = "categories"

    def __str__(self) -> str:
        return self.name

    def to_record(self, *, with_products: bool = True) -> CategoryRecord:
        products = ()
        if with_products:
            bare = CategoryRecord(id=self.id, name=self.name)
            products = tuple(
                ProductRecord(id=product.id, name=product.name, category_id=self.id, category=bare)
                for product in self.products.all()
            )
        return CategoryRecord(id=self.id, name=self.name, products=products)


class Product(models.Model):
    name = models.CharField(max_length=128)
    category = models.ForeignKey(
        Category,
        on_delete=models.PROTECT,
        related_name="products",
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["category__name", "name", "id"]

    def __str__(self) -> str:
        return f"{self.name} ({self.category.name})"

    def to_record(self) -> ProductRecord:
        return ProductRecord(
            id=self.id,
            name=self.name,
            category_id=self.category_id,
            category=self.category.to_record(with_products=False),
        )
