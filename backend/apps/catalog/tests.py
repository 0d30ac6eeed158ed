import json
from datetime import date
from io import StringIO

from django.core.management import call_command
from django.test import TestCase
from django.urls import reverse

from apps.employees.models import Employee
from apps.targets.models import Target

from .models import Category, Product


class CatalogApiTests(TestCase):
    def setUp(self):
        self.funding = Category.objects.create(name="Funding")
        self.deposito = Product.objects.create(name="Deposito", category=self.funding)

    def send_json(self, method, url, payload):
        return getattr(self.client, method)(url, data=json.dumps(payload), content_type="application/json")

    def test_list_categories_with_products(self):
        response = self.client.get(reverse("category_collection"))
        self.assertEqual(
            response.json(),
            [
                {
                    "id": self.funding.id,
                    "name": "Funding",
                    "products": [{"id": self.deposito.id, "name": "Deposito", "category_id": self.funding.id}],
                }
            ],
        )

    def test_create_category_rejects_duplicate_name(self):
        response = self.send_json("post", reverse("category_collection"), {"name": "Lending"})
        self.assertEqual(response.status_code, 201)
        self.assertEqual(response.json()["products"], [])

        response = self.send_json("post", reverse("category_collection"), {"name": " funding "})
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["message"], "name: A category with this name already exists.")

    def test_rename_category(self):
        response = self.send_json("patch", reverse("category_detail", args=[self.funding.id]), {"name": "Dana"})
        self.assertEqual(response.status_code, 200)
        self.funding.refresh_from_db()
        self.assertEqual(self.funding.name, "Dana")

    def test_category_with_products_cannot_be_deleted(self):
        url = reverse("category_detail", args=[self.funding.id])

        response = self.client.delete(url)
        self.assertEqual(response.status_code, 409)
        self.assertIn("still has 1 product(s)", response.json()["message"])
        self.assertEqual(response.json()["precondition"], "category_has_products")
        self.assertTrue(Category.objects.filter(id=self.funding.id).exists())

        self.deposito.delete()
        response = self.client.delete(url)
        self.assertEqual(response.status_code, 204)
        self.assertFalse(Category.objects.exists())

    def test_create_product(self):
        response = self.send_json(
            "post",
            reverse("product_collection"),
            {"name": "Giro", "category_id": self.funding.id},
        )
        self.assertEqual(response.status_code, 201)
        self.assertEqual(response.json()["category"], {"id": self.funding.id, "name": "Funding"})

    def test_create_product_needs_existing_category(self):
        response = self.send_json("post", reverse("product_collection"), {"name": "Giro", "category_id": 999})
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["message"], "category_id: Select an existing category.")

    def test_move_product_to_other_category(self):
        lending = Category.objects.create(name="Lending")
        response = self.send_json(
            "patch",
            reverse("product_detail", args=[self.deposito.id]),
            {"category_id": lending.id},
        )
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["name"], "Deposito")
        self.assertEqual(response.json()["category_id"], lending.id)

    def test_product_with_targets_cannot_be_deleted(self):
        employee = Employee.objects.create(
            name="Rina", position="AO", office_location="Bandung", entry_date=date(2019, 3, 1)
        )
        target = Target.objects.create(employee=employee, product=self.deposito, nominal=10, month=1, year=2024)
        url = reverse("product_detail", args=[self.deposito.id])

        response = self.client.delete(url)
        self.assertEqual(response.status_code, 409)
        self.assertEqual(response.json()["precondition"], "product_has_targets")
        self.assertTrue(Product.objects.filter(id=self.deposito.id).exists())

        target.delete()
        response = self.client.delete(url)
        self.assertEqual(response.status_code, 204)

    def test_unknown_product(self):
        response = self.client.get(reverse("product_detail", args=[999]))
        self.assertEqual(response.status_code, 404)


class SeedCommandTests(TestCase):
    def test_seeds_empty_catalog(self):
        out = StringIO()
        call_command("seed_default_categories_and_products_if_empty", stdout=out)

        self.assertEqual(Category.objects.count(), 3)
        self.assertEqual(Product.objects.count(), 8)
        self.assertIn("categories(created=3), products(created=8)", out.getvalue())

    def test_skips_when_catalog_has_data(self):
        Category.objects.create(name="Custom")
        out = StringIO()
        call_command("seed_default_categories_and_products_if_empty", stdout=out)

        self.assertEqual(Category.objects.count(), 1)
        self.assertIn("Skipped", out.getvalue())

    def test_force_upserts_missing_defaults(self):
        funding = Category.objects.create(name="Funding")
        Product.objects.create(name="Giro", category=funding)
        call_command("seed_default_categories_and_products_if_empty", "--force", stdout=StringIO())

        self.assertEqual(Category.objects.count(), 3)
        self.assertEqual(Product.objects.filter(category=funding).count(), 3)
