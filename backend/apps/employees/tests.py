import json
from datetime import date

from django.test import TestCase
from django.urls import reverse

from apps.catalog.models import Category, Product
from apps.targets.models import Achievement, Target

from .models import Employee


class EmployeeApiTests(TestCase):
    def setUp(self):
        self.rina = Employee.objects.create(
            name="Rina", position="AO", office_location="Bandung", entry_date=date(2019, 3, 1)
        )
        self.budi = Employee.objects.create(
            name="Budi", position="FO", office_location="Jakarta", entry_date=date(2022, 7, 18)
        )
        self.deposito = Product.objects.create(name="Deposito", category=Category.objects.create(name="Funding"))

    def send_json(self, method, url, payload):
        return getattr(self.client, method)(url, data=json.dumps(payload), content_type="application/json")

    def test_create_employee(self):
        response = self.send_json(
            "post",
            reverse("employee_collection"),
            {"name": " Sari ", "position": "FO", "office_location": "Surabaya", "entry_date": "2024-01-02"},
        )
        self.assertEqual(response.status_code, 201)
        self.assertEqual(
            response.json(),
            {
                "id": Employee.objects.get(name="Sari").id,
                "name": "Sari",
                "position": "FO",
                "office_location": "Surabaya",
                "entry_date": "2024-01-02",
                "is_active": True,
                "targets": [],
            },
        )

    def test_create_employee_rejects_unknown_position(self):
        response = self.send_json(
            "post",
            reverse("employee_collection"),
            {"name": "Sari", "position": "CEO", "office_location": "Surabaya", "entry_date": "2024-01-02"},
        )
        self.assertEqual(response.status_code, 400)
        self.assertTrue(response.json()["message"].startswith("position: "))

    def test_list_nests_targets_and_achievements(self):
        target = Target.objects.create(employee=self.rina, product=self.deposito, nominal=100, month=5, year=2024)
        Achievement.objects.create(target=target, nominal=120)

        response = self.client.get(reverse("employee_collection"))
        rows = {row["name"]: row for row in response.json()}
        self.assertEqual(set(rows), {"Rina", "Budi"})
        self.assertEqual(rows["Budi"]["targets"], [])
        nested = rows["Rina"]["targets"][0]
        self.assertEqual(nested["product"]["name"], "Deposito")
        self.assertEqual(nested["achievement"]["nominal"], 120)
        self.assertTrue(nested["achieved"])
        self.assertNotIn("employee", nested)

    def test_list_filters(self):
        response = self.client.get(reverse("employee_collection"), {"position": "FO"})
        self.assertEqual([row["name"] for row in response.json()], ["Budi"])

        response = self.client.get(reverse("employee_collection"), {"office_location": "Bandung"})
        self.assertEqual([row["name"] for row in response.json()], ["Rina"])

        response = self.client.get(reverse("employee_collection"), {"year": 2022})
        self.assertEqual([row["name"] for row in response.json()], ["Budi"])

        response = self.client.get(reverse("employee_collection"), {"search": "jakarta"})
        self.assertEqual([row["name"] for row in response.json()], ["Budi"])

    def test_list_pages(self):
        response = self.client.get(reverse("employee_collection"), {"page": 1})
        self.assertEqual(response.json()["total_count"], 2)
        self.assertEqual(response.json()["total_pages"], 1)

    def test_update_merges_with_current_values(self):
        response = self.send_json(
            "put",
            reverse("employee_detail", args=[self.rina.id]),
            {"office_location": "Bogor"},
        )
        self.assertEqual(response.status_code, 200)
        self.rina.refresh_from_db()
        self.assertEqual((self.rina.name, self.rina.office_location), ("Rina", "Bogor"))
        self.assertEqual(self.rina.entry_date, date(2019, 3, 1))

    def test_delete_is_soft_and_keeps_targets(self):
        target = Target.objects.create(employee=self.rina, product=self.deposito, nominal=100, month=5, year=2024)

        response = self.client.delete(reverse("employee_detail", args=[self.rina.id]))
        self.assertEqual(response.status_code, 204)

        self.rina.refresh_from_db()
        self.assertFalse(self.rina.is_active)
        self.assertTrue(Target.objects.filter(id=target.id).exists())

        names = [row["name"] for row in self.client.get(reverse("employee_collection")).json()]
        self.assertEqual(names, ["Budi"])
        response = self.client.get(reverse("employee_detail", args=[self.rina.id]))
        self.assertEqual(response.status_code, 404)

    def test_method_not_allowed(self):
        response = self.client.patch(reverse("employee_detail", args=[self.rina.id]))
        self.assertEqual(response.status_code, 405)
        self.assertEqual(response["Allow"], "GET, PUT, DELETE")
