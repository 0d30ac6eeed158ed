import json
from datetime import date
from unittest.mock import patch

from django.db import DatabaseError
from django.test import TestCase
from django.urls import reverse

from apps.catalog.models import Category, Product
from apps.common.errors import ConsistencyError, NotFoundError, PartialWriteError, ValidationFailed
from apps.employees.models import Employee

from .models import Achievement, Target
from .services import (
    ACHIEVEMENT_CREATED,
    ACHIEVEMENT_UNCHANGED,
    ACHIEVEMENT_UPDATED,
    create_achievement,
    delete_target,
    save_target_and_achievement,
)


class TargetFixtureMixin:
    def setUp(self):
        funding = Category.objects.create(name="Funding")
        lending = Category.objects.create(name="Lending")
        self.deposito = Product.objects.create(name="Deposito", category=funding)
        self.kpr = Product.objects.create(name="KPR", category=lending)
        self.rina = Employee.objects.create(
            name="Rina", position="AO", office_location="Bandung", entry_date=date(2019, 3, 1)
        )
        self.budi = Employee.objects.create(
            name="Budi", position="FO", office_location="Jakarta", entry_date=date(2022, 7, 18)
        )

    def make_target(self, *, employee=None, product=None, nominal=1_000_000, month=1, year=2024):
        return Target.objects.create(
            employee=employee or self.rina,
            product=product or self.deposito,
            nominal=nominal,
            month=month,
            year=year,
        )

    def send_json(self, method, url, payload):
        return getattr(self.client, method)(url, data=json.dumps(payload), content_type="application/json")


class TargetServiceTests(TargetFixtureMixin, TestCase):
    def test_delete_target_removes_its_achievement(self):
        target = self.make_target()
        Achievement.objects.create(target=target, nominal=10)

        delete_target(target.id)

        self.assertFalse(Target.objects.filter(id=target.id).exists())
        self.assertFalse(Achievement.objects.filter(target_id=target.id).exists())

    def test_delete_missing_target(self):
        with self.assertRaises(NotFoundError):
            delete_target(404)

    def test_create_achievement_needs_target(self):
        with self.assertRaises(NotFoundError):
            create_achievement(404, 100)

    def test_second_achievement_for_target_is_rejected(self):
        target = self.make_target()
        create_achievement(target.id, 100)

        with self.assertRaises(ConsistencyError) as ctx:
            create_achievement(target.id, 200)
        self.assertEqual(ctx.exception.precondition, "achievement_exists")
        self.assertEqual(Achievement.objects.get(target=target).nominal, 100)

    def test_save_creates_missing_achievement(self):
        target = self.make_target()

        outcome = save_target_and_achievement(target, self.kpr.id, 2_000_000, 1_500_000)

        self.assertEqual(outcome.achievement_action, ACHIEVEMENT_CREATED)
        target.refresh_from_db()
        self.assertEqual((target.product_id, target.nominal), (self.kpr.id, 2_000_000))
        self.assertEqual(target.achievement.nominal, 1_500_000)

    def test_save_updates_existing_achievement(self):
        target = self.make_target()
        Achievement.objects.create(target=target, nominal=100)

        outcome = save_target_and_achievement(target, self.deposito.id, 1_000_000, 900_000)

        self.assertEqual(outcome.achievement_action, ACHIEVEMENT_UPDATED)
        self.assertEqual(Achievement.objects.get(target=target).nominal, 900_000)
        self.assertEqual(Achievement.objects.count(), 1)

    def test_save_without_achievement_keeps_existing_one(self):
        target = self.make_target()
        Achievement.objects.create(target=target, nominal=700)

        outcome = save_target_and_achievement(target, self.deposito.id, 800, None)

        self.assertEqual(outcome.achievement_action, ACHIEVEMENT_UNCHANGED)
        self.assertEqual(outcome.achievement.nominal, 700)
        self.assertEqual(Achievement.objects.get(target=target).nominal, 700)

    def test_save_rejects_unknown_product_before_writing(self):
        target = self.make_target(nominal=5)

        with self.assertRaises(ValidationFailed):
            save_target_and_achievement(target, 404, 10, 10)

        target.refresh_from_db()
        self.assertEqual(target.nominal, 5)

    def test_failed_achievement_write_reports_partial_save(self):
        target = self.make_target(nominal=100)

        with patch("apps.targets.services.create_achievement", side_effect=DatabaseError("disk full")):
            with self.assertRaises(PartialWriteError) as ctx:
                save_target_and_achievement(target, self.deposito.id, 250, 50)

        self.assertEqual(ctx.exception.completed_step, "target")
        self.assertEqual(ctx.exception.failed_step, "achievement")
        self.assertIsInstance(ctx.exception.__cause__, DatabaseError)
        self.assertEqual(ctx.exception.target.nominal, 250)
        target.refresh_from_db()
        self.assertEqual(target.nominal, 250)
        self.assertFalse(Achievement.objects.filter(target=target).exists())


class TargetApiTests(TargetFixtureMixin, TestCase):
    def test_create_target(self):
        response = self.send_json(
            "post",
            reverse("target_collection"),
            {"employee_id": self.rina.id, "product_id": self.kpr.id, "nominal": 500, "month": 4, "year": 2025},
        )
        self.assertEqual(response.status_code, 201)
        body = response.json()
        self.assertEqual(body["product"]["name"], "KPR")
        self.assertEqual(body["employee"]["name"], "Rina")
        self.assertIsNone(body["achievement"])
        self.assertFalse(body["achieved"])

    def test_create_target_validation_messages(self):
        response = self.send_json(
            "post",
            reverse("target_collection"),
            {"employee_id": self.rina.id, "product_id": self.kpr.id, "nominal": -1, "month": 13, "year": 2025},
        )
        self.assertEqual(response.status_code, 400)
        self.assertIsInstance(response.json()["message"], list)
        self.assertEqual(Target.objects.count(), 0)

    def test_inactive_employee_cannot_receive_targets(self):
        self.budi.is_active = False
        self.budi.save()
        response = self.send_json(
            "post",
            reverse("target_collection"),
            {"employee_id": self.budi.id, "product_id": self.kpr.id, "nominal": 1, "month": 1, "year": 2025},
        )
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["message"], "employee_id: Select an active employee.")

    def test_list_filters_combine(self):
        self.make_target(employee=self.rina, product=self.deposito, month=1)
        self.make_target(employee=self.rina, product=self.kpr, month=2)
        self.make_target(employee=self.budi, product=self.deposito, month=1)

        response = self.client.get(reverse("target_collection"), {"position": "AO", "product": "Deposito"})
        self.assertEqual(len(response.json()), 1)

        response = self.client.get(reverse("target_collection"), {"search": "bud"})
        self.assertEqual([row["employee"]["name"] for row in response.json()], ["Budi"])

        response = self.client.get(reverse("target_collection"), {"from_month": 2, "year": 2024})
        self.assertEqual([row["month"] for row in response.json()], [2])

    def test_list_achieved_status(self):
        reached = self.make_target(nominal=100, month=1)
        Achievement.objects.create(target=reached, nominal=100)
        missed = self.make_target(nominal=100, month=2)
        Achievement.objects.create(target=missed, nominal=99)
        self.make_target(nominal=100, month=3)

        achieved = self.client.get(reverse("target_collection"), {"achieved": "achieved"}).json()
        self.assertEqual([row["id"] for row in achieved], [reached.id])
        pending = self.client.get(reverse("target_collection"), {"achieved": "not-achieved"}).json()
        self.assertEqual(len(pending), 2)

    def test_bad_filter_value(self):
        response = self.client.get(reverse("target_collection"), {"achieved": "maybe"})
        self.assertEqual(response.status_code, 400)

    def test_list_paginates_eight_per_page(self):
        for month in range(1, 10):
            self.make_target(month=month)

        first = self.client.get(reverse("target_collection"), {"page": 1}).json()
        self.assertEqual((len(first["results"]), first["total_pages"], first["total_count"]), (8, 2, 9))

        clamped = self.client.get(reverse("target_collection"), {"page": 7}).json()
        self.assertEqual(clamped["page"], 2)
        self.assertEqual(len(clamped["results"]), 1)

    def test_employee_targets(self):
        self.make_target(employee=self.budi)
        response = self.client.get(reverse("employee_targets", args=[self.budi.id]))
        self.assertEqual(len(response.json()), 1)

    def test_employee_without_targets(self):
        response = self.client.get(reverse("employee_targets", args=[self.rina.id]))
        self.assertEqual(response.status_code, 404)
        self.assertEqual(response.json()["message"], "No targets found for this employee")

        response = self.client.get(reverse("employee_targets", args=[999]))
        self.assertEqual(response.status_code, 404)

    def test_put_target_with_achievement(self):
        target = self.make_target(nominal=100)
        response = self.send_json(
            "put",
            reverse("target_detail", args=[target.id]),
            {"nominal": 200, "achievement_nominal": 250},
        )
        self.assertEqual(response.status_code, 200)
        body = response.json()
        self.assertEqual(body["nominal"], 200)
        self.assertEqual(body["product_id"], self.deposito.id)
        self.assertEqual(body["achievement"]["nominal"], 250)
        self.assertTrue(body["achieved"])

    def test_put_partial_failure_is_server_error(self):
        target = self.make_target(nominal=100)
        with patch("apps.targets.services.create_achievement", side_effect=DatabaseError("locked")):
            response = self.send_json(
                "put",
                reverse("target_detail", args=[target.id]),
                {"nominal": 300, "achievement_nominal": 10},
            )
        self.assertEqual(response.status_code, 500)
        self.assertIn("could not be saved", response.json()["message"])
        body = response.json()
        self.assertEqual((body["completed_step"], body["failed_step"]), ("target", "achievement"))
        self.assertEqual(body["target"]["id"], target.id)
        self.assertEqual(body["target"]["nominal"], 300)
        self.assertIsNone(body["target"]["achievement"])

    def test_delete_target_endpoint(self):
        target = self.make_target()
        Achievement.objects.create(target=target, nominal=1)

        response = self.client.delete(reverse("target_detail", args=[target.id]))
        self.assertEqual(response.status_code, 204)
        self.assertEqual(Achievement.objects.count(), 0)

        response = self.client.delete(reverse("target_detail", args=[target.id]))
        self.assertEqual(response.status_code, 404)

    def test_request_token_is_echoed(self):
        response = self.client.get(reverse("target_collection"), HTTP_X_REQUEST_TOKEN="42")
        self.assertEqual(response["X-Request-Token"], "42")


class AchievementApiTests(TargetFixtureMixin, TestCase):
    def test_create_achievement(self):
        target = self.make_target()
        response = self.send_json("post", reverse("achievement_collection"), {"target_id": target.id, "nominal": 10})
        self.assertEqual(response.status_code, 201)
        self.assertEqual(response.json()["target"]["id"], target.id)

    def test_create_achievement_for_missing_target(self):
        response = self.send_json("post", reverse("achievement_collection"), {"target_id": 999, "nominal": 10})
        self.assertEqual(response.status_code, 404)

    def test_duplicate_achievement_conflicts(self):
        target = self.make_target()
        Achievement.objects.create(target=target, nominal=1)
        response = self.send_json("post", reverse("achievement_collection"), {"target_id": target.id, "nominal": 10})
        self.assertEqual(response.status_code, 409)
        self.assertIn("already has an achievement", response.json()["message"])
        self.assertEqual(response.json()["precondition"], "achievement_exists")

    def test_update_by_target_id(self):
        target = self.make_target()
        Achievement.objects.create(target=target, nominal=1)
        response = self.send_json(
            "put",
            reverse("achievement_detail", args=[target.id]),
            {"target_id": 12345, "nominal": 77},
        )
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["nominal"], 77)
        self.assertEqual(Achievement.objects.get(target=target).nominal, 77)

    def test_update_without_achievement(self):
        target = self.make_target()
        response = self.send_json("put", reverse("achievement_detail", args=[target.id]), {"nominal": 5})
        self.assertEqual(response.status_code, 404)

    def test_list_achievements_filters_by_status(self):
        reached = self.make_target(nominal=10)
        Achievement.objects.create(target=reached, nominal=20)
        missed = self.make_target(nominal=10, month=2)
        Achievement.objects.create(target=missed, nominal=5)

        rows = self.client.get(reverse("achievement_collection"), {"achieved": "achieved"}).json()
        self.assertEqual([row["target_id"] for row in rows], [reached.id])
