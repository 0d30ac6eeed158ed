from datetime import date

from django.test import SimpleTestCase, TestCase
from django.urls import reverse

from apps.catalog.models import Category, Product
from apps.common.domain import (
    UNCATEGORIZED,
    AchievementRecord,
    CategoryRecord,
    EmployeeRecord,
    ProductRecord,
    TargetRecord,
)
from apps.employees.models import Employee
from apps.targets.models import Achievement, Target

from .aggregation import (
    available_years,
    employee_performance,
    monthly_summary,
    monthly_summary_by_category,
    normalize_performance_points,
    product_target_summary,
)
from .ranking import top_employees

FUNDING = CategoryRecord(id=1, name="Funding")
LENDING = CategoryRecord(id=2, name="Lending")
DEPOSITO = ProductRecord(id=1, name="Deposito", category_id=1, category=FUNDING)
TABUNGAN = ProductRecord(id=2, name="Tabungan", category_id=1, category=FUNDING)
KPR = ProductRecord(id=3, name="KPR", category_id=2, category=LENDING)
ORPHAN = ProductRecord(id=4, name="Giro", category_id=9)

ANDI = EmployeeRecord(id=1, name="Andi", position="AO", office_location="Bandung")
BAYU = EmployeeRecord(id=2, name="Bayu", position="FO", office_location="Jakarta")
CITRA = EmployeeRecord(id=3, name="Citra", position="FO", office_location="Surabaya")


def record(target_id, *, employee=ANDI, product=DEPOSITO, nominal, month, year=2024, achieved=None):
    achievement = None
    if achieved is not None:
        achievement = AchievementRecord(id=target_id, target_id=target_id, nominal=achieved)
    return TargetRecord(
        id=target_id,
        employee_id=employee.id,
        product_id=product.id,
        nominal=nominal,
        month=month,
        year=year,
        employee=employee,
        product=product,
        achievement=achievement,
    )


class MonthlySummaryTests(SimpleTestCase):
    def test_same_month_targets_are_summed(self):
        targets = [
            record(1, nominal=1_000, month=3, achieved=400),
            record(2, nominal=2_000, month=3),
            record(3, employee=BAYU, nominal=500, month=3, achieved=700),
        ]
        self.assertEqual(
            monthly_summary(targets, 2024),
            [{"month": 3, "target": 3_500, "achievement": 1_100, "percentage": 1_100 / 3_500 * 100}],
        )

    def test_months_without_targets_are_omitted(self):
        targets = [
            record(1, nominal=100, month=6),
            record(2, nominal=100, month=8),
            record(3, nominal=100, month=7, year=2023),
        ]
        months = [row["month"] for row in monthly_summary(targets, 2024)]
        self.assertEqual(months, [6, 8])
        self.assertNotIn(7, months)

    def test_zero_nominal_target_contributes_nothing_and_does_not_divide(self):
        rows = monthly_summary([record(1, nominal=0, month=1, achieved=50)], 2024)
        self.assertEqual(rows, [{"month": 1, "target": 0, "achievement": 50, "percentage": 0.0}])

    def test_empty_input(self):
        self.assertEqual(monthly_summary([], 2024), [])
        self.assertEqual(monthly_summary_by_category([], 2024), [])
        self.assertEqual(product_target_summary([], 2024), [])
        self.assertEqual(available_years([]), [])


class CategorySummaryTests(SimpleTestCase):
    def test_groups_by_category_with_fallback(self):
        targets = [
            record(1, product=KPR, nominal=300, month=2, achieved=300),
            record(2, product=DEPOSITO, nominal=100, month=1),
            record(3, product=TABUNGAN, nominal=200, month=1, achieved=100),
            record(4, product=ORPHAN, nominal=50, month=5),
        ]
        rows = monthly_summary_by_category(targets, 2024)
        self.assertEqual([row["category_name"] for row in rows], ["Funding", "Lending", UNCATEGORIZED])
        funding = rows[0]["months"]
        self.assertEqual(funding, [{"month": 1, "target": 300, "achievement": 100, "percentage": 100 / 300 * 100}])

    def test_month_range_limits_rows(self):
        targets = [record(month, nominal=10, month=month) for month in range(1, 13)]
        rows = monthly_summary_by_category(targets, 2024, (4, 6))
        self.assertEqual([point["month"] for point in rows[0]["months"]], [4, 5, 6])


class ProductSummaryTests(SimpleTestCase):
    def test_sums_goal_size_not_achievement(self):
        targets = [
            record(1, product=DEPOSITO, nominal=1_000, month=1, achieved=5_000),
            record(2, product=DEPOSITO, nominal=500, month=2),
            record(3, product=KPR, nominal=2_000, month=2),
            record(4, product=KPR, nominal=9_999, month=2, year=2025),
        ]
        self.assertEqual(
            product_target_summary(targets, 2024),
            [
                {"product_id": 3, "product_name": "KPR", "total_nominal": 2_000, "category_name": "Lending"},
                {"product_id": 1, "product_name": "Deposito", "total_nominal": 1_500, "category_name": "Funding"},
            ],
        )

    def test_inclusive_month_range(self):
        targets = [record(month, nominal=month * 10, month=month) for month in range(1, 13)]
        rows = product_target_summary(targets, 2024, (11, 12))
        self.assertEqual(rows[0]["total_nominal"], 230)
        rows = product_target_summary(targets, 2024, (None, 2))
        self.assertEqual(rows[0]["total_nominal"], 30)

    def test_bad_month_bound_raises(self):
        with self.assertRaises(ValueError):
            product_target_summary([], 2024, (0, 5))


class EmployeePerformanceTests(SimpleTestCase):
    def test_filters_employee_and_product(self):
        targets = [
            record(1, nominal=100, month=2, achieved=100),
            record(2, product=KPR, nominal=300, month=2),
            record(3, employee=BAYU, nominal=900, month=2),
            record(4, nominal=50, month=1),
        ]
        series = employee_performance(targets, ANDI.id, 2024)
        self.assertEqual([(row["month"], row["target"]) for row in series], [(1, 50), (2, 400)])

        deposito_only = employee_performance(targets, ANDI.id, 2024, product_id=DEPOSITO.id)
        self.assertEqual([(row["month"], row["target"]) for row in deposito_only], [(1, 50), (2, 100)])

    def test_month_keys_are_normalized_and_sorted(self):
        points = [
            {"month": "2025-03", "target": 100, "achievement": 50},
            {"month": "2025-01", "target": 100, "achievement": 100},
            {"month": "2025-12", "target": 0, "achievement": 10},
        ]
        series = normalize_performance_points(points)
        self.assertEqual([row["month"] for row in series], [1, 3, 12])
        self.assertEqual(series[1], {"month": 3, "target": 100, "achievement": 50, "percentage": 50.0})
        self.assertEqual(series[2]["percentage"], 0.0)

    def test_string_month_keys_on_targets(self):
        targets = [record(1, nominal=10, month="2024-05"), record(2, nominal=10, month="2024-02")]
        series = employee_performance(targets, ANDI.id, 2024)
        self.assertEqual([row["month"] for row in series], [2, 5])


class AvailableYearsTests(SimpleTestCase):
    def test_distinct_ascending(self):
        targets = [record(1, nominal=1, month=1, year=2025), record(2, nominal=1, month=1, year=2023), record(3, nominal=1, month=2, year=2025)]
        self.assertEqual(available_years(targets), [2023, 2025])


class RankingTests(SimpleTestCase):
    def test_rate_orders_the_leaderboard(self):
        targets = [
            record(1, employee=BAYU, nominal=500_000, month=1, achieved=500_000),
            record(2, employee=ANDI, nominal=1_000_000, month=1, achieved=1_200_000),
        ]
        ranked = top_employees(targets)
        self.assertEqual([row["employee_id"] for row in ranked], [ANDI.id, BAYU.id])
        self.assertAlmostEqual(ranked[0]["achievement_rate"], 120.0)
        self.assertEqual(ranked[0]["name"], "Andi")
        self.assertEqual(ranked[0]["office_location"], "Bandung")
        self.assertEqual(ranked[1]["total_target"], 500_000)

    def test_ties_break_on_achievement_then_name(self):
        targets = [
            record(1, employee=CITRA, nominal=100, month=1, achieved=100),
            record(2, employee=BAYU, nominal=200, month=1, achieved=200),
            record(3, employee=ANDI, nominal=100, month=1, achieved=100),
        ]
        ranked = top_employees(targets)
        self.assertEqual([row["name"] for row in ranked], ["Bayu", "Andi", "Citra"])

    def test_totals_span_months_and_missing_achievements(self):
        targets = [
            record(1, nominal=100, month=1, achieved=100),
            record(2, nominal=100, month=2),
        ]
        (row,) = top_employees(targets)
        self.assertEqual((row["total_target"], row["total_achievement"]), (200, 100))
        self.assertEqual(row["achievement_rate"], 50.0)

    def test_truncates_to_n(self):
        targets = [record(1, employee=ANDI, nominal=1, month=1), record(2, employee=BAYU, nominal=1, month=1)]
        self.assertEqual(len(top_employees(targets, n=1)), 1)
        self.assertEqual(top_employees(targets, n=0), [])
        with self.assertRaises(ValueError):
            top_employees(targets, n=-1)

    def test_zero_targets_rank_at_zero_percent(self):
        targets = [record(1, nominal=0, month=1, achieved=999), record(2, employee=BAYU, nominal=10, month=1, achieved=1)]
        ranked = top_employees(targets)
        self.assertEqual(ranked[-1]["employee_id"], ANDI.id)
        self.assertEqual(ranked[-1]["achievement_rate"], 0.0)


class AnalyticsViewTests(TestCase):
    def setUp(self):
        funding = Category.objects.create(name="Funding")
        lending = Category.objects.create(name="Lending")
        self.deposito = Product.objects.create(name="Deposito", category=funding)
        self.kpr = Product.objects.create(name="KPR", category=lending)
        self.andi = Employee.objects.create(
            name="Andi", position="AO", office_location="Bandung", entry_date=date(2020, 1, 6)
        )
        self.bayu = Employee.objects.create(
            name="Bayu", position="FO", office_location="Jakarta", entry_date=date(2021, 2, 1)
        )
        first = Target.objects.create(employee=self.andi, product=self.deposito, nominal=1_000_000, month=1, year=2024)
        Achievement.objects.create(target=first, nominal=1_200_000)
        second = Target.objects.create(employee=self.bayu, product=self.kpr, nominal=500_000, month=3, year=2024)
        Achievement.objects.create(target=second, nominal=500_000)
        Target.objects.create(employee=self.andi, product=self.kpr, nominal=300_000, month=3, year=2025)

    def test_years(self):
        response = self.client.get(reverse("analytics_years"))
        self.assertEqual(response.json(), [2024, 2025])

    def test_monthly_summary(self):
        response = self.client.get(reverse("analytics_summary_monthly"), {"year": 2024})
        self.assertEqual(response.status_code, 200)
        self.assertEqual([row["month"] for row in response.json()], [1, 3])
        self.assertEqual(response.json()[1]["target"], 500_000)

    def test_year_is_required(self):
        response = self.client.get(reverse("analytics_summary_monthly"))
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["message"], "year: this query parameter is required")

    def test_monthly_by_category(self):
        response = self.client.get(
            reverse("analytics_summary_monthly_by_category"),
            {"year": 2024, "from_month": 2},
        )
        self.assertEqual(response.json(), [
            {
                "category_name": "Lending",
                "months": [{"month": 3, "target": 500_000, "achievement": 500_000, "percentage": 100.0}],
            }
        ])

    def test_product_targets(self):
        response = self.client.get(reverse("analytics_product_targets"), {"year": 2024})
        self.assertEqual([row["product_name"] for row in response.json()], ["Deposito", "KPR"])

    def test_month_range_is_validated(self):
        response = self.client.get(reverse("analytics_product_targets"), {"year": 2024, "to_month": 13})
        self.assertEqual(response.status_code, 400)

    def test_employee_performance(self):
        url = reverse("analytics_employee_performance", args=[self.andi.id])
        response = self.client.get(url, {"year": 2025, "productId": self.kpr.id})
        self.assertEqual(response.json(), [{"month": 3, "target": 300_000, "achievement": 0, "percentage": 0.0}])

    def test_employee_performance_unknown_employee(self):
        response = self.client.get(reverse("analytics_employee_performance", args=[999]), {"year": 2024})
        self.assertEqual(response.status_code, 404)

    def test_top_achievers(self):
        response = self.client.get(reverse("analytics_top_achievers"), {"year": 2024})
        self.assertEqual([row["name"] for row in response.json()], ["Andi", "Bayu"])

        limited = self.client.get(reverse("analytics_top_achievers"), {"limit": 1})
        self.assertEqual(len(limited.json()), 1)

    def test_soft_deleted_employee_stays_in_reports(self):
        self.andi.is_active = False
        self.andi.save()
        response = self.client.get(reverse("analytics_top_achievers"))
        self.assertIn(self.andi.id, [row["employee_id"] for row in response.json()])
