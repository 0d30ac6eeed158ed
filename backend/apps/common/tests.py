import importlib
import json
import os
import sys
from datetime import date
from unittest.mock import patch

from django.http import HttpResponse, JsonResponse
from django.test import RequestFactory, SimpleTestCase

from .api import REQUEST_TOKEN_HEADER, extract_error_message, json_endpoint, read_json
from .domain import (
    UNCATEGORIZED,
    AchievementRecord,
    CategoryRecord,
    EmployeeRecord,
    ProductRecord,
    TargetRecord,
    is_achieved,
    month_name,
    normalize_month,
    percentage,
)
from .errors import ConsistencyError, ValidationFailed
from .filters import (
    ACHIEVED,
    ALL,
    NOT_ACHIEVED,
    FilterState,
    achievement_fields,
    apply_filters,
    employee_fields,
    paginate,
    total_pages,
)

FUNDING = CategoryRecord(id=1, name="Funding")
DEPOSITO = ProductRecord(id=1, name="Deposito", category_id=1, category=FUNDING)
TABUNGAN = ProductRecord(id=2, name="Tabungan", category_id=1, category=FUNDING)
KPR = ProductRecord(id=3, name="KPR", category_id=2, category=CategoryRecord(id=2, name="Lending"))

RINA = EmployeeRecord(id=1, name="Rina Wulandari", position="AO", office_location="Bandung", entry_date=date(2020, 3, 1))
BUDI = EmployeeRecord(id=2, name="Budi Santoso", position="FO", office_location="Jakarta", entry_date=date(2021, 7, 15))
SARI = EmployeeRecord(id=3, name="Sari Dewi", position="FO", office_location="Bandung", entry_date=date(2019, 1, 10))


def make_target(target_id, *, employee=RINA, product=DEPOSITO, nominal=1_000_000, month=1, year=2025, achieved=None):
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


class PercentageTests(SimpleTestCase):
    def test_zero_target_is_zero_percent_regardless_of_achievement(self):
        for achievement in (0, 1, 500_000, 10**12):
            self.assertEqual(percentage(0, achievement), 0)

    def test_ratio_is_scaled_to_hundred(self):
        self.assertAlmostEqual(percentage(1_000_000, 1_200_000), 120.0)
        self.assertEqual(percentage(400, 100), 25.0)


class AchievedTests(SimpleTestCase):
    def test_target_without_achievement_is_not_achieved(self):
        self.assertFalse(is_achieved(make_target(1)))

    def test_achievement_meeting_target_is_achieved(self):
        self.assertTrue(is_achieved(make_target(1, nominal=500, achieved=500)))
        self.assertTrue(make_target(2, nominal=500, achieved=501).is_achieved)

    def test_achievement_below_target_is_not_achieved(self):
        self.assertFalse(is_achieved(make_target(1, nominal=500, achieved=499)))


class RecordFallbackTests(SimpleTestCase):
    def test_missing_relations_fall_back(self):
        target = TargetRecord(id=1, employee_id=9, product_id=9, nominal=10, month=2, year=2025)
        self.assertEqual(target.achievement_nominal, 0)
        self.assertEqual(target.category_name, UNCATEGORIZED)
        self.assertIsNone(target.employee_name)
        self.assertIsNone(target.product_name)

    def test_product_without_category_is_uncategorized(self):
        product = ProductRecord(id=5, name="Giro", category_id=7)
        self.assertEqual(product.category_name, UNCATEGORIZED)


class MonthHelperTests(SimpleTestCase):
    def test_month_name(self):
        self.assertEqual(month_name(3), "March")
        self.assertEqual(month_name(0), "-")
        self.assertEqual(month_name(None), "-")

    def test_normalize_month_accepts_keys_and_numbers(self):
        self.assertEqual(normalize_month("2025-03"), 3)
        self.assertEqual(normalize_month("2025/11"), 11)
        self.assertEqual(normalize_month("7"), 7)
        self.assertEqual(normalize_month(12), 12)

    def test_normalize_month_rejects_garbage(self):
        for value in ("2025-13", "march", "", 0, True, None):
            with self.assertRaises(ValueError):
                normalize_month(value)


class FilterCombinatorTests(SimpleTestCase):
    def setUp(self):
        ao_one = EmployeeRecord(id=10, name="Andi", position="AO", office_location="Bogor")
        ao_two = EmployeeRecord(id=11, name="Maya", position="AO", office_location="Bogor")
        self.targets = [
            make_target(1, employee=RINA, product=DEPOSITO),
            make_target(2, employee=ao_one, product=TABUNGAN),
            make_target(3, employee=ao_two, product=KPR),
            make_target(4, employee=BUDI, product=DEPOSITO),
            make_target(5, employee=BUDI, product=TABUNGAN),
            make_target(6, employee=BUDI, product=KPR),
            make_target(7, employee=SARI, product=DEPOSITO),
            make_target(8, employee=SARI, product=TABUNGAN),
            make_target(9, employee=SARI, product=KPR),
            make_target(10, employee=SARI, product=DEPOSITO, month=2),
        ]

    def test_position_and_search_are_combined_with_and(self):
        by_position = apply_filters(self.targets, FilterState(position="AO"))
        self.assertEqual(len(by_position), 3)

        both = apply_filters(self.targets, FilterState(position="AO", search="Deposito"))
        self.assertEqual([target.id for target in both], [1])

    def test_empty_state_keeps_everything(self):
        self.assertEqual(apply_filters(self.targets, FilterState()), self.targets)

    def test_search_matches_any_field_case_insensitively(self):
        self.assertEqual(len(apply_filters(self.targets, FilterState(search="budi"))), 3)
        self.assertEqual(len(apply_filters(self.targets, FilterState(search="FEBRUARY"))), 1)
        self.assertEqual(len(apply_filters(self.targets, FilterState(search="2025"))), 10)
        self.assertEqual(apply_filters(self.targets, FilterState(search="2024")), [])

    def test_categorical_filters(self):
        state = FilterState(employee_name="Sari Dewi", product_name="Deposito")
        self.assertEqual([target.id for target in apply_filters(self.targets, state)], [7, 10])
        self.assertEqual(len(apply_filters(self.targets, FilterState(month=2))), 1)
        self.assertEqual(len(apply_filters(self.targets, FilterState(office_location="Bogor"))), 2)

    def test_achieved_status(self):
        targets = [
            make_target(1, nominal=100, achieved=150),
            make_target(2, nominal=100, achieved=50),
            make_target(3, nominal=100),
        ]
        achieved = apply_filters(targets, FilterState(achieved_status=ACHIEVED))
        missed = apply_filters(targets, FilterState(achieved_status=NOT_ACHIEVED))
        self.assertEqual([target.id for target in achieved], [1])
        self.assertEqual([target.id for target in missed], [2, 3])

    def test_month_range_applies_each_bound_independently(self):
        targets = [make_target(month, month=month) for month in range(1, 13)]
        both = apply_filters(targets, FilterState(from_month=3, to_month=5))
        self.assertEqual([target.month for target in both], [3, 4, 5])

        lower_only = apply_filters(targets, FilterState(from_month=10, to_month=ALL))
        self.assertEqual([target.month for target in lower_only], [10, 11, 12])

        upper_only = apply_filters(targets, FilterState(to_month=2))
        self.assertEqual([target.month for target in upper_only], [1, 2])

    def test_month_range_uses_selected_year(self):
        targets = [make_target(1, month=6, year=2024), make_target(2, month=6, year=2025)]
        state = FilterState(year=2025, from_month=1, to_month=12)
        self.assertEqual([target.id for target in apply_filters(targets, state)], [2])

    def test_achievement_records_are_filtered_through_their_target(self):
        target = make_target(1, nominal=100)
        achievements = [
            AchievementRecord(id=1, target_id=1, nominal=120, target=target),
            AchievementRecord(id=2, target_id=99, nominal=120),
        ]
        matched = apply_filters(
            achievements,
            FilterState(search="rina", achieved_status=ACHIEVED),
            fields=achievement_fields,
        )
        self.assertEqual([achievement.id for achievement in matched], [1])

    def test_employee_filters(self):
        employees = [RINA, BUDI, SARI]
        by_office = apply_filters(employees, FilterState(office_location="Bandung"), fields=employee_fields)
        self.assertEqual(by_office, [RINA, SARI])
        by_entry_year = apply_filters(employees, FilterState(year=2021), fields=employee_fields)
        self.assertEqual(by_entry_year, [BUDI])
        by_search = apply_filters(employees, FilterState(search="jakarta"), fields=employee_fields)
        self.assertEqual(by_search, [BUDI])


class FilterStateTests(SimpleTestCase):
    def test_changing_a_dimension_resets_page(self):
        state = FilterState(page=3).replace(year=2025)
        self.assertEqual(state.page, 1)
        self.assertEqual(state.year, 2025)

    def test_switching_position_resets_other_dimensions(self):
        state = FilterState(search="deposito", year=2025, achieved_status=ACHIEVED, page=2)
        switched = state.switch_position("FO")
        self.assertEqual(switched, FilterState(position="FO"))

    def test_clear_keeps_position_tab(self):
        state = FilterState(position="AO", search="x", month=4)
        self.assertEqual(state.clear(), FilterState(position="AO"))

    def test_state_is_immutable(self):
        state = FilterState()
        with self.assertRaises(AttributeError):
            state.search = "changed"

    def test_go_to_page_outside_range_is_a_no_op(self):
        state = FilterState(page=2)
        self.assertEqual(total_pages(9), 2)
        self.assertIs(state.go_to_page(3, total_count=9), state)
        self.assertIs(state.go_to_page(0, total_count=9), state)
        self.assertEqual(state.go_to_page(1, total_count=9).page, 1)

    def test_from_query(self):
        state = FilterState.from_query(
            {"search": " Deposito ", "year": "2025", "from_month": "2", "to_month": "all", "achieved": "achieved", "page": "2"}
        )
        self.assertEqual(state.search, "Deposito")
        self.assertEqual(state.year, 2025)
        self.assertEqual(state.from_month, 2)
        self.assertEqual(state.to_month, ALL)
        self.assertEqual(state.achieved_status, ACHIEVED)
        self.assertEqual(state.page, 2)
        self.assertEqual(state.active_dimensions, ["search", "year", "from_month", "achieved_status"])

    def test_from_query_rejects_bad_values(self):
        for query in ({"year": "twenty"}, {"month": "13"}, {"achieved": "maybe"}, {"page": "x"}):
            with self.assertRaises(ValidationFailed):
                FilterState.from_query(query)


class PaginationTests(SimpleTestCase):
    def test_nine_records_make_two_pages(self):
        page = paginate(list(range(9)), 2)
        self.assertEqual(page.total_pages, 2)
        self.assertEqual(page.items, [8])
        self.assertEqual(page.total_count, 9)

    def test_page_is_clamped(self):
        self.assertEqual(paginate(list(range(9)), 5).number, 2)
        self.assertEqual(paginate(list(range(9)), -1).number, 1)

    def test_empty_list(self):
        page = paginate([], 1)
        self.assertEqual((page.items, page.number, page.total_pages), ([], 1, 0))


class ErrorMessageTests(SimpleTestCase):
    def test_list_message_is_joined(self):
        response = JsonResponse({"message": ["nominal: required", "month: required"]}, status=400)
        self.assertEqual(extract_error_message(response), "nominal: required, month: required")

    def test_string_message(self):
        response = JsonResponse({"message": "Category has products"}, status=409)
        self.assertEqual(extract_error_message(response), "Category has products")

    def test_plain_text_and_status_fallback(self):
        self.assertEqual(extract_error_message(HttpResponse("upstream down", status=502)), "upstream down")
        self.assertEqual(extract_error_message(HttpResponse(status=503)), "Service Unavailable")


class JsonEndpointTests(SimpleTestCase):
    def setUp(self):
        self.factory = RequestFactory()

        @json_endpoint("GET", "POST")
        def view(request):
            if request.method == "POST":
                raise ConsistencyError("nope", precondition="category_has_products")
            return JsonResponse({"ok": True})

        self.view = view

    def test_unknown_method_is_rejected(self):
        response = self.view(self.factory.delete("/api/x"))
        self.assertEqual(response.status_code, 405)
        self.assertEqual(response["Allow"], "GET, POST")

    def test_domain_error_becomes_json_body(self):
        response = self.view(self.factory.post("/api/x"))
        self.assertEqual(response.status_code, 409)
        self.assertEqual(
            json.loads(response.content),
            {"message": "nope", "precondition": "category_has_products"},
        )

    def test_request_token_is_echoed(self):
        request = self.factory.get("/api/x", HTTP_X_REQUEST_TOKEN="42")
        response = self.view(request)
        self.assertEqual(response[REQUEST_TOKEN_HEADER], "42")

    def test_read_json_rejects_non_objects(self):
        request = self.factory.post("/api/x", data="[1, 2]", content_type="application/json")
        with self.assertRaises(ValidationFailed):
            read_json(request)
        bad = self.factory.post("/api/x", data="{oops", content_type="application/json")
        with self.assertRaises(ValidationFailed):
            read_json(bad)


class ProductionSettingsTests(SimpleTestCase):
    module_name = "config.settings.prod"

    def load(self, **env):
        sys.modules.pop(self.module_name, None)
        with patch.dict(os.environ, env):
            for name in ("DJANGO_SECRET_KEY", "ALLOWED_HOSTS"):
                if name not in env:
                    os.environ.pop(name, None)
            try:
                return importlib.import_module(self.module_name)
            finally:
                sys.modules.pop(self.module_name, None)

    def test_secret_key_is_required(self):
        with self.assertRaises(RuntimeError):
            self.load()

    def test_hosts_come_from_environment(self):
        prod = self.load(DJANGO_SECRET_KEY="s3cret", ALLOWED_HOSTS="api.example.com, ,internal")
        self.assertFalse(prod.DEBUG)
        self.assertEqual(prod.ALLOWED_HOSTS, ["api.example.com", "internal"])

    def test_only_api_settings_are_carried(self):
        prod = self.load(DJANGO_SECRET_KEY="s3cret")
        self.assertEqual(prod.ALLOWED_HOSTS, ["localhost", "127.0.0.1", "testserver"])
        self.assertFalse(hasattr(prod, "CSRF_TRUSTED_ORIGINS"))
        self.assertFalse(hasattr(prod, "STORAGES"))
        self.assertNotIn("whitenoise.middleware.WhiteNoiseMiddleware", prod.MIDDLEWARE)
