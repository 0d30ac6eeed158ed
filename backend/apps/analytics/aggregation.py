"""Monthly, per-category, per-product and per-employee rollups of targets.

Every function takes already-loaded ``TargetRecord`` objects and returns
JSON-ready rows. Series are sparse: a month with no targets produces no row.
"""
from __future__ import annotations

from collections import defaultdict
from typing import Iterable

from apps.common.domain import TargetRecord, normalize_month, percentage

MonthRange = tuple[int | None, int | None]


def _check_month_range(month_range: MonthRange | None) -> tuple[int | None, int | None]:
    if month_range is None:
        return None, None
    from_month, to_month = month_range
    return (
        normalize_month(from_month) if from_month is not None else None,
        normalize_month(to_month) if to_month is not None else None,
    )


def _in_month_range(month: int, from_month: int | None, to_month: int | None) -> bool:
    if from_month is not None and month < from_month:
        return False
    if to_month is not None and month > to_month:
        return False
    return True


def _targets_for_year(targets: Iterable[TargetRecord], year: int) -> list[TargetRecord]:
    return [target for target in targets if target.year == year]


def summary_row(month: int, target_total: int, achievement_total: int) -> dict:
    return {
        "month": month,
        "target": target_total,
        "achievement": achievement_total,
        "percentage": percentage(target_total, achievement_total),
    }


def rollup_by_month(targets: Iterable[TargetRecord]) -> list[dict]:
    totals = defaultdict(lambda: {"target": 0, "achievement": 0})
    for target in targets:
        bucket = totals[normalize_month(target.month)]
        bucket["target"] += target.nominal
        bucket["achievement"] += target.achievement_nominal
    return [
        summary_row(month, bucket["target"], bucket["achievement"])
        for month, bucket in sorted(totals.items())
    ]


def monthly_summary(targets: Iterable[TargetRecord], year: int) -> list[dict]:
    return rollup_by_month(_targets_for_year(targets, year))


def monthly_summary_by_category(
    targets: Iterable[TargetRecord],
    year: int,
    month_range: MonthRange | None = None,
) -> list[dict]:
    from_month, to_month = _check_month_range(month_range)
    grouped = defaultdict(list)
    for target in _targets_for_year(targets, year):
        if _in_month_range(normalize_month(target.month), from_month, to_month):
            grouped[target.category_name].append(target)
    return [
        {"category_name": name, "months": rollup_by_month(grouped[name])}
        for name in sorted(grouped)
    ]


def product_target_summary(
    targets: Iterable[TargetRecord],
    year: int,
    month_range: MonthRange | None = None,
) -> list[dict]:
    from_month, to_month = _check_month_range(month_range)
    rows = {}
    for target in _targets_for_year(targets, year):
        if not _in_month_range(normalize_month(target.month), from_month, to_month):
            continue
        row = rows.get(target.product_id)
        if row is None:
            row = rows[target.product_id] = {
                "product_id": target.product_id,
                "product_name": target.product_name,
                "total_nominal": 0,
                "category_name": target.category_name,
            }
        row["total_nominal"] += target.nominal
    return sorted(
        rows.values(),
        key=lambda row: (-row["total_nominal"], row["product_name"] or "", row["product_id"]),
    )


def employee_performance(
    targets: Iterable[TargetRecord],
    employee_id: int,
    year: int,
    product_id: int | None = None,
) -> list[dict]:
    selected = [
        target
        for target in _targets_for_year(targets, year)
        if target.employee_id == employee_id and (product_id is None or target.product_id == product_id)
    ]
    return rollup_by_month(selected)


def normalize_performance_points(points: Iterable[dict]) -> list[dict]:
    """Turn raw points keyed by ``"YYYY-MM"`` (or numeric) months into a sorted series."""
    normalized = []
    for point in points:
        target_total = point.get("target") or 0
        achievement_total = point.get("achievement") or 0
        normalized.append(summary_row(normalize_month(point["month"]), target_total, achievement_total))
    return sorted(normalized, key=lambda row: row["month"])


def available_years(targets: Iterable[TargetRecord]) -> list[int]:
    return sorted({target.year for target in targets})
