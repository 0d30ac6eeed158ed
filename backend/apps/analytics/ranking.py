from typing import Iterable

from apps.common.domain import TargetRecord, percentage

DEFAULT_TOP_N = 5


def employee_totals(targets: Iterable[TargetRecord]) -> list[dict]:
    merged = {}
    for target in targets:
        row = merged.get(target.employee_id)
        if row is None:
            employee = target.employee
            row = merged[target.employee_id] = {
                "employee_id": target.employee_id,
                "name": employee.name if employee else "",
                "office_location": employee.office_location if employee else "",
                "total_target": 0,
                "total_achievement": 0,
            }
        row["total_target"] += target.nominal
        row["total_achievement"] += target.achievement_nominal
    for row in merged.values():
        row["achievement_rate"] = percentage(row["total_target"], row["total_achievement"])
    return list(merged.values())


def top_employees(targets: Iterable[TargetRecord], n: int = DEFAULT_TOP_N) -> list[dict]:
    if n < 0:
        raise ValueError("n must be zero or positive")
    ranked = sorted(
        employee_totals(targets),
        key=lambda row: (
            -row["achievement_rate"],
            -row["total_achievement"],
            row["name"],
            row["employee_id"],
        ),
    )
    return ranked[:n]
