import dataclasses
import math
from dataclasses import dataclass
from datetime import date
from typing import Callable, Iterable, Sequence

from .domain import AchievementRecord, EmployeeRecord, TargetRecord, month_name
from .errors import ValidationFailed

ALL = "all"
PAGE_SIZE = 8

ACHIEVED = "achieved"
NOT_ACHIEVED = "not-achieved"
ACHIEVED_STATUS_CHOICES = (ALL, ACHIEVED, NOT_ACHIEVED)

QUERY_PARAMS = {
    "search": "search",
    "year": "year",
    "month": "month",
    "from_month": "from_month",
    "to_month": "to_month",
    "employee_name": "employee",
    "product_name": "product",
    "office_location": "office_location",
    "position": "position",
    "achieved_status": "achieved",
}


@dataclass(frozen=True)
class FilterFields:
    search_texts: tuple = ()
    employee_name: str | None = None
    product_name: str | None = None
    office_location: str | None = None
    position: str | None = None
    year: int | None = None
    month: int | None = None
    achieved: bool | None = None


@dataclass(frozen=True)
class Page:
    items: list
    number: int
    total_pages: int
    total_count: int


def _is_active(value) -> bool:
    return value not in (None, "", ALL)


@dataclass(frozen=True)
class FilterState:
    search: str = ""
    year: int | str = ALL
    month: int | str = ALL
    from_month: int | str = ALL
    to_month: int | str = ALL
    employee_name: str = ALL
    product_name: str = ALL
    office_location: str = ALL
    position: str = ALL
    achieved_status: str = ALL
    page: int = 1

    def replace(self, **changes) -> "FilterState":
        changes.pop("page", None)
        return dataclasses.replace(self, page=1, **changes)

    def switch_position(self, position: str) -> "FilterState":
        return FilterState(position=position)

    def clear(self) -> "FilterState":
        return FilterState(position=self.position)

    def go_to_page(self, page: int, total_count: int) -> "FilterState":
        if page < 1 or page > total_pages(total_count):
            return self
        return dataclasses.replace(self, page=page)

    @property
    def active_dimensions(self) -> list[str]:
        return [
            name
            for name in QUERY_PARAMS
            if _is_active(getattr(self, name))
        ]

    @classmethod
    def from_query(cls, query) -> "FilterState":
        values = {}
        for name, param in QUERY_PARAMS.items():
            raw = (query.get(param) or "").strip()
            if not raw:
                continue
            if name in {"year", "month", "from_month", "to_month"} and raw != ALL:
                values[name] = _parse_int(param, raw)
            else:
                values[name] = raw
        for name in ("month", "from_month", "to_month"):
            if _is_active(values.get(name)) and not 1 <= values[name] <= 12:
                raise ValidationFailed(f"{QUERY_PARAMS[name]}: must be between 1 and 12")
        status = values.get("achieved_status", ALL)
        if status not in ACHIEVED_STATUS_CHOICES:
            raise ValidationFailed(
                f"achieved: must be one of {', '.join(ACHIEVED_STATUS_CHOICES)}"
            )
        page_raw = (query.get("page") or "").strip()
        if page_raw:
            values["page"] = _parse_int("page", page_raw)
        return cls(**values)


def _parse_int(param: str, raw: str) -> int:
    try:
        return int(raw)
    except ValueError:
        raise ValidationFailed(f"{param}: must be a whole number") from None


def target_fields(target: TargetRecord) -> FilterFields:
    employee = target.employee
    return FilterFields(
        search_texts=(
            target.employee_name or "",
            target.product_name or "",
            str(target.year),
            month_name(target.month),
        ),
        employee_name=target.employee_name,
        product_name=target.product_name,
        office_location=employee.office_location if employee else None,
        position=employee.position if employee else None,
        year=target.year,
        month=target.month,
        achieved=target.is_achieved,
    )


def achievement_fields(achievement: AchievementRecord) -> FilterFields:
    target = achievement.target
    if target is None:
        return FilterFields()
    fields = target_fields(target)
    return dataclasses.replace(fields, achieved=achievement.nominal >= target.nominal)


def employee_fields(employee: EmployeeRecord) -> FilterFields:
    return FilterFields(
        search_texts=(employee.name, employee.position, employee.office_location),
        employee_name=employee.name,
        office_location=employee.office_location,
        position=employee.position,
        year=employee.entry_date.year if employee.entry_date else None,
    )


def _search_predicate(needle: str) -> Callable[[FilterFields], bool]:
    folded = needle.casefold()
    return lambda fields: any(folded in text.casefold() for text in fields.search_texts if text)


def _equals_predicate(attribute: str, expected) -> Callable[[FilterFields], bool]:
    return lambda fields: getattr(fields, attribute) == expected


def _range_predicate(state: FilterState) -> Callable[[FilterFields], bool] | None:
    lower = state.from_month if _is_active(state.from_month) else None
    upper = state.to_month if _is_active(state.to_month) else None
    if lower is None and upper is None:
        return None
    fixed_year = state.year if _is_active(state.year) else None

    def predicate(fields: FilterFields) -> bool:
        if fields.year is None or fields.month is None:
            return False
        reference_year = fixed_year or fields.year
        period = date(fields.year, fields.month, 1)
        if lower is not None and period < date(reference_year, lower, 1):
            return False
        if upper is not None and period > date(reference_year, upper, 1):
            return False
        return True

    return predicate


def build_predicates(state: FilterState) -> list[Callable[[FilterFields], bool]]:
    predicates = []
    if state.search.strip():
        predicates.append(_search_predicate(state.search.strip()))
    for attribute, value in (
        ("year", state.year),
        ("month", state.month),
        ("employee_name", state.employee_name),
        ("product_name", state.product_name),
        ("office_location", state.office_location),
        ("position", state.position),
    ):
        if _is_active(value):
            predicates.append(_equals_predicate(attribute, value))
    range_predicate = _range_predicate(state)
    if range_predicate:
        predicates.append(range_predicate)
    if _is_active(state.achieved_status):
        predicates.append(_equals_predicate("achieved", state.achieved_status == ACHIEVED))
    return predicates


def apply_filters(
    records: Iterable,
    state: FilterState,
    fields: Callable[[object], FilterFields] = target_fields,
) -> list:
    predicates = build_predicates(state)
    matched = []
    for record in records:
        projected = fields(record)
        if all(predicate(projected) for predicate in predicates):
            matched.append(record)
    return matched


def total_pages(total_count: int, page_size: int = PAGE_SIZE) -> int:
    return math.ceil(total_count / page_size)


def paginate(records: Sequence, page: int = 1, page_size: int = PAGE_SIZE) -> Page:
    count = len(records)
    pages = total_pages(count, page_size)
    number = min(max(page, 1), max(pages, 1))
    start = (number - 1) * page_size
    return Page(
        items=list(records[start:start + page_size]),
        number=number,
        total_pages=pages,
        total_count=count,
    )
