"""In-memory records for targets, achievements and the entities around them.

The engines in ``apps.analytics`` and ``apps.common.filters`` work on these
records rather than on ORM rows, so every "absent relation" rule is defined
here once.
"""
from __future__ import annotations

import re
from dataclasses import dataclass, field
from datetime import date

POSITION_AO = "AO"
POSITION_FO = "FO"
POSITION_CHOICES = [
    (POSITION_AO, "Account Officer"),
    (POSITION_FO, "Funding Officer"),
]

UNCATEGORIZED = "Uncategorized"
MISSING_LABEL = "-"

MONTH_NAMES = [
    "January",
    "February",
    "March",
    "April",
    "May",
    "June",
    "July",
    "August",
    "September",
    "October",
    "November",
    "December",
]

_MONTH_KEY_PATTERN = re.compile(r"^\s*(\d{4})[-/](\d{1,2})\s*$")


@dataclass(frozen=True)
class EmployeeRecord:
    id: int
    name: str
    position: str
    office_location: str
    entry_date: date | None = None
    is_active: bool = True


@dataclass(frozen=True)
class CategoryRecord:
    id: int
    name: str
    products: tuple[ProductRecord, ...] = ()


@dataclass(frozen=True)
class ProductRecord:
    id: int
    name: str
    category_id: int
    category: CategoryRecord | None = None

    @property
    def category_name(self) -> str:
        if self.category and self.category.name:
            return self.category.name
        return UNCATEGORIZED


@dataclass(frozen=True)
class AchievementRecord:
    id: int
    target_id: int
    nominal: int
    target: TargetRecord | None = None


@dataclass(frozen=True)
class TargetRecord:
    id: int
    employee_id: int
    product_id: int
    nominal: int
    month: int
    year: int
    employee: EmployeeRecord | None = None
    product: ProductRecord | None = None
    achievement: AchievementRecord | None = field(default=None, compare=False)

    @property
    def achievement_nominal(self) -> int:
        return self.achievement.nominal if self.achievement else 0

    @property
    def employee_name(self) -> str | None:
        return self.employee.name if self.employee else None

    @property
    def product_name(self) -> str | None:
        return self.product.name if self.product else None

    @property
    def category_name(self) -> str:
        return self.product.category_name if self.product else UNCATEGORIZED

    @property
    def is_achieved(self) -> bool:
        return is_achieved(self)


def percentage(target_nominal: int, achievement_nominal: int) -> float:
    if target_nominal > 0:
        return achievement_nominal / target_nominal * 100
    return 0.0


def is_achieved(target: TargetRecord) -> bool:
    return target.achievement is not None and target.achievement.nominal >= target.nominal


def month_name(month: int | None) -> str:
    if not isinstance(month, int) or not 1 <= month <= 12:
        return MISSING_LABEL
    return MONTH_NAMES[month - 1]


def normalize_month(value: int | str) -> int:
    """Return the numeric month for ``3``, ``"3"`` or ``"2025-03"``."""
    if isinstance(value, bool):
        raise ValueError(f"Invalid month: {value!r}")
    if isinstance(value, int):
        month = value
    elif isinstance(value, str):
        match = _MONTH_KEY_PATTERN.match(value)
        raw = match.group(2) if match else value.strip()
        if not raw.isdigit():
            raise ValueError(f"Invalid month: {value!r}")
        month = int(raw)
    else:
        raise ValueError(f"Invalid month: {value!r}")
    if not 1 <= month <= 12:
        raise ValueError(f"Month out of range: {value!r}")
    return month
