import logging
from dataclasses import dataclass
from typing import Iterable

from django.db import DatabaseError, IntegrityError, transaction
from django.db.models import ProtectedError

from apps.catalog.models import Category, Product
from apps.common.domain import CategoryRecord, ProductRecord, TargetRecord
from apps.common.errors import (
    PRECONDITION_ACHIEVEMENT_EXISTS,
    PRECONDITION_CATEGORY_HAS_PRODUCTS,
    PRECONDITION_PRODUCT_HAS_TARGETS,
    ConsistencyError,
    NotFoundError,
    PartialWriteError,
    TrackerError,
    ValidationFailed,
)

from .models import Achievement, Target
from .selectors import load_targets

logger = logging.getLogger(__name__)

ACHIEVEMENT_CREATED = "created"
ACHIEVEMENT_UPDATED = "updated"
ACHIEVEMENT_UNCHANGED = "unchanged"


@dataclass(frozen=True)
class SaveOutcome:
    target: Target
    achievement: Achievement | None
    achievement_action: str


def can_delete_category(category: CategoryRecord) -> bool:
    return len(category.products) == 0


def can_delete_product(product: ProductRecord, targets: Iterable[TargetRecord]) -> bool:
    return not any(target.product_id == product.id for target in targets)


def ensure_category_deletable(category: CategoryRecord) -> None:
    if not can_delete_category(category):
        raise ConsistencyError(
            f"Category '{category.name}' still has {len(category.products)} product(s); "
            "remove them before deleting the category",
            precondition=PRECONDITION_CATEGORY_HAS_PRODUCTS,
        )


def ensure_product_deletable(product: ProductRecord, targets: Iterable[TargetRecord]) -> None:
    if not can_delete_product(product, targets):
        raise ConsistencyError(
            f"Product '{product.name}' is referenced by existing targets and cannot be deleted",
            precondition=PRECONDITION_PRODUCT_HAS_TARGETS,
        )


def delete_category(category: Category) -> None:
    record = category.to_record()
    try:
        ensure_category_deletable(record)
        category.delete()
    except ConsistencyError:
        logger.warning("Rejected delete of category %s: products exist", category.id)
        raise
    except ProtectedError:
        logger.warning("Category %s gained products during delete", category.id)
        raise ConsistencyError(
            f"Category '{category.name}' still has products; remove them before deleting the category",
            precondition=PRECONDITION_CATEGORY_HAS_PRODUCTS,
        ) from None
    logger.info("Deleted category %s (%s)", record.id, record.name)


def delete_product(product: Product) -> None:
    record = product.to_record()
    referencing = load_targets(product=product)
    try:
        ensure_product_deletable(record, referencing)
        product.delete()
    except ConsistencyError:
        logger.warning("Rejected delete of product %s: %d target(s) reference it", product.id, len(referencing))
        raise
    except ProtectedError:
        logger.warning("Product %s gained targets during delete", product.id)
        raise ConsistencyError(
            f"Product '{product.name}' is referenced by existing targets and cannot be deleted",
            precondition=PRECONDITION_PRODUCT_HAS_TARGETS,
        ) from None
    logger.info("Deleted product %s (%s)", record.id, record.name)


def validate_nominal(value, *, field: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise ValidationFailed(f"{field}: must be a non-negative whole number")
    return value


def create_achievement(target_id: int, nominal: int) -> Achievement:
    validate_nominal(nominal, field="nominal")
    target = Target.objects.filter(pk=target_id).first()
    if target is None:
        raise NotFoundError(f"Target {target_id} not found; create the target before its achievement")
    if Achievement.objects.filter(target=target).exists():
        raise ConsistencyError(
            f"Target {target_id} already has an achievement; update it instead",
            precondition=PRECONDITION_ACHIEVEMENT_EXISTS,
        )
    try:
        with transaction.atomic():
            achievement = Achievement.objects.create(target=target, nominal=nominal)
    except IntegrityError:
        raise ConsistencyError(
            f"Target {target_id} already has an achievement; update it instead",
            precondition=PRECONDITION_ACHIEVEMENT_EXISTS,
        ) from None
    logger.info("Created achievement %s for target %s", achievement.id, target_id)
    return achievement


def update_achievement(target_id: int, nominal: int) -> Achievement:
    validate_nominal(nominal, field="nominal")
    achievement = Achievement.objects.filter(target_id=target_id).first()
    if achievement is None:
        raise NotFoundError(f"No achievement recorded for target {target_id}")
    achievement.nominal = nominal
    achievement.save(update_fields=["nominal", "updated_at"])
    logger.info("Updated achievement for target %s to %s", target_id, nominal)
    return achievement


@transaction.atomic
def delete_target(target_id: int) -> None:
    target = Target.objects.filter(pk=target_id).first()
    if target is None:
        raise NotFoundError(f"Target {target_id} not found")
    removed, _ = Achievement.objects.filter(target_id=target_id).delete()
    target.delete()
    logger.info("Deleted target %s and %d achievement(s)", target_id, removed)


def save_target_and_achievement(
    target: Target,
    product_id: int,
    target_nominal: int,
    achievement_nominal: int | None = None,
) -> SaveOutcome:
    """Update a target, then create or update its achievement.

    The two writes commit separately. When the achievement write fails after
    the target update landed, ``PartialWriteError`` is raised carrying the
    updated target. ``achievement_nominal=None`` leaves any existing
    achievement untouched.
    """
    validate_nominal(target_nominal, field="nominal")
    if achievement_nominal is not None:
        validate_nominal(achievement_nominal, field="achievement_nominal")
    product = Product.objects.filter(pk=product_id).first()
    if product is None:
        raise ValidationFailed(f"product_id: product {product_id} does not exist")

    target.product = product
    target.nominal = target_nominal
    target.save(update_fields=["product", "nominal", "updated_at"])
    logger.info("Updated target %s: product=%s nominal=%s", target.id, product.id, target_nominal)

    if achievement_nominal is None:
        return SaveOutcome(
            target=target,
            achievement=target.current_achievement(),
            achievement_action=ACHIEVEMENT_UNCHANGED,
        )

    try:
        if Achievement.objects.filter(target=target).exists():
            achievement = update_achievement(target.id, achievement_nominal)
            action = ACHIEVEMENT_UPDATED
        else:
            achievement = create_achievement(target.id, achievement_nominal)
            action = ACHIEVEMENT_CREATED
    except (DatabaseError, TrackerError) as exc:
        logger.error("Target %s updated but achievement write failed: %s", target.id, exc)
        raise PartialWriteError(
            f"Target {target.id} was updated but its achievement could not be saved: {exc}",
            completed_step="target",
            failed_step="achievement",
            target=target.to_record(),
        ) from exc
    return SaveOutcome(target=target, achievement=achievement, achievement_action=action)
