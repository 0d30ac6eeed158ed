from django.core.exceptions import ObjectDoesNotExist
from django.core.validators import MaxValueValidator, MinValueValidator
from django.db import models

from apps.catalog.models import Product
from apps.common.domain import AchievementRecord, TargetRecord
from apps.employees.models import Employee


class Target(models.Model):
    employee = models.ForeignKey(
        Employee,
        on_delete=models.PROTECT,
        related_name="targets",
    )
    product = models.ForeignKey(
        Product,
        on_delete=models.PROTECT,
        related_name="targets",
    )
    nominal = models.PositiveBigIntegerField(default=0)
    month = models.PositiveSmallIntegerField(
        validators=[MinValueValidator(1), MaxValueValidator(12)],
    )
    year = models.PositiveSmallIntegerField(
        validators=[MinValueValidator(1000), MaxValueValidator(9999)],
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-year", "-month", "employee__name", "id"]

    def __str__(self) -> str:
        return f"{self.employee_id}/{self.product_id} {self.year}-{self.month:02d}"

    def current_achievement(self):
        try:
            return self.achievement
        except ObjectDoesNotExist:
            return None

    def to_record(self, *, with_employee: bool = True) -> TargetRecord:
        achievement = self.current_achievement()
        return TargetRecord(
            id=self.id,
            employee_id=self.employee_id,
            product_id=self.product_id,
            nominal=self.nominal,
            month=self.month,
            year=self.year,
            employee=self.employee.to_record() if with_employee else None,
            product=self.product.to_record(),
            achievement=achievement.to_record(with_target=False) if achievement else None,
        )


class Achievement(models.Model):
    target = models.OneToOneField(
        Target,
        on_delete=models.CASCADE,
        related_name="achievement",
    )
    nominal = models.PositiveBigIntegerField(default=0)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-target__year", "-target__month", "id"]

    def __str__(self) -> str:
        return f"achievement for target {self.target_id}: {self.nominal}"

    def to_record(self, *, with_target: bool = True) -> AchievementRecord:
        return AchievementRecord(
            id=self.id,
            target_id=self.target_id,
            nominal=self.nominal,
            target=self.target.to_record() if with_target else None,
        )
