from django.db import models

from apps.common.domain import POSITION_CHOICES, EmployeeRecord


class ActiveEmployeeManager(models.Manager):
    def get_queryset(self):
        return super().get_queryset().filter(is_active=True)


class Employee(models.Model):
    name = models.CharField(max_length=128)
    position = models.CharField(max_length=2, choices=POSITION_CHOICES)
    office_location = models.CharField(max_length=128)
    entry_date = models.DateField()
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    objects = models.Manager()
    active = ActiveEmployeeManager()

    class Meta:
        ordering = ["name", "id"]

    def __str__(self) -> str:
        return f"{self.name} ({self.position})"

    def to_record(self) -> EmployeeRecord:
        return EmployeeRecord(
            id=self.id,
            name=self.name,
            position=self.position,
            office_location=self.office_location,
            entry_date=self.entry_date,
            is_active=self.is_active,
        )
