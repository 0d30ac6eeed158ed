from apps.common.domain import AchievementRecord, TargetRecord

from .models import Achievement, Target


def target_queryset():
    return Target.objects.select_related("employee", "product__category", "achievement")


def load_targets(**filters) -> list[TargetRecord]:
    return [target.to_record() for target in target_queryset().filter(**filters)]


def load_achievements(**filters) -> list[AchievementRecord]:
    queryset = Achievement.objects.select_related(
        "target__employee",
        "target__product__category",
    ).filter(**filters)
    return [achievement.to_record() for achievement in queryset]
