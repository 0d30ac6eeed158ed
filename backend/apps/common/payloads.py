from .domain import AchievementRecord, CategoryRecord, EmployeeRecord, ProductRecord, TargetRecord


def employee_payload(employee: EmployeeRecord, *, targets=None) -> dict:
    payload = {
        "id": employee.id,
        "name": employee.name,
        "position": employee.position,
        "office_location": employee.office_location,
        "entry_date": employee.entry_date.isoformat() if employee.entry_date else None,
        "is_active": employee.is_active,
    }
    if targets is not None:
        payload["targets"] = [target_payload(target, include_employee=False) for target in targets]
    return payload


def category_payload(category: CategoryRecord, *, include_products: bool = True) -> dict:
    payload = {"id": category.id, "name": category.name}
    if include_products:
        payload["products"] = [
            product_payload(product, include_category=False) for product in category.products
        ]
    return payload


def product_payload(product: ProductRecord, *, include_category: bool = True) -> dict:
    payload = {
        "id": product.id,
        "name": product.name,
        "category_id": product.category_id,
    }
    if include_category:
        payload["category"] = (
            category_payload(product.category, include_products=False) if product.category else None
        )
    return payload


def achievement_payload(achievement: AchievementRecord, *, include_target: bool = False) -> dict:
    payload = {
        "id": achievement.id,
        "target_id": achievement.target_id,
        "nominal": achievement.nominal,
    }
    if include_target:
        payload["target"] = target_payload(achievement.target) if achievement.target else None
    return payload


def target_payload(target: TargetRecord, *, include_employee: bool = True) -> dict:
    payload = {
        "id": target.id,
        "employee_id": target.employee_id,
        "product_id": target.product_id,
        "nominal": target.nominal,
        "month": target.month,
        "year": target.year,
        "product": product_payload(target.product) if target.product else None,
        "achievement": achievement_payload(target.achievement) if target.achievement else None,
        "achieved": target.is_achieved,
    }
    if include_employee:
        payload["employee"] = employee_payload(target.employee) if target.employee else None
    return payload


def page_payload(page, serialize) -> dict:
    return {
        "results": [serialize(item) for item in page.items],
        "page": page.number,
        "total_pages": page.total_pages,
        "total_count": page.total_count,
    }
