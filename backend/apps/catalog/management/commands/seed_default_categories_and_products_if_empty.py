from django.core.management.base import BaseCommand
from django.db import transaction

from apps.catalog.models import Category, Product

DEFAULT_CATEGORIES = ["Funding", "Lending", "Fee Based"]

DEFAULT_PRODUCTS_BY_CATEGORY = {
    "Funding": ["Tabungan", "Giro", "Deposito"],
    "Lending": ["KPR", "KUR", "Kredit Multiguna"],
    "Fee Based": ["Bancassurance", "Reksa Dana"],
}


class Command(BaseCommand):
    help = (
        "Seed default product categories and products only when both Category and "
        "Product tables are empty."
    )

    def add_arguments(self, parser):
        parser.add_argument(
            "--force",
            action="store_true",
            help="Apply upsert even if data already exists.",
        )

    @transaction.atomic
    def handle(self, *args, **options):
        force = options["force"]
        has_categories = Category.objects.exists()
        has_products = Product.objects.exists()

        if not force and (has_categories or has_products):
            self.stdout.write(
                self.style.WARNING(
                    "Skipped: catalog already has data. Use --force to upsert defaults."
                )
            )
            return

        created_categories = 0
        created_products = 0
        for name in DEFAULT_CATEGORIES:
            category, category_created = Category.objects.get_or_create(name=name)
            if category_created:
                created_categories += 1

            for product_name in DEFAULT_PRODUCTS_BY_CATEGORY[name]:
                _, product_created = Product.objects.get_or_create(
                    category=category,
                    name=product_name,
                )
                if product_created:
                    created_products += 1

        self.stdout.write(
            self.style.SUCCESS(
                f"Completed: categories(created={created_categories}), "
                f"products(created={created_products})."
            )
        )
