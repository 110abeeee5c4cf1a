"""
Management command to import a shared recipe file.

Usage:
    python manage.py import_recipe ~/Downloads/mocha.brewpadrecipe
"""

from pathlib import Path

from django.core.management.base import BaseCommand, CommandError

from catalog.exceptions import CatalogError
from catalog.services.recipe_catalog import get_catalog


class Command(BaseCommand):
    help = "Import a shared recipe file as a local copy"

    def add_arguments(self, parser):
        parser.add_argument("path", type=str, help="Path to a shared recipe file")

    def handle(self, *args, **options):
        path = Path(options["path"]).expanduser()
        if not path.is_file():
            raise CommandError(f"File not found: {path}")

        catalog = get_catalog()
        if path.stat().st_size > catalog.store.max_file_size:
            raise CommandError(f"Recipe file too large: {path}")

        try:
            entry = catalog.import_shared(path.read_bytes(), source=path.name)
        except CatalogError as e:
            raise CommandError(f"Could not import {path.name}: {e}")

        self.stdout.write(self.style.SUCCESS(
            f"Imported {entry.name} ({entry.creator}) as {entry.id}"
        ))
