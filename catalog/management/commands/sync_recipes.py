"""
Management command to sync the local recipe catalog with the remote index.

Usage:
    python manage.py sync_recipes                 # startup: local load + sync
    python manage.py sync_recipes --refresh       # manual refresh only
    python manage.py sync_recipes --wait 5        # also wait for readiness
    python manage.py sync_recipes --health        # probe the remote server
"""

from asgiref.sync import async_to_sync
from django.core.management.base import BaseCommand

from catalog.services.recipe_catalog import RecipeCatalog


class Command(BaseCommand):
    help = "Sync the local recipe catalog with the remote recipe index"

    def add_arguments(self, parser):
        parser.add_argument(
            "--refresh",
            action="store_true",
            help="Run a manual refresh instead of the startup pipeline",
        )
        parser.add_argument(
            "--wait",
            type=float,
            default=0,
            help="Seconds to wait for the catalog to become ready (default: 0)",
        )
        parser.add_argument(
            "--health",
            action="store_true",
            help="Only check whether the remote recipe server is reachable",
        )

    def handle(self, *args, **options):
        catalog = RecipeCatalog(start_timer=not options["health"])

        if options["health"]:
            self._check_health(catalog)
            return

        if options["refresh"]:
            self.stdout.write("Refreshing recipe catalog...")
            catalog.load()
            report = async_to_sync(catalog.refresh)()
        else:
            self.stdout.write("Loading recipe catalog and syncing...")
            report = async_to_sync(catalog.start)()

        self._print_report(report)

        if options["wait"]:
            if catalog.gate.wait(timeout=options["wait"]):
                self.stdout.write(self.style.SUCCESS(
                    f"Catalog ready with {len(catalog.recipes)} recipes"
                ))
            else:
                self.stdout.write(self.style.WARNING(
                    f"Catalog not ready after {options['wait']}s: {catalog.gate.snapshot()}"
                ))
        catalog.gate.cancel_timer()

    def _print_report(self, report):
        style = self.style.SUCCESS if report.outcome == "success" else self.style.WARNING
        self.stdout.write(style(
            f"Sync {report.outcome}: {len(report.downloaded)} downloaded, "
            f"{len(report.pruned)} pruned, {len(report.failed)} failed"
        ))
        if report.error:
            self.stdout.write(self.style.WARNING(f"  {report.error}"))
        for name in report.pruned:
            self.stdout.write(f"  pruned {name}")
        for name, error in report.failed.items():
            self.stdout.write(self.style.ERROR(f"  failed {name}: {error}"))

    def _check_health(self, catalog):
        status = async_to_sync(catalog.check_server_health)()
        if status.show_error:
            self.stdout.write(self.style.ERROR(f"Recipe server: {status.message}"))
        else:
            self.stdout.write(self.style.SUCCESS(f"Recipe server: {status.message}"))
