"""
Management command to convert units in free text.

Usage:
    python manage.py convert_units "Heat 200ml water to 93°C"
    python manage.py convert_units --to-metric "Add 0.7 oz sugar"
    cat recipe.txt | python manage.py convert_units
"""

import sys

from django.core.management.base import BaseCommand

from catalog.utils.measurement import convert


class Command(BaseCommand):
    help = "Convert metric units to imperial (or back) in free text"

    def add_arguments(self, parser):
        parser.add_argument(
            "text",
            nargs="*",
            help="Text to convert (reads lines from stdin when omitted)",
        )
        parser.add_argument(
            "--to-metric",
            action="store_true",
            help="Convert imperial units to metric instead",
        )

    def handle(self, *args, **options):
        to_imperial = not options["to_metric"]

        if options["text"]:
            lines = [" ".join(options["text"])]
        else:
            lines = [line.rstrip("\n") for line in sys.stdin]

        for line in lines:
            self.stdout.write(convert(line, to_imperial))
