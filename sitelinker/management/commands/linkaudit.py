"""Audit the category data set and internal linking results."""

from __future__ import annotations

import json
from typing import Any

from django.core.management.base import BaseCommand, CommandError, CommandParser

from ... import services
from ...engine.index import dry_run, explain
from ...engine.types import PageContext


class Command(BaseCommand):
    help = 'Validate category data and report how internal links are placed.'

    def add_arguments(self, parser: CommandParser) -> None:
        parser.add_argument('--page', help='Entity id to explain link placement for.')
        parser.add_argument('--all', action='store_true', help='Report aggregate metrics over every page.')

    def handle(self, *args: Any, **options: Any) -> None:
        report = services.validate_data()
        for warning in report.warnings:
            self.stdout.write(self.style.WARNING(f'warning: {warning}'))
        for error in report.errors:
            self.stderr.write(self.style.ERROR(f'error: {error}'))
        if not report.valid:
            raise CommandError(f'{len(report.errors)} data integrity error(s) found.')

        store = services.get_entity_store()
        vocabulary = services.get_vocabulary()
        config = services.get_linking_config()
        self.stdout.write(self.style.SUCCESS(f'{len(store)} entities validated.'))

        if options.get('page'):
            entity = store.get(options['page'])
            if entity is None:
                raise CommandError(f'Unknown entity id: {options["page"]}')
            details = explain(services.render_content_html(entity), PageContext(entity), store, vocabulary, config)
            self.stdout.write(json.dumps(details, indent=2))

        if options.get('all'):
            pages = [(PageContext(entity), services.render_content_html(entity)) for entity in store]
            metrics = dry_run(pages, store, vocabulary, config)
            self.stdout.write(json.dumps(metrics, indent=2, sort_keys=True))
