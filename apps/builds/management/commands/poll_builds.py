"""
Management command to poll CI providers for recent builds.

Usage:
    # Poll every configured provider forever at POLL_INTERVAL_SECONDS
    python manage.py poll_builds

    # Run a single cycle and exit
    python manage.py poll_builds --once

    # Poll one provider only
    python manage.py poll_builds --once --provider jenkins

    # Output as JSON
    python manage.py poll_builds --once --json
"""

import json

from django.core.management.base import BaseCommand, CommandError

from apps.builds.config import IngestionConfig
from apps.builds.providers import PROVIDER_REGISTRY, get_enabled_providers
from apps.builds.scheduler import PollScheduler


class Command(BaseCommand):
    help = "Poll configured CI providers and ingest their recent builds"

    def add_arguments(self, parser):
        parser.add_argument(
            "--once",
            action="store_true",
            help="Run a single polling cycle and exit.",
        )
        parser.add_argument(
            "--provider",
            action="append",
            dest="providers",
            choices=list(PROVIDER_REGISTRY.keys()),
            help="Provider to poll (can be specified multiple times). Defaults to all configured.",
        )
        parser.add_argument(
            "--json",
            action="store_true",
            dest="json_output",
            help="Output cycle results as JSON (with --once).",
        )

    def handle(self, *args, **options):
        config = IngestionConfig.from_settings()
        providers = get_enabled_providers(config)

        selected = options.get("providers")
        if selected:
            missing = [name for name in selected if name not in providers]
            if missing:
                raise CommandError(f"Provider(s) not configured: {', '.join(missing)}")
            providers = {name: providers[name] for name in selected}

        if not providers:
            raise CommandError("No providers configured. Set GITHUB_* or JENKINS_* settings.")

        scheduler = PollScheduler(config, providers=providers)

        if not options["once"]:
            self.stdout.write(
                self.style.NOTICE(
                    f"Polling {', '.join(providers)} every {config.poll_interval_s}s (Ctrl+C to stop)"
                )
            )
            try:
                scheduler.run_forever()
            except KeyboardInterrupt:
                self.stdout.write("\nStopped.")
            return

        outcomes = scheduler.run_cycle()

        if options["json_output"]:
            output = {name: outcome.to_dict() for name, outcome in outcomes.items()}
            self.stdout.write(json.dumps(output, indent=2))
            return

        for name, outcome in outcomes.items():
            if outcome.skipped:
                self.stdout.write(self.style.WARNING(f"{name}: skipped"))
                continue
            style = self.style.ERROR if outcome.has_errors else self.style.SUCCESS
            self.stdout.write(
                style(
                    f"{name}: {outcome.fetched} fetched, {outcome.ingested} ingested, "
                    f"{outcome.alerts_sent} alerts"
                )
            )
            for error in outcome.errors:
                self.stdout.write(self.style.ERROR(f"  - {error}"))
