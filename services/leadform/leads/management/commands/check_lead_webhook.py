"""Report whether the configured lead webhook destination is usable.

Usage examples:
  python manage.py check_lead_webhook
  python manage.py check_lead_webhook --url https://hooks.example.org/leads
"""

from __future__ import annotations

from django.core.management.base import BaseCommand, CommandError

from leads.services.channels import recognized_channels
from leads.services.destination import configured_webhook_url, validate_destination
from leads.services.errors import ConfigurationError


class Command(BaseCommand):
    help = "Validate the lead webhook URL and list the recognized referral channels."

    def add_arguments(self, parser):
        parser.add_argument("--url", default=None, help="Check this URL instead of LEADFORM_WEBHOOK_URL.")

    def handle(self, *args, **opts):
        url = opts.get("url")
        if url is None:
            url = configured_webhook_url()
        try:
            destination = validate_destination(url)
        except ConfigurationError as exc:
            raise CommandError(str(exc)) from exc

        self.stdout.write(self.style.SUCCESS(f"Webhook destination OK: {destination}"))
        channels = recognized_channels()
        self.stdout.write(f"Recognized channels: {', '.join(channels) if channels else '(none)'}")
