"""Tests for the build failure alert dispatcher."""

from unittest.mock import MagicMock, patch

from django.db import DatabaseError
from django.test import TestCase

from apps.alerts.dispatcher import AlertDispatcher
from apps.alerts.models import BuildAlert
from apps.builds.config import AlertingConfig
from apps.builds.models import Build
from apps.builds.providers import ParsedBuild
from apps.notify.drivers import EmailNotifyDriver


def _parsed(conclusion="failure", external_id="555"):
    return ParsedBuild(
        tool="github_actions",
        external_id=external_id,
        status="completed",
        conclusion=conclusion,
        repo="org/repo",
        branch="main",
        url="https://github.com/org/repo/actions/runs/555",
    )


class AlertDispatcherTests(TestCase):
    def setUp(self):
        self.config = AlertingConfig(
            from_address="ci@example.com", recipients=("dev@example.com", "ops@example.com")
        )
        self.driver = EmailNotifyDriver()
        self.dispatcher = AlertDispatcher(self.config, driver=self.driver)
        self.build = Build.objects.create(
            tool="github_actions", external_id="555", conclusion="failure"
        )

    def test_failure_sends_one_email(self):
        self.assertTrue(self.dispatcher.maybe_alert(self.build.pk, _parsed()))

        alert = BuildAlert.objects.get(build=self.build)
        self.assertEqual(alert.channel, "email")
        self.assertEqual(alert.recipient, "dev@example.com, ops@example.com")

        self.assertEqual(len(self.driver.outbox), 1)
        email = self.driver.outbox[0]
        self.assertEqual(email.from_address, "ci@example.com")
        self.assertEqual(email.to, ["dev@example.com", "ops@example.com"])
        self.assertIn("Build failed: org/repo (main)", email.subject)
        self.assertIn("Repository:  org/repo", email.body)

    def test_second_attempt_is_a_no_op(self):
        self.assertTrue(self.dispatcher.maybe_alert(self.build.pk, _parsed()))
        self.assertFalse(self.dispatcher.maybe_alert(self.build.pk, _parsed()))

        self.assertEqual(BuildAlert.objects.count(), 1)
        self.assertEqual(len(self.driver.outbox), 1)

    def test_non_failures_never_alert(self):
        for conclusion in ("success", "cancelled", "unknown", None):
            self.assertFalse(self.dispatcher.maybe_alert(self.build.pk, _parsed(conclusion)))
        self.assertEqual(BuildAlert.objects.count(), 0)

    def test_delivery_failure_releases_the_claim(self):
        driver = MagicMock()
        driver.send.return_value = {"success": False, "error": "SMTP down"}
        dispatcher = AlertDispatcher(self.config, driver=driver)

        self.assertFalse(dispatcher.maybe_alert(self.build.pk, _parsed()))
        self.assertEqual(BuildAlert.objects.count(), 0)

        # A later failing observation can try again.
        driver.send.return_value = {"success": True, "message_id": "abc"}
        self.assertTrue(dispatcher.maybe_alert(self.build.pk, _parsed()))
        self.assertEqual(BuildAlert.objects.count(), 1)

    def test_driver_exception_is_contained(self):
        driver = MagicMock()
        driver.send.side_effect = RuntimeError("boom")
        dispatcher = AlertDispatcher(self.config, driver=driver)

        self.assertFalse(dispatcher.maybe_alert(self.build.pk, _parsed()))
        self.assertEqual(BuildAlert.objects.count(), 0)

    def test_claim_storage_error_skips_the_alert(self):
        with patch.object(BuildAlert.objects, "create", side_effect=DatabaseError("db locked")):
            self.assertFalse(self.dispatcher.maybe_alert(self.build.pk, _parsed()))
        self.assertEqual(self.driver.outbox, [])

        # Nothing was recorded, so the next failing observation alerts.
        self.assertTrue(self.dispatcher.maybe_alert(self.build.pk, _parsed()))
        self.assertEqual(len(self.driver.outbox), 1)

    def test_compose(self):
        message = self.dispatcher.compose(_parsed())

        self.assertEqual(message.severity, "critical")
        self.assertEqual(message.channel, "email")
        self.assertEqual(message.tags["external_id"], "555")
        self.assertEqual(message.context["build"]["repo"], "org/repo")

    def test_deleting_a_build_leaves_alert_rows_alone(self):
        self.dispatcher.maybe_alert(self.build.pk, _parsed())
        build_id = self.build.pk
        Build.objects.filter(pk=build_id).delete()

        self.assertTrue(BuildAlert.objects.filter(build_id=build_id).exists())
