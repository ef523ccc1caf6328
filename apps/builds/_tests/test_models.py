from django.db import IntegrityError, transaction
from django.test import TestCase

from apps.alerts.models import BuildAlert
from apps.builds.models import Build, BuildConclusion, BuildStatus


class BuildModelTests(TestCase):
    def test_defaults(self):
        build = Build.objects.create(tool="jenkins", external_id="api-1")

        self.assertEqual(build.status, BuildStatus.UNKNOWN)
        self.assertIsNone(build.conclusion)
        self.assertEqual(build.duration_seconds, 0)
        self.assertEqual(build.raw_payload, {})
        self.assertFalse(build.is_failure)

    def test_tool_and_external_id_are_unique_together(self):
        Build.objects.create(tool="jenkins", external_id="api-1")
        Build.objects.create(tool="github_actions", external_id="api-1")

        with self.assertRaises(IntegrityError), transaction.atomic():
            Build.objects.create(tool="jenkins", external_id="api-1")

    def test_str(self):
        build = Build(tool="jenkins", external_id="api-1", repo="api", conclusion=BuildConclusion.FAILURE)
        self.assertEqual(str(build), "[jenkins] api#api-1 (failure)")


class BuildAlertModelTests(TestCase):
    def test_one_alert_per_build(self):
        build = Build.objects.create(tool="jenkins", external_id="api-1")
        BuildAlert.objects.create(build=build, recipient="dev@example.com")

        with self.assertRaises(IntegrityError), transaction.atomic():
            BuildAlert.objects.create(build=build, recipient="dev@example.com")

    def test_reverse_lookup(self):
        build = Build.objects.create(tool="jenkins", external_id="api-1")
        BuildAlert.objects.create(build=build)

        self.assertEqual(Build.objects.get(pk=build.pk).alert.channel, "email")
