from unittest.mock import MagicMock, patch

from django.test import TestCase, override_settings

from apps.builds.scheduler import PollOutcome


class PollTasksTests(TestCase):
    """Tests for the Celery polling tasks."""

    def test_build_poll_group(self):
        from apps.builds.tasks import build_poll_group

        sig = build_poll_group(["github_actions", "jenkins"])

        self.assertEqual(len(sig.tasks), 2)
        self.assertEqual(sig.tasks[0].task, "apps.builds.tasks.poll_provider_task")
        self.assertEqual(sig.tasks[0].args, ("github_actions",))
        self.assertEqual(sig.tasks[1].args, ("jenkins",))

    @override_settings(GITHUB_TOKEN="", GITHUB_REPOS=[], JENKINS_URL="")
    def test_poll_all_providers_idle_without_configuration(self):
        from apps.builds.tasks import poll_all_providers

        result = poll_all_providers.apply().get()
        self.assertEqual(result, {"status": "idle", "providers": []})

    @override_settings(
        GITHUB_TOKEN="ghp_test",
        GITHUB_REPOS=["org/repo"],
        JENKINS_URL="https://ci.example.com",
        JENKINS_USER="bot",
        JENKINS_TOKEN="secret",
    )
    def test_poll_all_providers_fans_out(self):
        import apps.builds.tasks as builds_tasks

        fake_group = MagicMock()
        fake_group.apply_async.return_value = MagicMock(id="group-1")

        with patch.object(builds_tasks, "build_poll_group", return_value=fake_group) as builder:
            result = builds_tasks.poll_all_providers.apply().get()

        builder.assert_called_once_with(["github_actions", "jenkins"])
        self.assertEqual(result["status"], "queued")
        self.assertEqual(result["group_id"], "group-1")

    @override_settings(GITHUB_TOKEN="ghp_test", GITHUB_REPOS=["org/repo"], JENKINS_URL="")
    def test_poll_all_providers_warns_about_process_local_locks(self):
        import apps.builds.tasks as builds_tasks

        fake_group = MagicMock()
        fake_group.apply_async.return_value = MagicMock(id="group-1")

        with patch.object(builds_tasks, "build_poll_group", return_value=fake_group):
            with self.assertLogs("apps.builds.tasks", level="WARNING") as logs:
                builds_tasks.poll_all_providers.apply().get()

        self.assertIn("local-memory cache", logs.output[0])

    def test_poll_provider_task_returns_outcome(self):
        import apps.builds.tasks as builds_tasks

        scheduler = MagicMock()
        scheduler.poll_provider.return_value = PollOutcome(provider="jenkins", fetched=3, ingested=3)

        with patch.object(builds_tasks, "_scheduler", return_value=scheduler):
            result = builds_tasks.poll_provider_task.apply(args=("jenkins",)).get()

        scheduler.poll_provider.assert_called_once_with("jenkins")
        self.assertEqual(result["provider"], "jenkins")
        self.assertEqual(result["ingested"], 3)
        self.assertFalse(result["skipped"])
