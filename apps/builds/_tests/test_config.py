from dataclasses import FrozenInstanceError

from django.test import SimpleTestCase, override_settings

from apps.builds.config import AlertingConfig, IngestionConfig
from apps.builds.providers import get_enabled_providers, get_provider
from config.env import cache_settings


class IngestionConfigTests(SimpleTestCase):
    @override_settings(
        GITHUB_TOKEN="ghp_test",
        GITHUB_REPOS=["org/a", "org/b"],
        GITHUB_API_URL="https://github.example.com/api/v3/",
        JENKINS_URL="https://ci.example.com/",
        JENKINS_USER="bot",
        JENKINS_TOKEN="secret",
        PROVIDER_TIMEOUT_SECONDS=4.0,
        PROVIDER_MAX_RETRIES=1,
        ALERT_EMAIL_TO=["dev@example.com"],
        POLL_INTERVAL_SECONDS=30,
    )
    def test_from_settings(self):
        config = IngestionConfig.from_settings()

        self.assertEqual(config.github.repos, ("org/a", "org/b"))
        self.assertEqual(config.github.api_url, "https://github.example.com/api/v3")
        self.assertEqual(config.jenkins.url, "https://ci.example.com")
        self.assertTrue(config.github.enabled)
        self.assertTrue(config.jenkins.enabled)
        self.assertEqual(config.transport.timeout_s, 4.0)
        self.assertEqual(config.transport.max_retries, 1)
        self.assertEqual(config.alerting.recipients, ("dev@example.com",))
        self.assertEqual(config.poll_interval_s, 30)

    def test_is_immutable(self):
        config = IngestionConfig()
        with self.assertRaises(FrozenInstanceError):
            config.poll_interval_s = 1

    def test_driver_config_without_smtp(self):
        cfg = AlertingConfig(recipients=("a@example.com",)).driver_config()

        self.assertEqual(cfg["to_addresses"], ["a@example.com"])
        self.assertNotIn("smtp_host", cfg)
        self.assertNotIn("username", cfg)

    def test_driver_config_with_smtp(self):
        cfg = AlertingConfig(smtp_host="smtp.example.com", smtp_user="u", smtp_password="p").driver_config()

        self.assertEqual(cfg["smtp_host"], "smtp.example.com")
        self.assertEqual(cfg["username"], "u")
        self.assertEqual(cfg["password"], "p")


class ProviderRegistryTests(SimpleTestCase):
    def test_get_provider(self):
        self.assertEqual(get_provider("jenkins").name, "jenkins")

    def test_unknown_provider(self):
        with self.assertRaises(KeyError):
            get_provider("travis")

    def test_only_configured_providers_are_enabled(self):
        self.assertEqual(get_enabled_providers(IngestionConfig()), {})

        with override_settings(GITHUB_TOKEN="t", GITHUB_REPOS=["org/a"], JENKINS_URL=""):
            enabled = get_enabled_providers(IngestionConfig.from_settings())
        self.assertEqual(list(enabled), ["github_actions"])


class CacheSettingsTests(SimpleTestCase):
    """The poll lock cache must be shared when Celery workers poll."""

    REDIS = "django.core.cache.backends.redis.RedisCache"
    LOCMEM = "django.core.cache.backends.locmem.LocMemCache"

    def test_redis_url_wins(self):
        caches = cache_settings("redis://cache:6379/1", "redis://broker:6379/0")
        self.assertEqual(caches["default"]["BACKEND"], self.REDIS)
        self.assertEqual(caches["default"]["LOCATION"], "redis://cache:6379/1")

    def test_redis_broker_is_shared_with_workers(self):
        caches = cache_settings("", "redis://broker:6379/0")
        self.assertEqual(caches["default"]["BACKEND"], self.REDIS)
        self.assertEqual(caches["default"]["LOCATION"], "redis://broker:6379/0")

    def test_non_redis_broker_keeps_local_memory(self):
        caches = cache_settings("", "amqp://guest@rabbit//")
        self.assertEqual(caches["default"]["BACKEND"], self.LOCMEM)

    def test_nothing_configured(self):
        self.assertEqual(cache_settings()["default"]["BACKEND"], self.LOCMEM)
