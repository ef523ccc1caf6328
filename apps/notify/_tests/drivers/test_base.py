"""Tests for BaseNotifyDriver helpers and NotificationMessage."""

from unittest.mock import patch

from django.test import SimpleTestCase

from apps.notify.drivers import DRIVER_REGISTRY, EmailNotifyDriver, get_driver
from apps.notify.drivers.base import BaseNotifyDriver, NotificationMessage


class DummyDriver(BaseNotifyDriver):
    name = "dummy"

    def validate_config(self, config: dict[str, object]) -> bool:
        return True

    def send(self, message: NotificationMessage, config: dict[str, object]) -> dict[str, object]:
        return {"success": True}


def _make_msg(**kwargs):
    """Create a NotificationMessage with sensible defaults."""
    defaults = {"title": "Build failed", "message": "Something happened", "severity": "critical"}
    defaults.update(kwargs)
    return NotificationMessage(**defaults)


class TestNotificationMessage(SimpleTestCase):
    def test_notification_message_normalization(self):
        msg = NotificationMessage(title="T", message="M", severity="CRITICAL")
        assert msg.severity == "critical"

        msg2 = NotificationMessage(title="T2", message="M2", severity="unknown")
        assert msg2.severity == "info"

    def test_defaults(self):
        msg = _make_msg()
        assert msg.channel == "default"
        assert msg.tags == {}
        assert msg.build == {}

    def test_subject(self):
        assert _make_msg().subject == "[CRITICAL] Build failed"

    def test_to_dict(self):
        msg = _make_msg(tags={"tool": "jenkins"}, context={"build": {"repo": "api"}})
        dd = msg.to_dict()

        assert dd["title"] == "Build failed"
        assert dd["tags"] == {"tool": "jenkins"}
        assert dd["context"]["build"]["repo"] == "api"
        assert msg.build == {"repo": "api"}


class TestRenderBody(SimpleTestCase):
    def test_render_body_delegates_to_service(self):
        driver = DummyDriver()
        with patch.object(
            driver.templating,
            "render_message_templates",
            return_value={"text": "hello", "html": None},
        ) as mock_render:
            body = driver.render_body(_make_msg(), {"template": "hello {{ title }}"})

        mock_render.assert_called_once()
        assert mock_render.call_args.args[0] == "dummy"
        assert body == "hello"

    def test_empty_body_raises(self):
        driver = DummyDriver()
        with self.assertRaises(ValueError):
            driver.render_body(_make_msg(), {"template": "{{ '' }}"})


class TestDriverHelpers(SimpleTestCase):
    def test_failure_result(self):
        try:
            raise RuntimeError("boom")
        except RuntimeError as e:
            result = DummyDriver().failure(e, "send")
        assert result == {"success": False, "error": "Failed to send: boom"}

    def test_priority(self):
        driver = DummyDriver()
        assert driver.priority(_make_msg(severity="critical")) == "1"
        assert driver.priority(_make_msg(severity="info")) == "3"


class TestDriverRegistry(SimpleTestCase):
    def test_email_registered(self):
        assert DRIVER_REGISTRY == {"email": EmailNotifyDriver}
        assert isinstance(get_driver("email"), EmailNotifyDriver)

    def test_unknown_driver(self):
        with self.assertRaises(ValueError):
            get_driver("pigeon")

    def test_get_driver_returns_fresh_instances(self):
        assert get_driver("email") is not get_driver("email")
