"""Tests for templating utilities."""

from django.test import SimpleTestCase

from apps.notify.templating import NotificationTemplatingService, render_template


def _message(**overrides):
    msg = {
        "title": "Build failed: org/repo",
        "message": "M",
        "severity": "critical",
        "channel": "email",
        "tags": {"tool": "jenkins"},
        "context": {
            "build": {
                "tool": "jenkins",
                "repo": "api",
                "branch": None,
                "conclusion": "failure",
                "duration_seconds": 125,
                "url": "https://ci.example.com/job/api/42/",
            }
        },
    }
    msg.update(overrides)
    return msg


class TemplatingTests(SimpleTestCase):
    def test_render_inline_template(self):
        out = render_template("Hello {{ name }}", {"name": "World"})
        self.assertEqual(out, "Hello World")

    def test_render_dict_spec(self):
        self.assertEqual(render_template({"type": "inline", "template": "{{ x }}"}, {"x": 1}), "1")

    def test_empty_spec_returns_none(self):
        self.assertIsNone(render_template(None, {}))
        self.assertIsNone(render_template("", {}))

    def test_missing_file_raises(self):
        with self.assertRaises(ValueError):
            render_template("file:does_not_exist.j2", {})

    def test_syntax_error_raises(self):
        with self.assertRaises(ValueError):
            render_template("{% if %}", {})

    def test_build_context_exposes_build_fields(self):
        ctx = NotificationTemplatingService().build_template_context(_message())

        self.assertEqual(ctx["title"], "Build failed: org/repo")
        self.assertEqual(ctx["repo"], "api")
        self.assertEqual(ctx["build"]["conclusion"], "failure")
        self.assertIn("generated_at", ctx)

    def test_default_email_template(self):
        rendered = NotificationTemplatingService().render_message_templates(
            "email", _message(), {}
        )
        text = rendered["text"]

        self.assertIn("Build failed: org/repo", text)
        self.assertIn("Repository:  api", text)
        self.assertIn("Branch:      -", text)
        self.assertIn("Duration:    125s", text)
        self.assertIn("tool: jenkins", text)
        self.assertIsNone(rendered["html"])

    def test_config_template_override(self):
        rendered = NotificationTemplatingService().render_message_templates(
            "email", _message(), {"template": "{{ repo }} is {{ conclusion }}"}
        )
        self.assertEqual(rendered["text"], "api is failure")
