import pytest

from apps.alerts.models import BuildAlert
from apps.builds.models import Build, BuildConclusion


@pytest.mark.django_db
class TestBuildAdmin:
    def test_build_list_loads(self, admin_client):
        Build.objects.create(tool="jenkins", external_id="api-1", conclusion=BuildConclusion.FAILURE)
        response = admin_client.get("/admin/builds/build/")
        assert response.status_code == 200

    def test_build_change_page_loads(self, admin_client):
        build = Build.objects.create(tool="jenkins", external_id="api-1", raw_payload={"number": 1})
        response = admin_client.get(f"/admin/builds/build/{build.pk}/change/")
        assert response.status_code == 200

    def test_alert_list_loads(self, admin_client):
        build = Build.objects.create(tool="jenkins", external_id="api-1")
        BuildAlert.objects.create(build=build, recipient="dev@example.com")
        response = admin_client.get("/admin/alerts/buildalert/")
        assert response.status_code == 200


@pytest.mark.django_db
class TestSendFailureAlertAction:
    @pytest.fixture(autouse=True)
    def _simulated_email(self, settings):
        settings.SMTP_HOST = ""

    def test_sends_alert_for_failed_build(self, admin_client):
        build = Build.objects.create(
            tool="github_actions",
            external_id="555",
            status="completed",
            conclusion=BuildConclusion.FAILURE,
            repo="org/repo",
        )
        response = admin_client.get(
            f"/admin/builds/build/{build.pk}/actions/send_failure_alert/"
        )
        assert response.status_code == 302
        assert BuildAlert.objects.filter(build=build).count() == 1

        admin_client.get(f"/admin/builds/build/{build.pk}/actions/send_failure_alert/")
        assert BuildAlert.objects.filter(build=build).count() == 1

    def test_successful_build_is_not_alerted(self, admin_client):
        build = Build.objects.create(
            tool="github_actions", external_id="556", conclusion=BuildConclusion.SUCCESS
        )
        admin_client.get(f"/admin/builds/build/{build.pk}/actions/send_failure_alert/")
        assert BuildAlert.objects.count() == 0
