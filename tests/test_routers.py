from datetime import timedelta
from uuid import uuid4

from conftest import MANAGER_ID, MEMBER_ID, OUTSIDER_ID, FakeGraphService
from teams_timesheet.models.project import Project
from teams_timesheet.models.timesheet import TimesheetEntity, TimesheetStatus
from teams_timesheet.services.graph_service import GraphServiceError


def test_health(client):
    response = client.get("/health")

    assert response.status_code == 200
    assert response.json()["scheduler"] == "stopped"


class TestProjects:
    def test_dashboard_rejects_inverted_range(self, client):
        response = client.get("/api/projects/dashboard", params={"startDate": "2024-03-10", "endDate": "2024-03-01"})

        assert response.status_code == 400
        assert response.json() == {"message": "End date is less than start date."}

    def test_non_manager_is_forbidden(self, client, graph):
        graph.reportees = []

        response = client.get("/api/projects/dashboard", params={"startDate": "2024-03-01", "endDate": "2024-03-10"})

        assert response.status_code == 403

    def test_get_own_project(self, client, make_project):
        project = make_project(title="Portal")

        response = client.get(f"/api/projects/{project.id}")

        assert response.status_code == 200
        body = response.json()
        assert body["title"] == "Portal"
        assert body["members"][0]["userId"] == str(MEMBER_ID)
        assert body["tasks"][0]["title"] == "Development"

    def test_project_of_other_manager_is_forbidden(self, client, make_project):
        project = make_project(created_by=OUTSIDER_ID)

        assert client.get(f"/api/projects/{project.id}").status_code == 403
        assert client.get(f"/api/projects/{uuid4()}").status_code == 403

    def test_create_project(self, client):
        payload = {
            "title": "Intranet",
            "clientName": "Contoso",
            "billableHours": 80,
            "nonBillableHours": 10,
            "startDate": "2024-03-01",
            "endDate": "2024-03-31",
            "members": [{"userId": str(MEMBER_ID), "isBillable": True}],
            "tasks": [{"title": "Design", "startDate": "2024-03-01", "endDate": "2024-03-31"}],
        }

        response = client.post("/api/projects", json=payload)

        assert response.status_code == 201
        body = response.json()
        assert body["id"]
        assert body["clientName"] == "Contoso"
        assert [m["userId"] for m in body["members"]] == [str(MEMBER_ID)]

    def test_create_project_with_foreign_members(self, client):
        payload = {
            "title": "Intranet",
            "clientName": "Contoso",
            "startDate": "2024-03-01",
            "endDate": "2024-03-31",
            "members": [{"userId": str(OUTSIDER_ID), "isBillable": True}],
        }

        assert client.post("/api/projects", json=payload).status_code == 403

    def test_validation_errors_are_bad_requests(self, client):
        response = client.post("/api/projects", json={"clientName": "Contoso", "startDate": "2024-03-01", "endDate": "2024-03-31"})

        assert response.status_code == 400
        assert "message" in response.json()

    def test_update_project(self, client, db, make_project):
        project = make_project()
        payload = {
            "title": "Renamed",
            "clientName": "Fabrikam",
            "billableHours": 10,
            "nonBillableHours": 5,
            "startDate": str(project.start_date),
            "endDate": str(project.end_date),
        }

        response = client.patch(f"/api/projects/{project.id}", json=payload)

        assert response.status_code == 204
        db.expire_all()
        assert db.get(Project, project.id).title == "Renamed"

    def test_add_members_requires_a_list(self, client, make_project):
        project = make_project()

        response = client.post(f"/api/projects/{project.id}/members", json=[])

        assert response.status_code == 400


class TestTimesheets:
    def test_save_timesheets(self, client, auth, make_project, today):
        project = make_project()
        task = project.tasks[0]
        auth.user_id = MEMBER_ID
        body = [{
            "timesheetDate": str(today),
            "projectDetails": [{
                "id": str(project.id),
                "title": project.title,
                "timesheetDetails": [{"taskId": str(task.id), "taskTitle": task.title, "hours": 6}],
            }],
        }]

        response = client.post(f"/api/timesheets/{today}", json=body)

        assert response.status_code == 200
        saved = response.json()
        assert [(t["taskTitle"], t["hours"], t["status"]) for t in saved] == [("Development", 6, int(TimesheetStatus.SAVED))]

    def test_save_rejects_invalid_client_date(self, client, auth, make_project, today):
        project = make_project()
        auth.user_id = MEMBER_ID
        body = [{"timesheetDate": str(today), "projectDetails": [{"id": str(project.id), "title": project.title}]}]

        response = client.post(f"/api/timesheets/{today + timedelta(days=5)}", json=body)

        assert response.status_code == 400
        assert "current date is invalid" in response.json()["message"]

    def test_non_member_cannot_save(self, client, auth, today):
        auth.user_id = OUTSIDER_ID

        assert client.post(f"/api/timesheets/{today}", json=[]).status_code == 403

    def test_get_timesheets_rejects_inverted_range(self, client, auth, make_project):
        make_project()
        auth.user_id = MEMBER_ID

        response = client.get("/api/timesheets", params={"startDate": "2024-03-10", "endDate": "2024-03-01"})

        assert response.status_code == 400

    def test_approve(self, client, db, make_project, make_timesheet, make_conversation, teams_service, today):
        project = make_project()
        row = make_timesheet(project.tasks[0], today, status=TimesheetStatus.SUBMITTED)
        make_conversation(MEMBER_ID)
        body = [{"userId": str(MEMBER_ID), "timesheetId": str(row.id), "timesheetDate": [str(today)]}]

        response = client.post("/api/timesheets/approve", json=body)

        assert response.status_code == 204
        db.expire_all()
        assert db.get(TimesheetEntity, row.id).status == int(TimesheetStatus.APPROVED)
        assert len(teams_service.sent) == 1

    def test_approve_empty_list(self, client):
        response = client.post("/api/timesheets/approve", json=[])

        assert response.status_code == 400
        assert response.json() == {"message": "Timesheets list is either null or empty."}

    def test_reject_for_non_reportee_is_forbidden(self, client):
        body = [{"userId": str(OUTSIDER_ID), "timesheetId": str(uuid4()), "managerComments": "No"}]

        assert client.post("/api/timesheets/reject", json=body).status_code == 403

    def test_unknown_timesheets_are_not_found(self, client):
        body = [{"userId": str(MEMBER_ID), "timesheetId": str(uuid4())}]

        response = client.post("/api/timesheets/approve", json=body)

        assert response.status_code == 404


class TestUsers:
    def test_profiles(self, client):
        response = client.post("/api/users", json=[str(MEMBER_ID)])

        assert response.status_code == 200
        assert response.json() == [{"id": str(MEMBER_ID), "displayName": "Adele", "userPrincipalName": None, "mail": None}]

    def test_profiles_require_ids(self, client):
        assert client.post("/api/users", json=[]).status_code == 400

    def test_reportees_search(self, client):
        response = client.get("/api/users/me/reportees", params={"search": "ad"})

        assert [user["displayName"] for user in response.json()] == ["Adele"]

    def test_manager(self, client, graph):
        assert client.get("/api/users/me/manager").json()["id"] == str(MANAGER_ID)

        graph.manager = None
        assert client.get("/api/users/me/manager").status_code == 404

    def test_invalid_status(self, client):
        response = client.get(f"/api/users/{MEMBER_ID}/timesheets/9")

        assert response.status_code == 400
        assert response.json() == {"message": "Invalid timesheet status."}

    def test_timesheets_of_non_reportee(self, client):
        response = client.get(f"/api/users/{OUTSIDER_ID}/timesheets/2")

        assert response.status_code == 403

    def test_graph_failures_are_bad_gateway(self, client):
        class FailingGraph(FakeGraphService):
            def get_my_reportees(self, search=None):
                raise GraphServiceError("Graph returned 503")

        from teams_timesheet.auth.security import get_graph_service
        from teams_timesheet.main import app
        app.dependency_overrides[get_graph_service] = lambda: FailingGraph()

        response = client.get("/api/users/me/reportees")

        assert response.status_code == 502


def test_settings(client):
    response = client.get("/api/settings")

    assert response.status_code == 200
    assert response.headers["cache-control"] == "private, max-age=86400"
    assert set(response.json()) == {"timesheetFreezeDayOfMonth", "weeklyEffortsLimit"}


class TestBotMessages:
    def test_install(self, client, teams_service):
        activity = {
            "type": "conversationUpdate",
            "serviceUrl": "https://smba.trafficmanager.net/emea/",
            "recipient": {"id": "28:bot"},
            "from": {"id": "29:user", "aadObjectId": str(MEMBER_ID)},
            "conversation": {"id": "a:personal", "conversationType": "personal"},
            "membersAdded": [{"id": "28:bot"}],
        }

        response = client.post("/api/messages", json=activity)

        assert response.status_code == 200
        assert response.json() == {"status": "installed"}
        assert len(teams_service.sent) == 1

    def test_invalid_payload(self, client):
        response = client.post("/api/messages", content=b"not json", headers={"Content-Type": "application/json"})

        assert response.status_code == 400
