"""Tests for the dialogue session API."""
import pytest
from fastapi.testclient import TestClient

from api.main import app
from spool import __version__


@pytest.fixture
def client():
    """Create test client with an empty session store."""
    app.state.sessions.clear()
    return TestClient(app)


@pytest.fixture
def session_id(client, conversation_program):
    response = client.post("/api/v1/sessions", json={"program": conversation_program})
    assert response.status_code == 200
    return response.json()["session_id"]


def pull(client, session_id):
    response = client.post(f"/api/v1/sessions/{session_id}/next")
    assert response.status_code == 200
    return response.json()


class TestHealthEndpoints:
    """Tests for health and root endpoints."""

    def test_health(self, client):
        """Test the health check."""
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json()["status"] == "healthy"

    def test_ready_counts_sessions(self, client, session_id):
        """Test readiness reports live sessions."""
        data = client.get("/health/ready").json()
        assert data["ready"] is True
        assert data["sessions"]["total"] == 1
        assert data["sessions"]["running"] == 1

    def test_ready_session_breakdown(self, client, session_id, conversation_program):
        """Test readiness splits sessions by progress and errors."""
        pull(client, session_id)
        pull(client, session_id)
        client.post("/api/v1/sessions", json={
            "program": conversation_program, "start_node": "Nowhere",
        })
        data = client.get("/health/ready").json()["sessions"]
        assert data == {
            "total": 2,
            "running": 0,
            "awaiting_choice": 1,
            "finished": 1,
            "with_errors": 1,
        }

    def test_health_version(self, client):
        """Test the health check reports the package version."""
        assert client.get("/health").json()["version"] == __version__

    def test_root(self, client):
        """Test the root endpoint."""
        assert client.get("/").json()["name"] == "Spool Dialogue API"


class TestCreateSession:
    """Tests for POST /api/v1/sessions."""

    def test_create(self, client, conversation_program):
        """Test the response describes the loaded program."""
        response = client.post("/api/v1/sessions", json={"program": conversation_program})
        data = response.json()
        assert data["nodes"] == ["Start", "Shop"]
        assert data["start_node"] == "Start"
        assert data["digest"].startswith("sha256:")

    def test_invalid_program(self, client):
        """Test programs that fail validation."""
        program = {"nodes": {"Start": {"instructions": [{"opcode": "Teleport"}]}}}
        response = client.post("/api/v1/sessions", json={"program": program})
        assert response.status_code == 422
        assert response.json()["detail"]["errors"]

    def test_missing_body(self, client):
        """Test request validation."""
        response = client.post("/api/v1/sessions", json={})
        assert response.status_code == 422

    def test_unknown_start_node(self, client, conversation_program):
        """Test a missing start node finishes immediately with an error."""
        response = client.post("/api/v1/sessions", json={
            "program": conversation_program, "start_node": "Nowhere",
        })
        session_id = response.json()["session_id"]
        assert pull(client, session_id) == {"result": None, "finished": True}
        state = client.get(f"/api/v1/sessions/{session_id}").json()
        assert "No node named Nowhere" in state["errors"]

    def test_seed_state(self, client, visit_program):
        """Test initial variables and visited nodes."""
        response = client.post("/api/v1/sessions", json={
            "program": visit_program,
            "start_node": "Counter",
            "variables": {"$gold": 5},
            "visited_nodes": ["Counter"],
        })
        session_id = response.json()["session_id"]
        assert pull(client, session_id)["finished"] is True
        state = client.get(f"/api/v1/sessions/{session_id}").json()
        assert state["variables"]["$gold"] == 5
        assert state["variables"]["$count"] == 1
        assert state["variables"]["$visited"] is True
        assert state["visit_counts"] == {"Counter": 2}


class TestSessionFlow:
    """Tests for pulling results and choosing options."""

    def test_full_conversation(self, client, session_id):
        """Test a run from first line to the end of Shop."""
        assert pull(client, session_id)["result"] == {"kind": "line", "text": "Hello there."}

        options = pull(client, session_id)
        assert options["result"]["options"] == ["Go shopping", "Say goodbye", "Walk away"]
        assert client.get(f"/api/v1/sessions/{session_id}").json()["awaiting_choice"] is True

        state = client.post(f"/api/v1/sessions/{session_id}/choose", json={"index": 0}).json()
        assert state["awaiting_choice"] is False

        assert pull(client, session_id)["result"] == {"kind": "node_complete", "next_node": "Shop"}
        assert pull(client, session_id)["result"]["text"] == "Welcome to the shop."
        last = pull(client, session_id)
        assert last == {"result": {"kind": "node_complete", "next_node": None}, "finished": True}
        assert pull(client, session_id) == {"result": None, "finished": True}

        state = client.get(f"/api/v1/sessions/{session_id}").json()
        assert state["finished"] is True
        assert state["variables"] == {"$choice": 1}
        assert state["visit_counts"] == {"Start": 1, "Shop": 1}

    def test_next_while_awaiting_choice(self, client, session_id):
        """Test pulling before choosing is a conflict."""
        pull(client, session_id)
        pull(client, session_id)
        response = client.post(f"/api/v1/sessions/{session_id}/next")
        assert response.status_code == 409

    def test_choose_without_options(self, client, session_id):
        """Test choosing when nothing is pending."""
        response = client.post(f"/api/v1/sessions/{session_id}/choose", json={"index": 0})
        assert response.status_code == 409

    def test_choose_out_of_range(self, client, session_id):
        """Test an invalid index leaves the options pending."""
        pull(client, session_id)
        pull(client, session_id)
        response = client.post(f"/api/v1/sessions/{session_id}/choose", json={"index": 3})
        assert response.status_code == 409
        assert client.get(f"/api/v1/sessions/{session_id}").json()["awaiting_choice"] is True

    def test_stop_command_finishes(self, client, session_id):
        """Test the stop command ends the run."""
        pull(client, session_id)
        pull(client, session_id)
        client.post(f"/api/v1/sessions/{session_id}/choose", json={"index": 2})
        data = pull(client, session_id)
        assert data == {"result": {"kind": "command", "text": "stop"}, "finished": True}


class TestSessionLifecycle:
    """Tests for looking up and deleting sessions."""

    def test_unknown_session(self, client):
        """Test every endpoint rejects unknown ids."""
        assert client.get("/api/v1/sessions/nope").status_code == 404
        assert client.post("/api/v1/sessions/nope/next").status_code == 404
        assert client.delete("/api/v1/sessions/nope").status_code == 404

    def test_delete(self, client, session_id):
        """Test deleting a session forgets it."""
        response = client.delete(f"/api/v1/sessions/{session_id}")
        assert response.json() == {"session_id": session_id, "deleted": True}
        assert client.get(f"/api/v1/sessions/{session_id}").status_code == 404
