import pytest
from fastapi.testclient import TestClient
from flowcraft.main import app, session_manager

from conftest import make_workflow

client = TestClient(app)

DOC = "test_doc"


@pytest.fixture
def open_doc():
    # Setup
    response = client.post(f"/api/sessions/{DOC}", json=make_workflow().model_dump(by_alias=True))
    assert response.status_code == 200
    yield response.json()
    # Teardown: close the test document
    if DOC in session_manager.sessions:
        session_manager.close(DOC)


def test_serialize_and_parse_endpoints():
    wf = make_workflow().model_dump(by_alias=True)
    response = client.post("/api/flow/serialize", json=wf)
    assert response.status_code == 200
    text = response.text
    assert 'name: "Order Pipeline"' in text

    response = client.post("/api/flow/parse", json={"text": text})
    assert response.status_code == 200
    parsed = response.json()
    assert [n["id"] for n in parsed["nodes"]] == ["1", "2", "3"]
    assert parsed["connections"][0]["from"] == "1"
    assert parsed["connections"][0]["to"] == "2"
    assert parsed["errors"] == []


def test_validate_endpoint():
    response = client.post("/api/flow/validate", json={"text": "foo::bar"})
    assert response.status_code == 200
    issues = response.json()
    assert len(issues) == 1
    assert issues[0]["severity"] == "error"


def test_open_session(open_doc):
    assert open_doc["state"] == "synced"
    assert open_doc["mode"] == "split"
    assert open_doc["stats"]["nodes"] == 3

    response = client.get("/api/sessions")
    assert DOC in response.json()

    # Opening twice is refused
    response = client.post(f"/api/sessions/{DOC}", json=make_workflow().model_dump(by_alias=True))
    assert response.status_code == 400


def test_edit_apply_flow(open_doc):
    text = open_doc["text"].replace('label: "Start"', 'label: "Begin"')

    # Blocking error refuses apply
    response = client.put(f"/api/sessions/{DOC}/text", json={"text": text + "\nfoo::bar"})
    assert response.json()["state"] == "error"
    response = client.post(f"/api/sessions/{DOC}/apply")
    assert response.status_code == 409
    assert response.json()["detail"]["issues"][0]["message"] == "Invalid syntax: double colon"

    # Fix and apply
    response = client.put(f"/api/sessions/{DOC}/text", json={"text": text})
    assert response.json()["state"] == "pending"
    response = client.post(f"/api/sessions/{DOC}/apply")
    assert response.status_code == 200
    assert response.json()["state"] == "synced"

    response = client.get(f"/api/sessions/{DOC}/workflow")
    assert response.json()["nodes"][0]["label"] == "Begin"


def test_undo_redo(open_doc):
    client.put(f"/api/sessions/{DOC}/text", json={"text": "changed"})

    response = client.post(f"/api/sessions/{DOC}/undo")
    assert response.json()["text"] == open_doc["text"]
    assert response.json()["state"] == "synced"
    assert response.json()["can_redo"] is True

    response = client.post(f"/api/sessions/{DOC}/redo")
    assert response.json()["text"] == "changed"


def test_export(open_doc):
    response = client.get(f"/api/sessions/{DOC}/export")
    assert response.status_code == 200
    assert response.text == open_doc["text"]
    assert 'filename="order-pipeline.flow.yaml"' in response.headers["content-disposition"]


def test_update_workflow_then_regenerate(open_doc):
    wf = make_workflow()
    wf.metadata.name = "Renamed"
    response = client.put(f"/api/sessions/{DOC}/workflow", json=wf.model_dump(by_alias=True))
    assert response.status_code == 200
    assert 'name: "Renamed"' not in response.json()["text"]

    response = client.post(f"/api/sessions/{DOC}/regenerate")
    assert 'name: "Renamed"' in response.json()["text"]


def test_visual_mode_rejects_edits(open_doc):
    response = client.put(f"/api/sessions/{DOC}/mode", json={"mode": "visual"})
    assert response.json()["text"] == ""

    response = client.put(f"/api/sessions/{DOC}/text", json={"text": "x"})
    assert response.status_code == 400


def test_unknown_document():
    assert client.get("/api/sessions/missing").status_code == 404
    assert client.post("/api/sessions/missing/apply").status_code == 404
    assert client.delete("/api/sessions/missing").status_code == 404


def test_close_session(open_doc):
    response = client.delete(f"/api/sessions/{DOC}")
    assert response.status_code == 200

    response = client.get("/api/sessions")
    assert DOC not in response.json()
