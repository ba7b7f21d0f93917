from pathlib import Path

from fastapi.testclient import TestClient

from pagemark.core.config import AppPaths
from pagemark.web.app import create_app


def _paths(tmp_path: Path) -> AppPaths:
    project_root = tmp_path / "proj"
    project_root.mkdir(parents=True, exist_ok=True)
    return AppPaths(
        project_root=project_root,
        pagemark_dir=project_root / ".pagemark",
        db_path=project_root / ".pagemark" / "pagemark.db",
    )


def _client(tmp_path: Path) -> TestClient:
    return TestClient(create_app(_paths(tmp_path)))


ALICE = {"X-User-Id": "alice"}
ADMIN = {"X-User-Id": "root", "X-User-Role": "admin"}


def _create(client: TestClient, **overrides) -> dict:
    body = {"documentId": "doc-1", "page": 1, "lineNumber": 2, "comment": "Typo here"}
    body.update(overrides)
    r = client.post("/api/suggestions", json=body, headers=ALICE)
    assert r.status_code == 201, r.text
    return r.json()["data"]["suggestion"]


def test_health(tmp_path: Path) -> None:
    r = _client(tmp_path).get("/api/health")

    assert r.status_code == 200
    assert r.json()["data"]["status"] == "ok"


def test_suggestion_lifecycle(tmp_path: Path) -> None:
    client = _client(tmp_path)

    created = _create(client)
    assert created["authorId"] == "alice"
    assert created["status"] == "pending"
    assert created["anchor"] == {"type": "line"}

    point = _create(client, lineNumber=None, anchor={"type": "point", "x": 0.2, "y": 0.5},
                    rows=[{"index": 1, "relativeY": 0.1}, {"index": 2, "relativeY": 0.48}])
    assert point["lineNumber"] == 2
    assert point["anchor"] == {"type": "point", "x": 0.2, "y": 0.5}

    listed = client.get("/api/suggestions", params={"documentId": "doc-1", "page": 1}).json()["data"]
    assert listed["count"] == 2
    assert [s["id"] for s in listed["suggestions"]] == [created["id"], point["id"]]

    r = client.get(f"/api/suggestions/{created['id']}")
    assert r.status_code == 200
    assert r.json()["data"]["suggestion"]["comment"] == "Typo here"
    assert client.get("/api/suggestions/missing").status_code == 404


def test_create_validation_errors(tmp_path: Path) -> None:
    client = _client(tmp_path)

    no_user = client.post("/api/suggestions", json={"documentId": "d", "page": 1, "lineNumber": 1, "comment": "x"})
    bad_line = client.post(
        "/api/suggestions", json={"documentId": "d", "page": 1, "lineNumber": 0, "comment": "x"}, headers=ALICE
    )
    blank = client.post(
        "/api/suggestions", json={"documentId": "d", "page": 1, "lineNumber": 1, "comment": "  "}, headers=ALICE
    )
    missing_line = client.post("/api/suggestions", json={"documentId": "d", "page": 1, "comment": "x"}, headers=ALICE)

    assert no_user.status_code == 401
    assert bad_line.status_code == 400
    assert "valid line number" in bad_line.json()["detail"]
    assert blank.status_code == 400
    assert missing_line.status_code == 400


def test_status_update_requires_admin(tmp_path: Path) -> None:
    client = _client(tmp_path)
    created = _create(client)

    denied = client.patch(f"/api/suggestions/{created['id']}/status", json={"status": "done"}, headers=ALICE)
    invalid = client.patch(f"/api/suggestions/{created['id']}/status", json={"status": "later"}, headers=ADMIN)
    ok = client.patch(f"/api/suggestions/{created['id']}/status", json={"status": "in_progress"}, headers=ADMIN)

    assert denied.status_code == 403
    assert invalid.status_code == 400
    assert ok.status_code == 200
    assert ok.json()["data"]["suggestion"]["status"] == "in_progress"


def test_delete_rules(tmp_path: Path) -> None:
    client = _client(tmp_path)
    created = _create(client)
    other = _create(client)

    assert client.delete(f"/api/suggestions/{created['id']}").status_code == 401
    assert client.delete(f"/api/suggestions/{created['id']}", headers={"X-User-Id": "bob"}).status_code == 403
    assert client.delete(f"/api/suggestions/{created['id']}", headers=ALICE).status_code == 200
    assert client.delete(f"/api/suggestions/{created['id']}", headers=ALICE).status_code == 404
    assert client.delete(f"/api/suggestions/{other['id']}", headers=ADMIN).status_code == 200


def test_bulk_delete_is_admin_only(tmp_path: Path) -> None:
    client = _client(tmp_path)
    ids = [_create(client)["id"] for _ in range(3)]

    assert client.post("/api/suggestions/delete-multiple", json={"ids": ids}, headers=ALICE).status_code == 403
    r = client.post("/api/suggestions/delete-multiple", json={"ids": ids[:2]}, headers=ADMIN)
    assert r.status_code == 200
    assert r.json()["data"]["deletedCount"] == 2
    assert client.post("/api/suggestions/delete-multiple", json={"ids": []}, headers=ADMIN).status_code == 400


def test_progress_toggle_and_resume(tmp_path: Path) -> None:
    client = _client(tmp_path)

    for page in (1, 2, 4):
        r = client.post("/api/progress/toggle", json={"documentId": "doc-1", "page": page}, headers=ALICE)
        assert r.status_code == 200
        assert r.json()["data"]["progress"]["completed"] is True

    user = client.get("/api/progress/user", params={"documentId": "doc-1"}, headers=ALICE).json()["data"]
    assert user["completedPages"] == [1, 2, 4]

    resume = client.get("/api/progress/resume", params={"documentId": "doc-1", "totalPages": 5}, headers=ALICE)
    assert resume.json()["data"]["page"] == 3

    r = client.post("/api/progress/toggle", json={"documentId": "doc-1", "page": 2}, headers=ALICE)
    assert r.json()["data"]["progress"]["completed"] is False
    assert "incomplete" in r.json()["message"]

    bad = client.post("/api/progress/toggle", json={"documentId": "doc-1", "page": 0}, headers=ALICE)
    assert bad.status_code == 400


def test_rows_layout_and_click_anchor(tmp_path: Path) -> None:
    client = _client(tmp_path)
    page = {
        "page": 1,
        "height": 1000,
        "items": [
            {"type": "fragment", "top": 500},
            {"type": "fragment", "top": 500},
            {"type": "break"},
            {"type": "fragment", "top": 100},
            {"type": "fragment", "top": 100},
            {"type": "break"},
            {"type": "fragment", "top": 900},
            {"type": "end"},
        ],
    }

    rows_data = client.post("/api/pages/rows", json=page).json()["data"]
    assert rows_data["state"] == "ready"
    assert rows_data["rows"] == [{"index": 1, "relativeY": 0.1}, {"index": 2, "relativeY": 0.5}]

    first = _create(client, lineNumber=2)
    second = _create(client, lineNumber=2)
    orphan = _create(client, lineNumber=7)

    layout = client.post(
        "/api/pages/layout",
        json={"documentId": "doc-1", "page": 1, "rows": rows_data["rows"], "selectedId": second["id"]},
    ).json()["data"]
    placements = {p["annotationId"]: p for p in layout["placements"]}
    assert (placements[first["id"]]["x"], placements[second["id"]]["x"]) == (8.0, 16.0)
    assert placements[second["id"]]["active"] is True
    assert layout["unplaceableIds"] == [orphan["id"]]

    click = client.post("/api/pages/click-anchor", json={"x": 0.3, "y": 0.45, "rows": rows_data["rows"]})
    assert click.json()["data"] == {"lineNumber": 2, "point": {"x": 0.3, "y": 0.45}}
    assert client.post("/api/pages/click-anchor", json={"x": 1.5, "y": 0.1}).status_code == 400


def test_rows_reject_unknown_items(tmp_path: Path) -> None:
    r = _client(tmp_path).post("/api/pages/rows", json={"page": 1, "height": 100, "items": [{"type": "svg"}]})

    assert r.status_code == 400
