import io
import json
import urllib.error
import urllib.request
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from pagemark.application.services.annotation_service import AnnotationService
from pagemark.application.services.progress_service import ProgressService
from pagemark.core.config import AppPaths, Settings
from pagemark.core.errors import AnnotationNotFoundError, StoreUnavailableError
from pagemark.domain.models.annotation import PointAnchor
from pagemark.infrastructure.api.annotation_client import AnnotationApiClient
from pagemark.infrastructure.api.progress_client import ProgressApiClient
from pagemark.infrastructure.api.rest_client import JsonApiClient
from pagemark.infrastructure.stores import build_stores
from pagemark.web.app import create_app

BASE_URL = "http://testserver"


class _Response:
    def __init__(self, body: bytes) -> None:
        self._body = body

    def read(self) -> bytes:
        return self._body

    def __enter__(self):
        return self

    def __exit__(self, *exc) -> None:
        return None


def _paths(tmp_path: Path) -> AppPaths:
    root = tmp_path / "server"
    root.mkdir(parents=True, exist_ok=True)
    return AppPaths(project_root=root, pagemark_dir=root / ".pagemark", db_path=root / ".pagemark" / "pagemark.db")


@pytest.fixture()
def served(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> list[urllib.request.Request]:
    """Route urllib calls into an in-process review API."""
    client = TestClient(create_app(_paths(tmp_path)))
    seen: list[urllib.request.Request] = []

    def fake_urlopen(request: urllib.request.Request, timeout: float | None = None):
        seen.append(request)
        response = client.request(
            request.get_method(),
            request.full_url,
            content=request.data,
            headers=dict(request.header_items()),
        )
        if response.status_code >= 400:
            raise urllib.error.HTTPError(
                request.full_url,
                response.status_code,
                response.reason_phrase,
                response.headers,
                io.BytesIO(response.content),
            )
        return _Response(response.content)

    monkeypatch.setattr(urllib.request, "urlopen", fake_urlopen)
    return seen


def _settings() -> Settings:
    return Settings(api_url=BASE_URL, api_timeout_seconds=3.0, layout_wait_seconds=2.0)


def test_rest_stores_round_trip_through_api(tmp_path: Path, served: list) -> None:
    stores = build_stores(_paths(tmp_path), _settings(), user_id="alice")
    service = AnnotationService(stores.annotations)

    assert stores.backend == "rest"
    created = service.create_click_comment("doc-1", 2, 0.25, 0.75, [], "Check figure", "alice", line_number=4)

    assert created.anchor == PointAnchor(x=0.25, y=0.75)
    assert created.line_number == 4
    assert [a.id for a in service.list_page("doc-1", 2)] == [created.id]
    assert service.get(created.id).comment == "Check figure"
    assert served[0].get_header("X-user-id") == "alice"


def test_rest_progress_toggle_and_resume(tmp_path: Path, served: list) -> None:
    stores = build_stores(_paths(tmp_path), _settings(), user_id="alice")
    service = ProgressService(stores.progress)

    assert service.toggle("doc-1", "alice", 1).completed is True
    assert service.toggle("doc-1", "alice", 2).completed is True
    assert service.completed_pages("doc-1", "alice") == [1, 2]
    assert service.resume_page("doc-1", "alice", 3) == 3


def test_rest_admin_operations(tmp_path: Path, served: list) -> None:
    paths = _paths(tmp_path)
    author = AnnotationService(build_stores(paths, _settings(), user_id="alice").annotations)
    admin = AnnotationService(build_stores(paths, _settings(), user_id="root", role="admin").annotations)
    a = author.create_line_comment("doc-1", 1, 1, "one", "alice")
    b = author.create_line_comment("doc-1", 1, 2, "two", "alice")

    assert admin.update_status(a.id, "done").status == "done"
    assert admin.delete_many([a.id, b.id]) == 2
    assert author.list_document("doc-1") == []


def test_http_errors_map_to_domain_errors(tmp_path: Path, served: list) -> None:
    paths = _paths(tmp_path)
    alice = AnnotationService(build_stores(paths, _settings(), user_id="alice").annotations)
    bob_store = build_stores(paths, _settings(), user_id="bob").annotations
    created = alice.create_line_comment("doc-1", 1, 1, "mine", "alice")

    with pytest.raises(AnnotationNotFoundError):
        alice.get("missing")
    with pytest.raises(StoreUnavailableError) as excinfo:
        bob_store.delete(created.id)
    assert "own annotations" in str(excinfo.value)
    with pytest.raises(StoreUnavailableError):
        alice.update_status(created.id, "done")


def test_unreachable_backend_raises_store_unavailable(monkeypatch: pytest.MonkeyPatch) -> None:
    def refuse(request, timeout=None):
        raise urllib.error.URLError("connection refused")

    monkeypatch.setattr(urllib.request, "urlopen", refuse)
    client = AnnotationApiClient(JsonApiClient(BASE_URL, timeout=0.1))

    with pytest.raises(StoreUnavailableError):
        client.list("doc-1", 1)


def test_failed_envelope_raises_store_unavailable(monkeypatch: pytest.MonkeyPatch) -> None:
    body = json.dumps({"success": False, "error": {"message": "Database offline"}}).encode("utf-8")
    monkeypatch.setattr(urllib.request, "urlopen", lambda request, timeout=None: _Response(body))

    with pytest.raises(StoreUnavailableError, match="Database offline"):
        JsonApiClient(BASE_URL).request("GET", "/api/suggestions", params={"documentId": "doc-1"})


def test_local_stores_without_api_url(tmp_path: Path) -> None:
    settings = Settings(api_url=None, api_timeout_seconds=3.0, layout_wait_seconds=2.0)

    assert build_stores(_paths(tmp_path), settings).backend == "sqlite"



def _reply(monkeypatch: pytest.MonkeyPatch, body: bytes) -> None:
    monkeypatch.setattr(urllib.request, "urlopen", lambda request, timeout=None: _Response(body))


def test_empty_body_raises_store_unavailable(monkeypatch: pytest.MonkeyPatch) -> None:
    _reply(monkeypatch, b"")
    client = JsonApiClient(BASE_URL)

    with pytest.raises(StoreUnavailableError, match="empty response"):
        AnnotationApiClient(client).list("doc-1", 1)
    with pytest.raises(StoreUnavailableError):
        ProgressApiClient(client).get_completed_pages("doc-1", "alice")


def test_non_object_data_raises_store_unavailable(monkeypatch: pytest.MonkeyPatch) -> None:
    _reply(monkeypatch, json.dumps({"success": True, "data": ["not", "an", "object"]}).encode("utf-8"))

    with pytest.raises(StoreUnavailableError):
        AnnotationApiClient(JsonApiClient(BASE_URL)).list("doc-1", 1)


def test_incomplete_records_raise_store_unavailable(monkeypatch: pytest.MonkeyPatch) -> None:
    client = JsonApiClient(BASE_URL)

    _reply(monkeypatch, json.dumps({"success": True, "data": {"suggestions": [{"id": "a"}]}}).encode("utf-8"))
    with pytest.raises(StoreUnavailableError, match="Malformed annotation payload"):
        AnnotationApiClient(client).list("doc-1", 1)

    _reply(monkeypatch, json.dumps({"success": True, "data": {}}).encode("utf-8"))
    with pytest.raises(StoreUnavailableError):
        AnnotationApiClient(client).get("a")
    with pytest.raises(StoreUnavailableError):
        ProgressApiClient(client).toggle("doc-1", "alice", 1)

    _reply(monkeypatch, json.dumps({"success": True, "data": {"completedPages": ["one"]}}).encode("utf-8"))
    with pytest.raises(StoreUnavailableError):
        ProgressApiClient(client).get_completed_pages("doc-1", "alice")
