from pathlib import Path

import pytest

from pagemark.application.services.annotation_service import AnnotationService
from pagemark.core.errors import AnnotationNotFoundError, PermissionDeniedError, ValidationError
from pagemark.domain.models.annotation import STATUS_DONE, STATUS_PENDING, LineAnchor, PointAnchor
from pagemark.domain.models.page import Row
from pagemark.infrastructure.db.repos.annotation_repo import AnnotationRepo
from pagemark.infrastructure.db.sqlite import initialize_schema

ROWS = [Row(index=1, relative_y=0.1), Row(index=2, relative_y=0.4), Row(index=3, relative_y=0.8)]


def _service(tmp_path: Path) -> AnnotationService:
    db_path = tmp_path / "pagemark.db"
    initialize_schema(db_path)
    return AnnotationService(AnnotationRepo(db_path))


def test_create_line_comment_persists_pending_annotation(tmp_path: Path) -> None:
    service = _service(tmp_path)

    created = service.create_line_comment("doc-1", 2, 5, "  Missing comma  ", "alice")

    assert created.status == STATUS_PENDING
    assert created.created_at.endswith("Z")
    assert created.comment == "Missing comma"
    assert created.anchor == LineAnchor()
    assert service.get(created.id) == created
    assert [a.id for a in service.list_page("doc-1", 2)] == [created.id]
    assert service.list_page("doc-1", 1) == []


def test_create_click_comment_stores_point_and_nearest_line(tmp_path: Path) -> None:
    service = _service(tmp_path)

    created = service.create_click_comment("doc-1", 1, 0.3, 0.45, ROWS, "Odd figure", "alice")

    assert created.line_number == 2
    assert created.anchor == PointAnchor(x=0.3, y=0.45)
    assert service.get(created.id).anchor == PointAnchor(x=0.3, y=0.45)


def test_click_comment_accepts_edited_line_number(tmp_path: Path) -> None:
    service = _service(tmp_path)

    created = service.create_click_comment("doc-1", 1, 0.3, 0.45, ROWS, "Odd figure", "alice", line_number=3)

    assert created.line_number == 3
    assert created.is_point_anchored


def test_click_comment_without_rows_uses_line_one(tmp_path: Path) -> None:
    service = _service(tmp_path)

    created = service.create_click_comment("doc-1", 1, 0.5, 0.5, [], "Figure caption", "alice")

    assert created.line_number == 1


@pytest.mark.parametrize(
    "kwargs",
    [
        {"line_number": 0},
        {"line_number": -3},
        {"comment": "   "},
        {"page": 0},
        {"document_id": ""},
        {"author_id": " "},
    ],
)
def test_invalid_comments_are_rejected(tmp_path: Path, kwargs: dict) -> None:
    service = _service(tmp_path)
    args = {"document_id": "doc-1", "page": 1, "line_number": 2, "comment": "ok", "author_id": "alice"}
    args.update(kwargs)

    with pytest.raises(ValidationError):
        service.create_line_comment(**args)
    assert service.list_document("doc-1") == []


def test_list_document_orders_by_page_then_creation(tmp_path: Path) -> None:
    service = _service(tmp_path)
    late = service.create_line_comment("doc-1", 3, 1, "third page", "alice")
    first = service.create_line_comment("doc-1", 1, 1, "first", "alice")
    second = service.create_line_comment("doc-1", 1, 2, "second", "bob")
    service.create_line_comment("doc-2", 1, 1, "other document", "alice")

    assert [a.id for a in service.list_document("doc-1")] == [first.id, second.id, late.id]


def test_update_status_normalizes_and_validates(tmp_path: Path) -> None:
    service = _service(tmp_path)
    created = service.create_line_comment("doc-1", 1, 1, "Fix heading", "alice")

    updated = service.update_status(created.id, " DONE ")

    assert updated.status == STATUS_DONE
    assert updated.updated_at
    with pytest.raises(ValidationError):
        service.update_status(created.id, "archived")
    with pytest.raises(AnnotationNotFoundError):
        service.update_status("missing", STATUS_DONE)


def test_only_author_or_admin_may_delete(tmp_path: Path) -> None:
    service = _service(tmp_path)
    mine = service.create_line_comment("doc-1", 1, 1, "mine", "alice")
    other = service.create_line_comment("doc-1", 1, 2, "other", "alice")

    with pytest.raises(PermissionDeniedError):
        service.delete(mine.id, "bob")
    service.delete(mine.id, "alice")
    service.delete(other.id, "bob", is_admin=True)

    assert service.list_document("doc-1") == []
    with pytest.raises(AnnotationNotFoundError):
        service.delete(mine.id, "alice")


def test_delete_many_counts_removed_rows(tmp_path: Path) -> None:
    service = _service(tmp_path)
    a = service.create_line_comment("doc-1", 1, 1, "a", "alice")
    b = service.create_line_comment("doc-1", 1, 2, "b", "bob")
    keep = service.create_line_comment("doc-1", 1, 3, "c", "bob")

    assert service.delete_many([a.id, b.id, a.id, "missing"]) == 2
    assert [x.id for x in service.list_document("doc-1")] == [keep.id]
    with pytest.raises(ValidationError):
        service.delete_many(["", "  "])
