from __future__ import annotations

import pytest

from core.errors import BackendError, InvalidInput, NotFound
from gateway.service import PRESIGN_EXPIRY, ObjectGateway, ensure_bucket
from providers.storage import StorageError


@pytest.fixture
def gateway(store):
    return ObjectGateway(store, default_bucket="files")


# -----------------------------
# Upload / Download
# -----------------------------

def test_upload_creates_bucket_and_info_reports_size_and_type(gateway, store):
    target = gateway.upload("notes.pdf", b"0123456789", "application/pdf", "mybucket")

    assert (target.bucket, target.key) == ("mybucket", "notes.pdf")
    assert "mybucket" in store.buckets

    meta = gateway.info("notes.pdf", "mybucket")
    assert meta.size == 10
    assert meta.content_type == "application/pdf"
    assert meta.tags == {}


def test_upload_defaults_bucket_and_content_type(gateway, store):
    target = gateway.upload("a.bin", b"x", None)
    assert target.bucket == "files"
    assert store.buckets["files"]["a.bin"]["content_type"] == "application/octet-stream"


def test_upload_strips_directory_components(gateway, store):
    target = gateway.upload("../../etc/passwd", b"root", None, "mybucket")
    assert target.key == "passwd"
    assert list(store.buckets["mybucket"]) == ["passwd"]


def test_upload_empty_payload_is_invalid_and_touches_nothing(gateway, store):
    with pytest.raises(InvalidInput):
        gateway.upload("empty.txt", b"", "text/plain")
    assert store.calls == []


def test_upload_bucket_race_is_not_an_error(gateway, store, monkeypatch):
    # bucket_exists says no, but someone else creates it first
    store.seed("mybucket", "other.txt")
    monkeypatch.setattr(store, "bucket_exists", lambda bucket: False)

    target = gateway.upload("notes.pdf", b"abc", None, "mybucket")
    assert target.key == "notes.pdf"
    assert "notes.pdf" in store.buckets["mybucket"]


def test_upload_backend_failure_is_backend_error(gateway, store):
    store.fail_ops["put_object"] = StorageError("connection reset")
    with pytest.raises(BackendError):
        gateway.upload("a.txt", b"abc")


def test_round_trip_returns_identical_bytes(gateway):
    payload = bytes(range(256)) * 4
    gateway.upload("blob.bin", payload, None, "mybucket")
    target, data = gateway.download("blob.bin", "mybucket")
    assert data == payload
    assert str(target) == "mybucket/blob.bin"


def test_download_missing_bucket_is_not_found(gateway):
    with pytest.raises(NotFound) as ei:
        gateway.download("notes.pdf", "nope")
    assert "does not exist" in ei.value.message


def test_download_missing_object_is_not_found(gateway, store):
    store.seed("mybucket", "other.txt")
    with pytest.raises(NotFound) as ei:
        gateway.download("notes.pdf", "mybucket")
    assert "notes.pdf" in ei.value.message


# -----------------------------
# List
# -----------------------------

def test_list_reports_every_bucket_with_counts(gateway, store):
    gateway.upload("notes.pdf", b"0123456789", "application/pdf", "mybucket")
    store.seed("archive", "a.txt")
    store.seed("archive", "b.txt")

    listings = {b.bucket: b for b in gateway.list_contents()}
    assert listings["mybucket"].objects == ["notes.pdf"]
    assert listings["mybucket"].count == 1
    assert listings["archive"].count == 2


def test_list_applies_prefix(gateway, store):
    store.seed("mybucket", "report-1.pdf")
    store.seed("mybucket", "summary.pdf")
    [listing] = gateway.list_contents("report")
    assert listing.objects == ["report-1.pdf"]


def test_list_failure_midway_discards_partial_result(gateway, store):
    store.seed("a", "1.txt")
    store.seed("b", "1.txt")
    store.seed("b", "2.txt")
    store.list_fail_after["b"] = 1

    with pytest.raises(BackendError):
        gateway.list_contents()


# -----------------------------
# Delete / BulkDelete
# -----------------------------

def test_delete_is_idempotent(gateway, store):
    store.seed("mybucket", "notes.pdf")
    gateway.delete("notes.pdf", "mybucket")
    target = gateway.delete("notes.pdf", "mybucket")

    assert target.key == "notes.pdf"
    assert "notes.pdf" not in store.buckets["mybucket"]


def test_bulk_delete_reports_input_count(gateway, store):
    for k in ("a.txt", "b.txt", "c.txt"):
        store.seed("mybucket", k)

    result = gateway.bulk_delete(["a.txt", "b.txt", "c.txt", "missing.txt"], "mybucket")
    assert result.count == 4
    assert result.bucket == "mybucket"
    assert store.buckets["mybucket"] == {}


def test_bulk_delete_empty_list_is_invalid(gateway, store):
    with pytest.raises(InvalidInput):
        gateway.bulk_delete([], "mybucket")
    with pytest.raises(InvalidInput):
        gateway.bulk_delete(None, "mybucket")
    assert store.calls == []


def test_bulk_delete_ignores_already_missing_keys(gateway, store):
    store.seed("mybucket", "a.txt")
    store.delete_failures["gone.txt"] = "NoSuchKey"
    result = gateway.bulk_delete(["a.txt", "gone.txt"], "mybucket")
    assert result.count == 2


def test_bulk_delete_surfaces_per_key_failures(gateway, store):
    store.seed("mybucket", "a.txt")
    store.seed("mybucket", "locked.txt")
    store.delete_failures["locked.txt"] = "AccessDenied"

    with pytest.raises(BackendError) as ei:
        gateway.bulk_delete(["a.txt", "locked.txt"], "mybucket")
    assert "locked.txt" in ei.value.message


# -----------------------------
# Copy / Move
# -----------------------------

def test_copy_keeps_source(gateway, store):
    store.seed("a", "x.txt", b"hello")
    store.seed("b", "placeholder")

    result = gateway.copy("x.txt", "y.txt", "a", "b")
    assert result.moved is False
    assert str(result.source) == "a/x.txt"
    assert str(result.destination) == "b/y.txt"
    assert store.buckets["a"]["x.txt"]["data"] == b"hello"
    assert store.buckets["b"]["y.txt"]["data"] == b"hello"


def test_move_removes_source(gateway, store):
    store.seed("a", "x.txt", b"hello")
    store.seed("b", "placeholder")

    result = gateway.copy("x.txt", "y.txt", "a", "b", cut=True)
    assert result.moved is True
    assert "y.txt" in store.buckets["b"]

    with pytest.raises(NotFound):
        gateway.info("x.txt", "a")


def test_move_with_failed_copy_leaves_source(gateway, store):
    store.seed("a", "x.txt", b"hello")
    store.fail_ops["copy_object"] = StorageError("destination unreachable")

    with pytest.raises(BackendError):
        gateway.copy("x.txt", "y.txt", "a", "b", cut=True)

    assert store.buckets["a"]["x.txt"]["data"] == b"hello"
    assert "remove_object" not in store.ops()


def test_copy_missing_source_is_not_found(gateway, store):
    store.seed("a", "other.txt")
    with pytest.raises(NotFound) as ei:
        gateway.copy("x.txt", "y.txt", "a", "a")
    assert "Source file" in ei.value.message
    assert "copy_object" not in store.ops()


# -----------------------------
# Presigned URLs
# -----------------------------

def test_presigned_get_does_not_check_existence(gateway, store):
    grant = gateway.presigned_get("ghost.pdf", "mybucket")
    assert grant.url.startswith("http://fake-store/mybucket/ghost.pdf")
    assert grant.expiry == PRESIGN_EXPIRY
    assert "stat_object" not in store.ops()


def test_presigned_put_provisions_bucket(gateway, store):
    grant = gateway.presigned_put("new.pdf", "uploads")
    assert "uploads" in store.buckets
    assert "X-Amz-Expires=600" in grant.url


# -----------------------------
# Info / Tags
# -----------------------------

def test_info_missing_object_is_not_found(gateway, store):
    store.seed("mybucket", "other.txt")
    with pytest.raises(NotFound):
        gateway.info("notes.pdf", "mybucket")


def test_set_tags_replaces_instead_of_merging(gateway, store):
    store.seed("mybucket", "notes.pdf")
    gateway.set_tags("notes.pdf", {"a": "1", "b": "2"}, "mybucket")
    _, applied = gateway.set_tags("notes.pdf", {"c": "3"}, "mybucket")

    assert applied == {"c": "3"}
    assert gateway.info("notes.pdf", "mybucket").tags == {"c": "3"}


def test_set_tags_null_is_invalid(gateway, store):
    with pytest.raises(InvalidInput):
        gateway.set_tags("notes.pdf", None, "mybucket")
    assert store.calls == []


def test_set_tags_over_cap_is_backend_error(gateway, store):
    store.seed("mybucket", "notes.pdf")
    tags = {f"k{i}": str(i) for i in range(11)}
    with pytest.raises(BackendError):
        gateway.set_tags("notes.pdf", tags, "mybucket")
    assert gateway.info("notes.pdf", "mybucket").tags == {}


# -----------------------------
# ensure_bucket
# -----------------------------

def test_ensure_bucket_reports_creation(store):
    assert ensure_bucket(store, "fresh") is True
    assert ensure_bucket(store, "fresh") is False
    assert store.ops().count("make_bucket") == 1
