from dataclasses import replace

import boto3
import pytest
from moto import mock_aws

from photoalbum.storage import BlobStore, LocalBlobStore, StorageError, build_blob_store
from photoalbum.storage_s3 import S3BlobStore


@pytest.fixture
def s3_settings(settings, monkeypatch):
    # boto3 must never see real credentials inside the mock.
    monkeypatch.setenv("AWS_ACCESS_KEY_ID", "testing")
    monkeypatch.setenv("AWS_SECRET_ACCESS_KEY", "testing")
    monkeypatch.delenv("AWS_PROFILE", raising=False)
    return replace(
        settings,
        storage_provider="s3",
        s3_bucket="test-photo-bucket",
        s3_region="us-east-1",
        s3_endpoint=None,
        s3_access_key_id="testing",
        s3_secret_access_key="testing",
        kms_key_id=None,
    )


def test_local_store_round_trip(blob_store, upload_dir):
    blob_store.put("abc.png", b"\x89PNG data", "image/png")

    assert (upload_dir / "abc.png").read_bytes() == b"\x89PNG data"
    assert blob_store.get("abc.png") == b"\x89PNG data"
    assert blob_store.exists("abc.png")
    assert blob_store.location_for("abc.png") == "/uploads/abc.png"


def test_local_store_delete_is_idempotent(blob_store):
    blob_store.put("gone.jpg", b"bytes")

    blob_store.delete("gone.jpg")
    blob_store.delete("gone.jpg")

    assert not blob_store.exists("gone.jpg")


def test_local_store_get_missing_key_raises(blob_store):
    blob_store.ensure_ready()

    with pytest.raises(StorageError):
        blob_store.get("never-written.png")


@pytest.mark.parametrize("key", ["", "..", "../escape.png", "nested/key.png", "win\\key.png"])
def test_local_store_rejects_keys_outside_root(blob_store, key):
    with pytest.raises(StorageError):
        blob_store.put(key, b"x")


def test_local_store_ensure_ready_creates_directory(tmp_path):
    store = LocalBlobStore(tmp_path / "a" / "b")

    store.ensure_ready()

    assert store.root.is_dir()


def test_s3_store_round_trip(s3_settings):
    with mock_aws():
        boto3.client("s3", region_name="us-east-1").create_bucket(Bucket="test-photo-bucket")
        store = S3BlobStore(s3_settings)

        store.put("k1.jpg", b"jpeg bytes", "image/jpeg")

        assert store.exists("k1.jpg")
        assert store.get("k1.jpg") == b"jpeg bytes"
        head = boto3.client("s3", region_name="us-east-1").head_object(
            Bucket="test-photo-bucket", Key="k1.jpg"
        )
        assert head["ContentType"] == "image/jpeg"
        assert head["Metadata"]["managed-by"] == "photo-album"
        assert store.location_for("k1.jpg") == "s3://test-photo-bucket/k1.jpg"

        store.delete("k1.jpg")

        assert store.exists("k1.jpg") is False


def test_s3_store_get_missing_key_raises(s3_settings):
    with mock_aws():
        boto3.client("s3", region_name="us-east-1").create_bucket(Bucket="test-photo-bucket")
        store = S3BlobStore(s3_settings)

        with pytest.raises(StorageError):
            store.get("missing.png")


def test_s3_store_ensure_ready_creates_bucket(s3_settings):
    with mock_aws():
        store = S3BlobStore(s3_settings)

        store.ensure_ready()

        buckets = boto3.client("s3", region_name="us-east-1").list_buckets()["Buckets"]
        assert "test-photo-bucket" in [b["Name"] for b in buckets]


def test_build_blob_store_selects_local(settings, upload_dir):
    store = build_blob_store(replace(settings, storage_provider="local"))

    assert isinstance(store, LocalBlobStore)
    assert isinstance(store, BlobStore)
    assert store.root == upload_dir.resolve()


def test_build_blob_store_selects_s3(s3_settings):
    with mock_aws():
        store = build_blob_store(s3_settings)

    assert isinstance(store, S3BlobStore)
    assert store.bucket == "test-photo-bucket"


def test_build_blob_store_rejects_unknown_provider(settings):
    with pytest.raises(ValueError):
        build_blob_store(replace(settings, storage_provider="ftp"))
