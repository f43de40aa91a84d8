from __future__ import annotations

from contextlib import contextmanager
from datetime import timedelta
from typing import Any, BinaryIO, Dict, Iterable, Iterator, List, Optional

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from core.settings import StorageSettings
from providers.storage import (
    BucketAlreadyExistsError,
    BucketInfo,
    BucketNotFoundError,
    DeleteFailure,
    ObjectNotFoundError,
    ObjectStat,
    ObjectStoreClient,
    StorageError,
)

# HEAD requests carry no error body, so botocore reports the bare status code
_OBJECT_MISSING = ("NoSuchKey", "NoSuchObject", "404", "NotFound")
_BUCKET_MISSING = ("NoSuchBucket",)
_BUCKET_EXISTS = ("BucketAlreadyOwnedByYou", "BucketAlreadyExists")

# S3 DeleteObjects accepts at most 1000 keys per request
_DELETE_BATCH = 1000

# S3 object tagging limit
MAX_OBJECT_TAGS = 10


def _error_code(e: ClientError) -> str:
    return str((e.response or {}).get("Error", {}).get("Code", "") or "")


def _from_client_error(e: ClientError, what: str) -> StorageError:
    code = _error_code(e)
    msg = f"{what}: {e}"
    if code in _BUCKET_MISSING:
        return BucketNotFoundError(msg, code=code)
    if code in _OBJECT_MISSING:
        return ObjectNotFoundError(msg, code=code)
    if code in _BUCKET_EXISTS:
        return BucketAlreadyExistsError(msg, code=code)
    return StorageError(msg, code=code)


@contextmanager
def _translated(what: str):
    try:
        yield
    except ClientError as e:
        raise _from_client_error(e, what) from e
    except BotoCoreError as e:
        raise StorageError(f"{what}: {e}") from e


class S3ObjectStore(ObjectStoreClient):
    """
    boto3 implementation of ObjectStoreClient for any S3-compatible endpoint.

    Uses path-style addressing so it works against MinIO as well as AWS.
    """

    def __init__(self, s3: Any, region: Optional[str] = None) -> None:
        self.s3 = s3
        self.region = region

    @classmethod
    def from_settings(cls, settings: StorageSettings) -> "S3ObjectStore":
        cfg = Config(
            retries={"max_attempts": 3, "mode": "standard"},
            region_name=settings.region or "us-east-1",
            signature_version="s3v4",
            s3={"addressing_style": "path"},
        )
        s3 = boto3.client(
            "s3",
            endpoint_url=settings.endpoint_url,
            aws_access_key_id=settings.access_key or None,
            aws_secret_access_key=settings.secret_key or None,
            config=cfg,
        )
        return cls(s3, region=settings.region)

    def bucket_exists(self, bucket: str) -> bool:
        try:
            with _translated(f"head_bucket({bucket})"):
                self.s3.head_bucket(Bucket=bucket)
        except (BucketNotFoundError, ObjectNotFoundError):
            return False
        return True

    def make_bucket(self, bucket: str) -> None:
        with _translated(f"create_bucket({bucket})"):
            if self.region and self.region != "us-east-1":
                # us-east-1 takes no LocationConstraint
                self.s3.create_bucket(
                    Bucket=bucket,
                    CreateBucketConfiguration={"LocationConstraint": self.region},
                )
            else:
                self.s3.create_bucket(Bucket=bucket)

    def list_buckets(self) -> List[BucketInfo]:
        with _translated("list_buckets"):
            resp = self.s3.list_buckets()
        return [BucketInfo(name=b.get("Name", ""), created=b.get("CreationDate")) for b in resp.get("Buckets") or []]

    def stat_object(self, bucket: str, key: str) -> ObjectStat:
        with _translated(f"head_object({bucket}/{key})"):
            resp = self.s3.head_object(Bucket=bucket, Key=key)
        return ObjectStat(
            bucket=bucket,
            key=key,
            size=int(resp.get("ContentLength") or 0),
            content_type=resp.get("ContentType") or "application/octet-stream",
            last_modified=resp.get("LastModified"),
            metadata=dict(resp.get("Metadata") or {}),
        )

    def put_object(
        self,
        bucket: str,
        key: str,
        data: BinaryIO,
        length: int,
        content_type: str = "application/octet-stream",
        metadata: Optional[Dict[str, str]] = None,
    ) -> None:
        kwargs: Dict[str, Any] = {
            "Bucket": bucket,
            "Key": key,
            "Body": data,
            "ContentLength": int(length),
            "ContentType": content_type or "application/octet-stream",
        }
        if metadata:
            # S3 metadata keys must be strings
            kwargs["Metadata"] = {str(kk): str(vv) for kk, vv in metadata.items() if vv is not None}
        with _translated(f"put_object({bucket}/{key})"):
            self.s3.put_object(**kwargs)

    def get_object(self, bucket: str, key: str) -> bytes:
        with _translated(f"get_object({bucket}/{key})"):
            resp = self.s3.get_object(Bucket=bucket, Key=key)
            body = resp["Body"]
            try:
                return body.read()
            finally:
                body.close()

    def remove_object(self, bucket: str, key: str) -> None:
        try:
            with _translated(f"delete_object({bucket}/{key})"):
                self.s3.delete_object(Bucket=bucket, Key=key)
        except ObjectNotFoundError:
            return

    def remove_objects(self, bucket: str, keys: Iterable[str]) -> List[DeleteFailure]:
        keys = list(keys)
        failures: List[DeleteFailure] = []
        for start in range(0, len(keys), _DELETE_BATCH):
            chunk = keys[start:start + _DELETE_BATCH]
            with _translated(f"delete_objects({bucket})"):
                resp = self.s3.delete_objects(
                    Bucket=bucket,
                    Delete={"Objects": [{"Key": k} for k in chunk], "Quiet": True},
                )
            for err in resp.get("Errors") or []:
                failures.append(
                    DeleteFailure(
                        key=err.get("Key", ""),
                        code=err.get("Code", ""),
                        message=err.get("Message", ""),
                    )
                )
        return failures

    def copy_object(self, src_bucket: str, src_key: str, dst_bucket: str, dst_key: str) -> None:
        with _translated(f"copy_object({src_bucket}/{src_key} -> {dst_bucket}/{dst_key})"):
            self.s3.copy_object(
                Bucket=dst_bucket,
                Key=dst_key,
                CopySource={"Bucket": src_bucket, "Key": src_key},
            )

    def list_objects(self, bucket: str, prefix: str = "") -> Iterator[str]:
        params: Dict[str, Any] = {"Bucket": bucket, "Prefix": prefix or ""}
        with _translated(f"list_objects_v2({bucket})"):
            paginator = self.s3.get_paginator("list_objects_v2")
            for page in paginator.paginate(**params):
                for item in page.get("Contents") or []:
                    yield item["Key"]

    def get_object_tags(self, bucket: str, key: str) -> Dict[str, str]:
        with _translated(f"get_object_tagging({bucket}/{key})"):
            resp = self.s3.get_object_tagging(Bucket=bucket, Key=key)
        return {t["Key"]: t.get("Value", "") for t in resp.get("TagSet") or []}

    def set_object_tags(self, bucket: str, key: str, tags: Dict[str, str]) -> None:
        if len(tags) > MAX_OBJECT_TAGS:
            raise StorageError(
                f"put_object_tagging({bucket}/{key}): at most {MAX_OBJECT_TAGS} object tags allowed, got {len(tags)}"
            )
        tag_set = [{"Key": str(k), "Value": "" if v is None else str(v)} for k, v in tags.items()]
        with _translated(f"put_object_tagging({bucket}/{key})"):
            self.s3.put_object_tagging(Bucket=bucket, Key=key, Tagging={"TagSet": tag_set})

    def _presign(self, method: str, bucket: str, key: str, expires: timedelta) -> str:
        with _translated(f"presign {method}({bucket}/{key})"):
            return self.s3.generate_presigned_url(
                ClientMethod=method,
                Params={"Bucket": bucket, "Key": key},
                ExpiresIn=max(1, int(expires.total_seconds())),
            )

    def presigned_get_object(self, bucket: str, key: str, expires: timedelta) -> str:
        return self._presign("get_object", bucket, key, expires)

    def presigned_put_object(self, bucket: str, key: str, expires: timedelta) -> str:
        return self._presign("put_object", bucket, key, expires)
