from __future__ import annotations

import io
from typing import Dict, List, Optional
from urllib.parse import quote

from fastapi import APIRouter, Body, File, Query, UploadFile
from fastapi.responses import StreamingResponse
from fastapi.concurrency import run_in_threadpool

from core.deps import GatewayDep
from core.errors import InvalidInput
from gateway.models import (
    BucketListingModel,
    BulkDeleteResponseModel,
    CopyResponseModel,
    DeleteResponseModel,
    ObjectInfoResponseModel,
    PresignedUploadResponseModel,
    PresignedUrlResponseModel,
    TagsResponseModel,
    UploadResponseModel,
)

router = APIRouter(tags=["storage"])


# ---------------------------------------------------------------------
# POST /upload
# ---------------------------------------------------------------------
@router.post("/upload", response_model=UploadResponseModel)
async def upload_file(
    gateway: GatewayDep,
    file: Optional[UploadFile] = File(None),
    bucket_name: Optional[str] = Query(None, alias="bucketName"),
):
    """Upload a file, creating the target bucket if it does not exist."""
    if file is None:
        raise InvalidInput("File is empty")
    try:
        data = await file.read()
    except Exception as exc:
        raise InvalidInput(f"Failed to read file: {exc}") from exc

    target = await run_in_threadpool(gateway.upload, file.filename, data, file.content_type, bucket_name)
    return UploadResponseModel(file=target.key, bucket=target.bucket, status="uploaded")


# ---------------------------------------------------------------------
# GET /download/{fileName}
# ---------------------------------------------------------------------
@router.get("/download/{fileName}")
def download_file(
    gateway: GatewayDep,
    fileName: str,
    bucket_name: Optional[str] = Query(None, alias="bucketName"),
):
    target, data = gateway.download(fileName, bucket_name)
    disposition = f"attachment; filename*=utf-8''{quote(target.key)}"
    return StreamingResponse(
        io.BytesIO(data),
        media_type="application/octet-stream",
        headers={"Content-Disposition": disposition},
    )


# ---------------------------------------------------------------------
# GET /list
# ---------------------------------------------------------------------
@router.get("/list", response_model=List[BucketListingModel])
def list_buckets(gateway: GatewayDep, prefix: Optional[str] = Query(None)):
    """All buckets and the objects they contain, optionally filtered by prefix."""
    return [
        BucketListingModel(bucket=b.bucket, created=b.created, count=b.count, objects=b.objects)
        for b in gateway.list_contents(prefix)
    ]


# ---------------------------------------------------------------------
# DELETE /delete/{fileName}
# ---------------------------------------------------------------------
@router.delete("/delete/{fileName}", response_model=DeleteResponseModel)
def delete_file(
    gateway: GatewayDep,
    fileName: str,
    bucket_name: Optional[str] = Query(None, alias="bucketName"),
):
    target = gateway.delete(fileName, bucket_name)
    return DeleteResponseModel(file=target.key, bucket=target.bucket, status="deleted")


# ---------------------------------------------------------------------
# DELETE /bulkdelete
# ---------------------------------------------------------------------
@router.delete("/bulkdelete", response_model=BulkDeleteResponseModel)
def bulk_delete(
    gateway: GatewayDep,
    bucket_name: Optional[str] = Query(None, alias="bucketName"),
    files: Optional[List[str]] = Body(None),
):
    result = gateway.bulk_delete(files, bucket_name)
    return BulkDeleteResponseModel(bucket=result.bucket, count=result.count, status="deleted")


# ---------------------------------------------------------------------
# POST /copy
# ---------------------------------------------------------------------
@router.post("/copy", response_model=CopyResponseModel)
def copy_object(
    gateway: GatewayDep,
    source: str = Query(...),
    destination: str = Query(...),
    source_bucket: Optional[str] = Query(None, alias="sourceBucket"),
    destination_bucket: Optional[str] = Query(None, alias="destinationBucket"),
    cut: bool = Query(False),
):
    """Copy (or, with cut=true, move) an object within or across buckets."""
    result = gateway.copy(source, destination, source_bucket, destination_bucket, cut)
    return CopyResponseModel(
        from_=str(result.source),
        to=str(result.destination),
        renamed=result.moved,
        status="moved" if result.moved else "copied",
    )


# ---------------------------------------------------------------------
# GET /presignedurl/{fileName}
# ---------------------------------------------------------------------
@router.get("/presignedurl/{fileName}", response_model=PresignedUrlResponseModel)
def presigned_url(
    gateway: GatewayDep,
    fileName: str,
    bucket_name: Optional[str] = Query(None, alias="bucketName"),
):
    grant = gateway.presigned_get(fileName, bucket_name)
    return PresignedUrlResponseModel(file=grant.target.key, bucket=grant.target.bucket, url=grant.url)


# ---------------------------------------------------------------------
# GET /presignedupload/{fileName}
# ---------------------------------------------------------------------
@router.get("/presignedupload/{fileName}", response_model=PresignedUploadResponseModel)
def presigned_upload(
    gateway: GatewayDep,
    fileName: str,
    bucket_name: Optional[str] = Query(None, alias="bucketName"),
):
    grant = gateway.presigned_put(fileName, bucket_name)
    minutes = int(grant.expiry.total_seconds() // 60)
    return PresignedUploadResponseModel(
        bucket=grant.target.bucket,
        file=grant.target.key,
        expiresIn=f"{minutes} minutes",
        url=grant.url,
    )


# ---------------------------------------------------------------------
# GET /info/{fileName}
# ---------------------------------------------------------------------
@router.get("/info/{fileName}", response_model=ObjectInfoResponseModel)
def object_info(
    gateway: GatewayDep,
    fileName: str,
    bucket_name: Optional[str] = Query(None, alias="bucketName"),
):
    meta = gateway.info(fileName, bucket_name)
    return ObjectInfoResponseModel(
        file=meta.target.key,
        bucket=meta.target.bucket,
        size=meta.size,
        contentType=meta.content_type,
        lastModified=meta.last_modified,
        metadata=meta.metadata,
        tags=meta.tags,
    )


# ---------------------------------------------------------------------
# POST /tags/{fileName}
# ---------------------------------------------------------------------
@router.post("/tags/{fileName}", response_model=TagsResponseModel)
def set_object_tags(
    gateway: GatewayDep,
    fileName: str,
    bucket_name: Optional[str] = Query(None, alias="bucketName"),
    tags: Optional[Dict[str, str]] = Body(None),
):
    """Replace the object's tag set (at most 10 entries)."""
    target, applied = gateway.set_tags(fileName, tags, bucket_name)
    return TagsResponseModel(file=target.key, bucket=target.bucket, tags=applied, status="tags-updated")
