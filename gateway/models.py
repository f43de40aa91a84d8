from __future__ import annotations

from datetime import datetime
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

# Field names are the wire names; camelCase is intentional.


class UploadResponseModel(BaseModel):
    file: str
    bucket: str
    status: str = "uploaded"


class BucketListingModel(BaseModel):
    bucket: str
    created: Optional[datetime] = None
    count: int
    objects: List[str]


class DeleteResponseModel(BaseModel):
    file: str
    bucket: str
    status: str = "deleted"


class BulkDeleteResponseModel(BaseModel):
    bucket: str
    count: int
    status: str = "deleted"


class CopyResponseModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    from_: str = Field(alias="from")
    to: str
    renamed: bool
    status: str


class PresignedUrlResponseModel(BaseModel):
    file: str
    bucket: str
    url: str


class PresignedUploadResponseModel(BaseModel):
    bucket: str
    file: str
    expiresIn: str = "10 minutes"
    url: str


class ObjectInfoResponseModel(BaseModel):
    file: str
    bucket: str
    size: int
    contentType: str
    lastModified: Optional[datetime] = None
    metadata: Dict[str, str] = {}
    tags: Dict[str, str] = {}


class TagsResponseModel(BaseModel):
    file: str
    bucket: str
    tags: Dict[str, str]
    status: str = "tags-updated"
