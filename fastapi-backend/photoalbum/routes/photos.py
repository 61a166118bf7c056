"""Gallery routes: listing, multi-file upload, detail, file serving and delete."""

from __future__ import annotations

from datetime import datetime
from typing import List, Optional
import logging
import os

from fastapi import APIRouter, Depends, File, HTTPException, Request, Response, UploadFile, status
from fastapi.responses import JSONResponse, RedirectResponse
from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from ..dependencies import get_photo_service
from ..errors import PhotoNotFoundError, StorageReadError, UploadResult
from ..models import Photo, as_utc
from ..photo_service import PhotoService
from ..upload_metrics import (
    PHOTO_DELETIONS,
    UPLOAD_ATTEMPTS,
    UPLOAD_FAILURES,
    UPLOAD_SUCCESSES,
)

logger = logging.getLogger("photoalbum.routes.photos")

router = APIRouter()

CACHE_CONTROL = "public, max-age=31536000"


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class PhotoResponse(CamelModel):
    id: int
    original_file_name: str
    stored_key: str
    file_path: str
    file_size: int
    mime_type: str
    uploaded_at: datetime
    width: Optional[int] = None
    height: Optional[int] = None


class GalleryResponse(CamelModel):
    count: int
    photos: List[PhotoResponse]


class FailedUpload(CamelModel):
    file_name: str
    error: str
    error_code: str


class UploadResponse(CamelModel):
    success: bool
    uploaded_photos: List[PhotoResponse]
    failed_uploads: List[FailedUpload]


class DetailResponse(CamelModel):
    photo: PhotoResponse
    previous_photo_id: Optional[int] = None
    next_photo_id: Optional[int] = None


def _serialize_photo(photo: Photo) -> PhotoResponse:
    return PhotoResponse(
        id=photo.id,
        original_file_name=photo.original_file_name,
        stored_key=photo.stored_key,
        file_path=photo.location_path,
        file_size=photo.file_size_bytes,
        mime_type=photo.mime_type,
        uploaded_at=as_utc(photo.uploaded_at),
        width=photo.width,
        height=photo.height,
    )


def _stream_size(upload: UploadFile) -> int:
    if upload.size is not None:
        return upload.size
    stream = upload.file
    stream.seek(0, os.SEEK_END)
    size = stream.tell()
    stream.seek(0)
    return size


def _etag_matches(if_none_match: Optional[str], etag: str) -> bool:
    if not if_none_match:
        return False
    candidates = {tag.strip().removeprefix("W/") for tag in if_none_match.split(",")}
    return "*" in candidates or etag in candidates


@router.get("/", response_model=GalleryResponse)
async def list_photos(service: PhotoService = Depends(get_photo_service)):
    photos = await service.list_all()
    return GalleryResponse(count=len(photos), photos=[_serialize_photo(p) for p in photos])


@router.post("/upload", response_model=UploadResponse)
async def upload_photos(
    files: Optional[List[UploadFile]] = File(None),
    service: PhotoService = Depends(get_photo_service),
):
    """Store every file part independently and report per-file outcomes."""
    # An empty file input still posts one part with no filename.
    uploads = [f for f in files or [] if f.filename]
    try:
        if not uploads:
            return JSONResponse(
                status_code=status.HTTP_400_BAD_REQUEST,
                content={"success": False, "error": "No files provided"},
            )

        results: List[UploadResult] = []
        for upload in uploads:
            UPLOAD_ATTEMPTS.inc()
            result = await service.upload(
                upload.filename,
                upload.content_type or "",
                _stream_size(upload),
                upload.file,
            )
            if result.success:
                UPLOAD_SUCCESSES.inc()
            else:
                UPLOAD_FAILURES.labels(reason=result.error.kind.value).inc()
            results.append(result)
    finally:
        for upload in files or []:
            await upload.close()

    uploaded = [_serialize_photo(r.photo) for r in results if r.success]
    failed = [
        FailedUpload(file_name=r.file_name, error=r.error.message, error_code=r.error.kind.value)
        for r in results
        if not r.success
    ]
    return UploadResponse(success=bool(uploaded), uploaded_photos=uploaded, failed_uploads=failed)


@router.get("/detail/{photo_id}", response_model=DetailResponse)
async def photo_detail(photo_id: int, service: PhotoService = Depends(get_photo_service)):
    detail = await service.get_detail(photo_id)
    if detail is None:
        raise HTTPException(status_code=404, detail="Photo not found")
    return DetailResponse(
        photo=_serialize_photo(detail.photo),
        previous_photo_id=detail.previous_photo_id,
        next_photo_id=detail.next_photo_id,
    )


@router.get("/photo/{photo_id}")
async def serve_photo(
    photo_id: int,
    request: Request,
    service: PhotoService = Depends(get_photo_service),
):
    # A record whose blob is gone is a 404 even for a conditional request.
    try:
        photo, data = await service.read_photo(photo_id)
    except (PhotoNotFoundError, StorageReadError):
        raise HTTPException(status_code=404, detail="Photo not found")

    headers = {"ETag": photo.etag, "Cache-Control": CACHE_CONTROL}
    if _etag_matches(request.headers.get("if-none-match"), photo.etag):
        return Response(status_code=status.HTTP_304_NOT_MODIFIED, headers=headers)

    return Response(content=data, media_type=photo.mime_type, headers=headers)


@router.post("/detail/{photo_id}/delete")
async def delete_photo(photo_id: int, service: PhotoService = Depends(get_photo_service)):
    try:
        deleted = await service.delete(photo_id)
    except Exception:
        logger.exception("Error deleting photo %s", photo_id)
        return RedirectResponse(url=f"/detail/{photo_id}", status_code=status.HTTP_303_SEE_OTHER)

    if deleted:
        PHOTO_DELETIONS.inc()
    return RedirectResponse(url="/", status_code=status.HTTP_303_SEE_OTHER)
