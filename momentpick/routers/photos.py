from fastapi import APIRouter, Depends, File, UploadFile, status
from sqlalchemy.orm import Session

from momentpick.core.config import get_settings
from momentpick.core.security import Identity
from momentpick.db.session import get_db
from momentpick.routers.deps import get_identity
from momentpick.schemas.photo import PhotoListResponse, PhotoRead, PhotoUploadResponse
from momentpick.services import photos as photo_service
from momentpick.services.exceptions import ValidationError
from momentpick.services.photos import IncomingPhoto
from momentpick.services.storage import BlobStore, check_image_upload, get_blob_store

router = APIRouter(prefix="/photos", tags=["photos"])


async def _read_uploads(files: list[UploadFile]) -> list[IncomingPhoto]:
    settings = get_settings()
    if len(files) > settings.max_files_per_upload:
        raise ValidationError(f"You can upload at most {settings.max_files_per_upload} photos at a time.")

    incoming: list[IncomingPhoto] = []
    for file in files:
        check_image_upload(file.filename, file.content_type, file.size or 0)
        data = await file.read()
        await file.close()
        check_image_upload(file.filename, file.content_type, len(data))
        incoming.append(IncomingPhoto(filename=file.filename or "photo", content_type=file.content_type, data=data))
    return incoming


@router.post("/upload/{event_id}", response_model=PhotoUploadResponse, status_code=status.HTTP_201_CREATED)
async def upload_photos(
    event_id: str,
    photos: list[UploadFile] | None = File(default=None),
    db: Session = Depends(get_db),
    store: BlobStore = Depends(get_blob_store),
    identity: Identity = Depends(get_identity),
) -> PhotoUploadResponse:
    incoming = await _read_uploads(photos or [])
    stored = photo_service.upload_photos(db, store, identity.id, event_id, incoming)
    return PhotoUploadResponse(
        message=f"{len(stored)} photo(s) uploaded successfully!",
        uploaded=len(stored),
        photos=[PhotoRead.model_validate(photo) for photo in stored],
    )


@router.get("/{event_id}", response_model=PhotoListResponse)
def list_photos(
    event_id: str,
    db: Session = Depends(get_db),
    identity: Identity = Depends(get_identity),
) -> PhotoListResponse:
    rows = photo_service.list_photos(db, identity.id, event_id)
    return PhotoListResponse(photos=[PhotoRead.model_validate(photo) for photo in rows])


@router.delete("/{photo_id}")
def delete_photo(
    photo_id: str,
    db: Session = Depends(get_db),
    store: BlobStore = Depends(get_blob_store),
    identity: Identity = Depends(get_identity),
) -> dict:
    photo_service.delete_photo(db, store, identity.id, photo_id)
    return {"message": "Photo deleted successfully."}
