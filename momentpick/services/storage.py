import shutil
from abc import ABC, abstractmethod
from functools import lru_cache
from pathlib import Path, PurePosixPath

from supabase import Client, create_client

from momentpick.core.config import Settings, get_settings
from momentpick.services.exceptions import ValidationError

LIST_PAGE_SIZE = 1000

class StorageError(Exception):
    pass


class BlobStore(ABC):
    @abstractmethod
    def put(self, key: str, data: bytes, content_type: str) -> None:
        """Write ``data`` under ``key``; never overwrites an existing key."""

    @abstractmethod
    def delete(self, key: str) -> None:
        """Remove ``key``. Missing keys are ignored."""

    @abstractmethod
    def delete_prefix(self, prefix: str) -> int:
        """Remove every key below ``prefix`` and return how many were removed."""

    @abstractmethod
    def exists(self, key: str) -> bool:
        """Return whether ``key`` is stored."""

    @abstractmethod
    def list_keys(self, prefix: str) -> set[str]:
        """Return every key stored below ``prefix``."""

    @abstractmethod
    def public_url(self, key: str) -> str:
        """Return the URL clients use to fetch ``key``."""


def normalize_key(key: str) -> str:
    normalized = key.strip().lstrip("/")
    path_key = PurePosixPath(normalized)
    if not normalized or path_key.is_absolute() or ".." in path_key.parts:
        raise StorageError(f"invalid storage key: {key!r}")
    return str(path_key)


class LocalBlobStore(BlobStore):
    def __init__(self, root: Path, base_url: str) -> None:
        self._root = root.resolve()
        self._root.mkdir(parents=True, exist_ok=True)
        self._base_url = base_url.rstrip("/")

    @property
    def root(self) -> Path:
        return self._root

    def _path_for_key(self, key: str) -> Path:
        return self._root.joinpath(*PurePosixPath(normalize_key(key)).parts)

    def put(self, key: str, data: bytes, content_type: str) -> None:
        path = self._path_for_key(key)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            with path.open("xb") as handle:
                handle.write(data)
        except OSError as exc:
            raise StorageError(f"failed to write {key}") from exc

    def delete(self, key: str) -> None:
        try:
            self._path_for_key(key).unlink(missing_ok=True)
        except OSError as exc:
            raise StorageError(f"failed to delete {key}") from exc

    def delete_prefix(self, prefix: str) -> int:
        path = self._path_for_key(prefix)
        if not path.is_dir():
            return 0
        removed = sum(1 for item in path.rglob("*") if item.is_file())
        try:
            shutil.rmtree(path)
        except FileNotFoundError:
            return 0
        except OSError as exc:
            raise StorageError(f"failed to delete prefix {prefix}") from exc
        return removed

    def exists(self, key: str) -> bool:
        return self._path_for_key(key).is_file()

    def list_keys(self, prefix: str) -> set[str]:
        path = self._path_for_key(prefix)
        if not path.is_dir():
            return set()
        try:
            return {item.relative_to(self._root).as_posix() for item in path.rglob("*") if item.is_file()}
        except OSError as exc:
            raise StorageError(f"failed to list {prefix}") from exc

    def public_url(self, key: str) -> str:
        return f"{self._base_url}/{normalize_key(key)}"


class SupabaseBlobStore(BlobStore):
    def __init__(self, url: str, service_key: str, bucket: str, client: Client | None = None) -> None:
        self._client = client or create_client(url, service_key)
        self._bucket = bucket

    def _objects(self):
        return self._client.storage.from_(self._bucket)

    def put(self, key: str, data: bytes, content_type: str) -> None:
        try:
            self._objects().upload(
                normalize_key(key),
                data,
                file_options={"content-type": content_type, "upsert": "false"},
            )
        except Exception as exc:
            raise StorageError(f"failed to upload {key}") from exc

    def delete(self, key: str) -> None:
        try:
            self._objects().remove([normalize_key(key)])
        except Exception as exc:
            raise StorageError(f"failed to delete {key}") from exc

    def delete_prefix(self, prefix: str) -> int:
        keys = sorted(self.list_keys(prefix))
        try:
            for start in range(0, len(keys), LIST_PAGE_SIZE):
                self._objects().remove(keys[start : start + LIST_PAGE_SIZE])
        except Exception as exc:
            raise StorageError(f"failed to delete prefix {prefix}") from exc
        return len(keys)

    def list_keys(self, prefix: str) -> set[str]:
        folder = normalize_key(prefix)
        keys: set[str] = set()
        offset = 0
        try:
            while True:
                entries = self._objects().list(folder, {"limit": LIST_PAGE_SIZE, "offset": offset}) or []
                keys.update(f"{folder}/{entry['name']}" for entry in entries if entry.get("name"))
                if len(entries) < LIST_PAGE_SIZE:
                    return keys
                offset += LIST_PAGE_SIZE
        except Exception as exc:
            raise StorageError(f"failed to list {prefix}") from exc

    def exists(self, key: str) -> bool:
        path = PurePosixPath(normalize_key(key))
        try:
            entries = self._objects().list(str(path.parent), {"search": path.name})
        except Exception as exc:
            raise StorageError(f"failed to stat {key}") from exc
        return any(entry.get("name") == path.name for entry in entries or [])

    def public_url(self, key: str) -> str:
        return self._objects().get_public_url(normalize_key(key))


def create_blob_store(settings: Settings | None = None) -> BlobStore:
    settings = settings or get_settings()
    if settings.storage_backend == "local":
        base_url = f"{settings.public_base_url.rstrip('/')}{settings.api_prefix}/media"
        return LocalBlobStore(Path(settings.upload_dir), base_url)
    if settings.storage_backend == "supabase":
        if not settings.supabase_url or not settings.supabase_service_key:
            raise ValueError("SUPABASE_URL and SUPABASE_SERVICE_KEY are required for the supabase backend.")
        return SupabaseBlobStore(settings.supabase_url, settings.supabase_service_key, settings.storage_bucket)
    raise ValueError(f"Unsupported storage backend: {settings.storage_backend}")


@lru_cache(maxsize=1)
def get_blob_store() -> BlobStore:
    return create_blob_store()


def check_image_upload(filename: str | None, content_type: str | None, size: int) -> None:
    settings = get_settings()
    if content_type not in settings.allowed_image_types:
        raise ValidationError("Only image files are allowed.")
    max_bytes = settings.max_upload_size_mb * 1024 * 1024
    if size > max_bytes:
        raise ValidationError(f"{filename or 'File'} exceeds the {settings.max_upload_size_mb} MB limit.")
