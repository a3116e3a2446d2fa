from __future__ import annotations
import io
from functools import lru_cache
from minio import Minio
from minio.error import S3Error
from arena.config import settings


def _parse_endpoint(ep: str) -> tuple[str, bool]:
    # Return (host:port, secure)
    secure = ep.startswith("https://")
    host = ep.replace("http://", "").replace("https://", "")
    return host, secure


class MinioFileStore:
    """Submission files in an S3 bucket (MinIO speaks the S3 API)."""

    def __init__(self, client: Minio, bucket: str):
        self._client = client
        self._bucket = bucket
        self._bucket_ready = False

    def _ensure_bucket(self) -> None:
        if self._bucket_ready:
            return
        try:
            if not self._client.bucket_exists(self._bucket):
                self._client.make_bucket(self._bucket)
        except S3Error as e:
            # concurrent creators race on make_bucket
            if e.code not in ("BucketAlreadyOwnedByYou", "BucketAlreadyExists"):
                raise
        self._bucket_ready = True

    def store(self, data: bytes, path: str, content_type: str = "text/csv") -> str:
        self._ensure_bucket()
        self._client.put_object(self._bucket, path, io.BytesIO(data), length=len(data), content_type=content_type)
        return path

    def remove(self, path: str) -> None:
        self._client.remove_object(self._bucket, path)


@lru_cache(maxsize=1)
def get_file_store() -> MinioFileStore:
    host, secure = _parse_endpoint(settings.s3_endpoint)
    client = Minio(host, access_key=settings.s3_access_key, secret_key=settings.s3_secret_key, secure=secure)
    return MinioFileStore(client, settings.s3_bucket_submissions)
