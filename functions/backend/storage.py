"""
Storage abstraction for the S3-compatible Supabase storage and in-memory testing.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Protocol, Tuple

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError


class StorageError(Exception):
    pass


class ObjectExistsError(StorageError):
    pass


class StorageClient(Protocol):
    """Defines the operations the functions need from object storage."""

    def upload_bytes(
        self,
        bucket: str,
        path: str,
        data: bytes,
        content_type: str = "application/octet-stream",
        upsert: bool = False,
    ) -> None:
        ...

    def presign_get(self, bucket: str, path: str, expires_in: int = 3600) -> str:
        ...

    def presign_put(
        self,
        bucket: str,
        path: str,
        expires_in: int = 3600,
        content_type: str = "application/pdf",
    ) -> str:
        ...

    def get_bytes(self, bucket: str, path: str) -> bytes:
        ...


@dataclass
class InMemoryStorageClient:
    """Test double for storage interactions."""

    base_url: str = "https://example.test/storage"
    stored_objects: Dict[Tuple[str, str], bytes] = field(default_factory=dict)
    content_types: Dict[Tuple[str, str], str] = field(default_factory=dict)

    def upload_bytes(
        self,
        bucket: str,
        path: str,
        data: bytes,
        content_type: str = "application/octet-stream",
        upsert: bool = False,
    ) -> None:
        key = (bucket, path)
        if key in self.stored_objects and not upsert:
            raise ObjectExistsError(f"{bucket}/{path} already exists")
        self.stored_objects[key] = bytes(data)
        self.content_types[key] = content_type

    def presign_get(self, bucket: str, path: str, expires_in: int = 3600) -> str:
        return f"{self.base_url}/{bucket}/{path}?op=get&expires={expires_in}"

    def presign_put(
        self,
        bucket: str,
        path: str,
        expires_in: int = 3600,
        content_type: str = "application/pdf",
    ) -> str:
        return f"{self.base_url}/{bucket}/{path}?op=put&expires={expires_in}"

    def get_bytes(self, bucket: str, path: str) -> bytes:
        stored = self.stored_objects.get((bucket, path))
        if stored is None:
            raise FileNotFoundError(f"{bucket}/{path}")
        return stored

    def reset(self) -> None:
        self.stored_objects.clear()
        self.content_types.clear()


@dataclass
class S3StorageClient:
    """
    Client for the S3 protocol endpoint of Supabase storage
    (https://<project>.supabase.co/storage/v1/s3).
    """

    endpoint: str
    region: str
    access_key_id: str
    secret_access_key: str

    def __post_init__(self):
        # Supabase only serves path-style requests.
        config = Config(
            s3={"addressing_style": "path"},
            signature_version="s3v4",
        )
        self._client = boto3.client(
            "s3",
            endpoint_url=self.endpoint,
            region_name=self.region,
            aws_access_key_id=self.access_key_id,
            aws_secret_access_key=self.secret_access_key,
            config=config,
        )

    def _exists(self, bucket: str, path: str) -> bool:
        try:
            self._client.head_object(Bucket=bucket, Key=path)
        except ClientError as exc:
            code = exc.response.get("Error", {}).get("Code")
            if code in ("404", "NoSuchKey", "NotFound"):
                return False
            raise StorageError(str(exc)) from exc
        except BotoCoreError as exc:
            raise StorageError(str(exc)) from exc
        return True

    def upload_bytes(
        self,
        bucket: str,
        path: str,
        data: bytes,
        content_type: str = "application/octet-stream",
        upsert: bool = False,
    ) -> None:
        if not upsert and self._exists(bucket, path):
            raise ObjectExistsError(f"{bucket}/{path} already exists")
        try:
            self._client.put_object(
                Bucket=bucket,
                Key=path,
                Body=data,
                ContentType=content_type,
            )
        except (BotoCoreError, ClientError) as exc:
            raise StorageError(str(exc)) from exc

    def presign_get(self, bucket: str, path: str, expires_in: int = 3600) -> str:
        try:
            return self._client.generate_presigned_url(
                ClientMethod="get_object",
                Params={"Bucket": bucket, "Key": path},
                ExpiresIn=expires_in,
            )
        except (BotoCoreError, ClientError) as exc:
            raise StorageError(str(exc)) from exc

    def presign_put(
        self,
        bucket: str,
        path: str,
        expires_in: int = 3600,
        content_type: str = "application/pdf",
    ) -> str:
        try:
            return self._client.generate_presigned_url(
                ClientMethod="put_object",
                Params={"Bucket": bucket, "Key": path, "ContentType": content_type},
                ExpiresIn=expires_in,
            )
        except (BotoCoreError, ClientError) as exc:
            raise StorageError(str(exc)) from exc

    def get_bytes(self, bucket: str, path: str) -> bytes:
        response = self._client.get_object(Bucket=bucket, Key=path)
        return response["Body"].read()
