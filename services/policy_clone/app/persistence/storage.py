"""Clone report artifact storage (S3/MinIO or local files)."""
from __future__ import annotations

import hashlib
import os

import aioboto3

from ..config import get_settings


class ArtifactStorage:
    """Persist artifacts to S3/MinIO using content-hash identifiers."""

    def __init__(self) -> None:
        self._settings = get_settings().storage

    async def put_text(self, text: str, suffix: str = ".txt") -> str:
        """Store text and return a content-hash reference."""
        return await self._put_bytes(text.encode("utf-8"), suffix=suffix)

    async def get_text(self, ref: str) -> str | None:
        """Read back an artifact stored by :meth:`put_text`; None when missing."""
        if ref.startswith("file://"):
            path = ref[len("file://") :]
            if not os.path.exists(path):
                return None
            with open(path, "r", encoding="utf-8") as handle:
                return handle.read()
        if ref.startswith("s3://"):
            bucket, _, key = ref[len("s3://") :].partition("/")
            session = aioboto3.Session()
            async with session.client(
                "s3",
                endpoint_url=self._settings.s3_endpoint,
                region_name=self._settings.s3_region,
            ) as client:
                try:
                    response = await client.get_object(Bucket=bucket, Key=key)
                except client.exceptions.NoSuchKey:
                    return None
                body = await response["Body"].read()
            return body.decode("utf-8")
        raise ValueError(f"Unsupported artifact reference: {ref}")

    async def _put_bytes(self, payload: bytes, suffix: str = "") -> str:
        digest = hashlib.sha256(payload).hexdigest()
        key = f"clone-reports/{digest}{suffix}"

        if not self._settings.s3_bucket:
            # Dev mode: write to local file system for traceability
            path = os.path.join(self._settings.local_artifact_dir, f"{digest}{suffix}")
            os.makedirs(os.path.dirname(path), exist_ok=True)
            with open(path, "wb") as handle:
                handle.write(payload)
            return f"file://{path}"

        session = aioboto3.Session()
        async with session.client(
            "s3",
            endpoint_url=self._settings.s3_endpoint,
            region_name=self._settings.s3_region,
        ) as client:
            await client.put_object(Bucket=self._settings.s3_bucket, Key=key, Body=payload)
        return f"s3://{self._settings.s3_bucket}/{key}"


__all__ = ["ArtifactStorage"]
