# Copyright 2026 Firefly Software Solutions Inc
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

"""
Object storage destination (S3 and S3-compatible backends).

Keys are namespaced by the session's output group:
``<group>/recordings/<file>`` and ``<group>/screenshots/<file>``.

A boto3 client is not safe to share between concurrently running sessions
that mutate it; build one per session with create_s3_client() unless a
read-only shared client is injected deliberately.
"""

from __future__ import annotations

import asyncio
import io
from typing import Any, Optional

import boto3
from botocore.config import Config

from meetcapture.config import RemoteStorageConfig
from meetcapture.exceptions import StorageError
from meetcapture.storage.base import Destination, DestinationResult, ProgressCallback, UploadRecord
from meetcapture.utils.logger import logger


def create_s3_client(config: RemoteStorageConfig) -> Any:
    """
    Create a boto3 S3 client for ``config``.

    A custom endpoint is used for S3-compatible backends; path-style
    addressing is enabled when requested.
    """
    client_config = Config(
        s3={"addressing_style": "path" if config.force_path_style else "auto"},
        retries={"max_attempts": 5, "mode": "standard"},
    )
    if config.endpoint:
        logger.info(f"[STORAGE] Using S3-compatible endpoint {config.endpoint}")
    return boto3.client(
        "s3",
        region_name=config.region,
        endpoint_url=config.endpoint or None,
        aws_access_key_id=config.access_key_id,
        aws_secret_access_key=config.secret_access_key,
        config=client_config,
    )


class S3Destination(Destination):
    """
    Upload objects to a bucket under ``<group>/``.

    Example:
        >>> destination = S3Destination(remote_config, group="client-a")
        >>> result = await destination.write("recordings/1700000000000-recording.webm", data, "video/webm")
        >>> result.location
        's3://my-bucket/client-a/recordings/1700000000000-recording.webm'
    """

    name = "remote"

    def __init__(
        self,
        config: RemoteStorageConfig,
        group: str = "default",
        client: Optional[Any] = None,
    ) -> None:
        self.config = config
        self.group = group.strip("/")
        self._client = client

    @property
    def client(self) -> Any:
        if self._client is None:
            self._client = create_s3_client(self.config)
        return self._client

    def key_for(self, relative_key: str) -> str:
        relative_key = relative_key.lstrip("/")
        return f"{self.group}/{relative_key}" if self.group else relative_key

    def location_for(self, relative_key: str) -> str:
        return f"s3://{self.config.bucket}/{self.key_for(relative_key)}"

    async def write(
        self,
        relative_key: str,
        data: bytes,
        content_type: str,
        expected_signature: Optional[bytes] = None,
        on_progress: Optional[ProgressCallback] = None,
    ) -> DestinationResult:
        key = self.key_for(relative_key)
        record = UploadRecord(key=key, size_bytes=len(data), on_progress=on_progress)
        self.log.info(f"[STORAGE] Uploading {len(data)} bytes to s3://{self.config.bucket}/{key}")
        try:
            await asyncio.to_thread(
                self.client.upload_fileobj,
                io.BytesIO(data),
                self.config.bucket,
                key,
                ExtraArgs={"ContentType": content_type},
                Callback=record.update,
            )
        except Exception as e:
            self.log.error(f"[STORAGE] Upload to s3://{self.config.bucket}/{key} failed: {e}")
            raise StorageError(f"Failed to upload {key}: {e}", destination=self.name) from e
        record.complete()

        self.log.info(f"[STORAGE] Uploaded s3://{self.config.bucket}/{key}")
        return DestinationResult(
            destination=self.name,
            location=self.location_for(relative_key),
            size_bytes=len(data),
        )
