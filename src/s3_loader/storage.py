"""S3 object-store adapter used by the delivery loop."""

from __future__ import annotations

from typing import Any, Optional, Protocol

import boto3
from botocore.config import Config

from .config import S3Config


class ObjectStore(Protocol):
    def put_object(self, bucket: str, key: str, data: bytes, content_length: int) -> None:
        ...


class S3ObjectStore:
    """Thin wrapper over a boto3 S3 client.

    The client is created once and shared; boto3 clients are safe to use from
    several threads, so independent emitter loops may share one store.
    """

    def __init__(
        self,
        endpoint_url: Optional[str] = None,
        region_name: Optional[str] = None,
        path_style: bool = False,
        client: Any = None,
    ) -> None:
        if client is None:
            config = Config(s3={"addressing_style": "path"}) if path_style else None
            client = boto3.client(
                "s3",
                endpoint_url=endpoint_url,
                region_name=region_name,
                config=config,
            )
        self._client = client

    @classmethod
    def from_config(cls, config: S3Config) -> "S3ObjectStore":
        return cls(
            endpoint_url=config.endpoint,
            region_name=config.region,
            path_style=config.path_style,
        )

    @property
    def client(self) -> Any:
        return self._client

    def put_object(self, bucket: str, key: str, data: bytes, content_length: int) -> None:
        self._client.put_object(
            Bucket=bucket,
            Key=key,
            Body=data,
            ContentLength=content_length,
        )
