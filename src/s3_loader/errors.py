"""
Custom exceptions for the S3 loader.

Also maps upload exceptions onto retry/fatal outcomes for the delivery loop.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Union

from botocore.exceptions import BotoCoreError, ClientError


class LoaderError(Exception):
    """Base error for the S3 loader."""

    pass


class ConfigurationError(LoaderError):
    """Missing or inconsistent loader configuration."""

    pass


class InvalidPatternError(LoaderError, ValueError):
    """A date/time pattern contains an illegal component."""

    pass


class DeadLetterError(LoaderError):
    """The dead-letter sink refused a failure record."""

    pass


@dataclass(frozen=True)
class Retry:
    """Upload attempt failed transiently; back off and try again."""

    reason: Exception


@dataclass(frozen=True)
class Fatal:
    """Upload attempt failed in a way the loop must not absorb."""

    reason: BaseException


UploadFailure = Union[Retry, Fatal]


def classify_upload_error(e: BaseException) -> UploadFailure:
    if isinstance(e, MemoryError) or not isinstance(e, Exception):
        return Fatal(e)
    return Retry(e)


def describe_upload_error(e: BaseException) -> str:
    if isinstance(e, ClientError):
        code = e.response.get("Error", {}).get("Code", "Unknown")
        return f"S3 could not process the request ({code})"
    if isinstance(e, BotoCoreError):
        return "S3 client failed to reach the service"
    return "S3Emitter threw an unexpected exception"
