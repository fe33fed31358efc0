"""
Dynamic S3 key generation.

Directory templates may contain ``{pattern}`` placeholders; each placeholder
is rendered with :func:`s3_loader.datetime_pattern.format_datetime` against
the batch timestamp. Placeholders that are not valid patterns are kept as
plain text. Braces never survive into the final key.
"""

from __future__ import annotations

import re
from datetime import datetime
from typing import Optional

from .datetime_pattern import format_datetime
from .errors import InvalidPatternError

_PLACEHOLDER = re.compile(r"\{(.*?)\}")
_BRACED = re.compile(r"\{([^}]*)\}")


def normalize_key(path: str) -> str:
    """Collapse duplicate separators and resolve ``.``/``..`` segments."""
    absolute = path.startswith("/")
    parts: list[str] = []
    for segment in path.split("/"):
        if segment in ("", "."):
            continue
        if segment == "..":
            if parts and parts[-1] != "..":
                parts.pop()
                continue
            if absolute:
                continue
        parts.append(segment)
    joined = "/".join(parts)
    return "/" + joined if absolute else joined


def format_template(template: str, timestamp: datetime) -> str:
    """Replace every ``{pattern}`` in ``template`` with its rendering at ``timestamp``."""
    replacements = []
    for match in _PLACEHOLDER.finditer(template):
        text = match.group(0)
        try:
            replacements.append((text, format_datetime(timestamp, text)))
        except InvalidPatternError:
            replacements.append((text, text))

    directory = template
    for original, rendered in replacements:
        directory = directory.replace(original, rendered)

    return _BRACED.sub(r"\1", directory)


def decorate_path(
    output_directory: Optional[str],
    file_name: str,
    timestamp: datetime,
    date_format: Optional[str] = None,
    filename_prefix: Optional[str] = None,
) -> str:
    """Build the S3 key for ``file_name``.

    Args:
        output_directory: Leading directory, used verbatim
        file_name: Object name
        timestamp: Instant used to render ``date_format`` placeholders (UTC)
        date_format: Directory template such as ``{yyyy}/{MM}/{dd}``
        filename_prefix: Prepended to ``file_name`` with a hyphen

    Returns:
        Normalized, forward-slash separated key
    """
    name = f"{filename_prefix}-{file_name}" if filename_prefix is not None else file_name

    segments = []
    if output_directory is not None:
        segments.append(output_directory)
    if date_format is not None:
        segments.append(format_template(date_format, timestamp))
    segments.append(name)

    return normalize_key("/".join(segments))
