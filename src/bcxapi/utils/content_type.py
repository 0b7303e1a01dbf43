r"""File-name based content-type lookup for uploads."""

from __future__ import annotations

__all__ = ["content_type_for"]

import mimetypes

from bcxapi.core.config import DEFAULT_CONTENT_TYPE


def content_type_for(file_name: str) -> str:
    """Return the content type of a file from its extension.

    Args:
        file_name: The file name, with extension.

    Returns:
        The registered content type, or ``application/octet-stream`` when
        the extension is unknown or missing.

    Example:
        ```pycon
        >>> from bcxapi.utils import content_type_for
        >>> content_type_for("report.PDF")
        'application/pdf'
        >>> content_type_for("blob.unknownext")
        'application/octet-stream'

        ```
    """
    content_type, _ = mimetypes.guess_type(file_name.lower(), strict=False)
    return content_type or DEFAULT_CONTENT_TYPE
