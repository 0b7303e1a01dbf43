r"""Multipart file upload.

Files are uploaded one request per file. Each request carries a multipart
body with a single part holding the Base64-encoded file content. The
service answers every upload with ``{"token": "..."}``; the tokens are then
used to attach the files to messages, comments or uploads.

The batch is all-or-nothing: the first failing file aborts the remaining
ones and its failure outcome is returned, discarding the tokens of the
files already uploaded.
"""

from __future__ import annotations

__all__ = ["MultipartUploader", "encode_multipart"]

import base64
import logging
import uuid
from typing import TYPE_CHECKING

from bcxapi.core.validation import validate_endpoint
from bcxapi.exceptions import JsonShapeError
from bcxapi.json_value import JsonValue, decode_json
from bcxapi.outcomes import GeneralFailure, Success, TransportFailure, Unauthorized
from bcxapi.utils.classifier import classify_failure
from bcxapi.utils.content_type import content_type_for
from bcxapi.utils.structured_logging import log_exchange

if TYPE_CHECKING:
    from collections.abc import Callable, Mapping

    import httpx

    from bcxapi.executor import RequestExecutor
    from bcxapi.outcomes import Outcome

logger: logging.Logger = logging.getLogger(__name__)

_CRLF = b"\r\n"


def encode_multipart(
    file_name: str,
    content: bytes,
    content_type: str,
    boundary: str,
) -> bytes:
    r"""Encode one file as a single-part multipart body.

    Args:
        file_name: The file name, used as both the part name and filename.
        content: The raw file content; it is Base64-encoded in the body.
        content_type: The content type of the part.
        boundary: The multipart boundary.

    Returns:
        The encoded body.

    Example:
        ```pycon
        >>> from bcxapi.upload import encode_multipart
        >>> encode_multipart("a.txt", b"hi", "text/plain", "XYZ")
        b'--XYZ\r\nContent-Disposition: form-data; name="a.txt"; filename="a.txt"\r\nContent-Type: text/plain\r\nContent-Transfer-Encoding: base64\r\n\r\naGk=\r\n--XYZ--\r\n'

        ```
    """
    escaped = file_name.replace("\\", "\\\\").replace('"', '\\"')
    lines = [
        f"--{boundary}".encode("ascii"),
        f'Content-Disposition: form-data; name="{escaped}"; filename="{escaped}"'.encode(),
        f"Content-Type: {content_type}".encode("ascii"),
        b"Content-Transfer-Encoding: base64",
        b"",
        base64.b64encode(content),
        f"--{boundary}--".encode("ascii"),
        b"",
    ]
    return _CRLF.join(lines)


def _new_boundary() -> str:
    return f"------------------------{uuid.uuid4().hex}"


class MultipartUploader:
    r"""Upload files through a ``RequestExecutor``.

    Args:
        executor: The executor whose credential, ``User-Agent`` and
            transport are used.
        content_type_for: Maps a file name to its content type. Defaults to
            an extension lookup falling back to ``application/octet-stream``.
        boundary_factory: Produces the multipart boundary of each request.

    Example:
        ```pycon
        >>> from bcxapi.upload import MultipartUploader
        >>> uploader = MultipartUploader(executor)  # doctest: +SKIP
        >>> outcome = uploader.upload(
        ...     "https://basecamp.com/1/api/v1/attachments.json",
        ...     {"notes.txt": b"hello", "logo.png": png_bytes},
        ... )  # doctest: +SKIP
        >>> outcome.data["notes.txt"].as_str()  # doctest: +SKIP
        '4f71ea23-134660425d1818169ecfdbaa43cfc07f4e33ef4c'

        ```
    """

    def __init__(
        self,
        executor: RequestExecutor,
        *,
        content_type_for: Callable[[str], str] = content_type_for,
        boundary_factory: Callable[[], str] = _new_boundary,
    ) -> None:
        self._executor = executor
        self._content_type_for = content_type_for
        self._boundary_factory = boundary_factory

    def upload(self, url: str, files: Mapping[str, bytes]) -> Outcome:
        """Upload each file with its own request, in mapping order.

        Args:
            url: The upload endpoint; must end in ``.json``.
            files: File names (with extension) mapped to their content.

        Returns:
            ``Success`` whose data maps every file name to its token, or
            the failure outcome of the first file that failed.

        Raises:
            InvalidEndpointError: If the URL breaks the ``.json`` contract.
        """
        validate_endpoint(url)
        if not self._executor.is_authenticated:
            logger.debug(f"Upload to {url} skipped: no access token")
            return Unauthorized()
        if not files:
            return Success(data=JsonValue({}))

        tokens: dict[str, str] = {}
        for file_name, content in files.items():
            outcome = self._upload_one(url, file_name, content)
            if not isinstance(outcome, str):
                logger.debug(
                    f"Upload of {file_name!r} failed with {type(outcome).__name__}; "
                    f"discarding {len(tokens)} token(s) of this batch"
                )
                return outcome
            tokens[file_name] = outcome
        return Success(data=JsonValue(tokens))

    def _upload_one(self, url: str, file_name: str, content: bytes) -> str | Outcome:
        boundary = self._boundary_factory()
        body = encode_multipart(file_name, content, self._content_type_for(file_name), boundary)
        response = self._executor.send(
            url,
            content=body,
            content_type=f"multipart/form-data; boundary={boundary}",
        )
        if isinstance(response, TransportFailure):
            return response

        result = self._read_token(response, file_name)
        log_exchange(
            logger,
            method="POST",
            url=url,
            status_code=response.status_code,
            outcome="Success" if isinstance(result, str) else type(result).__name__,
        )
        return result

    @staticmethod
    def _read_token(response: httpx.Response, file_name: str) -> str | Outcome:
        if response.status_code not in (200, 204):
            return classify_failure(response.status_code, response.headers)
        try:
            return decode_json(response.text)["token"].as_str()
        except (ValueError, JsonShapeError) as exc:
            return GeneralFailure(
                status_code=response.status_code,
                message=f"Upload of {file_name!r} returned no token: {exc}",
            )
