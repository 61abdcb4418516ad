"""
Upload validation for the analysis endpoint.

The multipart body is parsed while it streams in, so the upload never touches
disk and reading stops as soon as a rule is broken:

- exactly one file is accepted, in the ``image`` form field;
- its declared content type is checked against the allow-list when the part
  headers arrive, before any of its bytes are kept;
- at most ``max_upload_bytes`` bytes are kept in memory. The first byte past
  the limit aborts the request with ``UploadTooLargeError``.
"""

import logging
from typing import AsyncIterator, Dict, Optional

from fastapi import Depends, Request
from python_multipart.exceptions import MultipartParseError
from python_multipart.multipart import MultipartParser, parse_options_header

from src.pipeline.chart.types import AnalysisRequest, InputValidationError, UploadTooLargeError
from src.settings import Settings
from .services import get_settings

logger = logging.getLogger(__name__)

IMAGE_FIELD = b"image"

NO_IMAGE = "No se proporcionó imagen"


def _format_limit(max_bytes: int) -> str:
    mib = max_bytes / (1024 * 1024)
    return f"{mib:g}MB"


class ImagePartCollector:
    """
    Callback target for ``MultipartParser``.

    Keeps the bytes of the single ``image`` file part and records the first
    validation failure in ``error``. Parts other than the image are skipped.
    """

    def __init__(self, settings: Settings):
        self.max_bytes = settings.max_upload_bytes
        self.allowed_mime_types = settings.allowed_mime_types

        self.image: Optional[bytearray] = None
        self.mime_type: Optional[str] = None
        self.filename: Optional[str] = None
        self.error: Optional[InputValidationError] = None

        self._headers: Dict[bytes, bytes] = {}
        self._header_field = b""
        self._header_value = b""
        self._in_image = False

    def callbacks(self) -> dict:
        return {
            "on_part_begin": self.on_part_begin,
            "on_header_field": self.on_header_field,
            "on_header_value": self.on_header_value,
            "on_header_end": self.on_header_end,
            "on_headers_finished": self.on_headers_finished,
            "on_part_data": self.on_part_data,
            "on_part_end": self.on_part_end,
        }

    def on_part_begin(self):
        self._headers = {}
        self._in_image = False

    def on_header_field(self, data: bytes, start: int, end: int):
        self._header_field += data[start:end]

    def on_header_value(self, data: bytes, start: int, end: int):
        self._header_value += data[start:end]

    def on_header_end(self):
        self._headers[self._header_field.lower()] = self._header_value
        self._header_field = b""
        self._header_value = b""

    def on_headers_finished(self):
        if self.error is not None:
            return

        _, options = parse_options_header(self._headers.get(b"content-disposition", b""))
        # A text field, or a file input left empty, is not an upload
        if options.get(b"name") != IMAGE_FIELD or not options.get(b"filename"):
            return

        if self.image is not None:
            self.error = InputValidationError("Solo se permite una imagen por solicitud")
            return

        content_type = self._headers.get(b"content-type", b"").decode("latin-1").strip().lower()
        if content_type not in self.allowed_mime_types:
            self.error = InputValidationError("Solo se permiten imágenes JPG, PNG o WEBP")
            return

        self.image = bytearray()
        self.mime_type = content_type
        self.filename = options[b"filename"].decode("utf-8", errors="replace")
        self._in_image = True

    def on_part_data(self, data: bytes, start: int, end: int):
        if not self._in_image or self.error is not None:
            return
        if len(self.image) + (end - start) > self.max_bytes:
            self.error = UploadTooLargeError(f"La imagen supera el límite de {_format_limit(self.max_bytes)}")
            self._in_image = False
            return
        self.image += data[start:end]

    def on_part_end(self):
        self._in_image = False


async def read_image_upload(
    chunks: AsyncIterator[bytes],
    content_type: str,
    settings: Settings,
) -> AnalysisRequest:
    """
    Parse a multipart body from ``chunks`` into an ``AnalysisRequest``.

    Stops pulling chunks at the first validation failure, so an oversized
    body is never read past the chunk that crossed the limit.
    """
    body_type, options = parse_options_header(content_type or "")
    boundary = options.get(b"boundary")
    if body_type != b"multipart/form-data" or not boundary:
        raise InputValidationError(NO_IMAGE)

    collector = ImagePartCollector(settings)
    parser = MultipartParser(boundary, collector.callbacks())
    try:
        async for chunk in chunks:
            if chunk:
                parser.write(chunk)
            if collector.error is not None:
                raise collector.error
        parser.finalize()
    except MultipartParseError as e:
        raise InputValidationError("Cuerpo multipart inválido") from e

    if collector.error is not None:
        raise collector.error
    if collector.image is None:
        raise InputValidationError(NO_IMAGE)

    return AnalysisRequest(
        image=bytes(collector.image),
        mime_type=collector.mime_type,
        filename=collector.filename,
    )


async def get_analysis_request(
    request: Request,
    settings: Settings = Depends(get_settings),
) -> AnalysisRequest:
    """FastAPI dependency: the validated upload, or an InputValidationError."""
    return await read_image_upload(request.stream(), request.headers.get("content-type", ""), settings)
