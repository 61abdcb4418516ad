import base64


def to_base64(image_data: bytes) -> str:
    if not isinstance(image_data, (bytes, bytearray)):
        raise ValueError(f"Unsupported image data type: {type(image_data)}")
    return base64.b64encode(image_data).decode('utf-8')


def to_data_uri(image_data: bytes, mime_type: str) -> str:
    """Inline image as a data URI. Bytes are encoded as-is, never re-compressed."""
    return f"data:{mime_type};base64,{to_base64(image_data)}"
