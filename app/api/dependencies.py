"""
app/api/dependencies.py

Shared FastAPI dependencies for request parsing.
"""

from __future__ import annotations

from fastapi import File, Header, UploadFile


def get_upload_content(file: UploadFile | None = File(default=None)) -> bytes | None:
    """
    Read the multipart ``file`` field fully. ``None`` when no file was sent.
    """

    if file is None:
        return None
    try:
        return file.file.read()
    finally:
        file.file.close()


def get_correlation_id(
    x_correlation_id: str | None = Header(default=None, alias="X-Correlation-ID"),
) -> str | None:
    if x_correlation_id is None:
        return None
    return x_correlation_id.strip() or None
