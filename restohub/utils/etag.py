"""
ETag helpers for cacheable JSON reads.
"""

import hashlib
import json
from typing import Any, Optional

from fastapi import Request
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse, Response


def compute_etag(payload: Any) -> str:
    body = json.dumps(jsonable_encoder(payload), sort_keys=True, separators=(",", ":"))
    return hashlib.sha1(body.encode("utf-8")).hexdigest()


def send_with_etag(
    request: Request,
    payload: Any,
    max_age_seconds: int = 60,
    etag: Optional[str] = None,
) -> Response:
    """
    JSON response carrying an ETag; 304 when If-None-Match matches.

    Args:
        etag: Precomputed tag; defaults to a SHA-1 of the encoded payload
    """
    etag = etag or compute_etag(payload)
    headers = {
        "ETag": etag,
        "Cache-Control": f"public, max-age={max_age_seconds}",
    }

    if request.headers.get("if-none-match") == etag:
        return Response(status_code=304, headers=headers)

    return JSONResponse(content=jsonable_encoder(payload), headers=headers)
