from __future__ import annotations

from starlette.datastructures import Headers
from starlette.middleware.cors import CORSMiddleware
from starlette.responses import Response

from resume_analyzer.core.config import settings

CORS_ALLOW_HEADERS = ("authorization", "x-client-info", "apikey", "content-type")


def cors_allowed_origins() -> list[str]:
    return list(settings.cors_allowed_origins)


def cors_headers(origin: str | None = None) -> dict[str, str]:
    origins = cors_allowed_origins()
    if "*" in origins:
        allow_origin = "*"
    elif origin and origin in origins:
        allow_origin = origin
    else:
        allow_origin = origins[0] if origins else ""
    headers = {"Access-Control-Allow-Headers": ", ".join(CORS_ALLOW_HEADERS)}
    if allow_origin:
        headers["Access-Control-Allow-Origin"] = allow_origin
    return headers


class EmptyPreflightCORSMiddleware(CORSMiddleware):
    """Answers accepted preflights with an empty 200 body instead of ``OK``."""

    def preflight_response(self, request_headers: Headers) -> Response:
        response = super().preflight_response(request_headers)
        if response.status_code != 200:
            return response
        headers = {
            key: value
            for key, value in response.headers.items()
            if key not in ("content-length", "content-type")
        }
        return Response(status_code=200, headers=headers)
