import logging

from fastapi.middleware.cors import CORSMiddleware
from starlette.datastructures import Headers
from starlette.responses import Response

logger = logging.getLogger(__name__)


class WaitlistCORSMiddleware(CORSMiddleware):
    """CORSMiddleware whose pre-flight answer is always an empty 200.

    The Access-Control-* headers are still computed by Starlette, so a browser
    only proceeds when the origin, method and headers are actually allowed.
    """

    def preflight_response(self, request_headers: Headers) -> Response:
        response = super().preflight_response(request_headers)
        if response.status_code != 200:
            logger.info(
                f"CORS pre-flight from {request_headers.get('origin')} not granted: "
                f"{response.body.decode(errors='replace')}"
            )
        headers = {
            key: value
            for key, value in response.headers.items()
            if key not in ("content-length", "content-type")
        }
        return Response(status_code=200, headers=headers)
