"""HTTP application of the labeler: info page, health checks and label queries."""

from __future__ import annotations

import logging
import re

from starlette.applications import Starlette
from starlette.concurrency import run_in_threadpool
from starlette.requests import Request
from starlette.responses import HTMLResponse, JSONResponse, PlainTextResponse, Response
from starlette.routing import Route

from divinebridge.query_labels import query_labels

logger = logging.getLogger(__name__)

_INT_PATTERN = re.compile(r"[+-]?[0-9]+")
_I64_MIN = -(2**63)
_I64_MAX = 2**63 - 1

ROOT_HTML = """<!DOCTYPE html>
<html lang="en">
<head>
<meta charset="utf-8">
<meta name="viewport" content="width=device-width, initial-scale=1">
<title>diVine Labeler</title>
</head>
<body>
<h1>diVine Labeler</h1>
<p>ATProto labeler publishing moderation labels for diVine videos.</p>
<p>Labeler DID: <code>{{LABELER_DID}}</code></p>
<h2>Endpoints</h2>
<ul>
<li><code>GET /xrpc/com.atproto.label.queryLabels</code> &mdash; Query labels</li>
<li><code>GET /health</code> &mdash; Health check</li>
</ul>
</body>
</html>
"""


def create_app(store, labeler_did: str) -> Starlette:
    """Build the labeler application serving labels from ``store``.

    ``store`` provides ``get_events_after(after_seq, limit)``.
    """

    async def root_info(request: Request) -> Response:
        return HTMLResponse(ROOT_HTML.replace("{{LABELER_DID}}", labeler_did))

    async def health(request: Request) -> Response:
        return Response(status_code=200)

    async def query(request: Request) -> Response:
        params = request.query_params
        raw_limit = params.get("limit")
        limit = None
        if raw_limit is not None:
            if not _INT_PATTERN.fullmatch(raw_limit) or not (
                _I64_MIN <= int(raw_limit) <= _I64_MAX
            ):
                return PlainTextResponse(
                    "Failed to deserialize query string: invalid digit found in string",
                    status_code=400,
                )
            limit = int(raw_limit)
        try:
            body = await run_in_threadpool(
                query_labels, store, params.get("uriPatterns"), limit, params.get("cursor")
            )
        except Exception as exc:
            logger.error("failed to query labeler events: %s", exc)
            return Response(status_code=500)
        return JSONResponse(body)

    routes = [
        Route("/", root_info, methods=["GET"]),
        Route("/health", health, methods=["GET"]),
        Route("/health/ready", health, methods=["GET"]),
        Route("/xrpc/com.atproto.label.queryLabels", query, methods=["GET"]),
    ]
    return Starlette(routes=routes)