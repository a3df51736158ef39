"""HTTP application serving the DiVine feed generator endpoints."""

from __future__ import annotations

import logging
import re

from starlette.applications import Starlette
from starlette.middleware import Middleware
from starlette.middleware.cors import CORSMiddleware
from starlette.requests import Request
from starlette.responses import HTMLResponse, JSONResponse, PlainTextResponse, Response
from starlette.routing import Route

from divinebridge.feed_skeleton import (
    LATEST_URI,
    TRENDING_URI,
    FeedStore,
    describe_feed_generator,
    feed_skeleton,
)

logger = logging.getLogger(__name__)

DEFAULT_LIMIT = 25

_LIMIT_PATTERN = re.compile(r"\+?[0-9]+")

ROOT_HTML = f"""<!DOCTYPE html>
<html lang="en">
<head>
<meta charset="utf-8">
<meta name="viewport" content="width=device-width, initial-scale=1">
<title>Divine Blacksky Feed Generator</title>
</head>
<body>
<h1>Divine Blacksky Feed Generator</h1>
<p>Feeds of DiVine-owned mirrored videos.</p>
<h2>Feeds</h2>
<ul>
<li><code>{LATEST_URI}</code> &mdash; DiVine Latest</li>
<li><code>{TRENDING_URI}</code> &mdash; DiVine Trending</li>
</ul>
<h2>Endpoints</h2>
<ul>
<li><code>GET /xrpc/app.bsky.feed.describeFeedGenerator</code></li>
<li><code>GET /xrpc/app.bsky.feed.getFeedSkeleton?feed=&lt;uri&gt;&amp;limit=&lt;n&gt;</code></li>
<li><code>GET /health</code></li>
</ul>
<h2>Viewer Lab</h2>
<p>A viewer configured through <code>VIEWER_ORIGIN</code> may call these endpoints from the browser.</p>
</body>
</html>
"""


def create_app(store: FeedStore, viewer_origin: str | None = None) -> Starlette:
    """Build the feed generator application around ``store``.

    With ``viewer_origin`` set, cross-origin requests are allowed from that origin
    only (with credentials); otherwise any origin is allowed.
    """

    async def root_info(request: Request) -> Response:
        return HTMLResponse(ROOT_HTML)

    async def health(request: Request) -> Response:
        return Response(status_code=200)

    async def describe(request: Request) -> Response:
        return JSONResponse(describe_feed_generator().to_dict())

    async def get_feed_skeleton(request: Request) -> Response:
        feed = request.query_params.get("feed")
        if feed is None:
            return PlainTextResponse(
                "Failed to deserialize query string: missing field `feed`", status_code=400
            )
        raw_limit = request.query_params.get("limit")
        if raw_limit is None:
            limit = DEFAULT_LIMIT
        elif _LIMIT_PATTERN.fullmatch(raw_limit):
            limit = int(raw_limit)
        else:
            return PlainTextResponse(
                "Failed to deserialize query string: invalid digit found in string",
                status_code=400,
            )
        try:
            response = await feed_skeleton(store, feed, limit)
        except Exception as exc:  # every failure is reported as an unknown feed
            logger.debug("feed skeleton failed for %s: %s", feed, exc)
            return Response(status_code=404)
        return JSONResponse(response.to_dict())

    if viewer_origin is not None:
        cors = Middleware(
            CORSMiddleware,
            allow_origins=[viewer_origin],
            allow_methods=["*"],
            allow_headers=["*"],
            allow_credentials=True,
        )
    else:
        cors = Middleware(
            CORSMiddleware,
            allow_origins=["*"],
            allow_methods=["*"],
            allow_headers=["*"],
        )

    routes = [
        Route("/", root_info),
        Route("/health", health),
        Route("/health/ready", health),
        Route("/xrpc/app.bsky.feed.describeFeedGenerator", describe),
        Route("/xrpc/app.bsky.feed.getFeedSkeleton", get_feed_skeleton),
    ]
    return Starlette(routes=routes, middleware=[cors])