"""Directory listing request handler for gcs-index.

Serves any path ending in ``/``: aggregates mounts and backend objects,
then renders HTML (with an optional README footer) or JSON.
"""

import email.utils
import logging
import time

from fastapi import FastAPI, Request, Response

from gcsindex.html_utils import (
    html_response,
    json_response,
    render_index_html,
    render_index_json,
)
from gcsindex.listing import ListingAggregator
from gcsindex.readme import render_readme

logger = logging.getLogger(__name__)


def wants_json(request: Request) -> bool:
    """Whether the client asked for the JSON listing."""
    return (
        request.headers.get("accept") == "application/json"
        or request.query_params.get("format") == "json"
    )


class IndexHandler:
    """Handles directory listing requests.

    Attributes:
        app: The parent FastAPI application.
    """

    def __init__(self, app: FastAPI) -> None:
        self.app = app

    @property
    def config(self):
        """Shortcut to the GCSIndexConfig on app.state."""
        return self.app.state.config

    @property
    def aggregator(self) -> ListingAggregator:
        """Build an aggregator over the mounts and storage on app.state."""
        index = self.config.index
        return ListingAggregator(
            mounts=self.app.state.mounts,
            storage=self.app.state.storage,
            readme_name=index.readme_name,
            skip_readme=index.skip_readme,
            version_sort=index.version_sort,
        )

    def _headers(self) -> dict[str, str]:
        # Listings show relative times, so they age by the minute.
        now = int(time.time())
        return {
            "Last-Modified": email.utils.formatdate(now - now % 60, usegmt=True),
            "Cache-Control": self.config.index.default_cache_control,
            "Vary": "Accept",
        }

    async def head_index(self, request: Request, path: str) -> Response:
        """HEAD on a directory: always 200, headers only, no backend call."""
        return Response(status_code=200, headers=self._headers(), media_type="text/html")

    async def get_index(self, request: Request, path: str) -> Response:
        """GET on a directory: render the merged listing."""
        index = self.config.index
        listing = await self.aggregator.list(path)

        if index.json_listing and wants_json(request):
            return json_response(render_index_json(listing.entries), headers=self._headers())

        readme_html = ""
        if listing.readme is not None and index.readme:
            readme_html = await render_readme(self.app.state.readme_cache, listing.readme)

        body = render_index_html(path, listing.entries, readme_html)
        return html_response(body, headers=self._headers())
