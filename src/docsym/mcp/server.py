"""
docsym MCP Server

Exposes symbol indexing and lookup as tools that AI agents can invoke
natively via the Model Context Protocol.

Start with::

    docsym mcp                       # stdio transport
    docsym mcp --transport sse       # SSE transport

Or programmatically::

    from docsym.mcp.server import create_server
    server = create_server()
    server.run()
"""

from __future__ import annotations

import json
import logging
import os
from typing import Annotated

# FastMCP validates tool arguments with pydantic
from pydantic import Field  # type: ignore[import-untyped]

from docsym.client import Docsym
from docsym.core.config import DocsymConfig
from docsym.core.search import ResultFormatter
from docsym.exceptions import DocsymError

logger = logging.getLogger(__name__)


def create_server(config: DocsymConfig | None = None):
    """
    Build and return a configured FastMCP server instance.

    One client (and so one snapshot cache) serves every tool call.

    Raises ``ImportError`` if ``fastmcp`` is not installed (install via
    ``pip install 'docsym[mcp]'``).
    """
    from fastmcp import FastMCP  # type: ignore[import-untyped]

    cfg = config or DocsymConfig.from_env()
    client = Docsym(config=cfg)

    mcp = FastMCP("docsym")

    def _resolve_path(path: str) -> str:
        """When path is '.', use DOCSYM_DEFAULT_PATH if set."""
        if path == ".":
            default = os.environ.get("DOCSYM_DEFAULT_PATH", "").strip()
            if default:
                return default
        return path

    # ==================================================================
    # Tool: search_symbols
    # ==================================================================

    @mcp.tool()
    def search_symbols(
        query: Annotated[
            str,
            Field(default="", description="Symbol name prefix, optionally preceded by scope prefixes (e.g. 'make_pers' or 'obj mutex'). Matching is case-insensitive.")
        ] = "",
        path: Annotated[
            str,
            Field(default=".", description="Root directory whose docsym index to search. The index must exist at <path>/.docsym/snapshots.db.")
        ] = ".",
        max_results: Annotated[
            int | None,
            Field(default=None, description="Maximum number of results. If None, uses the configured limit (typically 50).")
        ] = None,
        kind: Annotated[
            str | None,
            Field(default=None, description="If set, keep only symbols of this kind: type, function, variable, macro, namespace, file or page.")
        ] = None,
    ) -> str:
        """Look up documented API symbols by name prefix.

        Returns:
            JSON array of hits with display_name, qualified_path, url,
            kind and rank (best first). An empty array means no matches.
        """
        try:
            hits = client.search(query, path=_resolve_path(path), max_results=max_results)
            if kind:
                hits = [h for h in hits if h.kind == kind.strip().lower()]
            return ResultFormatter.format_json(hits)
        except DocsymError as e:
            return json.dumps({"error": str(e), "results": []}, allow_nan=False)

    # ==================================================================
    # Tool: get_symbol
    # ==================================================================

    @mcp.tool()
    def get_symbol(
        record_id: Annotated[
            int,
            Field(description="Record id as returned in a search hit's record_id field.")
        ],
        path: Annotated[
            str,
            Field(default=".", description="Root directory whose docsym index to read.")
        ] = ".",
    ) -> str:
        """Return the full record (path, url, kind, overload note) for one symbol id."""
        try:
            return json.dumps(client.get(record_id, path=_resolve_path(path)).to_dict())
        except DocsymError as e:
            return json.dumps({"error": str(e)})

    # ==================================================================
    # Tool: get_index_stats
    # ==================================================================

    @mcp.tool()
    def get_index_stats(
        path: Annotated[
            str,
            Field(default=".", description="Root directory whose docsym index to inspect.")
        ] = ".",
    ) -> str:
        """Return snapshot statistics; use first to verify an index exists."""
        try:
            return json.dumps(client.stats(_resolve_path(path)))
        except DocsymError as e:
            return json.dumps({"error": str(e)})

    # ==================================================================
    # Tool: health (readiness check)
    # ==================================================================

    @mcp.tool()
    def health() -> str:
        """Check that the docsym MCP server is running and responsive."""
        return json.dumps({"status": "ok", **client.health()})

    return mcp
