"""
Tests for the docsym MCP server factory (requires the ``mcp`` extra).
"""

import pytest

pytest.importorskip("fastmcp")

from docsym.mcp.server import create_server  # noqa: E402


class TestCreateServer:

    def test_server_is_named(self, config):
        server = create_server(config)
        assert server.name == "docsym"

    def test_default_path_env(self, config, monkeypatch, tmp_path):
        monkeypatch.setenv("DOCSYM_DEFAULT_PATH", str(tmp_path))
        assert create_server(config) is not None
