"""
docsym Exception Hierarchy

Structured exceptions for clear error handling across CLI, API, and MCP
consumers.  Each exception type maps to a specific failure mode so that
callers can handle errors precisely without parsing message strings.

Usage::

    from docsym.exceptions import DocsymError, IndexNotFoundError

    try:
        hits = client.search("mutex")
    except IndexNotFoundError:
        print("Run 'docsym index' first.")
    except DocsymError as exc:
        print(f"docsym error: {exc}")
"""


class DocsymError(Exception):
    """Base exception for all docsym errors."""


class ConfigError(DocsymError, ValueError):
    """Configuration is invalid (e.g. a non-positive result limit)."""


class ValidationError(DocsymError, ValueError):
    """A record is malformed and was excluded from the index.

    Raised (or collected) per record; a build never aborts because of one.
    """

    def __init__(self, reason: str, record_id: int | None = None):
        self.reason = reason
        self.record_id = record_id
        prefix = f"record {record_id}: " if record_id is not None else ""
        super().__init__(f"{prefix}{reason}")


class RecordNotFoundError(DocsymError, KeyError):
    """No record with the requested id exists in the store."""

    def __str__(self) -> str:
        # KeyError repr-quotes its argument; keep the plain message.
        return str(self.args[0]) if self.args else ""


class IndexNotFoundError(DocsymError, FileNotFoundError):
    """No persisted snapshot exists at the expected path or version.

    Inherits from ``FileNotFoundError`` for intuitive exception handling.
    """


class LoaderError(DocsymError):
    """Producer output could not be read or parsed at all."""


class SessionClosedError(DocsymError):
    """Input was fed to a query session after it was closed."""
