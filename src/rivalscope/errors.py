"""Exception hierarchy.

Batch operations never let these escape per item; they are raised by adapters and converted
into typed result fields at the batch boundary.
"""

from __future__ import annotations


class RivalscopeError(RuntimeError):
    """Base error for the package."""


class ConfigError(RivalscopeError):
    """Missing or inconsistent configuration (raised at construction time)."""


class SearchError(RivalscopeError):
    pass


class TavilySearchError(SearchError):
    pass


class ExtractionError(RivalscopeError):
    """A page could not be fetched or reduced to readable text."""


class SummaryParseError(RivalscopeError):
    """Structured summary output did not match the page summary schema."""


class CacheError(RivalscopeError):
    pass


class ArtifactStoreError(RivalscopeError):
    pass
