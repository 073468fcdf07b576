"""
Error kinds raised by the retrieval pipeline.

Only RetrievalUnavailable, RateLimited and CompletionUnavailable ever reach
an HTTP caller; the rest are consumed by fallback logic inside the
retriever and logged.
"""


class RetrievalError(Exception):
    """Base class for every domain error in scripture_rag."""


class ConfigurationError(RetrievalError):
    """Missing connection string, schema, pgvector extension or credential."""


class UpstreamUnavailable(RetrievalError):
    """A store, embedding, cross-reference or enrichment call failed."""


class DimensionMismatch(UpstreamUnavailable):
    """The embedding provider returned a vector of the wrong width."""

    def __init__(self, expected: int, actual: int):
        super().__init__(f"Embedding dimension mismatch; expected {expected}, got {actual}")
        self.expected = expected
        self.actual = actual


class RetrievalUnavailable(RetrievalError):
    """Every retrieval path failed."""


class RateLimited(RetrievalError):
    """The completion provider throttled every model that was tried."""


class CompletionUnavailable(RetrievalError):
    """Every completion model failed for a reason other than throttling."""
