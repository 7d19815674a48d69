"""Exception types raised by the answering pipeline and its providers."""


class ConfigurationError(ValueError):
    """A required provider credential or identifier is not configured."""


class ProviderError(RuntimeError):
    """An external provider call failed."""


class EmbeddingError(ProviderError):
    """The embedding provider could not embed the text."""


class VectorIndexError(ProviderError):
    """The vector index could not be queried."""


class GenerationError(ProviderError):
    """The text-generation provider did not return a completion."""


class RAGPipelineError(RuntimeError):
    """The answering pipeline failed for a request."""
