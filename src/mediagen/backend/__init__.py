"""Provider implementations used by the CLI."""

from mediagen.backend.echo import EchoEnrichmentProvider, EchoGenerationProvider, echo_transport

__all__ = [
    "EchoEnrichmentProvider",
    "EchoGenerationProvider",
    "echo_transport",
]
