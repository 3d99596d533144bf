"""Abstract base classes and shared types for configuration synthesis."""

from tfportal.interfaces.template import (
    BaseDocumentWriter,
    BaseTemplateRenderer,
    ConditionalFragment,
    GeneratedDocument,
    PersistenceError,
    RenderError,
    SynthesisError,
    TemplateRegistryError,
    TemplateVariant,
    UnknownVariantError,
)

__all__ = [
    "BaseDocumentWriter",
    "BaseTemplateRenderer",
    "ConditionalFragment",
    "GeneratedDocument",
    "PersistenceError",
    "RenderError",
    "SynthesisError",
    "TemplateRegistryError",
    "TemplateVariant",
    "UnknownVariantError",
]
