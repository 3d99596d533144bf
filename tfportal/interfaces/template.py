"""Template synthesis interfaces.

Defines the immutable template types and the abstract base classes for
rendering a parameter record into a Terraform document and persisting it.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import Any


@dataclass(frozen=True)
class ConditionalFragment:
    """A template region included or omitted as a whole.

    Attributes:
        slot: Name of the slot line in the variant body where the fragment lands.
        flag: Boolean ParameterRecord field that gates the fragment.
        source: Fragment text, with its own placeholders.
    """

    slot: str
    flag: str
    source: str


@dataclass(frozen=True)
class TemplateVariant:
    """One concrete template bound to a (provider, topology) pair.

    Attributes:
        provider: Provider value, e.g. "aws".
        topology: Topology value, e.g. "single-instance".
        body: Template text with ``{{ field }}`` placeholders and slot lines.
        fragments: Conditional fragments spliced into the body's slots.
        description: Human readable summary shown in logs.
    """

    provider: str
    topology: str
    body: str
    fragments: tuple[ConditionalFragment, ...] = ()
    description: str = ""

    @property
    def key(self) -> tuple[str, str]:
        return (self.provider, self.topology)

    @property
    def name(self) -> str:
        return f"{self.provider}/{self.topology}"


@dataclass(frozen=True)
class GeneratedDocument:
    """Fully substituted document text.

    Attributes:
        text: The rendered Terraform configuration.
        variant: Name of the variant it was rendered from.
    """

    text: str
    variant: str


class BaseTemplateRenderer(ABC):
    """Abstract base class for substitution strategies."""

    @abstractmethod
    def render(self, variant: TemplateVariant, params: Any) -> GeneratedDocument:
        """Bind a parameter record into a template variant.

        Args:
            variant: The selected template variant.
            params: The normalized ParameterRecord.

        Returns:
            The generated document.

        Raises:
            RenderError: If a placeholder cannot be resolved.
        """


class BaseDocumentWriter(ABC):
    """Abstract base class for document persistence strategies."""

    @abstractmethod
    def write(self, document: GeneratedDocument) -> Path:
        """Persist a generated document.

        Args:
            document: The document to write.

        Returns:
            Path the document was written to.

        Raises:
            PersistenceError: If the output cannot be written.
        """

    @property
    @abstractmethod
    def output_path(self) -> Path:
        """Return the path documents are written to."""


class SynthesisError(Exception):
    """Base exception for configuration synthesis failures."""

    error_code = "SYNTHESIS_ERROR"


class UnknownVariantError(SynthesisError):
    """Raised when a provider/topology pair has no registered variant."""

    error_code = "UNKNOWN_VARIANT"


class TemplateRegistryError(SynthesisError):
    """Raised when a variant fails validation at registration."""

    error_code = "TEMPLATE_REGISTRY_ERROR"


class RenderError(SynthesisError):
    """Raised when a variant cannot be rendered against a record."""

    error_code = "RENDER_ERROR"


class PersistenceError(SynthesisError):
    """Raised when the generated document cannot be written."""

    error_code = "PERSISTENCE_ERROR"
