"""Configuration synthesizer.

Runs one submission through the pipeline:
1. Normalize -> 2. Select variant -> 3. Render -> 4. Write
"""

from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path

import structlog

from tfportal.interfaces.template import (
    BaseDocumentWriter,
    BaseTemplateRenderer,
    GeneratedDocument,
    SynthesisError,
)
from tfportal.strategies.template_engine.models import ParameterRecord
from tfportal.strategies.template_engine.normalizer import InputNormalizer
from tfportal.strategies.template_engine.registry import TemplateRegistry

log = structlog.get_logger(__name__)


@dataclass(frozen=True)
class SynthesisResult:
    """Outcome of a successful synthesis.

    Attributes:
        params: The normalized parameter record.
        document: The rendered document.
        output_path: Where the document was written.
    """

    params: ParameterRecord
    document: GeneratedDocument
    output_path: Path


class ConfigSynthesizer:
    """Turns a raw form submission into a written Terraform document."""

    def __init__(
        self,
        normalizer: InputNormalizer,
        registry: TemplateRegistry,
        renderer: BaseTemplateRenderer,
        writer: BaseDocumentWriter,
    ) -> None:
        self._normalizer = normalizer
        self._registry = registry
        self._renderer = renderer
        self._writer = writer

    def render(self, form: Mapping[str, str]) -> tuple[ParameterRecord, GeneratedDocument]:
        """Normalize, select and render without touching the filesystem.

        Raises:
            UnknownVariantError: If provider/topology has no variant.
            RenderError: If the variant cannot be rendered.
        """
        params = self._normalizer.normalize(form)
        variant = self._registry.select(params.provider, params.topology)
        document = self._renderer.render(variant, params)
        return params, document

    def synthesize(self, form: Mapping[str, str]) -> SynthesisResult:
        """Synthesize and persist the document for one submission.

        Args:
            form: Raw form fields.

        Returns:
            SynthesisResult describing what was written.

        Raises:
            SynthesisError: If any stage fails. Nothing is written unless
                rendering succeeded.
        """
        try:
            params, document = self.render(form)
            output_path = self._writer.write(document)
        except SynthesisError as e:
            log.warning("Synthesis failed", error_code=e.error_code, error=str(e))
            raise

        log.info(
            "Generated",
            provider=params.provider,
            topology=params.topology,
            server=params.resource_name,
            sg=params.security_group_name,
            subnet=params.subnet_cidr,
            output_path=str(output_path),
        )
        return SynthesisResult(params=params, document=document, output_path=output_path)
