"""Component Factory for the synthesis pipeline.

Builds the normalizer, template registry, substitution engine and document
writer from settings, caching each so the registry is validated and the
templates compiled only once per process.
"""

import logging

from tfportal.core.config import Settings, get_settings
from tfportal.interfaces.template import BaseDocumentWriter, BaseTemplateRenderer
from tfportal.strategies.template_engine import (
    BUILTIN_VARIANTS,
    ConfigSynthesizer,
    FileDocumentWriter,
    InputNormalizer,
    Provider,
    SubstitutionEngine,
    TemplateRegistry,
)

logger = logging.getLogger(__name__)


class ComponentFactory:
    """Factory for creating pipeline components based on configuration.

    Example:
        ```python
        factory = ComponentFactory(get_settings())
        result = factory.get_synthesizer().synthesize(form)
        ```
    """

    def __init__(self, settings: Settings | None = None) -> None:
        """Initialize the factory with optional settings.

        Args:
            settings: Application settings. If None, uses global settings.
        """
        self._settings = settings or get_settings()
        self._normalizer_cache: InputNormalizer | None = None
        self._registry_cache: TemplateRegistry | None = None
        self._renderer_cache: BaseTemplateRenderer | None = None
        self._writer_cache: BaseDocumentWriter | None = None
        self._synthesizer_cache: ConfigSynthesizer | None = None

    @property
    def settings(self) -> Settings:
        return self._settings

    def get_normalizer(self) -> InputNormalizer:
        """Get the input normalizer."""
        if self._normalizer_cache is None:
            logger.info("Instantiating input normalizer")
            self._normalizer_cache = InputNormalizer(
                default_cidr=self._settings.default_cidr,
                default_regions={
                    provider.value: self._settings.default_region_for(provider.value)
                    for provider in Provider
                },
            )
        return self._normalizer_cache

    def get_registry(self) -> TemplateRegistry:
        """Get the template registry.

        Raises:
            TemplateRegistryError: If a built-in variant fails validation.
        """
        if self._registry_cache is None:
            logger.info("Loading template registry")
            self._registry_cache = TemplateRegistry(
                BUILTIN_VARIANTS,
                constant_names=self._settings.template_globals().keys(),
            )
        return self._registry_cache

    def get_renderer(self) -> BaseTemplateRenderer:
        """Get the substitution engine."""
        if self._renderer_cache is None:
            logger.info("Instantiating substitution engine")
            self._renderer_cache = SubstitutionEngine(
                constants=self._settings.template_globals(),
            )
        return self._renderer_cache

    def get_writer(self) -> BaseDocumentWriter:
        """Get the document writer."""
        if self._writer_cache is None:
            logger.info(f"Instantiating document writer: {self._settings.output_path}")
            self._writer_cache = FileDocumentWriter(self._settings.output_path)
        return self._writer_cache

    def get_synthesizer(self) -> ConfigSynthesizer:
        """Get the synthesizer wired to the cached components."""
        if self._synthesizer_cache is None:
            self._synthesizer_cache = ConfigSynthesizer(
                normalizer=self.get_normalizer(),
                registry=self.get_registry(),
                renderer=self.get_renderer(),
                writer=self.get_writer(),
            )
        return self._synthesizer_cache

    def clear_cache(self) -> None:
        """Clear all cached component instances.

        This forces new instances to be created on next access.
        Useful for testing or when settings change.
        """
        self._normalizer_cache = None
        self._registry_cache = None
        self._renderer_cache = None
        self._writer_cache = None
        self._synthesizer_cache = None
        logger.debug("Component factory cache cleared")


# Global factory instance
_factory: ComponentFactory | None = None


def get_factory() -> ComponentFactory:
    """Get or create the global ComponentFactory instance.

    Returns:
        The singleton ComponentFactory instance.
    """
    global _factory
    if _factory is None:
        _factory = ComponentFactory()
    return _factory
