"""FastAPI dependencies for dependency injection.

Provides the component factory stored on the application and the
synthesizer built from it.
"""

from fastapi import Depends, Request

from tfportal.core.factory import ComponentFactory
from tfportal.strategies.template_engine.synthesizer import ConfigSynthesizer


def get_component_factory(request: Request) -> ComponentFactory:
    """Return the factory created with the application."""
    return request.app.state.factory


def get_synthesizer(
    factory: ComponentFactory = Depends(get_component_factory),
) -> ConfigSynthesizer:
    """Dependency for the configuration synthesizer.

    Args:
        factory: Application component factory.

    Returns:
        The cached ConfigSynthesizer.
    """
    return factory.get_synthesizer()
