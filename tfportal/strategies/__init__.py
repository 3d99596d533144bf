"""Concrete strategy implementations."""

from tfportal.strategies.template_engine import (
    ConfigSynthesizer,
    FileDocumentWriter,
    InputNormalizer,
    SubstitutionEngine,
    TemplateRegistry,
)

__all__ = [
    "ConfigSynthesizer",
    "FileDocumentWriter",
    "InputNormalizer",
    "SubstitutionEngine",
    "TemplateRegistry",
]
