"""Template engine strategies.

Implements input normalization, variant selection, Jinja2 substitution and
document persistence for Terraform configuration synthesis.
"""

from tfportal.strategies.template_engine.models import (
    ParameterRecord,
    Provider,
    SubnetMode,
    Topology,
)
from tfportal.strategies.template_engine.normalizer import InputNormalizer
from tfportal.strategies.template_engine.registry import TemplateRegistry
from tfportal.strategies.template_engine.renderer import SubstitutionEngine
from tfportal.strategies.template_engine.synthesizer import ConfigSynthesizer, SynthesisResult
from tfportal.strategies.template_engine.templates import BUILTIN_VARIANTS
from tfportal.strategies.template_engine.writer import FileDocumentWriter

__all__ = [
    "BUILTIN_VARIANTS",
    "ConfigSynthesizer",
    "FileDocumentWriter",
    "InputNormalizer",
    "ParameterRecord",
    "Provider",
    "SubnetMode",
    "SubstitutionEngine",
    "SynthesisResult",
    "TemplateRegistry",
    "Topology",
]
