"""Template registry and variant selector.

Holds the fixed set of template variants keyed by (provider, topology).
Every variant is validated once when it is registered; selection is a pure
lookup that fails loudly for unknown combinations.
"""

import logging
import re
from collections.abc import Iterable, Mapping
from types import MappingProxyType

from tfportal.interfaces.template import (
    RenderError,
    TemplateRegistryError,
    TemplateVariant,
    UnknownVariantError,
)
from tfportal.strategies.template_engine.models import ParameterRecord
from tfportal.strategies.template_engine.renderer import (
    compose,
    create_environment,
    find_placeholders,
    find_slots,
)

logger = logging.getLogger(__name__)

_BACKEND_BLOCK = re.compile(r'^\s*backend\s+"[^"]+"\s*\{', re.MULTILINE)
_PROVIDER_BLOCK = re.compile(r'^provider\s+"[^"]+"\s*\{', re.MULTILINE)

# Field types rendered as bare literals; everything else is quoted
_BARE_TYPES = (bool, int)

# Filters whose output is inert inside a heredoc body
_HEREDOC_SAFE_FILTERS = frozenset({"b64"})


def record_field_types() -> dict[str, type]:
    """Map every ParameterRecord field, computed ones included, to its type."""
    types: dict[str, type] = {
        name: field.annotation for name, field in ParameterRecord.model_fields.items()
    }
    for name, field in ParameterRecord.model_computed_fields.items():
        types[name] = field.return_type
    return types


class TemplateRegistry:
    """Immutable registry of template variants.

    Example:
        ```python
        registry = TemplateRegistry(BUILTIN_VARIANTS, constant_names=["state_bucket"])
        variant = registry.select("aws", "ha-cluster")
        ```
    """

    def __init__(
        self,
        variants: Iterable[TemplateVariant],
        constant_names: Iterable[str] = (),
    ) -> None:
        """Validate and register variants.

        Args:
            variants: Variants to register.
            constant_names: Names of string constants bound at render time.

        Raises:
            TemplateRegistryError: If a variant is invalid or registered twice.
        """
        self._field_types = record_field_types()
        for name in constant_names:
            self._field_types.setdefault(name, str)

        variants_by_key: dict[tuple[str, str], TemplateVariant] = {}
        for variant in variants:
            if variant.key in variants_by_key:
                raise TemplateRegistryError(f"Variant {variant.name} registered twice")
            self._validate(variant)
            variants_by_key[variant.key] = variant
            logger.debug(f"Registered template variant: {variant.name} ({variant.description})")

        self._variants = MappingProxyType(variants_by_key)
        logger.info(f"Template registry loaded with {len(self._variants)} variants")

    @property
    def variants(self) -> Mapping[tuple[str, str], TemplateVariant]:
        return self._variants

    def keys(self) -> list[tuple[str, str]]:
        return sorted(self._variants)

    def select(self, provider: str, topology: str) -> TemplateVariant:
        """Select the variant for a provider/topology pair.

        Args:
            provider: Provider value, e.g. "aws".
            topology: Topology value, e.g. "single-instance".

        Returns:
            The matching TemplateVariant.

        Raises:
            UnknownVariantError: If no variant is registered for the pair.
        """
        variant = self._variants.get((provider, topology))
        if variant is None:
            available = ", ".join(f"{p}/{t}" for p, t in self.keys())
            raise UnknownVariantError(
                f"No template variant for {provider}/{topology}. Available: {available}"
            )
        return variant

    def _validate(self, variant: TemplateVariant) -> None:
        """Check a variant against the ParameterRecord schema.

        Raises:
            TemplateRegistryError: On any structural or placeholder mismatch.
        """
        slots = find_slots(variant.body)
        fragment_slots = [fragment.slot for fragment in variant.fragments]

        for slot in set(slots) | set(fragment_slots):
            if slots.count(slot) != 1 or fragment_slots.count(slot) != 1:
                raise TemplateRegistryError(
                    f"Variant {variant.name}: slot '{slot}' must appear exactly once "
                    f"in the body and have exactly one fragment"
                )

        for fragment in variant.fragments:
            if self._field_types.get(fragment.flag) is not bool:
                raise TemplateRegistryError(
                    f"Variant {variant.name}: fragment '{fragment.slot}' is gated on "
                    f"'{fragment.flag}', which is not a boolean field"
                )

        try:
            source = compose(variant, frozenset(fragment_slots))
            placeholders = find_placeholders(source, create_environment())
        except RenderError as e:
            raise TemplateRegistryError(f"Variant {variant.name}: {e}") from e

        for placeholder in placeholders:
            field_type = self._field_types.get(placeholder.name)
            if field_type is None:
                raise TemplateRegistryError(
                    f"Variant {variant.name} line {placeholder.lineno}: "
                    f"unknown placeholder '{placeholder.name}'"
                )
            if placeholder.heredoc:
                # Heredoc text reaches scripts verbatim; only encoded values are allowed
                if not _HEREDOC_SAFE_FILTERS.intersection(placeholder.filters[-1:]):
                    raise TemplateRegistryError(
                        f"Variant {variant.name} line {placeholder.lineno}: placeholder "
                        f"'{placeholder.name}' inside a heredoc must end with the b64 filter"
                    )
                continue
            bare = field_type in _BARE_TYPES
            if bare and placeholder.quoted:
                raise TemplateRegistryError(
                    f"Variant {variant.name} line {placeholder.lineno}: numeric "
                    f"placeholder '{placeholder.name}' must not be quoted"
                )
            if not bare and not placeholder.quoted:
                raise TemplateRegistryError(
                    f"Variant {variant.name} line {placeholder.lineno}: string "
                    f"placeholder '{placeholder.name}' must be quoted"
                )

        if len(_BACKEND_BLOCK.findall(source)) != 1:
            raise TemplateRegistryError(
                f"Variant {variant.name} must declare exactly one state backend"
            )
        if len(_PROVIDER_BLOCK.findall(source)) != 1:
            raise TemplateRegistryError(
                f"Variant {variant.name} must declare exactly one provider block"
            )
