"""Input normalizer.

Converts raw form fields into a typed, defaulted ParameterRecord.
"""

import logging
from collections.abc import Mapping

from tfportal.interfaces.template import UnknownVariantError
from tfportal.strategies.template_engine.models import (
    ParameterRecord,
    Provider,
    SubnetMode,
    Topology,
)

logger = logging.getLogger(__name__)

DEFAULT_CIDR = "172.31.250.0/24"
DEFAULT_REGION = "ap-southeast-1"
TRUTHY_TOKEN = "yes"


class InputNormalizer:
    """Normalizes untrusted form input.

    Identifier-like fields (names, sizes) are passed through verbatim; the
    substitution engine escapes them for their position in the document.
    """

    def __init__(
        self,
        default_cidr: str = DEFAULT_CIDR,
        default_regions: Mapping[str, str] | None = None,
    ) -> None:
        """Initialize the normalizer.

        Args:
            default_cidr: CIDR used in auto mode and for empty manual input.
            default_regions: Fallback region per provider value.
        """
        self._default_cidr = default_cidr
        self._default_regions = dict(default_regions or {Provider.AWS.value: DEFAULT_REGION})

    def normalize(self, form: Mapping[str, str]) -> ParameterRecord:
        """Build a ParameterRecord from raw form fields.

        Args:
            form: Raw field name to raw string value. Absent keys are empty.

        Returns:
            The normalized ParameterRecord.

        Raises:
            UnknownVariantError: If provider or topology is not registered.
        """
        provider = self._resolve_provider(self._field(form, "provider"))
        topology = self._resolve_topology(self._field(form, "topology"))

        region = self._field(form, "region") or self._default_regions.get(
            provider.value, DEFAULT_REGION
        )

        record = ParameterRecord(
            resource_name=self._field(form, "serverName"),
            provider=provider,
            topology=topology,
            instance_size=self._field(form, "instanceType"),
            region=region,
            security_group_name=self._field(form, "sgName"),
            subnet_cidr=self.resolve_cidr(
                self._field(form, "subnetMode"), self._field(form, "customCidr")
            ),
            capacity=self._parse_capacity(self._field(form, "capacity")),
            install_bootstrap_script=self._field(form, "installNginx") == TRUTHY_TOKEN,
        )

        logger.debug(f"Normalized submission: {record.model_dump()}")
        return record

    def resolve_cidr(self, mode: str, custom_cidr: str) -> str:
        """Pick the subnet CIDR for a subnet mode.

        Unrecognized or missing modes are treated as auto, and so is manual
        mode with a blank CIDR.
        """
        custom_cidr = custom_cidr.strip()
        if mode == SubnetMode.MANUAL.value and custom_cidr:
            return custom_cidr
        return self._default_cidr

    @staticmethod
    def _field(form: Mapping[str, str], name: str) -> str:
        value = form.get(name)
        return "" if value is None else str(value)

    @staticmethod
    def _resolve_provider(raw: str) -> Provider:
        try:
            return Provider(raw)
        except ValueError as e:
            raise UnknownVariantError(
                f"Unknown provider: '{raw}'. "
                f"Valid options: {', '.join(p.value for p in Provider)}"
            ) from e

    @staticmethod
    def _resolve_topology(raw: str) -> Topology:
        if not raw:
            return Topology.SINGLE_INSTANCE
        try:
            return Topology(raw)
        except ValueError as e:
            raise UnknownVariantError(
                f"Unknown topology: '{raw}'. "
                f"Valid options: {', '.join(t.value for t in Topology)}"
            ) from e

    @staticmethod
    def _parse_capacity(raw: str) -> int:
        # Malformed or non-positive capacity collapses to a single instance
        try:
            capacity = int(raw.strip())
        except ValueError:
            return 1
        return max(capacity, 1)
