"""Template engine domain models.

Pydantic models specific to configuration synthesis.
These models live here to avoid circular imports with the API layer.
"""

import enum

from pydantic import BaseModel, ConfigDict, Field, computed_field


class Provider(str, enum.Enum):
    """Target infrastructure platform."""

    AWS = "aws"
    AZURE = "azure"


class Topology(str, enum.Enum):
    """Shape of the generated infrastructure."""

    SINGLE_INSTANCE = "single-instance"
    HA_CLUSTER = "ha-cluster"


class SubnetMode(str, enum.Enum):
    """How the subnet CIDR is chosen."""

    AUTO = "auto"
    MANUAL = "manual"


class ParameterRecord(BaseModel):
    """Validated and defaulted parameters of one form submission."""

    model_config = ConfigDict(frozen=True, use_enum_values=True)

    resource_name: str = Field(description="Server / cluster name used in resource tags")
    provider: Provider = Field(description="Target provider")
    topology: Topology = Field(default=Topology.SINGLE_INSTANCE, description="Topology")
    instance_size: str = Field(description="Instance type or VM size")
    region: str = Field(description="Provider region or location")
    security_group_name: str = Field(description="Security group / NSG name")
    subnet_cidr: str = Field(min_length=1, description="Resolved subnet CIDR")
    capacity: int = Field(default=1, ge=1, description="Desired cluster capacity")
    install_bootstrap_script: bool = Field(
        default=False, description="Whether to render the web server bootstrap script"
    )

    @computed_field
    @property
    def max_capacity(self) -> int:
        """Autoscaling ceiling for cluster topologies."""
        return self.capacity * 2
