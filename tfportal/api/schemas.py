"""API request and response schemas.

Pydantic v2 models for API serialization/deserialization.
"""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from tfportal.strategies.template_engine.synthesizer import SynthesisResult


class GenerateRequest(BaseModel):
    """JSON submission mirroring the HTML form fields."""

    model_config = ConfigDict(populate_by_name=True)

    provider: str = Field(default="", description="Target provider: 'aws' or 'azure'")
    topology: str = Field(default="", description="'single-instance' or 'ha-cluster'")
    server_name: str = Field(default="", alias="serverName")
    instance_type: str = Field(default="", alias="instanceType")
    region: str = Field(default="", description="Region; defaults per provider when empty")
    sg_name: str = Field(default="", alias="sgName")
    subnet_mode: str = Field(default="", alias="subnetMode", description="'auto' or 'manual'")
    custom_cidr: str = Field(default="", alias="customCidr")
    capacity: str = Field(default="", description="Cluster capacity")
    install_nginx: str = Field(
        default="", alias="installNginx", description="'yes' to bootstrap; anything else is off"
    )

    @field_validator("*", mode="before")
    @classmethod
    def coerce_to_text(cls, v: Any) -> Any:
        """Accept JSON scalars as their text form; null becomes empty."""
        if v is None:
            return ""
        if isinstance(v, bool):
            return "true" if v else "false"
        if isinstance(v, (int, float)):
            return str(v)
        return v

    def to_form(self) -> dict[str, str]:
        """Return the submission as raw form fields."""
        return {key: str(value) for key, value in self.model_dump(by_alias=True).items()}


class GenerateResponse(BaseModel):
    """Summary of a generated document."""

    status: str = Field(default="generated")
    provider: str
    topology: str
    resource_name: str
    security_group_name: str
    subnet_cidr: str
    region: str
    variant: str
    output_path: str

    @classmethod
    def from_result(cls, result: SynthesisResult) -> "GenerateResponse":
        params = result.params
        return cls(
            provider=params.provider,
            topology=params.topology,
            resource_name=params.resource_name,
            security_group_name=params.security_group_name,
            subnet_cidr=params.subnet_cidr,
            region=params.region,
            variant=result.document.variant,
            output_path=str(result.output_path),
        )


class ErrorResponse(BaseModel):
    """Standard error response."""

    detail: str
    error_code: str | None = None
