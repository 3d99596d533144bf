"""Application configuration using Pydantic v2 Settings.

Centralized configuration that loads from environment variables
and provides type-safe access throughout the application.
"""

import logging
from pathlib import Path

import structlog
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    All settings have sensible defaults and can be overridden via
    environment variables or a .env file.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Output
    output_path: Path = Field(
        default=Path("main.tf"),
        description="Where the generated Terraform document is written.",
    )

    # Form defaults
    default_cidr: str = Field(
        default="172.31.250.0/24",
        description="Subnet CIDR used in auto mode and as the manual-mode fallback.",
    )
    aws_default_region: str = Field(
        default="ap-southeast-1",
        description="Region used for AWS submissions that leave the region empty.",
    )
    azure_default_region: str = Field(
        default="southeastasia",
        description="Location used for Azure submissions that leave the region empty.",
    )

    # Remote state
    state_bucket: str = Field(
        default="terraform-state-portal",
        description="S3 bucket holding Terraform state for AWS documents.",
    )
    state_key: str = Field(
        default="terraform.tfstate",
        description="State object key / blob name.",
    )
    azure_state_resource_group: str = Field(
        default="tfstate-rg",
        description="Resource group of the Azure state storage account.",
    )
    azure_state_storage_account: str = Field(
        default="tfstateportal",
        description="Storage account holding Terraform state for Azure documents.",
    )
    azure_state_container: str = Field(
        default="tfstate",
        description="Blob container holding Terraform state for Azure documents.",
    )

    # Images
    aws_ami: str = Field(
        default="ami-0b3eb051c6c7936e9",
        description="AMI used for AWS instances and launch templates.",
    )

    # Server
    host: str = Field(default="0.0.0.0", description="Bind address for uvicorn.")
    port: int = Field(default=8080, description="Bind port for uvicorn.")

    # Logging
    log_dir: Path = Field(
        default=Path("logs"),
        description="Directory for info.log and error.log.",
    )
    log_level: str = Field(
        default="INFO",
        description="Logging level: DEBUG, INFO, WARNING, ERROR.",
    )

    @field_validator("log_level")
    @classmethod
    def normalize_log_level(cls, v: str) -> str:
        """Normalize log level to uppercase."""
        return v.upper()

    def default_region_for(self, provider: str) -> str:
        """Return the fallback region for a provider value."""
        if provider == "azure":
            return self.azure_default_region
        return self.aws_default_region

    def template_globals(self) -> dict[str, str]:
        """Deployment constants made available to every template."""
        return {
            "state_bucket": self.state_bucket,
            "state_key": self.state_key,
            "azure_state_resource_group": self.azure_state_resource_group,
            "azure_state_storage_account": self.azure_state_storage_account,
            "azure_state_container": self.azure_state_container,
            "aws_ami": self.aws_ami,
        }

    def configure_logging(self) -> None:
        """Route structlog events through stdlib logging.

        Structured events (such as the per-submission "Generated" record) end
        up in the same handlers as plain log records, rendered as key=value
        pairs after the event name. Loggers are not cached, so the processor
        chain can be swapped later, e.g. by ``structlog.testing.capture_logs``.
        """
        level = getattr(logging, self.log_level, logging.INFO)

        structlog.configure(
            processors=[
                structlog.stdlib.filter_by_level,
                structlog.stdlib.PositionalArgumentsFormatter(),
                structlog.processors.StackInfoRenderer(),
                structlog.processors.format_exc_info,
                structlog.processors.KeyValueRenderer(key_order=["event"], drop_missing=True),
            ],
            wrapper_class=structlog.stdlib.BoundLogger,
            context_class=dict,
            logger_factory=structlog.stdlib.LoggerFactory(),
            cache_logger_on_first_use=False,
        )

        logging.basicConfig(format="%(message)s", level=level)
        logging.getLogger("tfportal").setLevel(level)


# Global settings instance
_settings: Settings | None = None


def get_settings() -> Settings:
    """Get or create the global Settings instance.

    Returns:
        The singleton Settings instance.
    """
    global _settings
    if _settings is None:
        _settings = Settings()
        _settings.configure_logging()
    return _settings
