"""
Application configuration management.

Settings are built once by the entry point and passed explicitly to the
pipeline, so several organizations can be reviewed in one process.
"""

from typing import Optional

from pydantic import AliasChoices, Field, ValidationError
from pydantic_settings import BaseSettings

from card_review.errors import ConfigurationError


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Azure DevOps
    azure_devops_org_url: str = Field(
        validation_alias=AliasChoices("AZURE_DEVOPS_ORG_URL", "ORG_URL")
    )
    azure_devops_pat: str = Field(
        validation_alias=AliasChoices("AZURE_DEVOPS_PAT", "ADO_PAT")
    )

    # Work item field that receives the report, e.g. Custom.AIAnalysis
    report_field: str = Field(
        validation_alias=AliasChoices("REPORT_FIELD", "FIELD_UPDATE_ANALYSIS")
    )

    # OpenAI
    openai_api_key: Optional[str] = None
    azure_openai_endpoint: Optional[str] = None
    azure_openai_api_key: Optional[str] = None
    azure_openai_deployment: Optional[str] = None
    llm_model: str = "gpt-4o"
    llm_temperature: float = 0.3
    llm_max_tokens: int = 2000

    # Application
    log_level: str = "INFO"

    class Config:
        env_file = ".env"
        case_sensitive = False
        extra = "ignore"
        populate_by_name = True

    @property
    def uses_azure_openai(self) -> bool:
        return bool(self.azure_openai_endpoint and self.azure_openai_api_key)

    def validate_generation_credentials(self) -> None:
        """
        Ensure some generation service can be reached.

        Raises:
            ConfigurationError: If neither OpenAI nor Azure OpenAI is configured
        """
        if not self.openai_api_key and not self.uses_azure_openai:
            raise ConfigurationError(
                "OPENAI_API_KEY (or AZURE_OPENAI_ENDPOINT and AZURE_OPENAI_API_KEY) must be set"
            )


def load_settings() -> Settings:
    """
    Load settings from the environment and ``.env``.

    Returns:
        Validated Settings instance

    Raises:
        ConfigurationError: If a required setting is missing or invalid
    """
    try:
        settings = Settings()
    except ValidationError as e:
        missing = ", ".join(
            str(error["loc"][0]) for error in e.errors() if error.get("loc")
        )
        raise ConfigurationError(f"Invalid or missing settings: {missing}") from e

    settings.validate_generation_credentials()
    return settings
