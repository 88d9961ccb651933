"""Configuration models"""
from enum import Enum
from typing import Annotated, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field


class ProviderKind(str, Enum):
    """Backends the gateway can forward to"""

    ANTHROPIC = "anthropic"
    BEDROCK = "bedrock"
    VERTEX_AI = "vertex-ai"


class AnthropicProviderConfig(BaseModel):
    """Direct Anthropic API"""

    model_config = ConfigDict(frozen=True)

    kind: Literal["anthropic"] = "anthropic"
    api_key: str = Field(min_length=1)


class BedrockProviderConfig(BaseModel):
    """AWS Bedrock. Credentials and account come from the AWS credential chain."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["bedrock"] = "bedrock"
    region: Optional[str] = None


class VertexAiProviderConfig(BaseModel):
    """Google Vertex AI"""

    model_config = ConfigDict(frozen=True)

    kind: Literal["vertex-ai"] = "vertex-ai"
    project: str = Field(min_length=1)
    region: str = Field(min_length=1)


ProviderConfig = Annotated[
    Union[AnthropicProviderConfig, BedrockProviderConfig, VertexAiProviderConfig],
    Field(discriminator="kind"),
]


class ServerConfig(BaseModel):
    """Server configuration"""

    model_config = ConfigDict(frozen=True)

    host: str = "0.0.0.0"
    port: int = 3000
    api_key: str = Field(min_length=1)


class AppConfig(BaseModel):
    """Application configuration"""

    model_config = ConfigDict(frozen=True)

    server: ServerConfig
    provider: ProviderConfig
    usage_db_url: Optional[str] = None
    verify_ssl: bool = True
    request_timeout_secs: int = Field(default=300, ge=1)
    max_retries: int = Field(default=2, ge=0)
    log_level: str = "INFO"
    log_file: Optional[str] = None
