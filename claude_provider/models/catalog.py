"""Static catalog of the Claude models this provider serves."""

from typing import Any

from pydantic import BaseModel, Field

from claude_provider._version import __version__
from claude_provider.auth.models import AuthType


CLAUDE_MODEL_PREFIX = "claude-"
CONTEXT_LENGTH = 200_000


class ModelInfo(BaseModel):
    """Model entry returned by ``list_models``."""

    id: str = Field(..., description="Anthropic model identifier")
    display_name: str
    family: str | None = Field(default=None, description="opus, sonnet or haiku")
    context_length: int | None = CONTEXT_LENGTH
    supports_vision: bool = True
    supports_tools: bool = True


class AuthTypeInfo(BaseModel):
    id: AuthType
    display_name: str
    description: str
    category: str
    icon: str


class ModelFamily(BaseModel):
    name: str
    pattern: str
    tier: int | None = None
    description: str


MODELS: tuple[ModelInfo, ...] = (
    ModelInfo(id="claude-opus-4-20250514", display_name="Claude Opus 4", family="opus"),
    ModelInfo(
        id="claude-opus-4-5-20251101", display_name="Claude Opus 4.5", family="opus"
    ),
    ModelInfo(
        id="claude-sonnet-4-20250514", display_name="Claude Sonnet 4", family="sonnet"
    ),
    ModelInfo(
        id="claude-sonnet-4-5-20250929",
        display_name="Claude Sonnet 4.5",
        family="sonnet",
    ),
    ModelInfo(
        id="claude-haiku-3-5-20241022", display_name="Claude Haiku 3.5", family="haiku"
    ),
    ModelInfo(
        id="claude-3-5-sonnet-20241022",
        display_name="Claude 3.5 Sonnet",
        family="sonnet",
    ),
)

AUTH_TYPES: tuple[AuthTypeInfo, ...] = (
    AuthTypeInfo(
        id=AuthType.OAUTH,
        display_name="OAuth Login",
        description="Authorize through Claude.ai OAuth",
        category="oauth",
        icon="Key",
    ),
    AuthTypeInfo(
        id=AuthType.CLAUDE_CODE,
        display_name="Claude Code",
        description="Use credentials from the Claude Code CLI",
        category="oauth",
        icon="Terminal",
    ),
    AuthTypeInfo(
        id=AuthType.CONSOLE,
        display_name="Console OAuth",
        description="Anthropic Console OAuth for teams and enterprises",
        category="oauth",
        icon="Building",
    ),
    AuthTypeInfo(
        id=AuthType.SETUP_TOKEN,
        display_name="Setup Token",
        description="Inference-only token with minimal scope",
        category="token",
        icon="Lock",
    ),
    AuthTypeInfo(
        id=AuthType.BEDROCK,
        display_name="AWS Bedrock",
        description="Claude through AWS Bedrock",
        category="api_key",
        icon="Cloud",
    ),
    AuthTypeInfo(
        id=AuthType.CCR,
        display_name="CCR (Relay)",
        description="Third-party Claude relay service",
        category="api_key",
        icon="Server",
    ),
)

MODEL_FAMILIES: tuple[ModelFamily, ...] = (
    ModelFamily(
        name="opus",
        pattern="claude-opus-*",
        tier=3,
        description="Claude Opus - most capable",
    ),
    ModelFamily(
        name="sonnet",
        pattern="claude-*-sonnet*",
        tier=2,
        description="Claude Sonnet - balanced",
    ),
    ModelFamily(
        name="haiku",
        pattern="claude-*-haiku*",
        tier=1,
        description="Claude Haiku - fastest",
    ),
    ModelFamily(
        name="all-claude",
        pattern="claude-*",
        description="Every Claude model",
    ),
)


def list_models() -> list[ModelInfo]:
    return [model.model_copy() for model in MODELS]


def supports_model(model: str) -> bool:
    """Any ``claude-`` model id is accepted, listed or not."""
    return model.startswith(CLAUDE_MODEL_PREFIX)


def get_plugin_info() -> dict[str, Any]:
    """Describe the provider, its auth schemes and model families."""
    return {
        "id": "claude",
        "display_name": "Claude (Anthropic)",
        "version": __version__,
        "description": (
            "Claude provider supporting OAuth, Claude Code, Console, "
            "Setup Token, Bedrock and CCR authentication"
        ),
        "target_protocol": "anthropic",
        "category": "oauth",
        "auth_types": [info.model_dump(mode="json") for info in AUTH_TYPES],
        "model_families": [family.model_dump(mode="json") for family in MODEL_FAMILIES],
    }
