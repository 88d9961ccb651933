"""Canonical model catalogue and per-provider model mapping.

Every canonical model has exactly one entry per provider kind: the wire model
string the backend expects and the largest ``max_tokens`` the backend accepts
for it. Bedrock caps output at 4096 tokens for every model; the direct API and
Vertex AI allow 8192 for Claude 3.5 Sonnet.
"""

from dataclasses import dataclass
from enum import Enum
from types import MappingProxyType
from typing import Mapping

from claude_gateway.core.exceptions import InvalidModelError, UnsupportedModelError
from claude_gateway.models.config import ProviderKind
from claude_gateway.models.messages import MessagesRequest, OutgoingRequest


class CanonicalModel(str, Enum):
    CLAUDE_3_OPUS = "claude-3-opus-20240229"
    CLAUDE_3_SONNET = "claude-3-sonnet-20240229"
    CLAUDE_3_HAIKU = "claude-3-haiku-20240307"
    CLAUDE_3_5_SONNET = "claude-3-5-sonnet-20240620"

    @property
    def family(self) -> str:
        """Model name without the release date, e.g. ``claude-3-opus``"""
        return self.value.rsplit("-", 1)[0]

    @property
    def release(self) -> str:
        return self.value.rsplit("-", 1)[1]


@dataclass(frozen=True)
class MappingEntry:
    wire_model: str
    max_tokens_ceiling: int


DEFAULT_MAX_TOKENS_CEILING = 4096
EXTENDED_MAX_TOKENS_CEILING = 8192


def _entries(model: CanonicalModel, extended_ceiling: int) -> Mapping[ProviderKind, MappingEntry]:
    return MappingProxyType(
        {
            ProviderKind.ANTHROPIC: MappingEntry(model.value, extended_ceiling),
            ProviderKind.BEDROCK: MappingEntry(
                f"anthropic.{model.value}-v1:0", DEFAULT_MAX_TOKENS_CEILING
            ),
            ProviderKind.VERTEX_AI: MappingEntry(
                f"{model.family}@{model.release}", extended_ceiling
            ),
        }
    )


MODEL_TABLE: Mapping[CanonicalModel, Mapping[ProviderKind, MappingEntry]] = MappingProxyType(
    {
        CanonicalModel.CLAUDE_3_OPUS: _entries(
            CanonicalModel.CLAUDE_3_OPUS, DEFAULT_MAX_TOKENS_CEILING
        ),
        CanonicalModel.CLAUDE_3_SONNET: _entries(
            CanonicalModel.CLAUDE_3_SONNET, DEFAULT_MAX_TOKENS_CEILING
        ),
        CanonicalModel.CLAUDE_3_HAIKU: _entries(
            CanonicalModel.CLAUDE_3_HAIKU, DEFAULT_MAX_TOKENS_CEILING
        ),
        CanonicalModel.CLAUDE_3_5_SONNET: _entries(
            CanonicalModel.CLAUDE_3_5_SONNET, EXTENDED_MAX_TOKENS_CEILING
        ),
    }
)

# Undated and "-latest" names resolve to the dated canonical model
MODEL_ALIASES: Mapping[str, CanonicalModel] = MappingProxyType(
    {
        alias: model
        for model in CanonicalModel
        for alias in (model.family, f"{model.family}-latest")
    }
)


def validate_table() -> None:
    """Raise UnsupportedModelError if any (model, provider) pair is missing"""
    for model in CanonicalModel:
        entries = MODEL_TABLE.get(model, {})
        for provider in ProviderKind:
            if provider not in entries:
                raise UnsupportedModelError(model, provider)


def parse_model(value: object) -> CanonicalModel:
    """Parse a caller-supplied model string into a canonical model

    Raises:
        InvalidModelError: if the value names no supported model
    """
    if isinstance(value, str):
        name = value.strip()
        try:
            return CanonicalModel(name)
        except ValueError:
            pass
        if name in MODEL_ALIASES:
            return MODEL_ALIASES[name]
    raise InvalidModelError(value)


def _entry(model: CanonicalModel, provider: ProviderKind) -> MappingEntry:
    try:
        return MODEL_TABLE[model][provider]
    except KeyError:
        raise UnsupportedModelError(model, provider) from None


def map_model(model: CanonicalModel, provider: ProviderKind) -> str:
    """Provider wire model string for a canonical model"""
    return _entry(model, provider).wire_model


def ceiling(model: CanonicalModel, provider: ProviderKind) -> int:
    """Largest max_tokens the provider accepts for the model"""
    return _entry(model, provider).max_tokens_ceiling


def clamp_max_tokens(model: CanonicalModel, provider: ProviderKind, requested: int) -> int:
    return min(requested, ceiling(model, provider))


def translate_request(request: MessagesRequest, provider: ProviderKind) -> OutgoingRequest:
    """Rewrite an inbound request for the given provider

    Raises:
        InvalidModelError: if the requested model is not supported
    """
    model = parse_model(request.model)
    params = request.model_dump(exclude_none=True)
    params.pop("stream", None)
    params["model"] = map_model(model, provider)
    params["max_tokens"] = clamp_max_tokens(model, provider, request.max_tokens)
    return OutgoingRequest(model=model, requested_model=request.model, params=params)


validate_table()
