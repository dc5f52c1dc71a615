"""Service layer helpers for external integrations."""

from .generation_client import (
    GenerationClient,
    GenerationTimeoutError,
    extract_failure_reason,
)
from .llm_client import (
    BedrockLlmClient,
    GeminiLlmClient,
    LlmInvocationError,
    TextGenerationClient,
    create_llm_client,
)
from .relay import LumaRelay, RelayError, RelayResponse
from .response_contract import MalformedResponseError, ResponseContractError

__all__ = [
    "BedrockLlmClient",
    "GeminiLlmClient",
    "GenerationClient",
    "GenerationTimeoutError",
    "LlmInvocationError",
    "LumaRelay",
    "MalformedResponseError",
    "RelayError",
    "RelayResponse",
    "ResponseContractError",
    "TextGenerationClient",
    "create_llm_client",
    "extract_failure_reason",
]
