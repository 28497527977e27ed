"""Request and response hooks.

Claude speaks the Anthropic wire format natively, so both transforms and
risk control pass payloads through unchanged.
"""

from typing import Any

from claude_provider.core.logging import get_logger


logger = get_logger(__name__)


async def transform_request(request: Any) -> Any:
    return request


async def transform_response(response: Any) -> Any:
    return response


async def apply_risk_control(request: Any, credential_id: str | None = None) -> Any:
    logger.debug("risk_control_skipped", credential_id=credential_id)
    return request
