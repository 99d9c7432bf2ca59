"""
Shared helpers for MCP tool responses.

Every tool returns a JSON string. Domain errors become their structured
``to_dict()`` form so the agent sees the suggestion and retry hints;
anything else is logged with its traceback and reported generically.
"""

from __future__ import annotations

import json
import logging
from typing import Any

from orm_discovery.shared.exceptions import ORMDiscoveryError

logger = logging.getLogger(__name__)


def to_json(data: Any) -> str:
    return json.dumps(data, indent=2, ensure_ascii=False, default=str)


def error_response(error: Exception, *, tool_name: str) -> str:
    if isinstance(error, ORMDiscoveryError):
        logger.warning(f"{tool_name} failed: {error}")
        payload = error.to_dict()
        payload.setdefault("tool", tool_name)
        return to_json(payload)

    logger.exception(f"{tool_name} failed unexpectedly")
    return to_json(
        {
            "error": f"Unexpected error in {tool_name}: {error}",
            "error_type": type(error).__name__,
            "tool": tool_name,
        }
    )
