"""
schedule-agent error types.

Recovery functions never raise these; they surface from the coordinator's
agent and persistence calls and from the REST transport.
"""

import re
from typing import Any, Optional

# Known limit-related error text from the agent platform
RESOURCE_LIMIT_PATTERNS = re.compile(
    r"heap size|heap limit|cpu time|cpu limit|limit exceeded|too many (soql|dml|callouts|queries)"
    r"|out of memory|memory limit|maximum execution time|request entity too large",
    re.IGNORECASE,
)


class ScheduleAgentError(Exception):
    def __init__(self, code: str, message: str, details: Optional[dict[str, Any]] = None):
        super().__init__(message)
        self.code = code
        self.details = details


class AgentError(ScheduleAgentError):
    def __init__(self, message: str, code: str = "agent_error", details: Optional[dict[str, Any]] = None):
        super().__init__(code, message, details)


class ResourceLimitError(AgentError):
    def __init__(self, message: str, details: Optional[dict[str, Any]] = None):
        super().__init__(message, code="resource_limit", details=details)


class ChainLimitError(ScheduleAgentError):
    def __init__(self, message: str, details: Optional[dict[str, Any]] = None):
        super().__init__("chain_limit", message, details)


class SessionError(ScheduleAgentError):
    def __init__(self, message: str, code: str = "session_error", details: Optional[dict[str, Any]] = None):
        super().__init__(code, message, details)


def is_resource_limit(error: Any) -> bool:
    """True when an error (or its text) looks like heap/CPU/quota exhaustion."""
    if isinstance(error, ResourceLimitError):
        return True
    return bool(RESOURCE_LIMIT_PATTERNS.search(str(error or "")))


def describe_resource_limit(batch_size: int, total_processed: int = 0) -> str:
    smaller = max(1, batch_size // 2)
    return (
        f"The agent ran out of resources while scheduling a batch of {batch_size} sessions "
        f"({total_processed} processed so far). Try again with a smaller batch size, e.g. {smaller}."
    )
