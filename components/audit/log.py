"""Structured activity audit sink."""

import logging

logger = logging.getLogger("components.audit")


class LoggingActivityAuditLog:
    """ActivityAuditLog that emits one structured log record per action."""

    def __init__(self, audit_logger: logging.Logger = logger):
        self._logger = audit_logger

    async def record(self, user_id: int, action: str, details: str) -> None:
        self._logger.info(
            "user=%s action=%s %s",
            user_id,
            action,
            details,
            extra={"user_id": user_id, "action": action, "details": details},
        )
