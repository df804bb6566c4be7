"""Default notification gateway."""

import logging

logger = logging.getLogger(__name__)


class LoggingNotificationGateway:
    """NotificationGateway that only logs the message; delivery lives elsewhere."""

    async def notify(self, user_id: int, message: str) -> None:
        logger.info("Notify user %s: %s", user_id, message)
