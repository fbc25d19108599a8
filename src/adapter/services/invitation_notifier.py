import logging
from datetime import datetime

from src.app.services.collaborators import InvitationNotifier

logger = logging.getLogger(__name__)


class LoggingInvitationNotifier(InvitationNotifier):
    """
    Stand-in delivery channel until a mail/queue integration is wired up.
    Logs the dispatch without the token.
    """

    async def send_invitation(self, email: str, token: str, expires_at: datetime) -> None:
        logger.info(f"Invitation dispatched to {email}, expires at {expires_at.isoformat()}")
