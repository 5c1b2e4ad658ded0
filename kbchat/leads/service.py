"""Lead capture: dedupe, record, notify, track delivery."""

from __future__ import annotations

from datetime import UTC, datetime

from kbchat.chat.models import Bot
from kbchat.core.exceptions import LeadAlreadyExists, NotFoundError, ValidationError
from kbchat.core.logging import get_logger
from kbchat.core.protocols import BotStore, LeadStore, Notifier
from kbchat.leads.detector import detect_email, is_valid_email, normalize_email
from kbchat.leads.models import Lead, LeadNotification, LeadStatus

logger = get_logger(__name__)


class LeadCaptureService:
    """Records at most one lead per (bot, email) and notifies the bot owner."""

    def __init__(self, leads: LeadStore, notifier: Notifier, bots: BotStore):
        self.leads = leads
        self.notifier = notifier
        self.bots = bots

    async def capture_from_text(self, bot: Bot, text: str, session_id: str) -> Lead | None:
        """Detect an email in chat text and capture it.

        Returns:
            The new lead, or None when nothing was detected or the lead exists.
        """
        email = detect_email(text)
        if email is None:
            return None

        lead, created = await self._capture(bot, email, session_id)
        return lead if created else None

    async def capture_identified(
        self,
        bot_id: str,
        email: str,
        session_id: str,
        name: str | None = None,
    ) -> tuple[Lead, bool]:
        """Capture a lead submitted through a pre-chat identification form.

        Returns:
            (lead, created). An existing lead is returned with ``created`` False.
        """
        if not is_valid_email(email.strip()):
            raise ValidationError("Invalid email address", field="email")

        bot = await self.bots.get_bot(bot_id)
        if bot is None:
            raise NotFoundError("bot", bot_id)

        return await self._capture(bot, normalize_email(email), session_id, name=name)

    async def _capture(
        self,
        bot: Bot,
        email: str,
        session_id: str,
        name: str | None = None,
    ) -> tuple[Lead, bool]:
        existing = await self.leads.find_lead(bot.id, email)
        if existing is not None:
            logger.debug("lead_exists", bot_id=bot.id, lead_id=existing.id)
            return existing, False

        try:
            lead = await self.leads.create_lead(
                Lead(bot_id=bot.id, email=email, session_id=session_id, name=name)
            )
        except LeadAlreadyExists:
            # Lost a race with a concurrent detection of the same address
            existing = await self.leads.find_lead(bot.id, email)
            if existing is None:
                raise
            return existing, False

        logger.info("lead_captured", bot_id=bot.id, lead_id=lead.id, session_id=session_id)
        await self._notify(bot, lead)
        return lead, True

    async def _notify(self, bot: Bot, lead: Lead) -> None:
        notification = LeadNotification(
            email=lead.email,
            bot_name=bot.name,
            session_id=lead.session_id,
            captured_at=lead.created_at,
            name=lead.name,
        )
        try:
            await self.notifier.send(notification)
        except Exception as e:
            await self.leads.mark_lead_failed(lead.id, str(e))
            lead.status = LeadStatus.FAILED
            lead.attempts = 1
            lead.last_error = str(e)
            logger.error("lead_notification_failed", bot_id=bot.id, lead_id=lead.id, error=str(e))
            return

        sent_at = datetime.now(UTC)
        await self.leads.mark_lead_sent(lead.id, sent_at)
        lead.status = LeadStatus.SENT
        lead.attempts = 1
        lead.sent_at = sent_at

    async def list_leads(self, bot_id: str | None = None, limit: int = 100) -> list[Lead]:
        """Leads newest first for the operator dashboard."""
        return await self.leads.list_leads(bot_id=bot_id, limit=limit)
