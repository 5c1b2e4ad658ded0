"""Lead notification delivery through the Gmail API."""

import asyncio
import base64
import threading
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText

from google.oauth2.credentials import Credentials
from googleapiclient.discovery import build
from googleapiclient.errors import HttpError

from kbchat.core.config import NotificationConfig
from kbchat.core.exceptions import ConfigurationError, NotificationFailure
from kbchat.core.logging import get_logger
from kbchat.leads.models import LeadNotification

logger = get_logger(__name__)

GMAIL_SEND_SCOPE = "https://www.googleapis.com/auth/gmail.send"
TOKEN_URI = "https://oauth2.googleapis.com/token"


def render_subject(notification: LeadNotification) -> str:
    return f"New Lead Captured from {notification.bot_name}"


def render_text(notification: LeadNotification) -> str:
    lines = ["New Lead Captured!", "", f"Bot Name: {notification.bot_name}"]
    if notification.name:
        lines.append(f"Name: {notification.name}")
    lines += [
        f"Email: {notification.email}",
        f"Session ID: {notification.session_id}",
        f"Captured At: {notification.captured_at.isoformat()}",
        "",
        "Log in to your dashboard to view more details.",
    ]
    return "\n".join(lines)


def render_html(notification: LeadNotification) -> str:
    name_row = f"<p><strong>Name:</strong> {notification.name}</p>" if notification.name else ""
    return f"""
      <div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto;">
        <h2 style="color: #0ea5e9;">New Lead Captured!</h2>
        <p>A new lead has been captured from your chatbot.</p>
        <div style="background-color: #f8fafc; padding: 20px; border-radius: 8px;">
          <p><strong>Bot Name:</strong> {notification.bot_name}</p>
          {name_row}
          <p><strong>Email:</strong> <a href="mailto:{notification.email}">{notification.email}</a></p>
          <p><strong>Session ID:</strong> {notification.session_id}</p>
          <p><strong>Captured At:</strong> {notification.captured_at.isoformat()}</p>
        </div>
      </div>
    """


class GmailNotifier:
    """Sends lead notifications to the bot owner from a Gmail account.

    Sends run in worker threads and the Gmail service sits on a non thread-safe
    HTTP transport, so each send builds its own service. Only the credentials
    are shared.
    """

    def __init__(self, config: NotificationConfig):
        self.config = config
        self._credentials: Credentials | None = None
        self._credentials_lock = threading.Lock()

    def _get_credentials(self) -> Credentials:
        """Creates Google OAuth2 credentials from config, once."""
        with self._credentials_lock:
            if self._credentials is None:
                cfg = self.config
                if not all([cfg.gmail_client_id, cfg.gmail_client_secret, cfg.gmail_refresh_token, cfg.sender_email]):
                    raise ConfigurationError("Gmail OAuth2 credentials are not fully configured")
                if not cfg.owner_email:
                    raise ConfigurationError("NOTIFY_OWNER_EMAIL not configured")

                self._credentials = Credentials.from_authorized_user_info(
                    info={
                        "client_id": cfg.gmail_client_id,
                        "client_secret": cfg.gmail_client_secret,
                        "refresh_token": cfg.gmail_refresh_token,
                        "token_uri": TOKEN_URI,
                    },
                    scopes=[GMAIL_SEND_SCOPE],
                )
            return self._credentials

    def _build_raw_message(self, notification: LeadNotification) -> str:
        message = MIMEMultipart("alternative")
        message["To"] = self.config.owner_email
        message["From"] = self.config.sender_email
        message["Subject"] = render_subject(notification)
        message.attach(MIMEText(render_text(notification), "plain"))
        message.attach(MIMEText(render_html(notification), "html"))
        return base64.urlsafe_b64encode(message.as_bytes()).decode()

    def _send_sync(self, notification: LeadNotification) -> str:
        service = build("gmail", "v1", credentials=self._get_credentials(), cache_discovery=False)
        raw = self._build_raw_message(notification)
        try:
            response = service.users().messages().send(userId="me", body={"raw": raw}).execute()
        except HttpError as e:
            raise NotificationFailure(f"Gmail API error: {e}") from e
        return response.get("id", "")

    async def send(self, notification: LeadNotification) -> None:
        """Deliver the notification.

        Raises:
            ConfigurationError: Credentials or recipient missing.
            NotificationFailure: The Gmail API rejected the message.
        """
        message_id = await asyncio.to_thread(self._send_sync, notification)
        logger.info("lead_notification_sent", bot_name=notification.bot_name, message_id=message_id)
