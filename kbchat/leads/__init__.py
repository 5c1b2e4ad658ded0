"""Lead capture from chat input and pre-chat forms."""

from .detector import detect_email
from .models import Lead, LeadNotification, LeadStatus
from .service import LeadCaptureService

__all__ = ["Lead", "LeadCaptureService", "LeadNotification", "LeadStatus", "detect_email"]
