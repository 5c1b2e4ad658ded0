"""Chat turn handling: prompt assembly and the streaming responder."""

from .models import Bot, ChatMessage, Message, Role
from .prompt import PromptAssembler
from .responder import ConversationResponder, ConversationTurn, TurnState

__all__ = [
    "Bot",
    "ChatMessage",
    "ConversationResponder",
    "ConversationTurn",
    "Message",
    "PromptAssembler",
    "Role",
    "TurnState",
]
