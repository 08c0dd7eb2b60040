"""AI Agents package."""

from src.agents.assistant import MODES, AssistantReply, FinanceAssistant

__all__ = [
    "AssistantReply",
    "FinanceAssistant",
    "MODES",
]
