# src/dev_coach/llm/offline.py

from __future__ import annotations

from ..core.ports import ChatMessage, ChatResult


class OfflineChatClient:
    """
    Offline deterministic chat client used when no external API is configured.

    Behavior:
    - Check-in prompts -> a short generic nudge
    - Normal chat -> a friendly offline demo response echoing the user
    """

    def chat(self, messages: list[ChatMessage]) -> ChatResult:
        system = next((m["content"] for m in messages if m.get("role") == "system"), "")
        if "scheduled check-in" in system.lower():
            return (
                "Check-in time! How is your current task going? "
                "Pick one small next step and do it now.",
                None,
            )

        user_text = ""
        for m in reversed(messages):
            if m.get("role") == "user":
                user_text = m.get("content", "")
                break

        return (
            "Offline demo mode: no AI provider is configured.\n"
            "Set DEV_COACH_OPENAI_API_KEY (and DEV_COACH_LLM_MODELS) to enable real responses.\n\n"
            f"You said: {user_text}",
            None,
        )
