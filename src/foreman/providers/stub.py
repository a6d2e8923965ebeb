"""Development stub provider.

Only used when ``provider = "stub"`` is selected explicitly; Foreman never
falls back to it when a real provider fails.
"""

from __future__ import annotations

from foreman.providers.base import BaseProvider
from foreman.types.providers import ChatMessage, Completion
from foreman.types.tools import ToolDef


class DevStubProvider(BaseProvider):
    """Echoes the latest user message back without calling any API."""

    def __init__(self, model: str = "dev-stub") -> None:
        super().__init__(model)

    async def _complete(
        self,
        messages: list[ChatMessage],
        tools: list[ToolDef],
    ) -> Completion:
        last_user = next((m.content for m in reversed(messages) if m.role == "user"), "")
        return Completion(text=f"[dev stub] {last_user}")
