"""
Assistant - Chat with a generative model about recent trades.

The model is asked to answer in strict JSON:
    {"thought": "...", "reply": "...", "proposed_notes": "..." | null}

When it proposes notes, the caller shows them for confirmation before
saving them through JournalClient.save_notes(). Replies that are not
valid JSON are shown as plain text.

Usage:
    context = build_trade_context(await journal.fetch_recent_logs())
    async with Assistant() as assistant:
        reply = await assistant.chat("Should I trim NVDA?", context, current_notes=notes)
"""

import json
import logging
import re
from dataclasses import dataclass
from typing import Optional, Sequence

import httpx

from beacon.config import settings
from beacon.errors import AssistantError, BackendError
from beacon.journal import JournalClient, TradeLog

logger = logging.getLogger(__name__)

NO_HISTORY_CONTEXT = "No recent trade history."
HISTORY_ERROR_CONTEXT = "Error fetching trade history."

_FENCE_RE = re.compile(r"```(?:json)?")


@dataclass(frozen=True)
class AssistantReply:
    """Parsed model answer."""

    reply: str
    thought: Optional[str] = None
    proposed_notes: Optional[str] = None

    @property
    def proposes_notes(self) -> bool:
        return self.proposed_notes is not None


def build_trade_context(logs: Sequence[TradeLog]) -> str:
    """One paragraph per journal entry, or a placeholder when there are none."""
    if not logs:
        return NO_HISTORY_CONTEXT
    return "\n\n".join(
        f"[{log.timestamp}] {log.action} {log.ticker} @ ${log.price} ({log.shares} shares). Reason: {log.reason}"
        for log in logs
    )


async def load_trade_context(journal: JournalClient, limit: Optional[int] = None) -> str:
    """Build the trade context from the journal, falling back to an error line if it is unreachable."""
    try:
        logs = await journal.fetch_recent_logs(limit)
    except BackendError as e:
        logger.warning(f"Failed to fetch trade history: {e}")
        return HISTORY_ERROR_CONTEXT
    return build_trade_context(logs)


def build_prompt(message: str, context: str, current_notes: Optional[str] = None) -> str:
    """Assemble the instruction prompt around the user's question."""
    context_block = f"Context (Last 30 Trades):\n{context}"
    if current_notes is not None:
        context_block += f"\n\nCurrent Strategy Notes (Shared Brain):\n{current_notes}"

    return f"""You are a trading assistant with access to a "Shared Brain" strategy document.

{context_block}

User Question:
{message}

Instructions:
1. Parse the user's intent. If they want to change the strategy, you MUST propose an update to the "Shared Brain".
2. Output STRICT JSON format only. No markdown fences.
3. Format:
{{
  "thought": "Internal reasoning...",
  "reply": "Conversational response to user...",
  "proposed_notes": "The full updated text of the Shared Brain notes (only if changing)"
}}
4. If no changes to notes are needed, set "proposed_notes" to null.
5. Keep "reply" concise (under 3 sentences).
"""


def _optional_str(value) -> Optional[str]:
    return value if isinstance(value, str) else None


def parse_reply(text: str) -> AssistantReply:
    """Parse the model's JSON answer, tolerating markdown fences.

    Anything that is not a JSON object with a string "reply" falls back to
    the raw text as the reply.
    """
    cleaned = _FENCE_RE.sub("", text).strip()
    try:
        data = json.loads(cleaned)
    except (json.JSONDecodeError, TypeError):
        return AssistantReply(reply=text)

    if not isinstance(data, dict) or not isinstance(data.get("reply"), str):
        return AssistantReply(reply=text)

    return AssistantReply(
        reply=data["reply"],
        thought=_optional_str(data.get("thought")),
        proposed_notes=_optional_str(data.get("proposed_notes")),
    )


def _response_text(data: dict) -> str:
    """Concatenate the text parts of the first candidate."""
    try:
        parts = data["candidates"][0]["content"]["parts"]
    except (KeyError, IndexError, TypeError):
        return ""
    return "".join(part.get("text", "") for part in parts if isinstance(part, dict))


class Assistant:
    """Client for the Gemini generateContent REST endpoint."""

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: Optional[str] = None,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.model = model or settings.gemini_model
        self._api_key = api_key or settings.gemini_api_key
        base_url = (base_url or settings.gemini_base_url).rstrip("/")
        timeout = timeout if timeout is not None else settings.request_timeout_seconds
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(base_url=base_url, timeout=timeout)

    async def close(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self) -> "Assistant":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()

    async def generate(self, prompt: str) -> str:
        """Send a prompt and return the raw model text.

        Raises:
            AssistantError: On transport errors or a non-2xx status
        """
        path = f"/v1beta/models/{self.model}:generateContent"
        body = {"contents": [{"parts": [{"text": prompt}]}]}
        try:
            response = await self._client.post(path, json=body, headers={"x-goog-api-key": self._api_key})
            response.raise_for_status()
            data = response.json()
        except httpx.HTTPStatusError as e:
            raise AssistantError(f"Model request failed with HTTP {e.response.status_code}") from e
        except httpx.HTTPError as e:
            raise AssistantError(f"Model request failed: {e}") from e
        except ValueError as e:
            raise AssistantError("Model returned invalid JSON") from e
        return _response_text(data)

    async def chat(self, message: str, context: str, current_notes: Optional[str] = None) -> AssistantReply:
        """Ask a question about the given trade context."""
        text = await self.generate(build_prompt(message, context, current_notes))
        reply = parse_reply(text)
        if reply.proposes_notes:
            logger.info("Assistant proposed a strategy notes update")
        return reply
