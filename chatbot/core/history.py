from __future__ import annotations

from typing import Any, Iterable, List, Mapping

from langchain_core.messages import AIMessage, BaseMessage, HumanMessage


ASSISTANT_ROLES = {"model", "assistant", "ai", "bot"}


def turn_text(turn: Mapping[str, Any]) -> str:
    parts = turn.get("parts") or []
    return "".join(str(part.get("text") or "") for part in parts if isinstance(part, Mapping))


def to_lc_messages(history: Iterable[Mapping[str, Any]], new_message: str) -> List[BaseMessage]:
    """Convert frontend history plus the new user message into LangChain messages.

    History turns use the Gemini shape ``{role, parts: [{text}]}``; role
    ``model`` becomes an assistant message, anything else a user message.
    """
    messages: List[BaseMessage] = []
    for item in history or []:
        role = (item.get("role") or "").lower()
        content = turn_text(item)
        if not content:
            continue
        if role in ASSISTANT_ROLES:
            messages.append(AIMessage(content=content))
        else:
            messages.append(HumanMessage(content=content))
    messages.append(HumanMessage(content=new_message))
    return messages


def extract_reply_text(content: Any) -> str:
    """Flatten a chat model's message content to plain text."""
    if isinstance(content, str):
        return content
    if isinstance(content, list):
        chunks = []
        for part in content:
            if isinstance(part, str):
                chunks.append(part)
            elif isinstance(part, Mapping) and part.get("type", "text") == "text":
                chunks.append(str(part.get("text") or ""))
        return "".join(chunks)
    return ""
