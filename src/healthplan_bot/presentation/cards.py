"""Adaptive Card rendering for assistant replies."""

from __future__ import annotations

import re
from typing import Any

from teams.ai.prompts import Message

ADAPTIVE_CARD_SCHEMA = "http://adaptivecards.io/schemas/adaptive-card.json"
ADAPTIVE_CARD_VERSION = "1.5"

_DOC_MARKER = re.compile(r"\[doc(\d+)\]")


def format_response(text: str) -> str:
    """Rewrite ``[docN]`` citation markers as bold ``[N]`` references."""
    return _DOC_MARKER.sub(r"**[\1]**", text)


def _citation_action(index: int, citation) -> dict[str, Any]:
    return {
        "type": "Action.ShowCard",
        "title": str(index),
        "card": {
            "type": "AdaptiveCard",
            "body": [
                {
                    "type": "TextBlock",
                    "text": getattr(citation, "title", None)
                    or getattr(citation, "filepath", None)
                    or f"Document {index}",
                    "fontType": "Default",
                    "weight": "Bolder",
                },
                {"type": "TextBlock", "text": getattr(citation, "content", None) or "", "wrap": True},
            ],
        },
    }


def create_response_card(message: Message) -> dict[str, Any]:
    """Build an Adaptive Card showing the reply and its citations."""
    body: list[dict[str, Any]] = [
        {"type": "TextBlock", "text": format_response(message.content or ""), "wrap": True},
    ]

    citations = getattr(getattr(message, "context", None), "citations", None) or []
    if citations:
        body.append(
            {"type": "TextBlock", "text": "Citations", "weight": "Bolder", "fontType": "Default"}
        )
        body.append(
            {
                "type": "ActionSet",
                "actions": [_citation_action(i, c) for i, c in enumerate(citations, start=1)],
            }
        )

    return {
        "type": "AdaptiveCard",
        "$schema": ADAPTIVE_CARD_SCHEMA,
        "version": ADAPTIVE_CARD_VERSION,
        "body": body,
    }
