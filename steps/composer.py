from __future__ import annotations

from typing import Dict, Optional

from steps.actions import Action, ActionKind

HASHTAGS: Dict[ActionKind, str] = {
    ActionKind.WEATHER: "#weather",
    ActionKind.GITHUB: "#opensource",
}
DEFAULT_HASHTAG = "#news"


def hashtag_for(action: Action) -> str:
    return HASHTAGS.get(action.kind, DEFAULT_HASHTAG)


def compose(ai_text: Optional[str], api_text: Optional[str], action: Action) -> str:
    """Join generator and provider text and append the action hashtag.

    A missing side collapses to an empty string; only the outer edges are
    trimmed, so an empty side still leaves its separator space inside.
    """
    ai_trim = (ai_text or "").strip()
    api_trim = (api_text or "").strip()
    return f"{ai_trim} {api_trim} {hashtag_for(action)}".strip()
