from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class ActionKind(str, Enum):
    WEATHER = "weather"
    GITHUB = "github"
    NEWS = "news"
    UNKNOWN = "unknown"


SUPPORTED_ACTIONS = (ActionKind.WEATHER, ActionKind.GITHUB, ActionKind.NEWS)


@dataclass(frozen=True)
class Action:
    kind: ActionKind
    raw: str


def parse_action(raw: str) -> Action:
    """Map the raw action string onto a closed set of kinds.

    Unrecognised values are kept as ``UNKNOWN`` together with the original
    text so the dispatcher can report them back instead of failing.
    """
    for kind in SUPPORTED_ACTIONS:
        if raw == kind.value:
            return Action(kind=kind, raw=raw)
    return Action(kind=ActionKind.UNKNOWN, raw=raw)
