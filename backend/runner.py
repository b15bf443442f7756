from __future__ import annotations

import logging
import traceback
from dataclasses import dataclass
from typing import Optional

from backend.store import RunStore
from steps.actions import parse_action
from steps.composer import compose
from steps.errors import ValidationError
from steps.generator import TextGenerator
from steps.providers import ProviderDispatcher

logger = logging.getLogger(__name__)

REQUIRED_FIELDS_MESSAGE = "prompt and action are required"


@dataclass
class WorkflowResult:
    ai_response: str
    api_response: str
    final_result: str


class WorkflowRunner:
    """Run the fixed pipeline: create, generate, fetch, compose, finalize.

    Generation and fetching degrade to placeholder text on failure. Store
    errors propagate; a failed finalize leaves the pending record behind.
    """

    def __init__(self, store: RunStore, generator: TextGenerator, dispatcher: ProviderDispatcher):
        self.store = store
        self.generator = generator
        self.dispatcher = dispatcher

    def run(self, prompt: Optional[str], action: Optional[str], location: Optional[str] = None) -> WorkflowResult:
        if not prompt or not action:
            raise ValidationError(REQUIRED_FIELDS_MESSAGE)

        run = self.store.create(prompt, action)
        parsed = parse_action(action)

        logger.info("Starting generation for run %s", run.id)
        try:
            ai_response = self.generator.generate(prompt)
        except Exception as e:
            logger.error("AI error for run %s: %s\n%s", run.id, str(e), traceback.format_exc())
            ai_response = f"AI error: {e}"

        try:
            api_response = self.dispatcher.fetch(parsed, location)
        except Exception as e:
            logger.error("Third-party API error for run %s: %s\n%s", run.id, str(e), traceback.format_exc())
            api_response = f"API error: {e}"

        ai_trim = (ai_response or "").strip()
        api_trim = (api_response or "").strip()
        final_result = compose(ai_trim, api_trim, parsed)

        self.store.finalize(run.id, ai_trim, api_trim, final_result)
        logger.info("Completed workflow run %s", run.id)
        return WorkflowResult(ai_response=ai_trim, api_response=api_trim, final_result=final_result)
