import json
from collections.abc import Sequence
from typing import Any

from openai import OpenAI

from chat_ledger.core.settings import DEFAULT_INTERPRETER_TIMEOUT, DEFAULT_OPENAI_MODEL
from chat_ledger.logger import get_logger
from chat_ledger.models import CandidateBatch, OnboardingExtraction, OnboardingState, UserProfile

from .base import Interpreter
from .prompts import COMMAND_INSTRUCTIONS, build_command_input, build_onboarding_instructions

logger = get_logger(__name__)

RETRY_CLARIFICATION = "Sorry, please try again."


class OpenAIInterpreter(Interpreter):
    def __init__(
        self,
        api_key: str | None = None,
        model: str = DEFAULT_OPENAI_MODEL,
        base_url: str | None = None,
        timeout: float = DEFAULT_INTERPRETER_TIMEOUT,
        client: OpenAI | None = None,
        command_temperature: float = 0.0,
        onboarding_temperature: float = 0.7,
    ):
        self.api_key = api_key
        self.base_url = base_url
        self.timeout = timeout
        self.model = model
        self.command_temperature = command_temperature
        self.onboarding_temperature = onboarding_temperature
        self._client = client

    def _get_client(self) -> OpenAI:
        # Created on first use so a missing key surfaces as an interpreter failure.
        if self._client is None:
            self._client = OpenAI(
                api_key=self.api_key,
                base_url=self.base_url or None,
                timeout=self.timeout,
                # No retries: the timeout is the whole wait per message.
                max_retries=0,
            )
        return self._client

    def interpret(
        self,
        message: str,
        profile: UserProfile,
        linked_profiles: Sequence[UserProfile] = (),
    ) -> CandidateBatch:
        try:
            response = self._get_client().responses.create(
                model=self.model,
                instructions=COMMAND_INSTRUCTIONS,
                input=build_command_input(message, profile, linked_profiles),
                temperature=self.command_temperature,
            )
            payload = self._parse_payload(self._extract_output_text(response))
            batch = CandidateBatch.model_validate(payload)
        except Exception as e:
            logger.error("[INTERPRETER] Failed to interpret message for user %s: %s", profile.user_id, e)
            return CandidateBatch.failure(f"Error: {e}", RETRY_CLARIFICATION)

        batch.failed = False
        batch.token_usage = self._format_usage(getattr(response, "usage", None))
        logger.info(
            "[INTERPRETER] understood=%s operations=%s meta=%s",
            batch.understood,
            len(batch.operations),
            batch.meta_command.type if batch.has_meta_command else None,
        )
        return batch

    def extract_onboarding(
        self, message: str, profile: UserProfile, state: OnboardingState
    ) -> OnboardingExtraction:
        try:
            response = self._get_client().responses.create(
                model=self.model,
                instructions=build_onboarding_instructions(profile, state),
                input=message,
                temperature=self.onboarding_temperature,
            )
            payload = self._parse_payload(self._extract_output_text(response))
            extraction = OnboardingExtraction.model_validate(payload)
        except Exception as e:
            logger.error("[INTERPRETER] Onboarding extraction failed for user %s: %s", profile.user_id, e)
            return OnboardingExtraction.failure()
        extraction.failed = False
        return extraction

    @staticmethod
    def _parse_payload(text: str | None) -> dict[str, Any]:
        if text is None:
            raise ValueError("Interpreter returned no text")
        cleaned = text.strip()
        if cleaned.startswith("```json"):
            cleaned = cleaned[7:]
        elif cleaned.startswith("```"):
            cleaned = cleaned[3:]
        if cleaned.endswith("```"):
            cleaned = cleaned[:-3]
        payload = json.loads(cleaned.strip())
        if not isinstance(payload, dict):
            raise ValueError("Interpreter output is not a JSON object")
        return payload

    @staticmethod
    def _extract_output_text(response: object) -> str | None:
        output_text = getattr(response, "output_text", None)
        if output_text:
            return output_text

        output = getattr(response, "output", None)
        if not output:
            return None

        parts: list[str] = []
        for item in output:
            content = getattr(item, "content", None)
            if not content:
                continue
            for block in content:
                if getattr(block, "type", None) in {"output_text", "text"}:
                    text = getattr(block, "text", None)
                    if text:
                        parts.append(text)

        if parts:
            return "".join(parts)
        return None

    def _format_usage(self, usage: object) -> str | None:
        if usage is None:
            return None
        input_tokens = getattr(usage, "input_tokens", None)
        output_tokens = getattr(usage, "output_tokens", None)
        if not isinstance(input_tokens, int) or not isinstance(output_tokens, int):
            return None
        details = getattr(usage, "output_tokens_details", None)
        reasoning = getattr(details, "reasoning_tokens", None) if details is not None else None
        if isinstance(reasoning, int) and reasoning > 0:
            return f"tokens in={input_tokens}, out={output_tokens} (reasoning={reasoning}) | {self.model}"
        return f"tokens in={input_tokens}, out={output_tokens} | {self.model}"
