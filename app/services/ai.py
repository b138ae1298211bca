"""
Live generation backend: prompt analysis, contact search and outreach drafting
through the OpenAI chat API, with token tracking and error handling.
"""
import json
import logging
from typing import Any

from openai import AsyncOpenAI
from openai import APIError as OpenAIAPIError

from app.config import Settings, settings as default_settings
from app.prompts import tone_to_instructions
from app.prompts.templates import (
    CONTACT_SEARCH_PROMPT,
    EMAIL_SUBJECT_RULE,
    NO_SUBJECT_RULE,
    OUTREACH_BATCH_PROMPT,
    PROMPT_ANALYSIS_PROMPT,
)
from app.schemas.pipeline import (
    Contact,
    Draft,
    Organization,
    PromptAnalysis,
    Role,
    SearchFilters,
    UserProfile,
)
from app.services.errors import BackendError, MalformedResponseError
from app.services.normalizer import (
    clamp_max_contacts,
    normalize_analysis,
    normalize_contacts,
    normalize_draft,
)

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = "You output only valid JSON. No markdown, no explanation."

# Approximate cost per 1K tokens (USD) for gpt-4o-mini as of 2024
INPUT_COST_PER_1K = 0.00015
OUTPUT_COST_PER_1K = 0.0006


def _estimate_cost(input_tokens: int, output_tokens: int) -> float:
    return (input_tokens / 1000.0) * INPUT_COST_PER_1K + (output_tokens / 1000.0) * OUTPUT_COST_PER_1K


def _parse_json_from_content(content: str) -> dict[str, Any]:
    """Extract a JSON object from model output; handle markdown code blocks."""
    text = content.strip()
    if text.startswith("```"):
        lines = text.split("\n")
        if lines[0].startswith("```"):
            lines = lines[1:]
        if lines and lines[-1].strip() == "```":
            lines = lines[:-1]
        text = "\n".join(lines)
    try:
        data = json.loads(text)
    except (ValueError, RecursionError) as e:
        # ValueError also covers integer literals past the int-string limit
        raise MalformedResponseError(f"AI returned invalid JSON: {e}") from e
    if not isinstance(data, dict):
        raise MalformedResponseError(f"AI returned {type(data).__name__}, expected an object")
    return data


class LiveBackend:
    name = "live"

    def __init__(self, settings: Settings | None = None, client: AsyncOpenAI | None = None) -> None:
        self.settings = settings or default_settings
        self._client = client

    def _get_client(self) -> AsyncOpenAI:
        if self._client is None:
            if not self.settings.openai_api_key:
                raise BackendError("OPENAI_API_KEY is not set")
            self._client = AsyncOpenAI(api_key=self.settings.openai_api_key)
        return self._client

    async def _chat(self, user: str, stage: str) -> dict[str, Any]:
        """Call OpenAI chat and return the parsed JSON object."""
        try:
            resp = await self._get_client().chat.completions.create(
                model=self.settings.openai_model,
                messages=[
                    {"role": "system", "content": SYSTEM_PROMPT},
                    {"role": "user", "content": user},
                ],
                temperature=self.settings.openai_temperature,
                response_format={"type": "json_object"},
            )
        except OpenAIAPIError as e:
            logger.exception("OpenAI API error during %s: %s", stage, e)
            raise BackendError(f"{stage} failed: {e}") from e

        content = resp.choices[0].message.content or "{}"
        usage = getattr(resp, "usage", None)
        input_tokens = usage.prompt_tokens if usage else 0
        output_tokens = usage.completion_tokens if usage else 0
        logger.info(
            "%s: model=%s input_tokens=%d output_tokens=%d cost_usd=%.5f",
            stage,
            self.settings.openai_model,
            input_tokens,
            output_tokens,
            _estimate_cost(input_tokens, output_tokens),
        )
        return _parse_json_from_content(content)

    async def analyze_prompt(self, prompt: str, profile_summary: str) -> PromptAnalysis:
        user = PROMPT_ANALYSIS_PROMPT.format(
            prompt=prompt,
            profile_summary=profile_summary or "Not provided.",
        )
        try:
            data = await self._chat(user, "prompt analysis")
        except MalformedResponseError as e:
            logger.warning("%s; using an empty analysis", e)
            data = {}
        return normalize_analysis(data)

    async def search_contacts(
        self,
        organizations: list[Organization],
        roles: list[Role],
        max_contacts: Any,
        filters: SearchFilters,
        *,
        prompt: str = "",
        profile: UserProfile | None = None,
    ) -> list[Contact]:
        cap = clamp_max_contacts(
            max_contacts,
            default=self.settings.fallback_max_contacts,
            lower=self.settings.min_contacts,
            upper=self.settings.max_contacts,
        )
        request = {
            "prompt": prompt,
            "organizations": [o.model_dump() for o in organizations],
            "roles": [r.model_dump() for r in roles],
            "max_contacts": cap,
            "filters": filters.model_dump(),
            "user_profile": (profile or UserProfile()).model_dump(),
        }
        user = CONTACT_SEARCH_PROMPT.format(
            request=json.dumps(request),
            source=self.settings.live_source_tag,
            max_contacts=cap,
        )
        try:
            data = await self._chat(user, "contact search")
        except MalformedResponseError as e:
            logger.warning("%s; treating as no contacts", e)
            data = {}
        raw_contacts = data.get("contacts")
        if not isinstance(raw_contacts, list):
            if data:
                logger.warning("AI response has no contacts array; treating as no contacts")
            raw_contacts = []
        return normalize_contacts(raw_contacts, cap, self.settings.live_source_tag)

    async def generate_outreach_batch(
        self,
        contacts: list[Contact],
        profile: UserProfile,
        tone: str,
        channel: str,
    ) -> list[Draft]:
        if not contacts:
            return []
        contacts_payload = [
            {
                "contact_id": c.id,
                "name": c.name,
                "title": c.title,
                "organization": c.organization,
                "country": c.country,
            }
            for c in contacts
        ]
        user = OUTREACH_BATCH_PROMPT.format(
            profile=json.dumps(profile.model_dump(), indent=2),
            channel=channel,
            tone_instructions=tone_to_instructions(tone, channel),
            contacts=json.dumps(contacts_payload, indent=2),
            subject_rule=EMAIL_SUBJECT_RULE if channel == "email" else NO_SUBJECT_RULE,
            count=len(contacts),
        )
        try:
            data = await self._chat(user, "draft generation")
        except MalformedResponseError as e:
            logger.warning("%s; falling back to template drafts", e)
            data = {}

        raw_drafts = data.get("drafts")
        if not isinstance(raw_drafts, list):
            raw_drafts = []
        by_contact = {
            d["contact_id"]: d
            for d in raw_drafts
            if isinstance(d, dict) and isinstance(d.get("contact_id"), str)
        }

        drafts: list[Draft] = []
        for idx, contact in enumerate(contacts):
            raw = by_contact.get(contact.id)
            if raw is None and idx < len(raw_drafts):
                positional = raw_drafts[idx]
                # Only trust position when the provider dropped the id entirely
                if isinstance(positional, dict) and "contact_id" not in positional:
                    raw = positional
            drafts.append(normalize_draft(raw, contact, idx, profile, tone, channel))
        return drafts
