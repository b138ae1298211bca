"""
Mock generation backend: plausible synthetic data from static seed tables so
the app stays usable without an API key. Analysis quality is intentionally
coarse.
"""
import asyncio
import logging
import random
import re
from typing import Any

from app.config import Settings, settings as default_settings
from app.prompts.templates import DEFAULT_SUBJECT, render_outreach_body
from app.prompts.tone import tone_label
from app.schemas.pipeline import (
    Contact,
    Draft,
    Organization,
    PromptAnalysis,
    Role,
    SearchFilters,
    StyleMetadata,
    UserProfile,
)
from app.services.normalizer import clamp_max_contacts

logger = logging.getLogger(__name__)

SEED_ORGANIZATIONS = [
    Organization(
        name="Innovation, Science and Economic Development Canada",
        type="Government agency",
        country="Canada",
        justification="Canadian ministry that drives innovation and technology policy with AI oversight.",
    ),
    Organization(
        name="Vector Institute",
        type="Research institute",
        country="Canada",
        justification="Flagship AI research institute with a focus on responsible AI.",
    ),
    Organization(
        name="CIFAR",
        type="Non-profit",
        country="Canada",
        justification="Supports global AI research and policy collaboration.",
    ),
    Organization(
        name="National Research Council Canada",
        type="Government lab",
        country="Canada",
        justification="Runs applied research programs across AI safety and standards.",
    ),
]

SEED_ROLES = [
    Role(
        title="Policy Analyst, AI",
        org_types=["Government agency"],
        justification="Shapes AI-related regulation and recommendations.",
    ),
    Role(
        title="Research Scientist, Responsible AI",
        org_types=["Research institute", "University"],
        justification="Builds frameworks and experiments around AI safety.",
    ),
    Role(
        title="Program Manager, AI Policy",
        org_types=["Non-profit", "Government agency"],
        justification="Coordinates programs that connect researchers and policymakers.",
    ),
    Role(
        title="Ethics Advisor, AI",
        org_types=["Government lab", "Research institute"],
        justification="Advises on ethics and compliance for AI initiatives.",
    ),
]

SEED_ORG_TYPES = ["Government agency", "Research institute", "Non-profit"]

NAME_POOL = [
    "Alex Chen", "Priya Patel", "Sofia Garcia", "Jordan Lee", "Samir Khan",
    "Noah Martins", "Yara El-Sayed", "Clara Rossi", "Leo Dupont", "Isabelle Roy",
    "Avery Morgan", "Ethan Wong", "Layla Rahman", "Mateo Silva", "Talia Cohen",
]

EMAIL_DOMAINS = ["ised-isde.gc.ca", "vectorinstitute.ai", "cifar.ca", "nrc-cnrc.gc.ca"]

SENIORITY_LEVELS = ["mid", "senior", "junior"]

_AI_OR_POLICY = re.compile(r"ai|policy", re.I)
_NON_LETTERS = re.compile(r"[^a-z]")


def linkedin_url_for(name: str) -> str:
    return "https://www.linkedin.com/in/" + _NON_LETTERS.sub("-", name.lower())


def email_for(name: str, domain: str) -> str:
    return _NON_LETTERS.sub(".", name.lower()) + "@" + domain


class MockBackend:
    name = "mock"

    def __init__(self, settings: Settings | None = None, rng: random.Random | None = None) -> None:
        self.settings = settings or default_settings
        self.rng = rng or random.Random()

    async def _delay(self) -> None:
        if self.settings.mock_delay_ms > 0:
            await asyncio.sleep(self.settings.mock_delay_ms / 1000.0)

    def _cap(self, max_contacts: Any) -> int:
        return clamp_max_contacts(
            max_contacts,
            default=self.settings.fallback_max_contacts,
            lower=self.settings.min_contacts,
            upper=self.settings.max_contacts,
        )

    async def analyze_prompt(self, prompt: str, profile_summary: str) -> PromptAnalysis:
        await self._delay()
        prompt = prompt or ""
        countries = ["Canada"] if "canada" in prompt.lower() else ["United States", "Canada"]
        domain = "AI safety policy" if _AI_OR_POLICY.search(prompt) else "Outreach"
        return PromptAnalysis(
            domain=domain,
            countries=countries,
            org_types=list(SEED_ORG_TYPES),
            organizations=[o.model_copy() for o in SEED_ORGANIZATIONS],
            roles=[r.model_copy(deep=True) for r in SEED_ROLES],
            justification=(
                f'Based on the prompt "{prompt[:120]}", these organizations and roles '
                "are closest to the requested domain."
            ),
        )

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
        await self._delay()
        cap = self._cap(max_contacts)
        seniority_pool = filters.seniority or SENIORITY_LEVELS
        country_filter = filters.country

        contacts: list[Contact] = []
        for org in organizations:
            for role in roles:
                if len(contacts) >= cap:
                    break
                name = self.rng.choice(NAME_POOL)
                seniority = self.rng.choice(seniority_pool)
                if country_filter:
                    country = self.rng.choice(country_filter)
                else:
                    country = org.country or "Canada"
                contacts.append(
                    Contact(
                        id=f"contact_{len(contacts) + 1}",
                        name=name,
                        title=f"{'Senior ' if seniority == 'senior' else ''}{role.title}",
                        organization=org.name,
                        country=country,
                        linkedin_url=linkedin_url_for(name),
                        email=email_for(name, self.rng.choice(EMAIL_DOMAINS)),
                        email_confidence=0.75 + self.rng.random() * 0.2,
                        relevance_score=0.75 + self.rng.random() * 0.2,
                        source="mock search",
                    )
                )
        logger.debug("mock search: %d contacts (cap=%d)", len(contacts), cap)
        return contacts

    def fallback_contacts(
        self,
        organizations: list[Organization],
        roles: list[Role],
        max_contacts: Any,
    ) -> list[Contact]:
        """Contacts for the stateless endpoint when no provider is configured."""
        cap = self._cap(max_contacts)
        orgs = organizations or [Organization(name="Example Org", country="Canada")]
        rs = roles or [Role(title="Policy Analyst")]
        contacts: list[Contact] = []
        for org in orgs:
            for role in rs:
                if len(contacts) >= cap:
                    break
                name = self.rng.choice(NAME_POOL[:10])
                contacts.append(
                    Contact(
                        id=f"mock_contact_{len(contacts) + 1}",
                        name=name,
                        title=role.title or "Contact",
                        organization=org.name or "Org",
                        country=org.country or "Canada",
                        linkedin_url=linkedin_url_for(name),
                        email=email_for(name, "example.org"),
                        email_confidence=0.8,
                        relevance_score=0.8,
                        source="mock",
                    )
                )
        return contacts

    async def generate_outreach_batch(
        self,
        contacts: list[Contact],
        profile: UserProfile,
        tone: str,
        channel: str,
    ) -> list[Draft]:
        await self._delay()
        label = tone_label(tone)
        drafts = []
        for idx, contact in enumerate(contacts):
            body = render_outreach_body(
                contact_name=contact.name,
                title=contact.title,
                organization=contact.organization,
                sender_name=profile.name,
                summary=profile.summary,
                goals=profile.goals,
            )
            drafts.append(
                Draft(
                    id=f"draft_{idx + 1}",
                    contact_id=contact.id,
                    subject=DEFAULT_SUBJECT.format(organization=contact.organization) if channel == "email" else None,
                    body=body,
                    style_metadata=StyleMetadata(tone=label, length="short", channel=channel),
                )
            )
        return drafts
