"""
Generation backend capability: the three pipeline stages.

Implementations are chosen once per process from configuration; pipeline code
only ever talks to this protocol.
"""
import logging
from typing import Any, Protocol, runtime_checkable

from app.config import Settings
from app.schemas.pipeline import (
    Contact,
    Draft,
    Organization,
    PromptAnalysis,
    Role,
    SearchFilters,
    UserProfile,
)
from app.services.ai import LiveBackend
from app.services.mock import MockBackend

logger = logging.getLogger(__name__)


@runtime_checkable
class GenerationBackend(Protocol):
    name: str

    async def analyze_prompt(self, prompt: str, profile_summary: str) -> PromptAnalysis:
        ...

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
        ...

    async def generate_outreach_batch(
        self,
        contacts: list[Contact],
        profile: UserProfile,
        tone: str,
        channel: str,
    ) -> list[Draft]:
        ...


def get_backend(settings: Settings) -> GenerationBackend:
    if settings.use_live_backend():
        if not settings.has_api_key:
            logger.warning("BACKEND=live but OPENAI_API_KEY is missing; live calls will fail")
        logger.info("Using live backend (model=%s)", settings.openai_model)
        return LiveBackend(settings)
    if settings.backend == "auto":
        logger.warning("OPENAI_API_KEY missing: using mock backend")
    else:
        logger.info("Using mock backend")
    return MockBackend(settings)
