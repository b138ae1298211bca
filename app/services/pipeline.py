"""
Orchestrates: prompt analysis -> contact search -> draft generation.

Stages run one at a time against a SessionState. Auto mode chains all three;
manual mode runs analysis on submit and leaves the rest to explicit triggers.
Each backend call is tagged with the session's run id, and a response that
arrives after a newer prompt was submitted is dropped. Search and drafting
are refused while another stage of the current run is still in flight, and
drafts built for a contact batch that has since been replaced are dropped too.
"""
import functools
import logging
from enum import Enum
from typing import Any, Awaitable, Callable

from app.config import Settings, settings as default_settings
from app.schemas.pipeline import SearchFilters, StageResult
from app.services.backend import GenerationBackend
from app.services.errors import BackendError, StageValidationError
from app.services.normalizer import clamp_max_contacts
from app.services.session import SessionState

logger = logging.getLogger(__name__)


class PipelineStatus(str, Enum):
    IDLE = "idle"
    ANALYZING = "analyzing"
    ANALYSIS_READY = "analysis_ready"
    ANALYSIS_FAILED = "analysis_failed"
    SEARCHING = "searching"
    CONTACTS_READY = "contacts_ready"
    SEARCH_FAILED = "search_failed"
    DRAFTING = "drafting"
    DRAFTS_READY = "drafts_ready"
    DRAFT_FAILED = "draft_failed"


# stage -> (loading key, running, ready, failed)
_STAGE_STATES = {
    "analysis": ("analysis", PipelineStatus.ANALYZING, PipelineStatus.ANALYSIS_READY, PipelineStatus.ANALYSIS_FAILED),
    "search": ("contacts", PipelineStatus.SEARCHING, PipelineStatus.CONTACTS_READY, PipelineStatus.SEARCH_FAILED),
    "drafts": ("drafts", PipelineStatus.DRAFTING, PipelineStatus.DRAFTS_READY, PipelineStatus.DRAFT_FAILED),
}

EMPTY_PROMPT_NOTICE = "Please enter a prompt."
SEARCH_PRECONDITION_NOTICE = "Run analysis and keep at least one org and role."
DRAFT_PRECONDITION_NOTICE = "Select at least one contact."
BUSY_NOTICE = "Another stage is still running for this session."


def _require(condition: Any, notice: str) -> None:
    if not condition:
        raise StageValidationError(notice)


def reports_notices(stage: str):
    """Turn a StageValidationError raised by a trigger into an 'invalid' StageResult."""

    def decorator(fn):
        @functools.wraps(fn)
        async def wrapper(self, state: SessionState, *args, **kwargs) -> StageResult:
            try:
                return await fn(self, state, *args, **kwargs)
            except StageValidationError as e:
                logger.info("Session %s: %s not run: %s", state.id, stage, e)
                return StageResult(stage=stage, outcome="invalid", notice=str(e), run_id=state.run_id)

        return wrapper

    return decorator


class PipelineOrchestrator:
    def __init__(self, backend: GenerationBackend, settings: Settings | None = None) -> None:
        self.backend = backend
        self.settings = settings or default_settings

    def _cap(self, max_contacts: Any) -> int:
        return clamp_max_contacts(
            max_contacts,
            default=self.settings.fallback_max_contacts,
            lower=self.settings.min_contacts,
            upper=self.settings.max_contacts,
        )

    @reports_notices("analysis")
    async def submit_prompt(
        self,
        state: SessionState,
        prompt: str,
        *,
        mode: str | None = None,
        tone: str | None = None,
        channel: str | None = None,
        max_contacts: Any = None,
        filters: SearchFilters | None = None,
    ) -> StageResult:
        prompt = (prompt or "").strip()
        _require(prompt, EMPTY_PROMPT_NOTICE)

        state.prompt = prompt
        if mode is not None:
            state.mode = mode
        if tone is not None:
            state.tone = tone
        if channel is not None:
            state.channel = channel
        if max_contacts is not None:
            state.max_contacts = self._cap(max_contacts)
        if filters is not None:
            state.filters = filters

        # Drafts from the previous batch must never be shown against a new prompt
        state.clear_results()
        state.errors = {}
        state.run_id += 1
        logger.info("Session %s run %d: prompt submitted (mode=%s)", state.id, state.run_id, state.mode)

        if state.mode == "auto":
            return await self.run_auto_flow(state)
        return await self.run_analysis(state)

    async def run_auto_flow(self, state: SessionState) -> StageResult:
        run_id = state.run_id

        result = await self.run_analysis(state)
        if not result.ok or run_id != state.run_id:
            return result
        if not state.organizations or not state.roles:
            return self._stopped("analysis", state, "Analysis found no organizations or roles to search.")

        result = await self.run_contact_search(state)
        if not result.ok or run_id != state.run_id:
            return result
        if not state.contacts:
            return self._stopped("search", state, "No contacts found.")

        return await self.run_draft_generation(state)

    @reports_notices("analysis")
    async def run_analysis(self, state: SessionState) -> StageResult:
        _require(state.prompt, EMPTY_PROMPT_NOTICE)
        prompt = state.prompt
        summary = state.profile.summary

        def apply(analysis) -> str:
            state.analysis = analysis
            state.organizations = list(analysis.organizations)
            state.roles = list(analysis.roles)
            return "Analysis ready"

        return await self._run_stage(
            "analysis",
            state,
            lambda: self.backend.analyze_prompt(prompt, summary),
            apply,
        )

    @reports_notices("search")
    async def run_contact_search(
        self,
        state: SessionState,
        *,
        max_contacts: Any = None,
        filters: SearchFilters | None = None,
    ) -> StageResult:
        _require(not state.stage_running(), BUSY_NOTICE)
        _require(
            state.analysis is not None and state.organizations and state.roles,
            SEARCH_PRECONDITION_NOTICE,
        )
        if max_contacts is not None:
            state.max_contacts = self._cap(max_contacts)
        if filters is not None:
            state.filters = filters

        organizations = list(state.organizations)
        roles = list(state.roles)
        profile = state.profile.model_copy(deep=True)

        def apply(contacts) -> str:
            state.replace_contacts(contacts)
            return f"Found {len(contacts)} contacts."

        return await self._run_stage(
            "search",
            state,
            lambda: self.backend.search_contacts(
                organizations,
                roles,
                state.max_contacts,
                state.filters,
                prompt=state.prompt,
                profile=profile,
            ),
            apply,
        )

    @reports_notices("drafts")
    async def run_draft_generation(
        self,
        state: SessionState,
        *,
        tone: str | None = None,
        channel: str | None = None,
    ) -> StageResult:
        _require(not state.stage_running(), BUSY_NOTICE)
        selected = state.selected()
        _require(selected, DRAFT_PRECONDITION_NOTICE)
        if tone is not None:
            state.tone = tone
        if channel is not None:
            state.channel = channel

        profile = state.profile.model_copy(deep=True)
        batch = state.contacts_version

        def apply(drafts) -> str:
            state.drafts = list(drafts)
            return "Drafts generated."

        return await self._run_stage(
            "drafts",
            state,
            lambda: self.backend.generate_outreach_batch(selected, profile, state.tone, state.channel),
            apply,
            batch=batch,
        )

    async def _run_stage(
        self,
        stage: str,
        state: SessionState,
        call: Callable[[], Awaitable[Any]],
        apply: Callable[[Any], str],
        *,
        batch: int | None = None,
    ) -> StageResult:
        loading_key, running, ready, failed = _STAGE_STATES[stage]
        run_id = state.run_id
        previous = state.status
        state.status = running
        state.errors.pop(stage, None)
        state.begin_loading(loading_key)
        state.active_stage, state.active_run = stage, run_id
        logger.info("Session %s run %d: %s started", state.id, run_id, stage)
        try:
            value = await call()
        except BackendError as e:
            if run_id != state.run_id:
                return self._stale(stage, state, run_id)
            # Failure hands control back to where the stage was triggered from
            state.status = previous
            state.errors[stage] = str(e)
            logger.error("Session %s run %d: %s failed: %s", state.id, run_id, stage, e)
            return StageResult(
                stage=stage,
                outcome=failed.value,
                notice=f"{stage.capitalize()} failed: {e}",
                run_id=run_id,
            )
        except Exception:
            if run_id == state.run_id:
                state.status = previous
            logger.exception("Session %s run %d: unexpected error during %s", state.id, run_id, stage)
            raise
        finally:
            state.end_loading(loading_key)
            if state.active_run == run_id and state.active_stage == stage:
                state.active_stage = None

        if run_id != state.run_id:
            return self._stale(stage, state, run_id)
        if batch is not None and batch != state.contacts_version:
            return self._stale(stage, state, run_id, "Contacts changed while drafts were generated.")
        notice = apply(value)
        state.status = ready
        logger.info("Session %s run %d: %s", state.id, run_id, notice)
        return StageResult(stage=stage, outcome=ready.value, ok=True, notice=notice, run_id=run_id)

    def _stopped(self, stage: str, state: SessionState, notice: str) -> StageResult:
        logger.info("Session %s run %d: auto flow stopped after %s: %s", state.id, state.run_id, stage, notice)
        return StageResult(stage=stage, outcome="stopped", ok=True, notice=notice, run_id=state.run_id)

    def _stale(
        self,
        stage: str,
        state: SessionState,
        run_id: int,
        notice: str = "Superseded by a newer prompt.",
    ) -> StageResult:
        logger.info(
            "Session %s: discarding %s result of run %d (current run %d): %s",
            state.id,
            stage,
            run_id,
            state.run_id,
            notice,
        )
        return StageResult(stage=stage, outcome="stale", notice=notice, run_id=run_id)
