import logging
from functools import lru_cache

from fastapi import APIRouter, Depends, HTTPException, Response

from app.config import Settings, settings as default_settings
from app.schemas.api import (
    AnalyzeRequest,
    ContactSearchRequest,
    ContactSelectionIn,
    ContactsResponse,
    DraftEditIn,
    DraftsRequest,
    DraftsResponse,
    DraftTriggerRequest,
    HighlightIn,
    OrganizationIn,
    ProfilePatch,
    ProfileTextIn,
    PromptSubmitRequest,
    RoleIn,
    SearchTriggerRequest,
    SelectionIn,
    SessionCreated,
    StageResponse,
)
from app.schemas.pipeline import PromptAnalysis, StageResult
from app.services.backend import GenerationBackend, get_backend
from app.services.errors import BackendError, SessionNotFound
from app.services.mock import MockBackend
from app.services.pipeline import PipelineOrchestrator
from app.services.session import SessionState, SessionStore

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["api"])


def get_settings() -> Settings:
    return default_settings


@lru_cache
def _backend() -> GenerationBackend:
    return get_backend(default_settings)


@lru_cache
def _store() -> SessionStore:
    return SessionStore(default_settings)


def get_generation_backend() -> GenerationBackend:
    return _backend()


def get_store() -> SessionStore:
    return _store()


def get_orchestrator(
    backend: GenerationBackend = Depends(get_generation_backend),
    settings: Settings = Depends(get_settings),
) -> PipelineOrchestrator:
    return PipelineOrchestrator(backend, settings)


def get_state(session_id: str, store: SessionStore = Depends(get_store)) -> SessionState:
    try:
        return store.get(session_id)
    except SessionNotFound:
        raise HTTPException(status_code=404, detail="Session not found")


def _stage_response(result: StageResult, state: SessionState) -> StageResponse:
    if result.outcome == "invalid":
        raise HTTPException(status_code=400, detail=result.notice)
    return StageResponse(result=result, session=state.snapshot())


# Stateless stage bindings


@router.post("/contacts", response_model=ContactsResponse)
async def search_contacts(
    body: ContactSearchRequest,
    backend: GenerationBackend = Depends(get_generation_backend),
    settings: Settings = Depends(get_settings),
) -> ContactsResponse:
    """Contact search for the given organizations and roles."""
    if not body.prompt.strip():
        raise HTTPException(status_code=400, detail="prompt is required")

    if not settings.use_live_backend():
        logger.warning("OPENAI_API_KEY missing: returning mock contacts")
        mock = backend if isinstance(backend, MockBackend) else MockBackend(settings)
        return ContactsResponse(
            contacts=mock.fallback_contacts(body.organizations, body.roles, body.max_contacts)
        )

    try:
        contacts = await backend.search_contacts(
            body.organizations,
            body.roles,
            body.max_contacts,
            body.filters,
            prompt=body.prompt,
            profile=body.user_profile,
        )
    except BackendError as e:
        raise HTTPException(status_code=500, detail="Failed to fetch contacts") from e
    return ContactsResponse(contacts=contacts)


@router.post("/analyze", response_model=PromptAnalysis)
async def analyze_prompt(
    body: AnalyzeRequest,
    backend: GenerationBackend = Depends(get_generation_backend),
) -> PromptAnalysis:
    try:
        return await backend.analyze_prompt(body.prompt, body.user_profile_summary)
    except BackendError as e:
        raise HTTPException(status_code=500, detail="Prompt analysis failed. Please try again.") from e


@router.post("/drafts", response_model=DraftsResponse)
async def generate_drafts(
    body: DraftsRequest,
    backend: GenerationBackend = Depends(get_generation_backend),
) -> DraftsResponse:
    try:
        drafts = await backend.generate_outreach_batch(body.contacts, body.user_profile, body.tone, body.channel)
    except BackendError as e:
        raise HTTPException(status_code=500, detail="Draft generation failed. Please try again.") from e
    return DraftsResponse(drafts=drafts)


# Session API


@router.post("/sessions", response_model=SessionCreated, status_code=201)
async def create_session(store: SessionStore = Depends(get_store)) -> SessionCreated:
    state = store.create()
    return SessionCreated(session_id=state.id, session=state.snapshot())


@router.get("/sessions/{session_id}")
async def read_session(state: SessionState = Depends(get_state)) -> dict:
    return state.snapshot()


@router.delete("/sessions/{session_id}", status_code=204)
async def delete_session(session_id: str, store: SessionStore = Depends(get_store)) -> Response:
    try:
        store.delete(session_id)
    except SessionNotFound:
        raise HTTPException(status_code=404, detail="Session not found")
    return Response(status_code=204)


@router.post("/sessions/{session_id}/prompt", response_model=StageResponse)
async def submit_prompt(
    body: PromptSubmitRequest,
    state: SessionState = Depends(get_state),
    orchestrator: PipelineOrchestrator = Depends(get_orchestrator),
) -> StageResponse:
    """Submit a prompt: analysis only in manual mode, the whole flow in auto mode."""
    result = await orchestrator.submit_prompt(
        state,
        body.prompt,
        mode=body.mode,
        tone=body.tone,
        channel=body.channel,
        max_contacts=body.max_contacts,
        filters=body.filters,
    )
    return _stage_response(result, state)


@router.post("/sessions/{session_id}/search", response_model=StageResponse)
async def run_search(
    body: SearchTriggerRequest,
    state: SessionState = Depends(get_state),
    orchestrator: PipelineOrchestrator = Depends(get_orchestrator),
) -> StageResponse:
    result = await orchestrator.run_contact_search(state, max_contacts=body.max_contacts, filters=body.filters)
    return _stage_response(result, state)


@router.post("/sessions/{session_id}/drafts", response_model=StageResponse)
async def run_drafts(
    body: DraftTriggerRequest,
    state: SessionState = Depends(get_state),
    orchestrator: PipelineOrchestrator = Depends(get_orchestrator),
) -> StageResponse:
    result = await orchestrator.run_draft_generation(state, tone=body.tone, channel=body.channel)
    return _stage_response(result, state)


@router.post("/sessions/{session_id}/organizations")
async def add_organization(body: OrganizationIn, state: SessionState = Depends(get_state)) -> dict:
    if not body.name.strip():
        raise HTTPException(status_code=400, detail="Organization name is required")
    state.add_organization(body.name)
    return state.snapshot()


@router.delete("/sessions/{session_id}/organizations/{name}")
async def remove_organization(name: str, state: SessionState = Depends(get_state)) -> dict:
    state.remove_organization(name)
    return state.snapshot()


@router.post("/sessions/{session_id}/roles")
async def add_role(body: RoleIn, state: SessionState = Depends(get_state)) -> dict:
    if not body.title.strip():
        raise HTTPException(status_code=400, detail="Role title is required")
    state.add_role(body.title)
    return state.snapshot()


@router.delete("/sessions/{session_id}/roles/{title}")
async def remove_role(title: str, state: SessionState = Depends(get_state)) -> dict:
    state.remove_role(title)
    return state.snapshot()


@router.put("/sessions/{session_id}/selection")
async def set_selection(body: SelectionIn, state: SessionState = Depends(get_state)) -> dict:
    state.set_selection(body.contact_ids)
    return state.snapshot()


@router.patch("/sessions/{session_id}/drafts/{draft_id}")
async def edit_draft(draft_id: str, body: DraftEditIn, state: SessionState = Depends(get_state)) -> dict:
    if not state.update_draft(draft_id, body=body.body, subject=body.subject):
        raise HTTPException(status_code=404, detail="Draft not found")
    return state.snapshot()


@router.patch("/sessions/{session_id}/profile")
async def update_profile(body: ProfilePatch, state: SessionState = Depends(get_state)) -> dict:
    state.update_profile(**body.model_dump(exclude_none=True))
    return state.snapshot()


@router.post("/sessions/{session_id}/reset")
async def reset_session(state: SessionState = Depends(get_state)) -> dict:
    state.reset()
    return state.snapshot()


@router.patch("/sessions/{session_id}/contacts/{contact_id}")
async def select_contact(
    contact_id: str,
    body: ContactSelectionIn,
    state: SessionState = Depends(get_state),
) -> dict:
    if not state.select_contact(contact_id, body.selected):
        raise HTTPException(status_code=404, detail="Contact not found")
    return state.snapshot()


@router.post("/sessions/{session_id}/profile/highlights")
async def add_highlight(body: HighlightIn, state: SessionState = Depends(get_state)) -> dict:
    if not state.add_highlight(body.text):
        raise HTTPException(status_code=400, detail="Highlight text is required")
    return state.snapshot()


@router.delete("/sessions/{session_id}/profile/highlights/{idx}")
async def remove_highlight(idx: int, state: SessionState = Depends(get_state)) -> dict:
    if not state.remove_highlight(idx):
        raise HTTPException(status_code=404, detail="Highlight not found")
    return state.snapshot()


@router.post("/sessions/{session_id}/profile/upload")
async def upload_profile_text(body: ProfileTextIn, state: SessionState = Depends(get_state)) -> dict:
    """Merge an uploaded profile document (plain text) into the summary."""
    state.merge_profile_text(body.text)
    return state.snapshot()
