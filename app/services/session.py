"""
Session state: everything one user's campaign holds in memory, plus the
in-process store that maps session ids to state. Nothing here is persisted.
"""
import logging
import time
import uuid
from typing import Any, Callable

from app.config import Settings, settings as default_settings
from app.schemas.pipeline import (
    Contact,
    Draft,
    Organization,
    PromptAnalysis,
    Role,
    SearchFilters,
    UserProfile,
)
from app.services.errors import SessionNotFound

logger = logging.getLogger(__name__)

STAGES = ("analysis", "contacts", "drafts")


class SessionState:
    def __init__(self, settings: Settings | None = None, session_id: str | None = None) -> None:
        self.settings = settings or default_settings
        self.id = session_id or uuid.uuid4().hex
        self.profile = UserProfile()
        # Never reset: an in-flight call from before a reset must stay stale
        self.run_id = 0
        self.contacts_version = 0
        self.last_seen = 0.0
        self._reset_campaign()

    def _reset_campaign(self) -> None:
        self.mode = "auto"
        self.prompt = ""
        self.tone = "semi_formal"
        self.channel = "email"
        self.max_contacts: Any = self.settings.default_max_contacts
        self.filters = SearchFilters()
        self.analysis: PromptAnalysis | None = None
        self.organizations: list[Organization] = []
        self.roles: list[Role] = []
        self.contacts: list[Contact] = []
        self.selected_contacts: set[str] = set()
        self.drafts: list[Draft] = []
        self.loading = {stage: False for stage in STAGES}
        self._inflight = {stage: 0 for stage in STAGES}
        self.errors: dict[str, str] = {}
        # Set by the orchestrator; a PipelineStatus value
        self.status = "idle"
        self.active_stage: str | None = None
        self.active_run = 0

    def reset(self) -> None:
        """Back to a blank campaign, profile included."""
        self._reset_campaign()
        self.profile = UserProfile()
        self.run_id += 1
        self.contacts_version += 1

    def stage_running(self) -> bool:
        """True while a stage of the current run is waiting on the backend."""
        return self.active_stage is not None and self.active_run == self.run_id

    def begin_loading(self, stage: str) -> None:
        self._inflight[stage] += 1
        self.loading[stage] = True

    def end_loading(self, stage: str) -> None:
        # A superseded call can still be in flight alongside a newer one
        self._inflight[stage] = max(self._inflight[stage] - 1, 0)
        self.loading[stage] = self._inflight[stage] > 0

    def clear_results(self) -> None:
        self.contacts = []
        self.drafts = []
        self.selected_contacts = set()
        self.contacts_version += 1

    # Organizations / roles

    def add_organization(self, name: str) -> bool:
        trimmed = (name or "").strip()
        if not trimmed or any(o.name == trimmed for o in self.organizations):
            return False
        self.organizations.append(
            Organization(name=trimmed, type="Custom", country="", justification="Added manually.")
        )
        return True

    def remove_organization(self, name: str) -> bool:
        before = len(self.organizations)
        self.organizations = [o for o in self.organizations if o.name != name]
        return len(self.organizations) != before

    def add_role(self, title: str) -> bool:
        trimmed = (title or "").strip()
        if not trimmed or any(r.title == trimmed for r in self.roles):
            return False
        self.roles.append(Role(title=trimmed, org_types=[], justification="Added manually."))
        return True

    def remove_role(self, title: str) -> bool:
        before = len(self.roles)
        self.roles = [r for r in self.roles if r.title != title]
        return len(self.roles) != before

    # Contacts / selection

    def replace_contacts(self, contacts: list[Contact]) -> None:
        """Install a new batch; selection is reseeded and old drafts are dropped."""
        self.contacts = list(contacts)
        self.drafts = []
        # Drafts still being generated for the old batch are discarded on arrival
        self.contacts_version += 1
        seed = self.contacts[: self.settings.selection_seed_size]
        self.selected_contacts = {c.id for c in seed}

    def select_contact(self, contact_id: str, selected: bool = True) -> bool:
        if not any(c.id == contact_id for c in self.contacts):
            return False
        if selected:
            self.selected_contacts.add(contact_id)
        else:
            self.selected_contacts.discard(contact_id)
        return True

    def set_selection(self, contact_ids: list[str]) -> None:
        known = {c.id for c in self.contacts}
        self.selected_contacts = {cid for cid in contact_ids if cid in known}

    def selected(self) -> list[Contact]:
        return [c for c in self.contacts if c.id in self.selected_contacts]

    # Drafts

    def update_draft(self, draft_id: str, body: str | None = None, subject: str | None = None) -> bool:
        for draft in self.drafts:
            if draft.id != draft_id:
                continue
            if body is not None:
                draft.body = body
            # Drafts without a subject (non-email channels) stay without one
            if subject is not None and draft.subject is not None:
                draft.subject = subject
            return True
        return False

    # Profile

    def update_profile(self, **fields: Any) -> None:
        values = {k: v for k, v in fields.items() if v is not None and k in UserProfile.model_fields}
        self.profile = self.profile.model_copy(update=values)

    def add_highlight(self, text: str) -> bool:
        trimmed = (text or "").strip()
        if not trimmed:
            return False
        self.profile.highlights.append(trimmed)
        return True

    def remove_highlight(self, idx: int) -> bool:
        if 0 <= idx < len(self.profile.highlights):
            del self.profile.highlights[idx]
            return True
        return False

    def merge_profile_text(self, text: str) -> None:
        """Append uploaded profile text to the summary."""
        prefix = self.profile.summary + "\n" if self.profile.summary else ""
        self.profile.summary = prefix + text

    def snapshot(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "mode": self.mode,
            "prompt": self.prompt,
            "tone": self.tone,
            "channel": self.channel,
            "max_contacts": self.max_contacts,
            "filters": self.filters.model_dump(),
            "status": self.status,
            "run_id": self.run_id,
            "busy": self.stage_running(),
            "loading": dict(self.loading),
            "errors": dict(self.errors),
            "analysis": self.analysis.model_dump() if self.analysis else None,
            "organizations": [o.model_dump() for o in self.organizations],
            "roles": [r.model_dump() for r in self.roles],
            "contacts": [c.model_dump() for c in self.contacts],
            "selected_contacts": [c.id for c in self.selected()],
            "drafts": [d.model_dump() for d in self.drafts],
            "profile": self.profile.model_dump(),
        }


class SessionStore:
    """
    In-memory sessions keyed by id.

    Sessions idle for longer than SESSION_TTL_SECONDS are dropped, and once
    MAX_SESSIONS is reached the least recently used one is evicted. Either
    limit is disabled by setting it to 0.
    """

    def __init__(self, settings: Settings | None = None, clock: Callable[[], float] = time.monotonic) -> None:
        self.settings = settings or default_settings
        self._clock = clock
        self._sessions: dict[str, SessionState] = {}

    def _expired(self, state: SessionState, now: float) -> bool:
        ttl = self.settings.session_ttl_seconds
        return ttl > 0 and now - state.last_seen > ttl

    def _prune(self, now: float) -> None:
        expired = [sid for sid, s in self._sessions.items() if self._expired(s, now)]
        for sid in expired:
            del self._sessions[sid]
        if expired:
            logger.info("Dropped %d idle sessions", len(expired))

        limit = self.settings.max_sessions
        if limit > 0 and len(self._sessions) >= limit:
            by_age = sorted(self._sessions.values(), key=lambda s: s.last_seen)
            for state in by_age[: len(self._sessions) - limit + 1]:
                del self._sessions[state.id]
                logger.info("Session %s evicted (limit %d)", state.id, limit)

    def create(self) -> SessionState:
        now = self._clock()
        self._prune(now)
        state = SessionState(self.settings)
        state.last_seen = now
        self._sessions[state.id] = state
        logger.info("Session %s created", state.id)
        return state

    def get(self, session_id: str) -> SessionState:
        now = self._clock()
        state = self._sessions.get(session_id)
        if state is None:
            raise SessionNotFound(session_id)
        if self._expired(state, now):
            del self._sessions[session_id]
            logger.info("Session %s expired", session_id)
            raise SessionNotFound(session_id)
        state.last_seen = now
        return state

    def delete(self, session_id: str) -> None:
        if self._sessions.pop(session_id, None) is None:
            raise SessionNotFound(session_id)

    def __len__(self) -> int:
        return len(self._sessions)
