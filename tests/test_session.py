# file: tests/test_session.py
import pytest

from app.config import Settings
from app.schemas.pipeline import Draft, StyleMetadata
from app.services.errors import SessionNotFound
from app.services.normalizer import normalize_contact
from app.services.session import SessionState, SessionStore


def _contacts(n: int):
    return [normalize_contact({"id": f"c{i}", "name": f"Person {i}"}, i, "mock") for i in range(1, n + 1)]


def test_new_state_defaults(state):
    assert state.mode == "auto"
    assert state.tone == "semi_formal"
    assert state.channel == "email"
    assert state.max_contacts == 15
    assert state.status == "idle"
    assert state.run_id == 0
    assert state.loading == {"analysis": False, "contacts": False, "drafts": False}


def test_add_organization_trims_and_ignores_blank_or_duplicate(state):
    assert state.add_organization("  Mila  ")
    assert not state.add_organization("   ")
    assert not state.add_organization("Mila")

    assert len(state.organizations) == 1
    org = state.organizations[0]
    assert org.name == "Mila"
    assert org.type == "Custom"
    assert org.justification == "Added manually."


def test_remove_organization_and_role(state):
    state.add_organization("Mila")
    state.add_role("Policy Analyst")

    assert state.remove_organization("Mila")
    assert not state.remove_organization("Mila")
    assert state.remove_role("Policy Analyst")
    assert state.organizations == [] and state.roles == []


def test_replace_contacts_seeds_selection_and_drops_drafts(state):
    state.drafts = [
        Draft(id="draft_1", contact_id="old", body="x", style_metadata=StyleMetadata(tone="formal", channel="email"))
    ]

    state.replace_contacts(_contacts(8))

    assert state.drafts == []
    assert state.selected_contacts == {"c1", "c2", "c3", "c4", "c5"}


def test_short_batch_selects_everything(state):
    state.replace_contacts(_contacts(3))

    assert [c.id for c in state.selected()] == ["c1", "c2", "c3"]


def test_select_contact_toggles_known_ids_only(state):
    state.replace_contacts(_contacts(8))

    assert state.select_contact("c7")
    assert state.select_contact("c1", selected=False)
    assert not state.select_contact("nope")
    assert [c.id for c in state.selected()] == ["c2", "c3", "c4", "c5", "c7"]


def test_set_selection_filters_unknown_ids(state):
    state.replace_contacts(_contacts(4))

    state.set_selection(["c4", "ghost", "c2"])

    assert [c.id for c in state.selected()] == ["c2", "c4"]


def test_update_draft_keeps_missing_subject(state):
    state.drafts = [
        Draft(
            id="draft_1",
            contact_id="c1",
            subject=None,
            body="old",
            style_metadata=StyleMetadata(tone="formal", channel="linkedin"),
        ),
        Draft(
            id="draft_2",
            contact_id="c2",
            subject="Hi",
            body="old",
            style_metadata=StyleMetadata(tone="formal", channel="email"),
        ),
    ]

    assert state.update_draft("draft_1", body="new", subject="ignored")
    assert state.update_draft("draft_2", subject="Updated")
    assert not state.update_draft("draft_9", body="x")

    assert state.drafts[0].body == "new"
    assert state.drafts[0].subject is None
    assert state.drafts[1].subject == "Updated"
    assert state.drafts[1].body == "old"


def test_profile_editing(state):
    state.update_profile(name="Dana", goals="AI governance", unknown="x", summary=None)
    assert state.add_highlight("  Led a policy hackathon ")
    assert not state.add_highlight(" ")
    state.merge_profile_text("Resume text")
    state.merge_profile_text("More text")

    assert state.profile.name == "Dana"
    assert state.profile.goals == "AI governance"
    assert state.profile.highlights == ["Led a policy hackathon"]
    assert state.profile.summary == "Resume text\nMore text"
    assert state.remove_highlight(0)
    assert not state.remove_highlight(0)


def test_loading_flag_tracks_overlapping_calls(state):
    state.begin_loading("analysis")
    state.begin_loading("analysis")
    state.end_loading("analysis")
    assert state.loading["analysis"] is True

    state.end_loading("analysis")
    assert state.loading["analysis"] is False


def test_reset_returns_to_blank_campaign(state):
    state.prompt = "something"
    state.run_id = 4
    state.update_profile(name="Dana")
    state.replace_contacts(_contacts(2))

    state.reset()

    assert state.prompt == ""
    # A call still in flight for run 4 must not land on the blank campaign
    assert state.run_id == 5
    assert state.contacts == []
    assert state.profile.name == ""


def test_snapshot_lists_selection_in_batch_order(state):
    state.replace_contacts(_contacts(6))
    state.set_selection(["c6", "c1"])

    snap = state.snapshot()

    assert snap["selected_contacts"] == ["c1", "c6"]
    assert snap["status"] == "idle"
    assert len(snap["contacts"]) == 6


def test_store_create_get_delete(settings):
    store = SessionStore(settings)
    state = store.create()

    assert isinstance(state, SessionState)
    assert store.get(state.id) is state
    assert len(store) == 1

    store.delete(state.id)
    assert len(store) == 0
    with pytest.raises(SessionNotFound):
        store.get(state.id)
    with pytest.raises(SessionNotFound):
        store.delete(state.id)


def test_new_contact_batch_bumps_version(state):
    before = state.contacts_version

    state.replace_contacts(_contacts(2))
    state.clear_results()

    assert state.contacts_version == before + 2


def test_stage_running_only_counts_current_run(state):
    state.active_stage, state.active_run = "drafts", state.run_id
    assert state.stage_running()
    assert state.snapshot()["busy"] is True

    state.run_id += 1
    assert not state.stage_running()


class FakeClock:
    def __init__(self) -> None:
        self.now = 1000.0

    def __call__(self) -> float:
        return self.now


def test_store_drops_idle_sessions():
    clock = FakeClock()
    store = SessionStore(Settings(session_ttl_seconds=60, _env_file=None), clock=clock)
    idle = store.create()
    active = store.create()

    clock.now += 45
    store.get(active.id)
    clock.now += 30

    with pytest.raises(SessionNotFound):
        store.get(idle.id)
    assert store.get(active.id) is active

    clock.now += 61
    store.create()
    assert len(store) == 1


def test_store_evicts_least_recently_used_at_limit():
    clock = FakeClock()
    store = SessionStore(Settings(max_sessions=2, session_ttl_seconds=0, _env_file=None), clock=clock)
    first = store.create()
    clock.now += 1
    second = store.create()
    clock.now += 1
    store.get(first.id)
    clock.now += 1

    third = store.create()

    assert len(store) == 2
    assert store.get(first.id) is first
    assert store.get(third.id) is third
    with pytest.raises(SessionNotFound):
        store.get(second.id)


def test_store_without_limits_keeps_everything():
    clock = FakeClock()
    store = SessionStore(Settings(max_sessions=0, session_ttl_seconds=0, _env_file=None), clock=clock)
    ids = [store.create().id for _ in range(5)]

    clock.now += 10**6

    assert all(store.get(sid).id == sid for sid in ids)
