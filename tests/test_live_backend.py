# file: tests/test_live_backend.py
import json
from types import SimpleNamespace
from unittest.mock import AsyncMock, Mock

import httpx
import openai
import pytest

from app.config import Settings
from app.schemas.pipeline import SearchFilters, UserProfile
from app.services.ai import LiveBackend, _parse_json_from_content
from app.services.errors import BackendError, MalformedResponseError
from app.services.mock import SEED_ORGANIZATIONS, SEED_ROLES
from app.services.normalizer import normalize_contact
from app.services.pipeline import PipelineOrchestrator, PipelineStatus
from app.services.session import SessionState


def _completion(content: str):
    return SimpleNamespace(
        choices=[SimpleNamespace(message=SimpleNamespace(content=content))],
        usage=SimpleNamespace(prompt_tokens=120, completion_tokens=80),
    )


def _client(content: str | None = None, error: Exception | None = None):
    client = Mock()
    if error is not None:
        client.chat.completions.create = AsyncMock(side_effect=error)
    else:
        client.chat.completions.create = AsyncMock(return_value=_completion(content))
    return client


@pytest.fixture
def live_settings() -> Settings:
    return Settings(backend="live", openai_api_key="sk-test", _env_file=None)


def _sent_user_message(client) -> str:
    kwargs = client.chat.completions.create.call_args.kwargs
    return kwargs["messages"][1]["content"]


def test_parse_json_strips_code_fence():
    assert _parse_json_from_content('```json\n{"contacts": []}\n```') == {"contacts": []}


@pytest.mark.parametrize("content", ["not json", "[1, 2]", ""])
def test_parse_json_rejects_non_objects(content):
    with pytest.raises(MalformedResponseError):
        _parse_json_from_content(content)


@pytest.mark.asyncio
async def test_search_normalizes_and_caps(live_settings):
    raw = {"contacts": [{"name": f"Person {i}", "email_confidence": "high"} for i in range(40)]}
    client = _client(json.dumps(raw))
    backend = LiveBackend(live_settings, client=client)

    contacts = await backend.search_contacts(SEED_ORGANIZATIONS, SEED_ROLES, 1000, SearchFilters())

    assert len(contacts) == 30
    assert contacts[0].id == "ai_contact_1"
    assert contacts[0].name == "Person 0"
    assert contacts[0].email_confidence == 0.6
    assert contacts[0].source == "chatgpt"
    assert '"max_contacts": 30' in _sent_user_message(client)


@pytest.mark.asyncio
async def test_search_sends_prompt_profile_and_filters(live_settings):
    client = _client('{"contacts": []}')
    backend = LiveBackend(live_settings, client=client)

    await backend.search_contacts(
        SEED_ORGANIZATIONS[:1],
        SEED_ROLES[:1],
        12,
        SearchFilters(country=["Canada"]),
        prompt="AI policy internships",
        profile=UserProfile(name="Dana"),
    )

    sent = _sent_user_message(client)
    assert "AI policy internships" in sent
    assert '"name": "Dana"' in sent
    assert '"country": ["Canada"]' in sent
    assert '"max_contacts": 12' in sent


@pytest.mark.asyncio
@pytest.mark.parametrize("content", ["Sorry, I can't help with that.", '{"contacts": "none"}', '{"people": []}'])
async def test_malformed_search_response_is_empty(live_settings, content):
    backend = LiveBackend(live_settings, client=_client(content))

    assert await backend.search_contacts(SEED_ORGANIZATIONS, SEED_ROLES, 15, SearchFilters()) == []


@pytest.mark.asyncio
async def test_provider_failure_raises_backend_error(live_settings):
    request = httpx.Request("POST", "https://api.openai.com/v1/chat/completions")
    backend = LiveBackend(live_settings, client=_client(error=openai.APIConnectionError(request=request)))

    with pytest.raises(BackendError):
        await backend.search_contacts(SEED_ORGANIZATIONS, SEED_ROLES, 15, SearchFilters())


@pytest.mark.asyncio
async def test_missing_api_key_raises_backend_error():
    backend = LiveBackend(Settings(backend="live", openai_api_key="", _env_file=None))

    with pytest.raises(BackendError):
        await backend.analyze_prompt("AI policy", "")


@pytest.mark.asyncio
async def test_analysis_is_normalized(live_settings):
    raw = {
        "domain": "AI safety policy",
        "countries": ["Canada"],
        "organizations": [{"name": "Mila", "type": "Research institute", "country": "Canada"}, {"type": "x"}],
        "roles": [{"title": "Policy Lead", "org_types": ["Research institute"]}],
        "justification": "Mila runs policy programs.",
    }
    backend = LiveBackend(live_settings, client=_client(json.dumps(raw)))

    analysis = await backend.analyze_prompt("AI safety in Canada", "Grad student")

    assert analysis.domain == "AI safety policy"
    assert [o.name for o in analysis.organizations] == ["Mila"]
    assert [r.title for r in analysis.roles] == ["Policy Lead"]


@pytest.mark.asyncio
async def test_malformed_analysis_is_empty(live_settings):
    backend = LiveBackend(live_settings, client=_client("<html>oops</html>"))

    analysis = await backend.analyze_prompt("AI safety in Canada", "")

    assert analysis.organizations == []
    assert analysis.roles == []


def _contacts():
    return [
        normalize_contact({"id": "c1", "name": "Alex Chen", "organization": "CIFAR"}, 0, "chatgpt"),
        normalize_contact({"id": "c2", "name": "Priya Patel", "organization": "Mila"}, 1, "chatgpt"),
        normalize_contact({"id": "c3", "name": "Leo Dupont", "organization": "NRC"}, 2, "chatgpt"),
    ]


@pytest.mark.asyncio
async def test_drafts_match_by_contact_id_and_fill_gaps(live_settings):
    raw = {
        "drafts": [
            {"contact_id": "c2", "subject": "Hello Priya", "body": "Body for Priya"},
            {"contact_id": "c1", "body": "Body for Alex"},
        ]
    }
    backend = LiveBackend(live_settings, client=_client(json.dumps(raw)))

    drafts = await backend.generate_outreach_batch(_contacts(), UserProfile(name="Sam"), "semi_formal", "email")

    assert [d.contact_id for d in drafts] == ["c1", "c2", "c3"]
    assert drafts[0].body == "Body for Alex"
    assert drafts[0].subject == "Quick question about CIFAR"
    assert drafts[1].subject == "Hello Priya"
    # c3 was omitted by the provider and falls back to the template
    assert drafts[2].body.startswith("Hi Leo,")
    assert all(d.style_metadata.length == "short" for d in drafts)
    assert all(d.style_metadata.tone == "semi formal" for d in drafts)


@pytest.mark.asyncio
async def test_drafts_without_ids_match_by_position(live_settings):
    raw = {"drafts": [{"body": "first"}, {"body": "second"}, {"body": "third"}]}
    backend = LiveBackend(live_settings, client=_client(json.dumps(raw)))

    drafts = await backend.generate_outreach_batch(_contacts(), UserProfile(), "casual", "linkedin")

    assert [d.body for d in drafts] == ["first", "second", "third"]
    assert all(d.subject is None for d in drafts)


@pytest.mark.asyncio
async def test_malformed_drafts_fall_back_to_template(live_settings):
    backend = LiveBackend(live_settings, client=_client("no json here"))

    drafts = await backend.generate_outreach_batch(_contacts(), UserProfile(), "casual", "email")

    assert len(drafts) == 3
    assert drafts[1].body.startswith("Hi Priya,")


@pytest.mark.asyncio
async def test_empty_batch_skips_provider(live_settings):
    client = _client('{"drafts": []}')
    backend = LiveBackend(live_settings, client=client)

    assert await backend.generate_outreach_batch([], UserProfile(), "casual", "email") == []
    client.chat.completions.create.assert_not_called()


@pytest.mark.asyncio
async def test_analysis_with_non_list_fields_is_empty(live_settings):
    backend = LiveBackend(live_settings, client=_client('{"domain": "AI policy", "organizations": 5, "roles": true}'))

    analysis = await backend.analyze_prompt("AI safety in Canada", "")

    assert analysis.domain == "AI policy"
    assert analysis.organizations == []
    assert analysis.roles == []


@pytest.mark.asyncio
async def test_manual_submit_survives_odd_analysis_shape(live_settings):
    backend = LiveBackend(live_settings, client=_client('{"organizations": 5, "roles": true}'))
    orchestrator = PipelineOrchestrator(backend, live_settings)
    state = SessionState(live_settings)

    result = await orchestrator.submit_prompt(state, "AI safety in Canada", mode="manual")

    assert result.outcome == "analysis_ready"
    assert state.status == PipelineStatus.ANALYSIS_READY
    assert state.loading["analysis"] is False


def test_parse_json_rejects_oversized_integer_literal():
    with pytest.raises(MalformedResponseError):
        _parse_json_from_content('{"max_contacts": ' + "9" * 5000 + "}")


@pytest.mark.asyncio
async def test_huge_scores_from_provider_are_clamped(live_settings):
    content = '{"contacts": [{"name": "Alex", "email_confidence": 1' + "0" * 400 + ', "relevance_score": -1' + "0" * 400 + "}]}"
    backend = LiveBackend(live_settings, client=_client(content))

    contacts = await backend.search_contacts(SEED_ORGANIZATIONS, SEED_ROLES, 15, SearchFilters())

    assert contacts[0].email_confidence == 1.0
    assert contacts[0].relevance_score == 0.0


@pytest.mark.asyncio
async def test_huge_max_contacts_is_capped(live_settings):
    client = _client('{"contacts": []}')
    backend = LiveBackend(live_settings, client=client)

    await backend.search_contacts(SEED_ORGANIZATIONS, SEED_ROLES, 10**400, SearchFilters())

    assert '"max_contacts": 30' in _sent_user_message(client)
