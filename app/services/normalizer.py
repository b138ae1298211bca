"""
Normalization of untrusted backend output into the fixed pipeline schema.

Every function here is pure and total: whatever the provider returned, the
result is a schema-complete model. Nothing in this module raises.
"""
import math
from typing import Any

from app.prompts.templates import DEFAULT_SUBJECT, render_outreach_body
from app.prompts.tone import tone_label
from app.schemas.pipeline import (
    Contact,
    Draft,
    Organization,
    PromptAnalysis,
    Role,
    StyleMetadata,
    UserProfile,
    clamp_0_1,
)

DEFAULT_EMAIL_CONFIDENCE = 0.6
DEFAULT_RELEVANCE_SCORE = 0.7
DEFAULT_DRAFT_LENGTH = "short"


def _is_number(value: Any) -> bool:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    # Ints are never NaN, and math.isnan overflows on very large ones
    return isinstance(value, int) or not math.isnan(value)


def _text(value: Any, default: str) -> str:
    if isinstance(value, str) and value.strip():
        return value.strip()
    return default


def _score(value: Any, default: float) -> float:
    # Clamp before converting so huge ints never reach float()
    return float(clamp_0_1(value)) if _is_number(value) else default


def _list(value: Any) -> list:
    return value if isinstance(value, list) else []


def _text_list(value: Any) -> list[str]:
    return [v.strip() for v in _list(value) if isinstance(v, str) and v.strip()]


def clamp_max_contacts(value: Any, *, default: int = 10, lower: int = 5, upper: int = 30) -> int:
    """
    min(max(numeric_or_default(value, default), lower), upper).

    Zero, NaN, booleans and non-numeric values count as missing. Infinities
    are numeric and clamp to the nearest bound.
    """
    number: int | float | None = None
    if _is_number(value):
        number = value
    elif isinstance(value, str):
        try:
            number = float(value.strip())
        except ValueError:
            number = None
    if number is None or (isinstance(number, float) and math.isnan(number)) or number == 0:
        number = default
    return int(min(max(number, lower), upper))


def normalize_contact(raw: Any, idx: int, source: str) -> Contact:
    c = raw if isinstance(raw, dict) else {}
    return Contact(
        id=_text(c.get("id"), f"ai_contact_{idx + 1}"),
        name=_text(c.get("name"), "Unknown"),
        title=_text(c.get("title"), "Contact"),
        organization=_text(c.get("organization"), "Unknown org"),
        country=_text(c.get("country"), "Unknown"),
        linkedin_url=_text(c.get("linkedin_url"), ""),
        email=_text(c.get("email"), ""),
        email_confidence=_score(c.get("email_confidence"), DEFAULT_EMAIL_CONFIDENCE),
        source=_text(c.get("source"), source),
        relevance_score=_score(c.get("relevance_score"), DEFAULT_RELEVANCE_SCORE),
    )


def normalize_contacts(raw: Any, cap: int, source: str) -> list[Contact]:
    """Truncate to cap, normalize each record, keep ids unique within the batch."""
    if not isinstance(raw, list):
        return []
    contacts: list[Contact] = []
    seen: set[str] = set()
    for idx, item in enumerate(raw[:cap]):
        contact = normalize_contact(item, idx, source)
        if contact.id in seen:
            contact = contact.model_copy(update={"id": f"ai_contact_{idx + 1}"})
        # The synthesized id can itself collide with a provider id
        while contact.id in seen:
            contact = contact.model_copy(update={"id": f"{contact.id}_{idx + 1}"})
        seen.add(contact.id)
        contacts.append(contact)
    return contacts


def normalize_analysis(raw: Any) -> PromptAnalysis:
    data = raw if isinstance(raw, dict) else {}

    organizations: list[Organization] = []
    org_names: set[str] = set()
    for item in _list(data.get("organizations")):
        if not isinstance(item, dict):
            continue
        name = _text(item.get("name"), "")
        if not name or name in org_names:
            continue
        org_names.add(name)
        organizations.append(
            Organization(
                name=name,
                type=_text(item.get("type"), ""),
                country=_text(item.get("country"), ""),
                justification=_text(item.get("justification"), ""),
            )
        )

    roles: list[Role] = []
    role_titles: set[str] = set()
    for item in _list(data.get("roles")):
        if not isinstance(item, dict):
            continue
        title = _text(item.get("title"), "")
        if not title or title in role_titles:
            continue
        role_titles.add(title)
        roles.append(
            Role(
                title=title,
                org_types=_text_list(item.get("org_types")),
                justification=_text(item.get("justification"), ""),
            )
        )

    return PromptAnalysis(
        domain=_text(data.get("domain"), "Outreach"),
        countries=_text_list(data.get("countries")),
        org_types=_text_list(data.get("org_types")),
        organizations=organizations,
        roles=roles,
        justification=_text(data.get("justification"), ""),
    )


def normalize_draft(
    raw: Any,
    contact: Contact,
    idx: int,
    profile: UserProfile,
    tone: str,
    channel: str,
) -> Draft:
    """One draft for one contact; template defaults fill whatever the provider left out."""
    d = raw if isinstance(raw, dict) else {}
    body = _text(d.get("body"), "") or render_outreach_body(
        contact_name=contact.name,
        title=contact.title,
        organization=contact.organization,
        sender_name=profile.name,
        summary=profile.summary,
        goals=profile.goals,
    )
    subject = None
    if channel == "email":
        subject = _text(d.get("subject"), DEFAULT_SUBJECT.format(organization=contact.organization))
    style = d.get("style_metadata") if isinstance(d.get("style_metadata"), dict) else {}
    return Draft(
        id=f"draft_{idx + 1}",
        contact_id=contact.id,
        subject=subject,
        body=body,
        style_metadata=StyleMetadata(
            tone=tone_label(tone),
            length=_text(style.get("length"), DEFAULT_DRAFT_LENGTH),
            channel=channel,
        ),
    )
