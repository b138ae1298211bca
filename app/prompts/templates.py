PROMPT_ANALYSIS_PROMPT = """You are planning a cold-outreach campaign for one person.

Outreach goal: {prompt}
About the sender: {profile_summary}

Infer the domain of the goal, the countries it targets, and the organizations and roles whose people are most relevant to contact. Prefer real, well-known organizations.

Respond with a JSON object only, no markdown, with this exact structure:
{{
  "domain": "Short label for the domain, e.g. AI safety policy.",
  "countries": ["Countries", "in", "priority", "order"],
  "org_types": ["Government agency", "Research institute"],
  "organizations": [
    {{"name": "", "type": "", "country": "", "justification": "One sentence."}}
  ],
  "roles": [
    {{"title": "", "org_types": [""], "justification": "One sentence."}}
  ],
  "justification": "2-3 sentences explaining the selection."
}}

Return at most 6 organizations and 6 roles."""

CONTACT_SEARCH_PROMPT = """You are an expert contact researcher. Given a prompt and optional orgs/roles, return JSON only.
Use up to the requested max_contacts. Include realistic but synthetic data if unsure.

Return contacts JSON for this: {request}

Respond with a JSON object only, no markdown, with this exact structure:
{{
  "contacts": [
    {{
      "name": "",
      "title": "",
      "organization": "",
      "country": "",
      "linkedin_url": "",
      "email": "",
      "email_confidence": 0.8,
      "relevance_score": 0.8,
      "source": "{source}"
    }}
  ]
}}

email_confidence and relevance_score are numbers from 0 to 1. Return at most {max_contacts} contacts."""

OUTREACH_BATCH_PROMPT = """You are writing personalized cold-outreach messages on behalf of the sender below.

## Sender profile
{profile}

## Channel
{channel}

## Tone of voice
{tone_instructions}

## Contacts
{contacts}

## Task
Write exactly one short message per contact. Reference the contact's role and organization and connect it to the sender's goals. End with a low-pressure ask for a 15 minute chat. Sign with the sender's name.
{subject_rule}

Respond with a JSON object only, no markdown, with this exact structure:
{{
  "drafts": [
    {{"contact_id": "id from the contacts list", "subject": "", "body": "The exact message text."}}
  ]
}}

Ensure "drafts" has exactly {count} items, in the same order as the contacts."""

EMAIL_SUBJECT_RULE = "Include a concise subject line for every message."
NO_SUBJECT_RULE = "Leave subject empty; this channel has no subject line."

DEFAULT_SUBJECT = "Quick question about {organization}"
DEFAULT_GOALS = "AI policy pathways"
CALL_TO_ACTION = (
    "Would you be open to a 15 minute chat about how your team approaches AI safety "
    "and where newcomers can contribute?"
)


def render_intro(name: str, summary: str) -> str:
    if summary:
        return f"I'm {name or 'someone'} {summary}. "
    return f"I'm {name or 'a professional'} exploring opportunities. "


def render_outreach_body(
    contact_name: str,
    title: str,
    organization: str,
    sender_name: str,
    summary: str,
    goals: str,
) -> str:
    """The fixed outreach template: greeting, intro, pitch, ask, signature."""
    first_name = (contact_name.split() or ["there"])[0]
    return "\n".join(
        [
            f"Hi {first_name},",
            "",
            f"{render_intro(sender_name, summary)}I'm reaching out because your {title} role at "
            f"{organization} intersects with my focus on {goals or DEFAULT_GOALS}.",
            CALL_TO_ACTION,
            "",
            "Thanks!",
            sender_name or "Your name",
        ]
    )
