from .tone import tone_label, tone_to_instructions
from .templates import (
    CONTACT_SEARCH_PROMPT,
    OUTREACH_BATCH_PROMPT,
    PROMPT_ANALYSIS_PROMPT,
    render_outreach_body,
)

__all__ = [
    "tone_label",
    "tone_to_instructions",
    "CONTACT_SEARCH_PROMPT",
    "OUTREACH_BATCH_PROMPT",
    "PROMPT_ANALYSIS_PROMPT",
    "render_outreach_body",
]
