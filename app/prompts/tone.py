"""
Convert tone keys (e.g. "semi_formal") into display labels and natural language
instructions for the AI. This keeps prompt behavior consistent and debuggable.
"""

DEFAULT_TONE = "semi_formal"

TONE_INSTRUCTIONS = {
    "formal": "formal and businesslike; avoid slang, use full forms.",
    "semi_formal": "professional and polished, but friendly; clear and respectful.",
    "casual": "casual and conversational; use contractions, light language.",
    "warm": "warm and personable; show genuine interest, use a human touch.",
    "direct": "clear and direct; state the purpose and the ask plainly.",
}

CHANNEL_INSTRUCTIONS = {
    "email": "Keep each email under 150 words.",
    "linkedin": "Keep each message under 300 characters so it fits a LinkedIn connection note.",
}


def tone_label(tone: str) -> str:
    """Human-readable form of a tone key: every underscore becomes a space."""
    return (tone or DEFAULT_TONE).replace("_", " ")


def tone_to_instructions(tone: str, channel: str) -> str:
    """Produce a short paragraph of tone instructions for the model."""
    style = TONE_INSTRUCTIONS.get(tone) or f"{tone_label(tone)}."
    length = CHANNEL_INSTRUCTIONS.get(channel, "Keep each message short.")
    return (
        "Tone of voice:\n"
        f"- Style: {style}\n"
        f"- Length: {length}\n"
        "Write in first person, as the outreach sender."
    )
