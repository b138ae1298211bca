from .pipeline import (
    Contact,
    Draft,
    Organization,
    PromptAnalysis,
    Role,
    SearchFilters,
    StageResult,
    StyleMetadata,
    UserProfile,
)

__all__ = [
    "Contact",
    "Draft",
    "Organization",
    "PromptAnalysis",
    "Role",
    "SearchFilters",
    "StageResult",
    "StyleMetadata",
    "UserProfile",
]
