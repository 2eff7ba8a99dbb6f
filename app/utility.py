from typing import Any, Dict, List, Optional

from pydantic import BaseModel, field_validator

UTILITY_TEMPLATES: List[Dict[str, str]] = [
    {"id": "summary", "title": "Executive Summary", "description": "Create a concise summary."},
    {"id": "email", "title": "Professional Email", "description": "Draft a polished email response."},
    {"id": "plan", "title": "Action Plan", "description": "Generate a tactical execution plan."},
]


class UtilityGenerateRequest(BaseModel):
    template: Optional[str] = None
    prompt: Optional[str] = ""

    @field_validator("template", "prompt", mode="before")
    @classmethod
    def _as_text(cls, v: Any) -> Optional[str]:
        if v is None:
            return v
        return v if isinstance(v, str) else str(v)


def render_placeholder(template: Optional[str], prompt: str) -> str:
    return (
        f"Template: {template or 'generic'}\n\n"
        f"Input:\n{prompt}\n\n"
        "Generated output (placeholder):\n- Point 1\n- Point 2\n- Point 3"
    )
