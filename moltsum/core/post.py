"""
Post data model for moltsum.
"""
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

# Separator between sections of a generated summary
SUMMARY_SEPARATOR = "\n---\n"


@dataclass
class Post:
    """
    Read-only view of one post object inside a snapshot document.

    The snapshot keeps the original dict; ``raw`` points at it so write-back
    can preserve every field this model does not know about.
    """
    id: str
    title: str = ""
    content: Optional[str] = None
    summary: Optional[str] = None
    title_zh: Optional[str] = None
    title_en: Optional[str] = None
    raw: Dict[str, Any] = field(default_factory=dict, repr=False, compare=False)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> Optional["Post"]:
        """
        Build a Post from a snapshot entry.

        Returns:
            The Post, or None if the entry has no usable id
        """
        if not isinstance(data, dict):
            return None
        post_id = data.get('id')
        if not isinstance(post_id, str) or not post_id:
            return None
        content = data.get('content')
        return cls(
            id=post_id,
            title=data.get('title') or "",
            content=content if isinstance(content, str) else None,
            summary=data.get('summary') or None,
            title_zh=data.get('title_zh') or None,
            title_en=data.get('title_en') or None,
            raw=data,
        )


@dataclass
class BilingualSummary:
    """
    Parsed result of one generation call. Any field may be missing when the
    response did not follow the four-section layout.
    """
    raw: str
    title_zh: Optional[str] = None
    summary_zh: Optional[str] = None
    title_en: Optional[str] = None
    summary_en: Optional[str] = None

    @property
    def combined_summary(self) -> str:
        """Value stored in a post's ``summary`` field."""
        if self.summary_zh and self.summary_en:
            return f"{self.summary_zh}{SUMMARY_SEPARATOR}{self.summary_en}"
        return self.raw

    def as_fields(self) -> Dict[str, str]:
        """Post fields to write for this summary."""
        fields = {'summary': self.combined_summary}
        if self.title_zh:
            fields['title_zh'] = self.title_zh
        if self.title_en:
            fields['title_en'] = self.title_en
        return fields
