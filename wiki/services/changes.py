from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

CONTENT_FIELDS = ("title", "description", "body")


@dataclass(frozen=True)
class ContentSnapshot:
    title: str
    description: Optional[str]
    body: str

    @classmethod
    def of(cls, obj) -> "ContentSnapshot":
        """Snapshot of an Article or Revision."""
        return cls(title=obj.title, description=obj.description, body=obj.body)

    def apply_to(self, obj) -> None:
        for name in CONTENT_FIELDS:
            setattr(obj, name, getattr(self, name))


def content_changed(current: ContentSnapshot, proposed: ContentSnapshot) -> bool:
    # exact comparison: whitespace is significant in markup bodies
    return any(getattr(current, f) != getattr(proposed, f) for f in CONTENT_FIELDS)
