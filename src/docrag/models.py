"""Core docrag data models."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List


@dataclass(slots=True)
class Document:
    """One indexed markdown file and its embedding."""

    path: str
    content: str
    embedding: List[float] = field(default_factory=list)
    modified: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "path": self.path,
            "content": self.content,
            "embedding": list(self.embedding),
            "modified": self.modified.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Document":
        modified = data.get("modified")
        return cls(
            path=data["path"],
            content=data.get("content", ""),
            embedding=[float(value) for value in data.get("embedding") or []],
            modified=(
                datetime.fromisoformat(modified)
                if modified
                else datetime.fromtimestamp(0, tz=timezone.utc)
            ),
        )


@dataclass(frozen=True, slots=True)
class RepoConfig:
    """Location of the documentation corpus inside a hosted repository."""

    owner: str
    repo: str
    branch: str
    root_path: str = ""
