"""
Strategy Plan Models
Context attachments uploaded against a single recommendation.
"""

import mimetypes
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional


@dataclass
class ContextFile:
    """A small context file attached to a recommendation."""

    id: str
    file_name: str
    size: int = 0
    mime_type: Optional[str] = None
    uploaded_at: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ContextFile":
        return cls(
            id=str(data.get("id") or ""),
            file_name=data.get("fileName") or data.get("name") or "",
            size=int(data.get("size") or data.get("fileSize") or 0),
            mime_type=data.get("mimeType") or data.get("type"),
            uploaded_at=data.get("uploadedAt"),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "fileName": self.file_name,
            "size": self.size,
            "mimeType": self.mime_type,
            "uploadedAt": self.uploaded_at,
        }


@dataclass
class StrategyPlan:
    """Attachment container for one recommendation, created on first upload."""

    recommendation_id: str
    content_type: str = "article"
    brand_name: str = ""
    context_files: List[ContextFile] = field(default_factory=list)

    def file_ids(self) -> List[str]:
        return [f.id for f in self.context_files]


@dataclass
class UploadFile:
    """A file picked for upload, held in memory."""

    file_name: str
    content: bytes
    mime_type: str = "application/octet-stream"

    @property
    def size(self) -> int:
        return len(self.content)

    @classmethod
    def from_path(cls, path, mime_type: Optional[str] = None) -> "UploadFile":
        file_path = Path(path)
        guessed, _ = mimetypes.guess_type(file_path.name)
        return cls(
            file_name=file_path.name,
            content=file_path.read_bytes(),
            mime_type=mime_type or guessed or "application/octet-stream",
        )
