from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class DocumentUpload(BaseModel):
    file_name: str
    declared_kind: str = "other"
    content: bytes = b""

    @property
    def size(self) -> int:
        return len(self.content)


class ParsedDocument(BaseModel):
    model_config = ConfigDict(frozen=True)

    file_name: str
    declared_kind: str
    extracted_text: str = ""
    word_count: int = Field(default=0, ge=0)
    parse_success: bool = False
    error: str | None = None
