from typing import Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field


class _WireModel(BaseModel):
    # Attributes are snake_case; the wire (model reply, browser JSON) is camelCase.
    model_config = ConfigDict(frozen=True, populate_by_name=True)


class TranslationPair(_WireModel):
    arabic: str
    english: str
    number_pronunciation: Optional[str] = Field(default=None, alias="numberPronunciation")


class ProcessingResult(_WireModel):
    title: Optional[str] = None
    author: Optional[str] = None
    content: Tuple[TranslationPair, ...]
    current_page: int = Field(..., ge=1, alias="currentPage")
    has_more: bool = Field(..., alias="hasMore")

    def to_wire(self) -> dict:
        return self.model_dump(by_alias=True, exclude_none=True)
