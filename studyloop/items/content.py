"""
Wire models for study item content.

The backend returns every item as ``{"type": ..., "content": {...}}`` with a
content shape that depends on the type. ``StudyItemPlay`` resolves the shape
from the tag before field validation runs.
"""
from __future__ import annotations

from typing import Any, Union

from pydantic import BaseModel, Field, model_validator

from . import ItemType


class FlashcardContent(BaseModel):
    front: str
    back: str
    explanation: str | None = None
    image_url: str | None = None


class ChoiceOption(BaseModel):
    id: int
    text: str


class QuizQuestionContent(BaseModel):
    """Single best answer."""

    question: str
    options: list[ChoiceOption]
    correct_option_id: int
    explanation: str | None = None


class CheckboxQuestionContent(BaseModel):
    """Select every correct option."""

    question: str
    options: list[ChoiceOption]
    correct_option_ids: list[int] = Field(default_factory=list)
    explanation: str | None = None


class WrittenAnswerContent(BaseModel):
    question: str
    accepted_answers: list[str] = Field(default_factory=list)
    explanation: str | None = None


class MatchingPair(BaseModel):
    left: str
    right: str


class MatchingPairsContent(BaseModel):
    question: str | None = None
    pairs: list[MatchingPair]
    explanation: str | None = None


class OrderSequenceItem(BaseModel):
    text: str


class OrderSequenceContent(BaseModel):
    """Items are stored in their correct order."""

    question: str | None = None
    items: list[OrderSequenceItem]
    explanation: str | None = None


class NoteContent(BaseModel):
    title: str
    markdown: str = ""
    attachment_url: str | None = None


StudyItemContent = Union[
    FlashcardContent,
    QuizQuestionContent,
    CheckboxQuestionContent,
    WrittenAnswerContent,
    MatchingPairsContent,
    OrderSequenceContent,
    NoteContent,
]

CONTENT_MODELS: dict[ItemType, type[BaseModel]] = {
    ItemType.FLASHCARD: FlashcardContent,
    ItemType.QUIZ_QUESTION: QuizQuestionContent,
    ItemType.CHECKBOX_QUESTION: CheckboxQuestionContent,
    ItemType.WRITTEN_ANSWER: WrittenAnswerContent,
    ItemType.MATCHING_PAIRS: MatchingPairsContent,
    ItemType.ORDER_SEQUENCE: OrderSequenceContent,
    ItemType.NOTE: NoteContent,
}


class StudyProgress(BaseModel):
    """Per-learner scheduling state, computed server-side."""

    box_level: int = 0
    is_due: bool = False
    last_reviewed: str | None = None


class StudyItemPlay(BaseModel):
    """One item as served for play."""

    id: str
    type: ItemType
    position: int = 0
    like_count: int = 0
    comment_count: int = 0
    is_liked: bool = False
    is_bookmarked: bool = False
    study_data: StudyProgress = Field(default_factory=StudyProgress)
    content: StudyItemContent

    @model_validator(mode="before")
    @classmethod
    def _resolve_content(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        content = data.get("content")
        try:
            model = CONTENT_MODELS.get(ItemType(data.get("type")))
        except ValueError:
            return data  # the `type` field reports the error
        if model is not None and isinstance(content, dict):
            data = {**data, "content": model.model_validate(content)}
        if data.get("study_data") is None:
            data = {**data, "study_data": {}}
        return data

    @property
    def prompt(self) -> str:
        """Headline text for listings and panels."""
        content = self.content
        if isinstance(content, FlashcardContent):
            return content.front
        if isinstance(content, NoteContent):
            return content.title
        return getattr(content, "question", None) or ""


class CreateStudyItem(BaseModel):
    """Item payload for set creation; same tag/content pairing as play items."""

    type: ItemType
    content: StudyItemContent

    @model_validator(mode="before")
    @classmethod
    def _resolve_content(cls, data: Any) -> Any:
        if isinstance(data, dict) and isinstance(data.get("content"), dict):
            try:
                model = CONTENT_MODELS[ItemType(data.get("type"))]
            except (KeyError, ValueError):
                return data
            data = {**data, "content": model.model_validate(data["content"])}
        return data
