"""
Request/response models for the study RPCs.

Field names mirror the JSON the backend procedures accept and return.
"""
from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, Field, field_validator

from studyloop.items.content import CreateStudyItem, StudyItemPlay


# ========================================
# Shared
# ========================================


class Subject(BaseModel):
    id: int
    name: str
    slug: str = ""
    emoji: str | None = None


class SubjectRef(BaseModel):
    name: str | None = None
    emoji: str | None = None


class Creator(BaseModel):
    id: str | None = None
    username: str | None = None
    avatar: str | None = None
    avatar_url: str | None = None


# ========================================
# Play
# ========================================


class StudySetPlay(BaseModel):
    id: str
    title: str
    description: str | None = None
    subject: str | None = None
    emoji: str | None = None
    average_rating: float = 0.0
    total_ratings: int = 0
    created_at: str | None = None
    creator: Creator | None = None
    total_likes: int = 0
    total_comments: int = 0
    is_bookmarked: bool = False


class SetForPlay(BaseModel):
    """Response of c_get_set_for_play."""

    set: StudySetPlay
    items: list[StudyItemPlay] = Field(default_factory=list)


class StudySessionResult(BaseModel):
    item_id: str
    is_correct: bool


class FinishStudySessionParams(BaseModel):
    set_id: str
    duration_seconds: int = Field(ge=1)
    results: list[StudySessionResult]


class FinishStudySessionResponse(BaseModel):
    xp_earned: int = 0
    total_xp: int = 0
    new_streak: int = 0
    streak_increased: bool = False
    cards_reviewed: int = 0
    correct_count: int = 0
    accuracy: float = 0.0


# ========================================
# Dashboard
# ========================================


class UserStats(BaseModel):
    streak: int = 0
    total_xp: int = 0
    level: int = 0
    cards_due: int = 0
    minutes_today: int = 0
    pending_invites: int = 0


class DailyPickSet(BaseModel):
    id: str
    title: str
    average_rating: float = 0.0
    subject: str | None = None


class DailyPick(BaseModel):
    message: str
    set: DailyPickSet


class ContinueStudyingItem(BaseModel):
    id: str
    title: str
    subject: str | None = None
    emoji: str | None = None
    last_active: str | None = None


class FeedStats(BaseModel):
    average_rating: float = 0.0
    total_ratings: int = 0
    cards_count: int = 0
    like_count: int = 0
    comment_count: int = 0


class FeedItem(BaseModel):
    type: Literal["feed"] = "feed"
    set_id: str
    title: str
    description: str | None = None
    tags: list[str] = Field(default_factory=list)
    created_at: str | None = None
    is_official: bool = False
    creator: Creator | None = None
    subject: SubjectRef | None = None
    stats: FeedStats = Field(default_factory=FeedStats)
    is_bookmarked: bool = False


class RecommendedUser(BaseModel):
    type: Literal["rec_user"] = "rec_user"
    user_id: str
    username: str
    avatar: str | None = None
    xp: int = 0
    bio: str | None = None


class HomeDashboard(BaseModel):
    """Response of c_get_home_dashboard."""

    user_stats: UserStats | None = None
    daily_pick: DailyPick | None = None
    continue_studying: list[ContinueStudyingItem] = Field(default_factory=list)
    feed_type: Literal["following", "recommendations"] = "recommendations"
    feed_content: list[FeedItem | RecommendedUser] = Field(default_factory=list)


class ContinueStudyingSet(BaseModel):
    """Row of c_get_continue_studying."""

    id: str
    title: str
    average_rating: float | None = None
    total_ratings: int | None = None
    last_active: str | None = None
    creator: Creator | None = None
    subject: SubjectRef | None = None
    cards_due: int = 0


# ========================================
# Sets
# ========================================


class StudySet(BaseModel):
    """Row of c_search_sets_fuzzy."""

    id: str
    title: str
    average_rating: float = 0.0
    subject_id: str | int | None = None
    is_public: bool = True
    deleted_at: str | None = None
    created_at: str | None = None
    updated_at: str | None = None


class LibraryContentItem(BaseModel):
    """Row of c_get_library_content."""

    id: str
    title: str
    description: str | None = None
    is_public: bool = True
    average_rating: float = 0.0
    total_ratings: int = 0
    created_at: str | None = None
    saved_at: str | None = None
    cards_count: int = 0
    subject: SubjectRef | None = None
    creator: Creator | None = None


LibraryTab = Literal["created", "saved"]


class CreateFullSetParams(BaseModel):
    title: str
    description: str = ""
    subject_id: int
    is_public: bool = True
    tags: list[str] = Field(default_factory=list)
    items: list[CreateStudyItem] | None = None

    @field_validator("title")
    @classmethod
    def _title_required(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("title must not be blank")
        return value

    @field_validator("tags")
    @classmethod
    def _clean_tags(cls, value: list[str]) -> list[str]:
        return [t.strip() for t in value if t.strip()]


class RateSetParams(BaseModel):
    p_set_id: str
    p_rating: int = Field(ge=1, le=5)
    p_review: str | None = None


class RateSetResponse(BaseModel):
    new_average: float
    new_total: int


class UpdateStudyItem(CreateStudyItem):
    """Item payload for an edit. Items without an id are created."""

    id: str | None = None


class UpdateFullSetParams(CreateFullSetParams):
    """Replaces a set's header and items in one call."""

    set_id: str
    items: list[UpdateStudyItem] = Field(default_factory=list)


# ========================================
# Explore
# ========================================


ExploreSort = Literal["trending", "newest", "top_rated"]


class SetCreatorRef(BaseModel):
    username: str | None = None
    avatar_url: str | None = None


class SearchSetResult(BaseModel):
    """Row of c_search_sets and of the explore listing."""

    id: str
    title: str
    description: str | None = None
    average_rating: float = 0.0
    total_ratings: int = 0
    created_at: str | None = None
    cards_count: int = 0
    creator: SetCreatorRef = Field(default_factory=SetCreatorRef)
    subject: SubjectRef | None = None


class ExploreInitial(BaseModel):
    """Response of c_get_explore_initial."""

    categories: list[Subject] = Field(default_factory=list)
    results: list[SearchSetResult] = Field(default_factory=list)


# ========================================
# People
# ========================================


class SearchUserResult(BaseModel):
    id: str
    username: str
    full_name: str | None = None
    avatar_url: str | None = None
    total_xp: int = 0
    level: int = 0
    followers_count: int = 0
    is_following: bool = False


class UserProfileInfo(BaseModel):
    id: str
    username: str
    full_name: str | None = None
    bio: str | None = None
    avatar_url: str | None = None
    level: int = 0
    total_xp: int = 0
    streak: int = 0
    joined_at: str | None = None
    followers_count: int = 0
    following_count: int = 0
    is_following: bool = False
    is_own_profile: bool = False


class PublicSetSummary(BaseModel):
    id: str
    title: str
    description: str | None = None
    average_rating: float = 0.0
    total_ratings: int = 0
    created_at: str | None = None
    cards_count: int = 0
    subject: SubjectRef | None = None


class UserProfile(BaseModel):
    """Response of c_get_user_profile."""

    profile: UserProfileInfo
    sets: list[PublicSetSummary] = Field(default_factory=list)


class UserConnection(BaseModel):
    """Row of c_get_user_connections."""

    id: str
    username: str
    full_name: str | None = None
    avatar_url: str | None = None
    level: int = 0
    is_following: bool = False


ConnectionType = Literal["followers", "following"]


# ========================================
# Comments
# ========================================


class CommentUser(BaseModel):
    id: str
    username: str
    avatar_url: str | None = None


class CommentReply(BaseModel):
    id: str
    content: str
    created_at: str | None = None
    user: CommentUser


class StudyComment(BaseModel):
    id: str
    content: str
    created_at: str | None = None
    user: CommentUser
    replies: list[CommentReply] = Field(default_factory=list)
    parent_id: str | None = None


CommentTarget = Literal["set", "item"]
