"""
Study service: typed wrappers around the study RPCs.

Each method maps to one named procedure on the backend, shapes the
parameters and parses the JSON result into the models in ``schemas``.
Errors propagate as ``RpcError`` after being logged, so callers decide
whether to surface them.
"""

from __future__ import annotations

from typing import Any

from loguru import logger
from pydantic import ValidationError

from studyloop.items import get_handler
from studyloop.items.content import StudyItemPlay
from .rpc_client import RpcClient, RpcError
from .schemas import (
    CommentTarget,
    ConnectionType,
    ContinueStudyingSet,
    CreateFullSetParams,
    ExploreInitial,
    ExploreSort,
    FinishStudySessionParams,
    FinishStudySessionResponse,
    HomeDashboard,
    LibraryContentItem,
    LibraryTab,
    RateSetParams,
    RateSetResponse,
    SearchSetResult,
    SearchUserResult,
    SetForPlay,
    StudyComment,
    StudySet,
    StudySetPlay,
    Subject,
    UpdateFullSetParams,
    UserConnection,
    UserProfile,
)


# Search queries shorter than this return no rows
MIN_SEARCH_LENGTH = 2


class MalformedSetError(ValueError):
    """The set payload cannot be read at all."""


def parse_set_for_play(data: dict[str, Any]) -> SetForPlay:
    """
    Build a playable set from raw JSON.

    Items that fail to parse or whose content is not playable are dropped
    with a warning; the rest are ordered by position. A payload that is not
    an object, or whose set header is invalid, raises ``MalformedSetError``.
    """
    if not isinstance(data, dict):
        raise MalformedSetError(f"expected a JSON object, got {type(data).__name__}")
    try:
        study_set = StudySetPlay.model_validate(data.get("set") or {})
    except ValidationError as e:
        fields = ", ".join(".".join(str(p) for p in err["loc"]) or "set" for err in e.errors())
        raise MalformedSetError(f"invalid set header ({fields})") from e
    items: list[StudyItemPlay] = []

    for raw in data.get("items") or []:
        try:
            item = StudyItemPlay.model_validate(raw)
        except ValidationError as e:
            logger.warning(f"Skipping malformed item {raw.get('id') if isinstance(raw, dict) else raw!r}: {e.error_count()} error(s)")
            continue

        handler = get_handler(item.type)
        if handler is None or not handler.validate(item):
            logger.warning(f"Skipping unplayable {item.type.value} item {item.id}")
            continue
        items.append(item)

    items.sort(key=lambda i: i.position)
    return SetForPlay(set=study_set, items=items)


class StudyService:
    """Study-domain operations backed by named remote procedures."""

    def __init__(self, rpc: RpcClient):
        self.rpc = rpc

    # =========================================================================
    # Play
    # =========================================================================

    async def get_set_for_play(self, set_id: str) -> SetForPlay:
        """Fetch a set with its items and the learner's progress on each."""
        data = await self.rpc.call("c_get_set_for_play", {"p_set_id": set_id}, idempotent=True)
        if not data:
            raise RpcError("Study set not found", procedure="c_get_set_for_play")
        try:
            study_set = parse_set_for_play(data)
        except MalformedSetError as e:
            raise RpcError(str(e), procedure="c_get_set_for_play") from e
        logger.debug(f"Loaded set {set_id} with {len(study_set.items)} playable items")
        return study_set

    async def finish_study_session(
        self, params: FinishStudySessionParams
    ) -> FinishStudySessionResponse:
        """
        Report a finished session.

        The server applies XP, streak and box-level updates, so this call is
        never retried.
        """
        data = await self.rpc.call("c_finish_study_session", params.model_dump(mode="json"))
        logger.info(
            f"Session reported for set {params.set_id}: "
            f"{len(params.results)} results in {params.duration_seconds}s"
        )
        return FinishStudySessionResponse.model_validate(data or {})

    # =========================================================================
    # Sets
    # =========================================================================

    async def clone_set(self, set_id: str) -> str | None:
        """Copy a set into the learner's library. Returns the new set id."""
        data = await self.rpc.call("c_clone_set", {"p_set_id": set_id})
        return str(data) if data else None

    async def delete_set(self, set_id: str) -> None:
        await self.rpc.call("c_delete_set", {"p_set_id": set_id})

    async def create_full_set(self, params: CreateFullSetParams) -> str:
        """Create a set (optionally with items). Returns the new set id."""
        payload = params.model_dump(mode="json", exclude={"items"})
        # The procedure defaults items to an empty list when omitted
        if params.items:
            payload["items"] = [i.model_dump(mode="json") for i in params.items]
        data = await self.rpc.call("c_create_full_set", payload)
        return str(data)

    async def update_full_set(self, params: UpdateFullSetParams) -> None:
        """
        Replace a set's header and items.

        Items sent with an id are updated, items without one are created and
        stored items missing from the list are removed.
        """
        await self.rpc.call("c_update_full_set", params.model_dump(mode="json"))
        logger.info(f"Updated set {params.set_id} with {len(params.items)} items")

    async def rate_set(self, params: RateSetParams) -> RateSetResponse:
        payload = params.model_dump(mode="json", exclude_none=True)
        data = await self.rpc.call("c_rate_set", payload)
        return RateSetResponse.model_validate(data)

    async def search_study_sets(self, search_term: str) -> list[StudySet]:
        data = await self.rpc.call(
            "c_search_sets_fuzzy", {"search_term": search_term}, idempotent=True
        )
        return [StudySet.model_validate(row) for row in data or []]

    async def get_subjects(self) -> list[Subject]:
        """Subjects come straight from the table; there is no procedure for them."""
        rows = await self.rpc.select("c_subjects", columns="id,name,slug,emoji", order="name")
        return [Subject.model_validate(row) for row in rows]

    async def get_library_content(
        self,
        tab_type: LibraryTab = "created",
        limit_count: int = 20,
        offset_count: int = 0,
    ) -> list[LibraryContentItem]:
        data = await self.rpc.call(
            "c_get_library_content",
            {"tab_type": tab_type, "limit_count": limit_count, "offset_count": offset_count},
            idempotent=True,
        )
        return [LibraryContentItem.model_validate(row) for row in data or []]

    # =========================================================================
    # Dashboard
    # =========================================================================

    async def get_home_dashboard(self) -> HomeDashboard:
        data = await self.rpc.call("c_get_home_dashboard", idempotent=True)
        return HomeDashboard.model_validate(data or {})

    async def get_continue_studying(
        self, limit_count: int = 10, offset_count: int = 0
    ) -> list[ContinueStudyingSet]:
        data = await self.rpc.call(
            "c_get_continue_studying",
            {"limit_count": limit_count, "offset_count": offset_count},
            idempotent=True,
        )
        return [ContinueStudyingSet.model_validate(row) for row in data or []]

    # =========================================================================
    # Comments
    # =========================================================================

    async def get_comments(
        self, target_id: str, target_type: CommentTarget = "set"
    ) -> list[StudyComment]:
        data = await self.rpc.call(
            "c_get_comments",
            {"p_target_id": target_id, "p_target_type": target_type},
            idempotent=True,
        )
        return [StudyComment.model_validate(row) for row in data or []]

    async def post_comment(
        self,
        target_id: str,
        target_type: CommentTarget,
        content: str,
        parent_id: str | None = None,
    ) -> StudyComment:
        content = content.strip()
        if not content:
            raise ValueError("comment must not be blank")
        params = {
            "p_target_id": target_id,
            "p_target_type": target_type,
            "p_content": content,
        }
        if parent_id:
            params["p_parent_id"] = parent_id
        data = await self.rpc.call("c_post_comment", params)
        return StudyComment.model_validate(data)

    # =========================================================================
    # Explore
    # =========================================================================

    async def get_explore_initial(
        self, subject_ids: list[int] | None = None, sort_by: ExploreSort = "trending"
    ) -> ExploreInitial:
        """Subject categories plus public sets, optionally narrowed to subjects."""
        data = await self.rpc.call(
            "c_get_explore_initial",
            {"p_subject_ids": subject_ids or None, "p_sort_by": sort_by},
            idempotent=True,
        )
        return ExploreInitial.model_validate(data or {})

    async def search_sets(
        self, query: str, subject_id: int | None = None, limit_count: int = 20
    ) -> list[SearchSetResult]:
        query = query.strip()
        if len(query) < MIN_SEARCH_LENGTH:
            return []
        data = await self.rpc.call(
            "c_search_sets",
            {"p_query": query, "p_subject_id": subject_id, "p_limit": limit_count},
            idempotent=True,
        )
        return [SearchSetResult.model_validate(row) for row in data or []]

    async def search_users(self, query: str, limit_count: int = 20) -> list[SearchUserResult]:
        query = query.strip()
        if len(query) < MIN_SEARCH_LENGTH:
            return []
        data = await self.rpc.call(
            "c_search_users", {"p_query": query, "p_limit": limit_count}, idempotent=True
        )
        return [SearchUserResult.model_validate(row) for row in data or []]

    # =========================================================================
    # People
    # =========================================================================

    async def get_user_profile(self, user_id: str) -> UserProfile:
        data = await self.rpc.call("c_get_user_profile", {"p_user_id": user_id}, idempotent=True)
        if not data:
            raise RpcError("User not found", procedure="c_get_user_profile")
        return UserProfile.model_validate(data)

    async def get_user_connections(
        self, user_id: str, connection_type: ConnectionType = "followers", query: str = ""
    ) -> list[UserConnection]:
        data = await self.rpc.call(
            "c_get_user_connections",
            {"p_user_id": user_id, "p_type": connection_type, "p_query": query.strip() or None},
            idempotent=True,
        )
        return [UserConnection.model_validate(row) for row in data or []]

    async def follow_user(self, user_id: str) -> None:
        await self.rpc.call("c_follow_user", {"p_target_id": user_id})

    async def unfollow_user(self, user_id: str) -> None:
        await self.rpc.call("c_unfollow_user", {"p_target_id": user_id})
