"""
Unit tests for the study service procedures.
"""

import pytest
from pydantic import ValidationError

from studyloop.api.rpc_client import RpcError
from studyloop.api.schemas import (
    CreateFullSetParams,
    FinishStudySessionParams,
    RateSetParams,
    StudySessionResult,
    UpdateFullSetParams,
)
from studyloop.api.study_service import MalformedSetError, StudyService, parse_set_for_play
from studyloop.items import ItemType


class FakeRpc:
    """Records procedure calls and answers from a canned table."""

    def __init__(self, replies=None):
        self.replies = replies or {}
        self.calls = []

    async def call(self, procedure, params=None, *, idempotent=False):
        self.calls.append((procedure, params, idempotent))
        reply = self.replies.get(procedure)
        if isinstance(reply, Exception):
            raise reply
        return reply

    async def select(self, table, columns="*", order=None):
        self.calls.append((table, {"select": columns, "order": order}, True))
        return self.replies.get(table, [])


class TestParseSetForPlay:

    def test_items_ordered_and_typed(self, study_set):
        assert study_set.set.title == "Science Basics"
        assert [i.type for i in study_set.items][:2] == [ItemType.FLASHCARD, ItemType.QUIZ_QUESTION]

    def test_unplayable_items_dropped(self, set_payload, quiz_data):
        bad_quiz = {**quiz_data, "id": "bad", "content": {**quiz_data["content"], "correct_option_id": 42}}
        unknown = {"id": "mystery", "type": "essay", "content": {}}
        payload = {**set_payload, "items": set_payload["items"] + [bad_quiz, unknown]}

        ids = [i.id for i in parse_set_for_play(payload).items]

        assert "bad" not in ids
        assert "mystery" not in ids
        assert len(ids) == 7

    def test_header_without_title_rejected(self, flashcard_data):
        with pytest.raises(MalformedSetError, match="title"):
            parse_set_for_play({"set": {"id": "s1"}, "items": [flashcard_data]})

    def test_non_object_payload_rejected(self):
        with pytest.raises(MalformedSetError, match="list"):
            parse_set_for_play([1, 2, 3])


class TestPlayProcedures:

    @pytest.mark.asyncio
    async def test_get_set_for_play(self, set_payload):
        rpc = FakeRpc({"c_get_set_for_play": set_payload})
        study_set = await StudyService(rpc).get_set_for_play("set-001")

        assert len(study_set.items) == 7
        assert rpc.calls == [("c_get_set_for_play", {"p_set_id": "set-001"}, True)]

    @pytest.mark.asyncio
    async def test_missing_set(self):
        rpc = FakeRpc({"c_get_set_for_play": None})
        with pytest.raises(RpcError, match="not found"):
            await StudyService(rpc).get_set_for_play("gone")

    @pytest.mark.asyncio
    async def test_malformed_set_surfaces_as_rpc_error(self):
        rpc = FakeRpc({"c_get_set_for_play": {"set": {"id": "s1"}}})
        with pytest.raises(RpcError, match="invalid set header") as exc_info:
            await StudyService(rpc).get_set_for_play("s1")
        assert exc_info.value.procedure == "c_get_set_for_play"

    @pytest.mark.asyncio
    async def test_finish_study_session_is_not_idempotent(self):
        rpc = FakeRpc({"c_finish_study_session": {"xp_earned": 12, "new_streak": 4, "accuracy": 50}})
        params = FinishStudySessionParams(
            set_id="set-001",
            duration_seconds=30,
            results=[
                StudySessionResult(item_id="a", is_correct=True),
                StudySessionResult(item_id="b", is_correct=False),
            ],
        )

        response = await StudyService(rpc).finish_study_session(params)

        procedure, sent, idempotent = rpc.calls[0]
        assert procedure == "c_finish_study_session"
        assert idempotent is False
        assert sent == {
            "set_id": "set-001",
            "duration_seconds": 30,
            "results": [
                {"item_id": "a", "is_correct": True},
                {"item_id": "b", "is_correct": False},
            ],
        }
        assert response.xp_earned == 12
        assert response.new_streak == 4

    def test_duration_must_be_positive(self):
        with pytest.raises(ValidationError):
            FinishStudySessionParams(set_id="s", duration_seconds=0, results=[])


class TestSetProcedures:

    @pytest.mark.asyncio
    async def test_create_full_set_omits_empty_items(self):
        rpc = FakeRpc({"c_create_full_set": "new-set"})
        params = CreateFullSetParams(title="  Biology ", subject_id=3, tags=["cells", " ", "dna "])

        assert await StudyService(rpc).create_full_set(params) == "new-set"

        _, sent, _ = rpc.calls[0]
        assert sent["title"] == "Biology"
        assert sent["tags"] == ["cells", "dna"]
        assert "items" not in sent

    @pytest.mark.asyncio
    async def test_create_full_set_with_items(self, flashcard_data):
        rpc = FakeRpc({"c_create_full_set": "new-set"})
        params = CreateFullSetParams.model_validate({
            "title": "Cells",
            "subject_id": 1,
            "items": [{"type": "flashcard", "content": flashcard_data["content"]}],
        })

        await StudyService(rpc).create_full_set(params)

        _, sent, _ = rpc.calls[0]
        assert sent["items"][0]["type"] == "flashcard"
        assert sent["items"][0]["content"]["front"].startswith("What is")

    def test_blank_title_rejected(self):
        with pytest.raises(ValidationError):
            CreateFullSetParams(title="   ", subject_id=1)

    @pytest.mark.asyncio
    async def test_rate_set(self):
        rpc = FakeRpc({"c_rate_set": {"new_average": 4.2, "new_total": 9}})
        result = await StudyService(rpc).rate_set(RateSetParams(p_set_id="s1", p_rating=4))

        assert result.new_total == 9
        assert rpc.calls[0][1] == {"p_set_id": "s1", "p_rating": 4}

    def test_rating_out_of_range(self):
        with pytest.raises(ValidationError):
            RateSetParams(p_set_id="s1", p_rating=6)

    @pytest.mark.asyncio
    async def test_clone_and_delete(self):
        rpc = FakeRpc({"c_clone_set": "copy-id"})
        service = StudyService(rpc)

        assert await service.clone_set("s1") == "copy-id"
        await service.delete_set("s1")

        assert [c[0] for c in rpc.calls] == ["c_clone_set", "c_delete_set"]

    @pytest.mark.asyncio
    async def test_search(self):
        rpc = FakeRpc({"c_search_sets_fuzzy": [{"id": "s1", "title": "Cell Biology", "average_rating": 4.0}]})
        rows = await StudyService(rpc).search_study_sets("cell")

        assert rows[0].title == "Cell Biology"
        assert rpc.calls[0] == ("c_search_sets_fuzzy", {"search_term": "cell"}, True)

    @pytest.mark.asyncio
    async def test_subjects_read_from_table(self):
        rpc = FakeRpc({"c_subjects": [{"id": 1, "name": "Art", "slug": "art", "emoji": "🎨"}]})
        subjects = await StudyService(rpc).get_subjects()

        assert subjects[0].name == "Art"
        assert rpc.calls[0][0] == "c_subjects"
        assert rpc.calls[0][1]["order"] == "name"

    @pytest.mark.asyncio
    async def test_library(self):
        rpc = FakeRpc({"c_get_library_content": [{"id": "s1", "title": "Mine", "cards_count": 4}]})
        rows = await StudyService(rpc).get_library_content("saved", limit_count=5)

        assert rows[0].cards_count == 4
        assert rpc.calls[0][1] == {"tab_type": "saved", "limit_count": 5, "offset_count": 0}

    @pytest.mark.asyncio
    async def test_update_full_set(self, flashcard_data):
        rpc = FakeRpc()
        params = UpdateFullSetParams.model_validate({
            "set_id": "s1",
            "title": "Cells v2",
            "subject_id": 2,
            "items": [
                {"id": "item-flash", "type": "flashcard", "content": flashcard_data["content"]},
                {"type": "flashcard", "content": {"front": "New?", "back": "Yes"}},
            ],
        })

        await StudyService(rpc).update_full_set(params)

        procedure, sent, idempotent = rpc.calls[0]
        assert procedure == "c_update_full_set"
        assert idempotent is False
        assert sent["set_id"] == "s1"
        assert [i["id"] for i in sent["items"]] == ["item-flash", None]

    def test_update_requires_set_id(self):
        with pytest.raises(ValidationError):
            UpdateFullSetParams(title="Cells", subject_id=1)


class TestDashboardProcedures:

    @pytest.mark.asyncio
    async def test_home_dashboard_feed_union(self):
        rpc = FakeRpc({"c_get_home_dashboard": {
            "user_stats": {"streak": 5, "total_xp": 300},
            "daily_pick": {"message": "Try this", "set": {"id": "s9", "title": "Pick"}},
            "feed_type": "recommendations",
            "feed_content": [
                {"type": "feed", "set_id": "s1", "title": "Algebra"},
                {"type": "rec_user", "user_id": "u1", "username": "ada", "xp": 900},
            ],
        }})

        home = await StudyService(rpc).get_home_dashboard()

        assert home.user_stats.streak == 5
        assert home.daily_pick.set.id == "s9"
        assert home.feed_content[0].type == "feed"
        assert home.feed_content[1].username == "ada"

    @pytest.mark.asyncio
    async def test_continue_studying(self):
        rpc = FakeRpc({"c_get_continue_studying": [{"id": "s1", "title": "Algebra", "cards_due": 3}]})
        rows = await StudyService(rpc).get_continue_studying()

        assert rows[0].cards_due == 3


class TestCommentProcedures:

    @pytest.mark.asyncio
    async def test_get_comments(self):
        rpc = FakeRpc({"c_get_comments": [{
            "id": "c1",
            "content": "Great set",
            "user": {"id": "u1", "username": "ada"},
            "replies": [{"id": "c2", "content": "Agreed", "user": {"id": "u2", "username": "bob"}}],
        }]})

        thread = await StudyService(rpc).get_comments("s1")

        assert thread[0].replies[0].user.username == "bob"
        assert rpc.calls[0][1] == {"p_target_id": "s1", "p_target_type": "set"}

    @pytest.mark.asyncio
    async def test_post_reply(self):
        rpc = FakeRpc({"c_post_comment": {
            "id": "c3", "content": "Thanks", "user": {"id": "u1", "username": "ada"}, "parent_id": "c1",
        }})

        comment = await StudyService(rpc).post_comment("s1", "set", "  Thanks ", parent_id="c1")

        assert comment.parent_id == "c1"
        assert rpc.calls[0][1] == {
            "p_target_id": "s1",
            "p_target_type": "set",
            "p_content": "Thanks",
            "p_parent_id": "c1",
        }

    @pytest.mark.asyncio
    async def test_blank_comment_rejected(self):
        rpc = FakeRpc()
        with pytest.raises(ValueError):
            await StudyService(rpc).post_comment("s1", "set", "   ")
        assert rpc.calls == []


class TestExploreProcedures:

    @pytest.mark.asyncio
    async def test_explore_initial(self):
        rpc = FakeRpc({"c_get_explore_initial": {
            "categories": [{"id": 1, "name": "Art", "slug": "art"}],
            "results": [{
                "id": "s1",
                "title": "Colour Theory",
                "cards_count": 12,
                "creator": {"username": "ada"},
                "subject": {"name": "Art", "emoji": "🎨"},
            }],
        }})

        result = await StudyService(rpc).get_explore_initial([1], "top_rated")

        assert result.categories[0].name == "Art"
        assert result.results[0].creator.username == "ada"
        assert rpc.calls[0] == (
            "c_get_explore_initial", {"p_subject_ids": [1], "p_sort_by": "top_rated"}, True,
        )

    @pytest.mark.asyncio
    async def test_explore_all_subjects(self):
        rpc = FakeRpc({"c_get_explore_initial": None})
        result = await StudyService(rpc).get_explore_initial([])

        assert result.results == []
        assert rpc.calls[0][1] == {"p_subject_ids": None, "p_sort_by": "trending"}

    @pytest.mark.asyncio
    async def test_search_sets(self):
        rpc = FakeRpc({"c_search_sets": [{"id": "s1", "title": "Cells", "total_ratings": 3}]})
        rows = await StudyService(rpc).search_sets(" cells ", subject_id=4, limit_count=5)

        assert rows[0].total_ratings == 3
        assert rpc.calls[0][1] == {"p_query": "cells", "p_subject_id": 4, "p_limit": 5}

    @pytest.mark.asyncio
    async def test_search_users(self):
        rpc = FakeRpc({"c_search_users": [{"id": "u1", "username": "ada", "level": 7, "is_following": True}]})
        rows = await StudyService(rpc).search_users("ad", 5)

        assert rows[0].is_following is True
        assert rpc.calls[0] == ("c_search_users", {"p_query": "ad", "p_limit": 5}, True)

    @pytest.mark.asyncio
    async def test_short_queries_skip_the_backend(self):
        rpc = FakeRpc()
        service = StudyService(rpc)

        assert await service.search_users(" a ") == []
        assert await service.search_sets("x") == []
        assert rpc.calls == []


class TestPeopleProcedures:

    @pytest.mark.asyncio
    async def test_user_profile(self):
        rpc = FakeRpc({"c_get_user_profile": {
            "profile": {"id": "u1", "username": "ada", "followers_count": 10, "is_following": True},
            "sets": [{"id": "s1", "title": "Algebra", "cards_count": 8}],
        }})

        result = await StudyService(rpc).get_user_profile("u1")

        assert result.profile.followers_count == 10
        assert result.sets[0].cards_count == 8
        assert rpc.calls[0][1] == {"p_user_id": "u1"}

    @pytest.mark.asyncio
    async def test_missing_profile(self):
        rpc = FakeRpc({"c_get_user_profile": None})
        with pytest.raises(RpcError, match="User not found"):
            await StudyService(rpc).get_user_profile("ghost")

    @pytest.mark.asyncio
    async def test_connections(self):
        rpc = FakeRpc({"c_get_user_connections": [{"id": "u2", "username": "bob"}]})
        rows = await StudyService(rpc).get_user_connections("u1", "following", "  bo ")

        assert rows[0].username == "bob"
        assert rpc.calls[0][1] == {"p_user_id": "u1", "p_type": "following", "p_query": "bo"}

    @pytest.mark.asyncio
    async def test_follow_and_unfollow_are_writes(self):
        rpc = FakeRpc()
        service = StudyService(rpc)

        await service.follow_user("u2")
        await service.unfollow_user("u2")

        assert rpc.calls == [
            ("c_follow_user", {"p_target_id": "u2"}, False),
            ("c_unfollow_user", {"p_target_id": "u2"}, False),
        ]
