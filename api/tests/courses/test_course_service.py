"""Tests for course creation, owner edits and listings."""

from decimal import Decimal
from types import SimpleNamespace
from uuid import uuid4

import pytest

from skillwise.auth.permissions import UserRole
from skillwise.courses.models import Course, CourseRating, CourseStatus, generate_slug
from skillwise.courses.schemas import (
    CreateCourseRequest,
    LectureInput,
    UpdateCourseRequest,
)
from skillwise.courses.service import (
    CourseNotFoundError,
    CourseService,
    NotCourseOwnerError,
)


GET_COURSE = "SELECT * FROM test_ks.courses WHERE id = ?"
GET_COURSES = "FROM test_ks.courses WHERE id IN ?"
GET_LECTURES = "SELECT * FROM test_ks.course_lectures"
INSERT_COURSE = "INSERT INTO test_ks.courses ("
INSERT_LECTURE = "INSERT INTO test_ks.course_lectures"
DELETE_LECTURES = "DELETE FROM test_ks.course_lectures"
INSERT_BY_STATUS = "INSERT INTO test_ks.courses_by_status"
DELETE_BY_STATUS = "DELETE FROM test_ks.courses_by_status"
BY_STATUS = "FROM test_ks.courses_by_status WHERE status = ? LIMIT ?"
GET_RATING = "FROM test_ks.course_ratings WHERE course_id = ? AND user_id = ?"
RATING_VALUES = "SELECT rating FROM test_ks.course_ratings"
UPSERT_RATING = "INSERT INTO test_ks.course_ratings"
SAVE_STATS = "SET rating_average = ?"
LIST_RATINGS = "FROM test_ks.course_ratings WHERE course_id = ? LIMIT ?"


@pytest.fixture
def service(mock_session) -> CourseService:
    return CourseService(session=mock_session, keyspace="test_ks")


def _lecture_row(index: int, title: str):
    return SimpleNamespace(
        lecture_index=index,
        title=title,
        description=None,
        content_url=None,
        duration_minutes=10,
        has_quiz=True,
    )


def test_generate_slug() -> None:
    assert generate_slug("  Intro à Python: Part 1 ") == "intro-a-python-part-1"


class TestCreateCourse:
    @pytest.mark.asyncio
    async def test_writes_course_lectures_and_listings(self, service, cql) -> None:
        teacher_id = uuid4()
        data = CreateCourseRequest(
            title="Data Science 101",
            tags=[" Python ", "python", "", "Stats"],
            price=Decimal("0"),
            status=CourseStatus.PUBLISHED,
            lectures=[
                LectureInput(title=" Setup "),
                LectureInput(title="Pandas", has_quiz=True),
            ],
        )

        course = await service.create_course(data, teacher_id)

        assert course.lecture_count == 2
        assert [lecture.index for lecture in course.lectures] == [0, 1]
        assert course.lectures[0].title == "Setup"
        assert course.tags == {"python", "stats"}
        assert course.slug == f"data-science-101-{str(course.id)[:8]}"
        assert course.is_free is True

        assert [params[1] for params in cql.executed(INSERT_LECTURE)] == [0, 1]
        saved = cql.executed(INSERT_COURSE)[0]
        assert saved[6] == teacher_id
        assert saved[8] == 2
        assert cql.executed(INSERT_BY_STATUS) == [
            ["published", course.created_at, course.id]
        ]


class TestUpdateCourse:
    @pytest.mark.asyncio
    async def test_unknown_course(self, service, make_user) -> None:
        with pytest.raises(CourseNotFoundError):
            await service.update_course(
                uuid4(), UpdateCourseRequest(title="New"), make_user(UserRole.TEACHER)
            )

    @pytest.mark.asyncio
    async def test_only_owner_edits(self, service, cql, as_row, make_user) -> None:
        course = Course(title="Owned", teacher_id=uuid4())
        cql.respond(GET_COURSE, [as_row(course)])

        with pytest.raises(NotCourseOwnerError):
            await service.update_course(
                course.id,
                UpdateCourseRequest(title="Taken over"),
                make_user(UserRole.TEACHER),
            )
        assert cql.executed(INSERT_COURSE) == []

    @pytest.mark.asyncio
    async def test_admin_may_edit(self, service, cql, as_row, make_user) -> None:
        course = Course(title="Owned", teacher_id=uuid4())
        cql.respond(GET_COURSE, [as_row(course)])

        updated = await service.update_course(
            course.id, UpdateCourseRequest(price=Decimal("9.90")), make_user(UserRole.ADMIN)
        )

        assert updated.price == Decimal("9.90")
        assert updated.updated_at is not None

    @pytest.mark.asyncio
    async def test_replacing_lectures_rewrites_partition(
        self, service, cql, as_row, make_user
    ) -> None:
        teacher = make_user(UserRole.TEACHER)
        course = Course(title="Owned", teacher_id=teacher.id, lecture_count=2)
        cql.respond(GET_COURSE, [as_row(course)])
        cql.respond(GET_LECTURES, [_lecture_row(0, "Old A"), _lecture_row(1, "Old B")])

        updated = await service.update_course(
            course.id,
            UpdateCourseRequest(
                lectures=[LectureInput(title="A"), LectureInput(title="B"), LectureInput(title="C")]
            ),
            teacher,
        )

        assert cql.executed(DELETE_LECTURES) == [[course.id]]
        assert [lecture.title for lecture in updated.lectures] == ["A", "B", "C"]
        assert updated.lecture_count == 3
        assert cql.executed(INSERT_COURSE)[0][8] == 3

    @pytest.mark.asyncio
    async def test_publishing_moves_listing_row(
        self, service, cql, as_row, make_user
    ) -> None:
        teacher = make_user(UserRole.TEACHER)
        course = Course(title="Draft", teacher_id=teacher.id)
        cql.respond(GET_COURSE, [as_row(course)])

        await service.update_course(
            course.id, UpdateCourseRequest(status=CourseStatus.PUBLISHED), teacher
        )

        assert cql.executed(DELETE_BY_STATUS) == [["draft", course.created_at, course.id]]
        assert cql.executed(INSERT_BY_STATUS) == [
            ["published", course.created_at, course.id]
        ]

    @pytest.mark.asyncio
    async def test_same_status_keeps_listing(
        self, service, cql, as_row, make_user
    ) -> None:
        teacher = make_user(UserRole.TEACHER)
        course = Course(title="Draft", teacher_id=teacher.id)
        cql.respond(GET_COURSE, [as_row(course)])

        await service.update_course(
            course.id, UpdateCourseRequest(description="More detail"), teacher
        )

        assert cql.executed(DELETE_BY_STATUS) == []


class TestQueries:
    @pytest.mark.asyncio
    async def test_get_course_with_lectures(self, service, cql, as_row) -> None:
        course = Course(title="Loaded", lecture_count=1)
        cql.respond(GET_COURSE, [as_row(course)])
        cql.respond(GET_LECTURES, [_lecture_row(0, "Only")])

        loaded = await service.get_course(course.id, with_lectures=True)

        assert loaded.title == "Loaded"
        assert [lecture.title for lecture in loaded.lectures] == ["Only"]

    @pytest.mark.asyncio
    async def test_get_courses_without_ids_skips_query(self, service, cql) -> None:
        assert await service.get_courses([]) == {}
        assert cql.calls == []

    @pytest.mark.asyncio
    async def test_listing_keeps_index_order(self, service, cql, as_row) -> None:
        newer = Course(title="Newer", status="published")
        older = Course(title="Older", status="published")
        missing = uuid4()
        cql.respond(
            BY_STATUS,
            [
                SimpleNamespace(course_id=newer.id),
                SimpleNamespace(course_id=missing),
                SimpleNamespace(course_id=older.id),
            ],
        )
        cql.respond(GET_COURSES, [as_row(older), as_row(newer)])

        courses = await service.list_courses(CourseStatus.PUBLISHED, limit=10)

        assert [c.title for c in courses] == ["Newer", "Older"]
        assert cql.executed(BY_STATUS) == [["published", 10]]

    @pytest.mark.asyncio
    async def test_count_courses(self, service, cql) -> None:
        cql.respond("SELECT COUNT(*) FROM test_ks.courses", [SimpleNamespace(count=4)])
        assert await service.count_courses() == 4


class TestRatings:
    @pytest.mark.asyncio
    async def test_first_rating_refreshes_aggregate(self, service, cql, as_row) -> None:
        course = Course(title="Rated", status="published")
        user_id = uuid4()
        cql.respond(GET_COURSE, [as_row(course)])
        cql.respond(
            RATING_VALUES,
            [SimpleNamespace(rating=5), SimpleNamespace(rating=4), SimpleNamespace(rating=4)],
        )

        rating, stats = await service.rate_course(course.id, user_id, 4, "  Clear!  ")

        assert rating.review == "Clear!"
        assert rating.updated_at is None
        (params,) = cql.executed(UPSERT_RATING)
        assert params[:4] == [course.id, user_id, 4, "Clear!"]
        assert stats.average == 4.3
        assert cql.executed(SAVE_STATS) == [
            [4.3, 3, {1: 0, 2: 0, 3: 0, 4: 2, 5: 1}, course.id]
        ]

    @pytest.mark.asyncio
    async def test_rating_again_replaces_previous(self, service, cql, as_row) -> None:
        course = Course(title="Rated", status="published")
        earlier = CourseRating(course_id=course.id, user_id=uuid4(), rating=2)
        cql.respond(GET_COURSE, [as_row(course)])
        cql.respond(GET_RATING, [as_row(earlier)])

        rating, _ = await service.rate_course(course.id, earlier.user_id, 5)

        assert rating.rating == 5
        assert rating.review is None
        assert rating.created_at == earlier.created_at
        assert rating.updated_at is not None

    @pytest.mark.asyncio
    async def test_unknown_course(self, service, cql) -> None:
        with pytest.raises(CourseNotFoundError):
            await service.rate_course(uuid4(), uuid4(), 3)
        assert cql.executed(UPSERT_RATING) == []

    @pytest.mark.asyncio
    async def test_list_returns_stored_aggregate(self, service, cql, as_row) -> None:
        course = Course(title="Rated", status="published")
        row = as_row(course)
        row.rating_average = 4.5
        row.rating_count = 2
        row.rating_distribution = {4: 1, 5: 1}
        older = CourseRating(course_id=course.id, user_id=uuid4(), rating=4)
        newer = CourseRating(course_id=course.id, user_id=uuid4(), rating=5)
        newer.created_at = older.created_at.replace(year=older.created_at.year + 1)
        cql.respond(GET_COURSE, [row])
        cql.respond(LIST_RATINGS, [as_row(older), as_row(newer)])

        ratings, stats = await service.list_ratings(course.id, limit=10)

        assert [r.rating for r in ratings] == [5, 4]
        assert stats.average == 4.5
        assert stats.count == 2
        assert stats.distribution == {1: 0, 2: 0, 3: 0, 4: 1, 5: 1}
