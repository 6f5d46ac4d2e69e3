"""
Course and coursework fetcher tests
"""
import pytest

from classroom_hub.core.errors import CourseNotFound, InvalidToken, UpstreamUnavailable
from classroom_hub.plugins.classroom.fetchers import CourseFetcher, CourseworkFetcher

from conftest import FakeBackend, course, coursework


def test_only_active_courses_in_upstream_order():
    backend = FakeBackend(courses=[
        course("c3", "Physics"),
        course("c1", "Algebra"),
        course("c2", "Old Chemistry", state="ARCHIVED"),
        course("c4", "Biology"),
    ])
    courses = CourseFetcher(backend).list_active_courses("tok")
    assert [c.id for c in courses] == ["c3", "c1", "c4"]
    assert courses[0].name == "Physics"


def test_courses_without_id_are_dropped():
    backend = FakeBackend(courses=[{"name": "Ghost"}, course("c1")])
    assert [c.id for c in CourseFetcher(backend).list_active_courses("tok")] == ["c1"]


@pytest.mark.parametrize("error", [InvalidToken("401"), UpstreamUnavailable("500")])
def test_course_listing_errors_propagate(error):
    backend = FakeBackend(courses=error)
    with pytest.raises(type(error)):
        CourseFetcher(backend).list_active_courses("tok")


def test_coursework_fields_and_defaults():
    backend = FakeBackend(coursework={"c1": [
        coursework(
            "w1", "c1", "Essay",
            description="Write 500 words",
            dueDate={"year": 2024, "month": 3, "day": 5},
            dueTime={"hours": 9, "minutes": 30},
            maxPoints=100,
            workType="SHORT_ANSWER_QUESTION",
            state="DRAFT",
            alternateLink="https://classroom.example.com/w1",
            materials=[{"link": {"url": "https://example.com"}}],
            creationTime="2024-02-01T00:00:00Z",
            updateTime="2024-02-02T00:00:00Z",
        ),
        {"id": "w2"},
    ]})
    items = CourseworkFetcher(backend).list_coursework("tok", "c1")

    essay, bare = items
    assert essay.title == "Essay"
    assert essay.due_date == "2024-03-05T09:30:00"
    assert essay.max_points == 100
    assert essay.work_type == "SHORT_ANSWER_QUESTION"
    assert essay.state == "DRAFT"
    assert essay.materials == [{"link": {"url": "https://example.com"}}]

    assert bare.course_id == "c1"
    assert bare.description == ""
    assert bare.due_date is None
    assert bare.max_points is None
    assert bare.work_type == "ASSIGNMENT"
    assert bare.state == "PUBLISHED"
    assert bare.materials == []


def test_coursework_order_is_preserved():
    backend = FakeBackend(coursework={"c1": [coursework(w, "c1") for w in ["w9", "w2", "w5"]]})
    assert [i.id for i in CourseworkFetcher(backend).list_coursework("tok", "c1")] == ["w9", "w2", "w5"]


def test_coursework_errors_propagate():
    backend = FakeBackend(coursework={"c1": CourseNotFound("404")})
    with pytest.raises(CourseNotFound):
        CourseworkFetcher(backend).list_coursework("tok", "c1")


def test_null_and_mistyped_fields_fall_back_to_defaults():
    backend = FakeBackend(
        courses=[{"id": "c1", "name": None, "courseState": None}],
        coursework={"c1": [{
            "id": 42,
            "title": None,
            "description": None,
            "workType": None,
            "state": None,
            "maxPoints": "lots",
            "materials": {"not": "a list"},
            "creationTime": None,
        }]},
    )
    (c,) = CourseFetcher(backend).list_active_courses("tok")
    assert c.name == "Unknown"
    assert c.state == "ACTIVE"

    (item,) = CourseworkFetcher(backend).list_coursework("tok", "c1")
    assert item.id == "42"
    assert item.title == "Assignment"
    assert item.description == ""
    assert item.work_type == "ASSIGNMENT"
    assert item.state == "PUBLISHED"
    assert item.max_points is None
    assert item.materials == []
    assert item.creation_time is None


def test_numeric_points_are_floats():
    backend = FakeBackend(coursework={"c1": [coursework("w1", "c1", maxPoints="25")]})
    (item,) = CourseworkFetcher(backend).list_coursework("tok", "c1")
    assert item.max_points == 25.0
