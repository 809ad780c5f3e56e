from __future__ import annotations

import asyncio
import json
import logging

import httpx
import pytest

from classroom_quiz.quiz import catalog as catalog_mod
from classroom_quiz.quiz.catalog import (
    CatalogContext,
    DataUnavailable,
    FileQuizCatalog,
    HttpQuizCatalog,
    filter_quizzes,
    find_quiz,
)
from fixtures import make_quiz, make_record

CONTEXT = CatalogContext(class_id="class-1", taker_id="student-7")


def _http_catalog(handler, **kwargs) -> HttpQuizCatalog:
    return HttpQuizCatalog(
        "http://quiz.test/", transport=httpx.MockTransport(handler), **kwargs
    )


def test_http_catalog_reads_class_details():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["url"] = str(request.url)
        seen["auth"] = request.headers.get("Authorization")
        return httpx.Response(200, json={"quizzes": [make_record()]})

    quizzes = asyncio.run(
        _http_catalog(handler, token="secret").list_quizzes(CONTEXT)
    )

    assert seen["url"] == (
        "http://quiz.test/api/student-classes/class-details/class-1"
    )
    assert seen["auth"] == "Bearer secret"
    assert [quiz.id for quiz in quizzes] == ["q1"]
    assert quizzes[0].time_limit_seconds == 120


def test_http_catalog_omits_auth_without_token():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["auth"] = request.headers.get("Authorization")
        return httpx.Response(200, json={"quizzes": []})

    quizzes = asyncio.run(_http_catalog(handler).list_quizzes(CONTEXT))

    assert quizzes == []
    assert seen["auth"] is None


def test_http_catalog_skips_invalid_records(caplog):
    records = [
        make_record(),
        make_record(_id="no-time", timeMinutes=None),
        "not-an-object",
    ]

    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"quizzes": records})

    with caplog.at_level(logging.WARNING, logger=catalog_mod.__name__):
        quizzes = asyncio.run(_http_catalog(handler).list_quizzes(CONTEXT))

    assert [quiz.id for quiz in quizzes] == ["q1"]
    assert len(caplog.records) == 2


def test_http_catalog_missing_quizzes_key_is_empty():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"className": "Maths"})

    assert asyncio.run(_http_catalog(handler).list_quizzes(CONTEXT)) == []


@pytest.mark.parametrize(
    "response",
    [
        httpx.Response(500, json={"error": "boom"}),
        httpx.Response(404),
        httpx.Response(200, content=b"<html>"),
        httpx.Response(200, json=["quizzes"]),
        httpx.Response(200, json={"quizzes": {"bad": "shape"}}),
    ],
)
def test_http_catalog_failures_raise_data_unavailable(response):
    def handler(request: httpx.Request) -> httpx.Response:
        return response

    with pytest.raises(DataUnavailable):
        asyncio.run(_http_catalog(handler).list_quizzes(CONTEXT))


def test_http_catalog_connection_error_raises_data_unavailable():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("refused", request=request)

    with pytest.raises(DataUnavailable, match="Could not reach"):
        asyncio.run(_http_catalog(handler).list_quizzes(CONTEXT))


def test_file_catalog_filters_by_class(workspace):
    lines = [
        json.dumps(make_record(_id="mine")),
        "",
        json.dumps(make_record(_id="other", teacherClassId="class-2")),
        json.dumps(make_record(_id="shared", teacherClassId=None)),
    ]
    path = workspace.write("catalog/quizzes.jsonl", "\n".join(lines) + "\n")

    quizzes = asyncio.run(FileQuizCatalog(path).list_quizzes(CONTEXT))

    assert [quiz.id for quiz in quizzes] == ["mine", "shared"]


def test_file_catalog_missing_file(tmp_path):
    catalog = FileQuizCatalog(tmp_path / "absent.jsonl")

    with pytest.raises(DataUnavailable, match="not found"):
        asyncio.run(catalog.list_quizzes(CONTEXT))


def test_file_catalog_invalid_json_reports_line(workspace):
    path = workspace.write(
        "quizzes.jsonl", json.dumps(make_record()) + "\n{broken\n"
    )

    with pytest.raises(DataUnavailable, match=":2:"):
        asyncio.run(FileQuizCatalog(path).list_quizzes(CONTEXT))


def test_filter_quizzes_matches_title_and_description():
    quizzes = [
        make_quiz(quiz_id="a", title="Fractions", description="halves"),
        make_quiz(quiz_id="b", title="Geometry", description="Angles and FRACTIONS"),
        make_quiz(quiz_id="c", title="Spelling", description=""),
    ]

    assert [q.id for q in filter_quizzes(quizzes, "fractions")] == ["a", "b"]
    assert [q.id for q in filter_quizzes(quizzes, "  ")] == ["a", "b", "c"]
    assert filter_quizzes(quizzes, None) == quizzes
    assert filter_quizzes(quizzes, "history") == []


def test_find_quiz():
    quizzes = [make_quiz(quiz_id="a"), make_quiz(quiz_id="b")]

    assert find_quiz(quizzes, "b").id == "b"
    with pytest.raises(KeyError):
        find_quiz(quizzes, "zzz")
