"""Tests for gitlab_client.response."""

import pytest
import requests

from gitlab_client.errors import ErrorResponse, NotFoundError, has_status_code
from gitlab_client.response import Response, check_response, parse_error, parse_link_header

URL = "https://gitlab.example.com/api/v4/projects/group%2Fapp%2Ejs"


def _raw(status, body=b"", headers=None, method="GET", url=URL):
    resp = requests.Response()
    resp.status_code = status
    resp._content = body
    resp.headers.update(headers or {})
    req = requests.Request(method, url).prepare()
    req.url = url
    resp.request = req
    resp.url = url
    return resp


class TestPaginationHeaders:
    def test_offset_headers(self):
        resp = Response(_raw(200, headers={
            "X-Total": "42", "X-Total-Pages": "5", "X-Per-Page": "10",
            "X-Page": "2", "X-Next-Page": "3", "X-Prev-Page": "1",
        }))
        assert resp.total_items == 42
        assert resp.total_pages == 5
        assert resp.items_per_page == 10
        assert resp.current_page == 2
        assert resp.next_page == 3
        assert resp.previous_page == 1

    def test_absent_headers_default_to_zero(self):
        resp = Response(_raw(200))
        assert (resp.total_items, resp.next_page, resp.previous_page) == (0, 0, 0)
        assert resp.next_link == ""
        assert resp.first_link == ""

    def test_malformed_headers_default_to_zero(self):
        resp = Response(_raw(200, headers={"X-Total": "lots", "X-Next-Page": ""}))
        assert resp.total_items == 0
        assert resp.next_page == 0

    def test_link_header(self):
        link = (
            '<https://gitlab.example.com/api/v4/projects?id_after=5&pagination=keyset>; rel="next", '
            '<https://gitlab.example.com/api/v4/projects?pagination=keyset>; rel="first", '
            '<https://gitlab.example.com/api/v4/projects?id_before=1&pagination=keyset>; rel="last"'
        )
        resp = Response(_raw(200, headers={"Link": link}))
        assert resp.next_link == "https://gitlab.example.com/api/v4/projects?id_after=5&pagination=keyset"
        assert resp.first_link == "https://gitlab.example.com/api/v4/projects?pagination=keyset"
        assert resp.last_link.endswith("id_before=1&pagination=keyset")
        assert resp.previous_link == ""

    def test_link_header_with_prev(self):
        link = (
            '<https://gitlab.example.com/api/v4/projects?page=1>; rel="prev", '
            '<https://gitlab.example.com/api/v4/projects?page=3>; rel="next", '
            '<https://gitlab.example.com/api/v4/projects?page=1>; rel="first", '
            '<https://gitlab.example.com/api/v4/projects?page=5>; rel="last"'
        )
        resp = Response(_raw(200, headers={"Link": link}))
        assert resp.previous_link == "https://gitlab.example.com/api/v4/projects?page=1"
        assert resp.next_link == "https://gitlab.example.com/api/v4/projects?page=3"
        assert resp.first_link == "https://gitlab.example.com/api/v4/projects?page=1"
        assert resp.last_link == "https://gitlab.example.com/api/v4/projects?page=5"

    def test_link_header_ignores_garbage(self):
        assert parse_link_header("garbage, <https://x/>; rel=\"prev\"") == {"prev": "https://x/"}

    def test_delegates_to_wrapped_response(self):
        resp = Response(_raw(201, headers={"X-Request-Id": "abc"}))
        assert resp.status_code == 201
        assert resp.headers["X-Request-Id"] == "abc"


class TestParseError:
    def test_string(self):
        assert parse_error("boom") == "boom"

    def test_list(self):
        assert parse_error(["a", "b"]) == "[a, b]"

    def test_nested_object_is_sorted(self):
        raw = {"message": {"name": ["can't be blank"], "base": ["invalid"]}}
        assert parse_error(raw) == "{message: {base: [invalid]}, {name: [can't be blank]}}"

    def test_message_and_error_fields(self):
        raw = {"message": {"prop1": ["a", "b"], "prop2": ["c"]}, "error": "a"}
        assert parse_error(raw) == "{error: a}, {message: {prop1: [a, b]}, {prop2: [c]}}"

    def test_deterministic_across_key_order(self):
        a = {"error": "x", "message": {"z": ["1"], "a": ["2"]}}
        b = {"message": {"a": ["2"], "z": ["1"]}, "error": "x"}
        assert parse_error(a) == parse_error(b)

    def test_unexpected_type(self):
        assert parse_error(12) == "failed to parse unexpected error type: int"


class TestCheckResponse:
    @pytest.mark.parametrize("status", [200, 201, 202, 204, 304])
    def test_success_statuses(self, status):
        check_response(_raw(status))

    def test_not_found_ignores_body(self):
        with pytest.raises(NotFoundError) as exc_info:
            check_response(_raw(404, b'{"message": "404 Project Not Found"}'))
        assert str(exc_info.value) == "404 Not Found"
        assert exc_info.value.response.status_code == 404

    def test_error_message(self):
        with pytest.raises(ErrorResponse) as exc_info:
            check_response(_raw(400, b'{"message": {"name": ["has already been taken"]}}', method="POST"))
        err = exc_info.value
        assert err.message == "{message: {name: [has already been taken]}}"
        assert err.body == b'{"message": {"name": ["has already been taken"]}}'
        assert str(err) == (
            "POST https://gitlab.example.com/api/v4/projects/group%2Fapp%2Ejs: "
            "400 {message: {name: [has already been taken]}}"
        )
        assert err.has_status_code(400)
        assert has_status_code(err, 400)
        assert not has_status_code(err, 500)

    def test_unparsable_body(self):
        with pytest.raises(ErrorResponse) as exc_info:
            check_response(_raw(502, b"<html>Bad Gateway</html>"))
        assert exc_info.value.message == "failed to parse unknown error format: <html>Bad Gateway</html>"

    def test_empty_body(self):
        with pytest.raises(ErrorResponse) as exc_info:
            check_response(_raw(500, b"   "))
        assert exc_info.value.message == ""
        assert str(exc_info.value) == f"GET {URL}: 500"

    def test_has_status_code_rejects_other_errors(self):
        assert not has_status_code(ValueError("x"), 400)
        assert not has_status_code(NotFoundError(), 404)
