"""Tests for the case-insensitive, multi-valued HeaderMap."""

from strata.http.headers import HeaderMap


class TestLookup:
    def test_case_insensitive_get(self) -> None:
        headers = HeaderMap({"Content-Type": "text/plain"})
        assert headers["content-type"] == "text/plain"
        assert headers.get("CONTENT-TYPE") == "text/plain"

    def test_missing_returns_default(self) -> None:
        headers = HeaderMap()
        assert headers.get("x-missing") is None
        assert headers.get("x-missing", "fallback") == "fallback"

    def test_contains(self) -> None:
        headers = HeaderMap([("Vary", "origin")])
        assert "vary" in headers
        assert "VARY" in headers
        assert 42 not in headers

    def test_first_value_wins_for_getitem(self) -> None:
        headers = HeaderMap([("vary", "origin"), ("vary", "accept-encoding")])
        assert headers["vary"] == "origin"
        assert headers.get_list("vary") == ["origin", "accept-encoding"]

    def test_len_counts_distinct_names(self) -> None:
        headers = HeaderMap([("a", "1"), ("A", "2"), ("b", "3")])
        assert len(headers) == 2
        assert list(headers) == ["a", "b"]


class TestMutation:
    def test_insert_replaces_all_values_in_place(self) -> None:
        headers = HeaderMap([("a", "1"), ("vary", "x"), ("b", "2"), ("vary", "y")])
        headers.insert("Vary", "z")
        assert headers.items() == [("a", "1"), ("vary", "z"), ("b", "2")]

    def test_insert_new_name_appends(self) -> None:
        headers = HeaderMap([("a", "1")])
        headers.insert("b", "2")
        assert headers.items() == [("a", "1"), ("b", "2")]

    def test_append_keeps_existing(self) -> None:
        headers = HeaderMap([("vary", "origin")])
        headers.append("Vary", "accept-encoding")
        assert headers.get_list("vary") == ["origin", "accept-encoding"]

    def test_remove_returns_removed_values(self) -> None:
        headers = HeaderMap([("vary", "a"), ("x", "1"), ("vary", "b")])
        assert headers.remove("VARY") == ["a", "b"]
        assert headers.items() == [("x", "1")]
        assert headers.remove("vary") == []

    def test_copy_is_independent(self) -> None:
        original = HeaderMap([("a", "1")])
        clone = original.copy()
        clone.insert("a", "2")
        assert original["a"] == "1"
        assert clone["a"] == "2"


class TestRaw:
    def test_from_raw_and_back(self) -> None:
        raw = [(b"Content-Type", b"text/html"), (b"set-cookie", b"a=1"), (b"set-cookie", b"b=2")]
        headers = HeaderMap.from_raw(raw)
        assert headers.get_list("set-cookie") == ["a=1", "b=2"]
        assert headers.raw == [
            (b"content-type", b"text/html"),
            (b"set-cookie", b"a=1"),
            (b"set-cookie", b"b=2"),
        ]

    def test_equality(self) -> None:
        assert HeaderMap({"A": "1"}) == HeaderMap([("a", "1")])
        assert HeaderMap({"a": "1"}) != HeaderMap({"a": "2"})


class TestSensitive:
    def test_repr_redacts_marked_values(self) -> None:
        headers = HeaderMap({"Authorization": "Bearer hunter2", "accept": "*/*"})
        headers.mark_sensitive("AUTHORIZATION")
        assert repr(headers) == "HeaderMap(['authorization': 'Sensitive', 'accept': '*/*'])"
        assert headers["authorization"] == "Bearer hunter2"

    def test_values_added_later_are_redacted(self) -> None:
        headers = HeaderMap()
        headers.mark_sensitive("set-cookie")
        headers.append("set-cookie", "a=1")
        headers.append("set-cookie", "b=2")
        assert headers.redacted_items() == [("set-cookie", "Sensitive"), ("set-cookie", "Sensitive")]
        assert headers.raw == [(b"set-cookie", b"a=1"), (b"set-cookie", b"b=2")]

    def test_marks_survive_copy_and_extend(self) -> None:
        headers = HeaderMap({"cookie": "id=1"})
        headers.mark_sensitive("cookie")
        merged = HeaderMap()
        merged.extend(headers)
        assert headers.copy().is_sensitive("cookie")
        assert merged.is_sensitive("cookie")
        assert HeaderMap(headers).is_sensitive("cookie")

    def test_unmarked_by_default(self) -> None:
        assert not HeaderMap({"cookie": "id=1"}).is_sensitive("cookie")
