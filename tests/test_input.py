import enum
from datetime import datetime, timezone

import pytest

from quickhttp import DateParseError, HttpConfig, InvalidArgument


class Status(enum.Enum):
    OPEN = "open"
    CLOSED = "closed"


@pytest.mark.parametrize("method", ["GET", "HEAD"])
def test_safe_methods_read_the_query_string(make_request, method):
    request = make_request(query_string={"a": "1"}, method=method)
    assert request.get_input_source() is request.query_bag
    assert request.input("a") == "1"


@pytest.mark.parametrize("method", ["POST", "PUT", "PATCH", "DELETE"])
def test_other_methods_read_the_form_body(make_request, method):
    request = make_request(method=method, data={"b": "2"})
    assert request.get_input_source() is request.form_bag
    assert request.input("b") == "2"


def test_json_body_backs_input(make_request):
    request = make_request(method="POST", json={"a": {"b": 5}})
    assert request.get_input_source() is request.json_bag
    assert request.input("a.b") == 5


def test_missing_nested_key_returns_default(make_request):
    request = make_request(method="POST", json={"a": {}})
    assert request.input("a.b", "fallback") == "fallback"
    assert request.input("a.b") is None


def test_json_overrides_method_on_get_by_default(make_request):
    request = make_request(method="GET", json={"a": "body"}, query_string={"a": "query", "q": "1"})
    assert request.input("a") == "body"
    assert request.input("q") == "1"


def test_legacy_rule_keeps_query_for_get(make_request):
    config = HttpConfig({"json_overrides_method": False})
    request = make_request(method="GET", json={"a": "body"}, query_string={"a": "query"}, config=config)
    assert request.get_input_source() is request.query_bag
    assert request.input("a") == "query"


def test_malformed_json_resolves_to_empty_bag(make_request):
    request = make_request(method="POST", data="{not json", content_type="application/json")
    assert request.json_bag.all() == {}
    assert request.input() == {}


def test_non_object_json_resolves_to_empty_bag(make_request):
    request = make_request(method="POST", data="[1, 2, 3]", content_type="application/json")
    assert request.input() == {}


def test_json_bag_is_decoded_once(make_request):
    request = make_request(method="POST", json={"a": 1})
    assert request.json_bag is request.json_bag


def test_all_merges_query_and_body_with_body_winning(make_request):
    request = make_request(method="POST", query_string={"a": "1", "b": "query"}, data={"b": "2"})
    assert request.all() == {"a": "1", "b": "2"}


def test_all_with_keys_returns_nested_subset(make_request):
    request = make_request(method="POST", json={"user": {"name": "Ada", "age": 36}, "token": "t"})
    assert request.all(["user.name", "nope"]) == {"user": {"name": "Ada"}}
    assert request.all("token") == {"token": "t"}


def test_bracket_notation_builds_nested_input(make_request):
    request = make_request(method="POST", data={"user[name]": "Ada", "tags[]": ["a", "b"]})
    assert request.input("user.name") == "Ada"
    assert request.input("tags") == ["a", "b"]
    assert request.input("tags.1") == "b"


def test_fixed_bag_accessors(make_request):
    request = make_request(
        "/",
        method="POST",
        query_string={"q": "search"},
        data={"title": "Hello"},
        headers={"Cookie": "session=abc", "X-Trace": "t-1"},
    )
    assert request.query("q") == "search"
    assert request.query() == {"q": "search"}
    assert request.query("missing", "d") == "d"
    assert request.post("title") == "Hello"
    assert request.post() == {"title": "Hello"}
    assert request.cookie("session") == "abc"
    assert request.has_cookie("session")
    assert not request.has_cookie("other")
    assert request.header("x-trace") == "t-1"
    assert request.header("X_TRACE") == "t-1"
    assert request.header()["x-trace"] == ["t-1"]
    assert request.server_var("REQUEST_METHOD") == "POST"
    assert request.server_var("NOPE", "d") == "d"
    assert "REQUEST_METHOD" in request.server_var()


def test_fixed_bag_lookup_does_not_traverse_paths(make_request):
    request = make_request(method="POST", data={"user[name]": "Ada"})
    assert request.post("user.name") is None
    assert request.post("user") == {"name": "Ada"}


def test_has_has_any_and_missing(make_request):
    request = make_request(method="POST", json={"name": "Ada", "meta": {"nick": None}})
    assert request.has("name")
    assert request.has("name", "meta.nick")
    assert request.has(["name", "meta.nick"])
    assert not request.has("name", "age")
    assert request.has_any("age", "name")
    assert not request.has_any("age", "email")
    assert request.missing("age")
    assert not request.missing("name")
    assert request.exists("meta.nick")


def test_filled_rules(make_request):
    request = make_request(
        method="POST",
        json={"empty": "", "blank": "   ", "zero": "0", "off": False, "list": [], "map": {}, "none": None},
    )
    assert not request.filled("empty")
    assert not request.filled("blank")
    assert not request.filled("none")
    assert not request.filled("absent")
    assert request.filled("zero")
    assert request.filled("off")
    assert request.filled("list")
    assert request.filled("map")
    assert not request.filled("zero", "empty")
    assert request.any_filled("empty", "zero")
    assert not request.any_filled("empty", "blank")
    assert request.is_not_filled("empty", "blank")
    assert not request.is_not_filled("empty", "zero")


def test_when_helpers_run_callbacks(make_request):
    request = make_request(method="POST", json={"name": "Ada", "blank": ""})
    seen = []

    assert request.when_has("name", seen.append) is request
    assert seen == ["Ada"]
    assert request.when_filled("blank", seen.append, lambda: "default ran") == "default ran"
    assert request.when_missing("age", lambda value: "missing ran") == "missing ran"
    assert request.when_missing("name", seen.append) is request
    assert seen == ["Ada"]


def test_only_and_except_preserve_nesting(make_request):
    request = make_request(method="POST", json={"user": {"name": "Ada", "password": "x"}, "token": "t"})
    assert request.only("user.name", "token") == {"user": {"name": "Ada"}, "token": "t"}
    assert request.only(["user.name", "absent"]) == {"user": {"name": "Ada"}}
    assert request.except_("user.password", "token") == {"user": {"name": "Ada"}}


def test_get_and_keys(make_request):
    request = make_request(method="POST", json={"a": {"b": 1}, "c": 2})
    assert request.get("a.b") == 1
    assert request.get("z", "d") == "d"
    assert request.keys() == ["a", "c"]
    assert request.to_dict() == {"a": {"b": 1}, "c": 2}


@pytest.mark.parametrize("value", ["1", "true", "TRUE", "on", "Yes", " yes "])
def test_boolean_truthy_strings(make_request, value):
    assert make_request(query_string={"flag": value}).boolean("flag") is True


@pytest.mark.parametrize("value", ["0", "false", "Off", "no", ""])
def test_boolean_falsy_strings(make_request, value):
    assert make_request(query_string={"flag": value}).boolean("flag") is False


def test_boolean_missing_uses_default_and_bools_pass_through(make_request):
    request = make_request(method="POST", json={"flag": True})
    assert request.boolean("flag") is True
    assert request.boolean("absent") is False
    assert request.boolean("absent", True) is True


def test_boolean_rejects_unknown_strings(make_request):
    request = make_request(query_string={"flag": "maybe"})
    with pytest.raises(InvalidArgument):
        request.boolean("flag")


def test_integer_and_float_parsing(make_request):
    request = make_request(query_string={"n": "42", "lead": "12abc", "junk": "abc", "f": "3.5", "neg": "-2.5e1"})
    assert request.integer("n") == 42
    assert request.integer("lead") == 12
    assert request.integer("junk") == 0
    assert request.integer("absent") == 0
    assert request.integer("absent", 7) == 7
    assert request.float("f") == 3.5
    assert request.float("neg") == -25.0
    assert request.float("junk") == 0.0
    assert request.float("n") == 42.0


def test_string_accessor(make_request):
    request = make_request(method="POST", json={"n": 5, "s": "text"})
    assert request.string("n") == "5"
    assert request.string("s") == "text"
    assert request.string("absent") == ""
    assert request.string("absent", "d") == "d"


def test_date_without_format_is_permissive(make_request):
    request = make_request(query_string={"when": "2024-04-05 10:30"})
    assert request.date("when") == datetime(2024, 4, 5, 10, 30)


def test_date_with_format_and_timezone(make_request):
    request = make_request(query_string={"when": "05/04/2024"})
    parsed = request.date("when", "%d/%m/%Y", "UTC")
    assert parsed.replace(tzinfo=None) == datetime(2024, 4, 5)
    assert parsed.utcoffset() == timezone.utc.utcoffset(None)


def test_date_returns_none_when_not_filled(make_request):
    assert make_request(query_string={"when": ""}).date("when") is None
    assert make_request().date("when") is None


def test_date_format_mismatch_raises(make_request):
    request = make_request(query_string={"when": "2024-04-05"})
    with pytest.raises(DateParseError) as excinfo:
        request.date("when", "%d/%m/%Y")
    assert excinfo.value.key == "when"


def test_date_unparseable_raises(make_request):
    with pytest.raises(DateParseError):
        make_request(query_string={"when": "not a date"}).date("when")


def test_enum_accessor(make_request):
    request = make_request(query_string={"status": "open", "bad": "pending", "blank": ""})
    assert request.enum("status", Status) is Status.OPEN
    assert request.enum("bad", Status) is None
    assert request.enum("blank", Status) is None
    assert request.enum("status", dict) is None


def test_merge_and_replace_touch_only_the_input_source(make_request):
    request = make_request(method="POST", query_string={"q": "1"}, data={"a": "1"})
    request.merge({"b": "2"})
    assert request.all() == {"q": "1", "a": "1", "b": "2"}
    request.replace({"c": "3"})
    assert request.post() == {"c": "3"}
    assert request.query() == {"q": "1"}


def test_set_json_replaces_json_bag(make_request):
    request = make_request(method="POST", json={"a": 1})
    request.set_json('{"b": 2}')
    assert request.input() == {"b": 2}
    request.set_json({"c": 3})
    assert request.input("c") == 3


def test_callers_cannot_alias_input(make_request):
    request = make_request(method="POST", json={"user": {"name": "Ada"}})
    snapshot = request.all()
    snapshot["user"]["name"] = "changed"
    assert request.input("user.name") == "Ada"


def test_boolean_of_list_or_mapping_is_false(make_request):
    request = make_request(method="POST", json={"tags": ["a"], "meta": {"x": 1}})
    assert request.boolean("tags") is False
    assert request.boolean("meta") is False


def test_boolean_requires_a_key(make_request):
    with pytest.raises(TypeError):
        make_request(query_string={"a": "1"}).boolean()


@pytest.mark.parametrize("body", ['{"n": 1e999}', '{"n": -1e999}', '{"n": NaN}'])
def test_integer_of_non_finite_json_number_is_zero(make_request, body):
    request = make_request(method="POST", data=body, content_type="application/json")
    assert request.integer("n") == 0


def test_integer_of_overlong_digit_string_is_zero(make_request):
    request = make_request(query_string={"n": "9" * 5000, "lead": "9" * 5000 + "x"})
    assert request.integer("n") == 0
    assert request.integer("lead") == 0
    assert request.float("n") == float("inf")


def test_float_of_huge_json_integer_saturates(make_request):
    request = make_request(method="POST", data='{"n": 1' + "0" * 400 + ', "m": -1' + "0" * 400 + "}", content_type="application/json")
    assert request.float("n") == float("inf")
    assert request.float("m") == float("-inf")
