"""
Unit tests for flag dispatch and value collection.
"""

import pytest

from curl_parser import (
    ArgKind,
    LONG_FLAGS,
    SHORT_FLAGS,
    MultipartField,
    is_balanced,
    looks_like_url,
    parse_auth,
    parse_cookie_string,
    parse_curl,
    parse_form_part,
)


class TestFlagTable:
    """Tests for the flag lookup tables."""

    def test_short_letters_map_to_long_flags(self):
        for letter, name in SHORT_FLAGS.items():
            assert name in LONG_FLAGS, letter

    @pytest.mark.parametrize("name", ["--data", "--data-raw", "--data-binary",
                                      "--data-ascii", "--data-urlencode", "--form", "--json"])
    def test_body_flags_use_balanced_collection(self, name):
        assert LONG_FLAGS[name].kind is ArgKind.BALANCED

    @pytest.mark.parametrize("name", ["--get", "--compressed", "--insecure",
                                      "--head", "--location", "--http1.1", "--http2"])
    def test_switches(self, name):
        assert LONG_FLAGS[name].kind is ArgKind.SWITCH


class TestPredicates:
    """Tests for the named heuristics."""

    def test_is_balanced(self):
        assert is_balanced('{"a": [1, 2]}')
        assert is_balanced("plain=text")
        assert not is_balanced('{"a":')
        assert not is_balanced("[1, [2]")

    def test_is_balanced_ignores_brackets_in_strings(self):
        assert is_balanced('{"a": "}"}')
        assert not is_balanced('{"a": "}')

    def test_is_balanced_ignores_apostrophes(self):
        assert is_balanced("it's")

    def test_looks_like_url(self):
        assert looks_like_url("https://api.example.com")
        assert looks_like_url("http://localhost")
        assert looks_like_url("api.example.com/path")
        assert not looks_like_url("application/json")
        assert not looks_like_url("Bearer")


class TestMethodFlags:
    """Tests for -X / --request / -I."""

    def test_request_uppercases(self):
        assert parse_curl("curl -X delete https://api.example.com/users/1").method == "DELETE"
        assert parse_curl("curl --request PUT https://api.example.com/users/1").method == "PUT"

    def test_attached_value(self):
        out = parse_curl("curl -XPOST https://api.example.com")
        assert out.method == "POST"
        assert out.url == "https://api.example.com/"

    def test_inline_long_value(self):
        assert parse_curl("curl --request=patch https://api.example.com").method == "PATCH"

    def test_head(self):
        assert parse_curl("curl -I https://api.example.com/users").method == "HEAD"
        assert parse_curl("curl --head https://api.example.com/users").method == "HEAD"


class TestShortClusters:
    """Tests for grouped short flags."""

    def test_boolean_letters(self):
        out = parse_curl("curl -sLk https://api.example.com")
        assert out.follow_redirects is True
        assert out.insecure is True
        assert out.raw_flags == {"s": True}

    def test_value_letter_ends_cluster(self):
        out = parse_curl("curl -kX PUT https://api.example.com")
        assert out.insecure is True
        assert out.method == "PUT"
        assert out.url == "https://api.example.com/"

    def test_value_letter_takes_rest_of_cluster(self):
        out = parse_curl("curl -LHAccept:text/plain https://api.example.com")
        assert out.follow_redirects is True
        assert out.headers == {"Accept": "text/plain"}


class TestHeaders:
    """Tests for -H / --header."""

    def test_single_header(self):
        out = parse_curl('curl -H "Authorization: Bearer token123" https://api.example.com')
        assert out.headers["Authorization"] == "Bearer token123"

    def test_colon_in_value(self):
        out = parse_curl('curl -H "X-Time: 2025-10-25T10:30:00" https://api.example.com')
        assert out.headers["X-Time"] == "2025-10-25T10:30:00"

    def test_unquoted_value_is_reassembled(self):
        out = parse_curl("curl https://api.example.com -H Accept: application/json")
        assert out.headers == {"Accept": "application/json"}
        assert out.body is None

    def test_collection_stops_before_command_url(self):
        out = parse_curl("curl -H X-Trace: abc https://api.example.com")
        assert out.headers == {"X-Trace": "abc"}
        assert out.url == "https://api.example.com/"

    def test_same_name_joined_with_semicolon(self):
        out = parse_curl('curl -H "X-A: 1" -H "X-A: 2" https://api.example.com')
        assert out.headers == {"X-A": "1; 2"}

    def test_header_without_colon_ignored(self):
        out = parse_curl('curl -H "NoColon" https://api.example.com')
        assert out.headers == {}

    def test_empty_quoted_span_is_empty_value(self):
        out = parse_curl(r'curl -H \" \" https://x.example.com/p')
        assert out.headers == {}
        assert out.url == "https://x.example.com/p"

    def test_dotted_word_stops_collection(self):
        # the URL lookahead treats "5.0" as a host name
        out = parse_curl("curl -A Mozilla 5.0 https://api.example.com")
        assert out.user_agent == "Mozilla"
        assert out.url == "5.0"


class TestUrlFlag:
    """Tests for --url and positional tokens."""

    def test_url_flag_overrides_positional(self):
        out = parse_curl("curl https://a.example.com --url https://b.example.com/x")
        assert out.url == "https://b.example.com/x"

    def test_trailing_positional_is_data(self):
        out = parse_curl("curl https://api.example.com extra")
        assert out.body == "extra"
        assert out.method == "POST"

    def test_lone_dash_is_positional(self):
        out = parse_curl("curl https://api.example.com -")
        assert out.body == "-"


class TestDataCollection:
    """Tests for balanced collection of body flags."""

    def test_split_json_is_reassembled(self):
        out = parse_curl(r'curl -d {\"a\": 1} https://api.example.com')
        assert out.body == '{"a": 1}'
        assert out.json == {"a": 1}
        assert out.url == "https://api.example.com/"

    def test_balanced_value_does_not_swallow_next_token(self):
        out = parse_curl("curl https://api.example.com -d '[1, 2]' trailing")
        assert out.body == "[1, 2]&trailing"
        assert out.json is None

    def test_data_before_url(self):
        out = parse_curl('curl -d "a=1" https://api.example.com')
        assert out.url == "https://api.example.com/"
        assert out.body == "a=1"

    def test_unbalanced_data_stops_before_command_url(self):
        out = parse_curl("""curl -d '{"a":' https://x.example.com/p""")
        assert out.url == "https://x.example.com/p"
        assert out.body == '{"a":'
        assert out.json is None


class TestForm:
    """Tests for -F / --form."""

    def test_parse_form_part_value(self):
        assert parse_form_part("name=John") == MultipartField(name="name", value="John")

    def test_parse_form_part_file(self):
        assert parse_form_part("file=@test.txt") == MultipartField(name="file", filename="test.txt")

    def test_parse_form_part_file_with_type(self):
        field = parse_form_part("doc=@/tmp/x.pdf;type=application/pdf")
        assert field.to_dict() == {
            "name": "doc",
            "filename": "/tmp/x.pdf",
            "contentType": "application/pdf",
        }

    def test_parse_form_part_without_equals(self):
        assert parse_form_part("flag").to_dict() == {"name": "flag", "value": ""}

    def test_multiple_fields(self):
        out = parse_curl('curl -X POST https://api.example.com/upload -F "name=John" -F "email=john@example.com"')
        assert [f.to_dict() for f in out.multipart] == [
            {"name": "name", "value": "John"},
            {"name": "email", "value": "john@example.com"},
        ]
        assert out.form == {"name": "John", "email": "john@example.com"}

    def test_form_capture_strips_quotes(self):
        out = parse_curl("""curl https://api.example.com -F name='"John"'""")
        assert out.multipart[0].value == '"John"'
        assert out.form == {"name": "John"}

    def test_file_capture_kept_verbatim(self):
        out = parse_curl('curl https://api.example.com -F "file=@/tmp/a.txt"')
        assert out.form == {"file": "@/tmp/a.txt"}


class TestAuthAndCookies:
    """Tests for -u and -b."""

    def test_parse_auth(self):
        assert parse_auth("user:pass:word").to_dict() == {"user": "user", "password": "pass:word"}
        assert parse_auth("user").to_dict() == {"user": "user"}

    def test_user_flag(self):
        out = parse_curl('curl -u "username:password" https://api.example.com')
        assert out.auth.user == "username"
        assert out.auth.password == "password"

    def test_parse_cookie_string(self):
        cookies = {}
        parse_cookie_string("a=1; b=2;c=3; junk; =x", cookies)
        assert cookies == {"a": "1", "b": "2", "c": "3"}

    def test_cookie_flag(self):
        out = parse_curl('curl -b "session=abc; user_id=123" https://api.example.com')
        assert out.cookies == {"session": "abc", "user_id": "123"}


class TestTransportFlags:
    """Tests for switches and scalar captures."""

    def test_switches(self):
        out = parse_curl("curl --compressed --insecure --location https://api.example.com")
        assert (out.compressed, out.insecure, out.follow_redirects) == (True, True, True)

    @pytest.mark.parametrize("flag,version", [
        ("--http1.1", "1.1"),
        ("--http2", "2"),
        ("--http2-prior-knowledge", "2"),
    ])
    def test_http_version(self, flag, version):
        assert parse_curl(f"curl {flag} https://api.example.com").http_version == version

    def test_referer(self):
        out = parse_curl('curl -e "https://google.com" https://api.example.com')
        assert out.referer == "https://google.com"
        assert out.url == "https://api.example.com/"

    def test_max_time(self):
        out = parse_curl("curl -m 2.5 https://api.example.com")
        assert out.timeout == 2.5
        assert out.url == "https://api.example.com/"

    def test_max_time_not_numeric(self):
        out = parse_curl("curl --max-time soon https://api.example.com")
        assert out.timeout is None
        assert out.raw_flags == {"max-time": "soon"}


class TestRawFlags:
    """Tests for unrecognized flags."""

    def test_unknown_long_flag(self):
        out = parse_curl("curl --verbose https://api.example.com")
        assert out.raw_flags == {"verbose": True}
        assert out.url == "https://api.example.com/"

    def test_unknown_long_flag_with_value(self):
        out = parse_curl("curl --proxy=http://proxy.local:3128 https://api.example.com")
        assert out.raw_flags == {"proxy": "http://proxy.local:3128"}

    def test_unknown_short_letter(self):
        out = parse_curl("curl -v https://api.example.com")
        assert out.raw_flags == {"v": True}

    def test_double_dash_skipped(self):
        out = parse_curl("curl -- https://api.example.com")
        assert out.url == "https://api.example.com/"
        assert out.raw_flags == {}
