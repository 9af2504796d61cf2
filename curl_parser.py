"""
Разбор команды curl в структуру HTTP-запроса (без запуска shell).

Конвейер: нормализация ввода -> tokenize -> coalesce_quoted_tokens ->
проход по флагам -> build_result. Функция parse_curl никогда не бросает
исключений: всё, что не удалось разобрать, деградирует до "сырого"
значения или пропущенного поля.
"""
import json
import logging
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Tuple, Union
from urllib.parse import parse_qsl, urlencode, urlsplit

logger = logging.getLogger(__name__)

QueryValue = Union[str, List[str]]

_CONTINUATION_RE = re.compile(r"\\\r?\n")
_WHITESPACE = (" ", "\t", "\r", "\n")
_QUOTES = ('"', "'")
_URL_RE = re.compile(
    r"^https?://"
    r"|^[a-zA-Z0-9]([a-zA-Z0-9-]*[a-zA-Z0-9])?(\.[a-zA-Z0-9]([a-zA-Z0-9-]*[a-zA-Z0-9])?)+"
)
_FORM_RE = re.compile(r"^[^=]+=.")


@dataclass(frozen=True)
class MultipartField:
    name: str
    value: Optional[str] = None
    filename: Optional[str] = None
    content_type: Optional[str] = None

    @property
    def is_file(self) -> bool:
        return self.filename is not None

    def to_dict(self) -> Dict[str, str]:
        out = {"name": self.name}
        if self.is_file:
            out["filename"] = self.filename
            if self.content_type is not None:
                out["contentType"] = self.content_type
        else:
            out["value"] = self.value or ""
        return out


@dataclass(frozen=True)
class Auth:
    user: str
    password: Optional[str] = None

    def to_dict(self) -> Dict[str, str]:
        out = {"user": self.user}
        if self.password is not None:
            out["password"] = self.password
        return out


@dataclass(frozen=True)
class CurlRequest:
    """
    Результат разбора. Необязательные поля равны None и в to_dict()
    не попадают вовсе (ни null, ни пустых значений).
    """
    method: str
    url: str
    headers: Dict[str, str] = field(default_factory=dict)
    query: Dict[str, QueryValue] = field(default_factory=dict)
    cookies: Dict[str, str] = field(default_factory=dict)
    body: Optional[str] = None
    json: Any = None
    form: Optional[Dict[str, str]] = None
    multipart: Optional[List[MultipartField]] = None
    auth: Optional[Auth] = None
    compressed: bool = False
    insecure: bool = False
    follow_redirects: bool = False
    referer: Optional[str] = None
    user_agent: Optional[str] = None
    http_version: Optional[str] = None
    timeout: Optional[float] = None
    raw_flags: Dict[str, Union[bool, str]] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {
            "method": self.method,
            "url": self.url,
            "headers": dict(self.headers),
            "query": {k: list(v) if isinstance(v, list) else v for k, v in self.query.items()},
            "cookies": dict(self.cookies),
        }
        if self.body is not None:
            out["body"] = self.body
        if self.json is not None:
            out["json"] = self.json
        if self.form:
            out["form"] = dict(self.form)
        if self.multipart:
            out["multipart"] = [f.to_dict() for f in self.multipart]
        if self.auth is not None:
            out["auth"] = self.auth.to_dict()
        out["compressed"] = self.compressed
        out["insecure"] = self.insecure
        out["followRedirects"] = self.follow_redirects
        if self.referer is not None:
            out["referer"] = self.referer
        if self.user_agent is not None:
            out["userAgent"] = self.user_agent
        if self.http_version is not None:
            out["httpVersion"] = self.http_version
        if self.timeout is not None:
            out["timeout"] = self.timeout
        out["raw"] = {"flags": dict(self.raw_flags)}
        return out


@dataclass
class _ParseState:
    # Живёт один вызов parse_curl; меняется только проходом по флагам.
    url: str = ""
    method: str = ""
    headers: Dict[str, str] = field(default_factory=dict)
    cookies: Dict[str, str] = field(default_factory=dict)
    query: Dict[str, QueryValue] = field(default_factory=dict)
    data_parts: List[str] = field(default_factory=list)
    multipart: List[MultipartField] = field(default_factory=list)
    form: Optional[Dict[str, str]] = None
    auth: Optional[Auth] = None
    get_mode: bool = False
    json_mode: bool = False
    compressed: bool = False
    insecure: bool = False
    follow_redirects: bool = False
    http_version: Optional[str] = None
    referer: Optional[str] = None
    user_agent: Optional[str] = None
    timeout: Optional[float] = None
    raw_flags: Dict[str, Union[bool, str]] = field(default_factory=dict)


# ---------------------------------------------------------------------------
# Токенизация
# ---------------------------------------------------------------------------

def normalize_input(text: str) -> str:
    """Склеивает продолжения строк (обратный слеш + перевод строки) и обрезает края."""
    return _CONTINUATION_RE.sub(" ", text).strip()


def tokenize(text: str) -> List[str]:
    """
    Делит строку на токены по пробельным символам с учётом кавычек.

    Обратный слеш экранирует следующий символ и внутри кавычек тоже.
    Кавычки разных видов друг в друга не вкладываются. Незакрытая кавычка
    не ошибка: накопленное просто сбрасывается в конце ввода.
    """
    out: List[str] = []
    buf: List[str] = []
    in_single = in_double = escape_next = False
    for ch in text:
        if escape_next:
            buf.append(ch)
            escape_next = False
            continue
        if ch == "\\":
            escape_next = True
            continue
        if ch == '"' and not in_single:
            in_double = not in_double
            continue
        if ch == "'" and not in_double:
            in_single = not in_single
            continue
        if ch in _WHITESPACE and not in_single and not in_double:
            if buf:
                out.append("".join(buf))
                buf = []
            continue
        buf.append(ch)
    if buf:
        out.append("".join(buf))
    return out


def _unescape_quotes(token: str) -> str:
    return token.replace('\\"', '"').replace("\\'", "'")


def _ends_with_quote(token: str, quote: str) -> bool:
    return token.endswith(quote) and not token.endswith("\\" + quote)


def coalesce_quoted_tokens(tokens: List[str]) -> List[str]:
    """
    Склеивает токены, разрезанные по пробелам внутри значения, которое
    начинается с "осиротевшей" кавычки (например, после \\" в исходной строке).
    """
    out: List[str] = []
    i = 0
    while i < len(tokens):
        token = _unescape_quotes(tokens[i])
        lone = token in _QUOTES
        if lone or (token[:1] in _QUOTES and not _ends_with_quote(token, token[0])):
            quote = token[0]
            parts = [] if lone else [token[1:]]
            while i + 1 < len(tokens):
                i += 1
                nxt = _unescape_quotes(tokens[i])
                if _ends_with_quote(nxt, quote):
                    parts.append(nxt[:-1])
                    break
                if nxt in _QUOTES:
                    break
                parts.append(nxt)
            # пустой span остаётся пустым значением: -H \" \"
            out.append(" ".join(p for p in parts if p))
        else:
            out.append(token)
        i += 1
    return out


# ---------------------------------------------------------------------------
# Эвристики
# ---------------------------------------------------------------------------

def is_flag_token(token: Optional[str]) -> bool:
    return bool(token) and token.startswith("-") and token != "-"


def looks_like_url(token: str) -> bool:
    """
    Похоже ли на URL: схема http(s) или префикс вида host.domain.
    Это эвристика: значение вроде "10.0)" тоже сочтётся адресом.
    """
    return _URL_RE.match(token) is not None


def is_balanced(text: str) -> bool:
    """
    Сбалансированы ли {} и [] вне строк в двойных кавычках.

    Одинарные кавычки не считаются: в JSON их нет, а апостроф в обычном
    тексте иначе "открывал" бы строку до конца команды.
    """
    depth = 0
    in_string = escape_next = False
    for ch in text:
        if escape_next:
            escape_next = False
            continue
        if ch == "\\":
            escape_next = True
            continue
        if ch == '"':
            in_string = not in_string
            continue
        if in_string:
            continue
        if ch in "{[":
            depth += 1
        elif ch in "}]":
            depth -= 1
    return depth == 0 and not in_string


def looks_like_json(body: str) -> bool:
    # Только форма, не валидность: "{oops" тоже подходит.
    return body.strip().startswith(("{", "["))


def looks_like_form(body: str) -> bool:
    return _FORM_RE.match(body) is not None


# ---------------------------------------------------------------------------
# Таблица флагов
# ---------------------------------------------------------------------------

class ArgKind(Enum):
    SWITCH = "switch"        # без аргумента
    SINGLE = "single"        # ровно следующий токен
    SIMPLE = "simple"        # жадно до следующего флага
    BALANCED = "balanced"    # жадно, пока не сбалансированы скобки


@dataclass(frozen=True)
class FlagSpec:
    kind: ArgKind
    apply: Callable[[_ParseState, Optional[str]], None]


def _switch(attr: str) -> Callable[[_ParseState, Optional[str]], None]:
    def apply(state: _ParseState, _value: Optional[str]) -> None:
        setattr(state, attr, True)
    return apply


def _http_version(version: str) -> Callable[[_ParseState, Optional[str]], None]:
    def apply(state: _ParseState, _value: Optional[str]) -> None:
        state.http_version = version
    return apply


def _set_method(state: _ParseState, value: Optional[str]) -> None:
    state.method = (value or "").upper()


def _set_head(state: _ParseState, _value: Optional[str]) -> None:
    state.method = "HEAD"


def _add_header(state: _ParseState, value: Optional[str]) -> None:
    if not value or ":" not in value:
        return
    name, val = value.split(":", 1)
    name, val = name.strip(), val.strip()
    if state.headers.get(name):
        state.headers[name] = f"{state.headers[name]}; {val}"
    else:
        state.headers[name] = val


def _set_url(state: _ParseState, value: Optional[str]) -> None:
    state.url = value or state.url


def _add_data(state: _ParseState, value: Optional[str]) -> None:
    state.data_parts.append(value or "")


def _add_json(state: _ParseState, value: Optional[str]) -> None:
    state.data_parts.append(value or "")
    state.json_mode = True


def parse_form_part(spec: str) -> MultipartField:
    """name=value или name=@file[;type=mime]."""
    if "=" not in spec:
        return MultipartField(name=spec, value="")
    name, rest = spec.split("=", 1)
    if not rest.startswith("@"):
        return MultipartField(name=name, value=rest)
    filename, _, params = rest[1:].partition(";")
    content_type = None
    for param in params.split(";") if params else ():
        key, _, val = param.partition("=")
        if key.strip() == "type":
            content_type = val.strip()
    return MultipartField(name=name, filename=filename, content_type=content_type)


def _capture_form_field(form: Dict[str, str], raw: str) -> None:
    if "=" not in raw:
        return
    key, value = raw.split("=", 1)
    value = value.strip()
    if not value.startswith("@"):
        # снимаем обрамляющие кавычки, содержимое не трогаем
        value = re.sub(r"^['\"]|['\"]$", "", value)
    form[key.strip()] = value


def _add_form(state: _ParseState, value: Optional[str]) -> None:
    value = value or ""
    state.multipart.append(parse_form_part(value))
    if state.form is None:
        state.form = {}
    _capture_form_field(state.form, value)


def parse_auth(value: str) -> Auth:
    if ":" not in value:
        return Auth(user=value)
    user, password = value.split(":", 1)
    return Auth(user=user, password=password)


def _set_user(state: _ParseState, value: Optional[str]) -> None:
    state.auth = parse_auth(value or "")


def _set_referer(state: _ParseState, value: Optional[str]) -> None:
    state.referer = value or ""


def _set_user_agent(state: _ParseState, value: Optional[str]) -> None:
    state.user_agent = value or ""


def parse_cookie_string(value: str, out: Dict[str, str]) -> None:
    """a=b; c=d -> out; куски без "=" пропускаются."""
    for part in re.split(r";\s*", value):
        if "=" not in part:
            continue
        key, val = part.split("=", 1)
        key = key.strip()
        if key:
            out[key] = val.strip()


def _add_cookies(state: _ParseState, value: Optional[str]) -> None:
    parse_cookie_string(value or "", state.cookies)


def _set_timeout(state: _ParseState, value: Optional[str]) -> None:
    try:
        state.timeout = float(value or "")
    except ValueError:
        logger.debug("non-numeric --max-time value %r kept as raw flag", value)
        state.raw_flags["max-time"] = value or ""


LONG_FLAGS: Dict[str, FlagSpec] = {
    "--request": FlagSpec(ArgKind.SINGLE, _set_method),
    "--header": FlagSpec(ArgKind.SIMPLE, _add_header),
    "--url": FlagSpec(ArgKind.SIMPLE, _set_url),
    "--data": FlagSpec(ArgKind.BALANCED, _add_data),
    "--data-raw": FlagSpec(ArgKind.BALANCED, _add_data),
    "--data-binary": FlagSpec(ArgKind.BALANCED, _add_data),
    "--data-ascii": FlagSpec(ArgKind.BALANCED, _add_data),
    "--data-urlencode": FlagSpec(ArgKind.BALANCED, _add_data),
    "--json": FlagSpec(ArgKind.BALANCED, _add_json),
    "--form": FlagSpec(ArgKind.BALANCED, _add_form),
    "--user": FlagSpec(ArgKind.SIMPLE, _set_user),
    "--get": FlagSpec(ArgKind.SWITCH, _switch("get_mode")),
    "--compressed": FlagSpec(ArgKind.SWITCH, _switch("compressed")),
    "--insecure": FlagSpec(ArgKind.SWITCH, _switch("insecure")),
    "--head": FlagSpec(ArgKind.SWITCH, _set_head),
    "--location": FlagSpec(ArgKind.SWITCH, _switch("follow_redirects")),
    "--referer": FlagSpec(ArgKind.SIMPLE, _set_referer),
    "--user-agent": FlagSpec(ArgKind.SIMPLE, _set_user_agent),
    "--http1.1": FlagSpec(ArgKind.SWITCH, _http_version("1.1")),
    "--http2": FlagSpec(ArgKind.SWITCH, _http_version("2")),
    "--http2-prior-knowledge": FlagSpec(ArgKind.SWITCH, _http_version("2")),
    "--cookie": FlagSpec(ArgKind.SIMPLE, _add_cookies),
    "--max-time": FlagSpec(ArgKind.SINGLE, _set_timeout),
}

SHORT_FLAGS: Dict[str, str] = {
    "X": "--request",
    "H": "--header",
    "d": "--data",
    "F": "--form",
    "u": "--user",
    "G": "--get",
    "I": "--head",
    "L": "--location",
    "k": "--insecure",
    "e": "--referer",
    "A": "--user-agent",
    "b": "--cookie",
    "m": "--max-time",
}


# ---------------------------------------------------------------------------
# Проход по токенам
# ---------------------------------------------------------------------------

def _collect(kind: ArgKind, tokens: List[str], i: int, state: _ParseState,
             first: Optional[str] = None) -> Tuple[str, int]:
    """
    Собирает значение флага, стоящего на позиции i.
    Возвращает (значение, индекс последнего поглощённого токена).
    """
    parts: List[str] = []
    if first is not None:
        parts.append(first)
    elif i + 1 < len(tokens):
        i += 1
        parts.append(tokens[i])
    if kind is ArgKind.SINGLE:
        return " ".join(parts), i

    while i + 1 < len(tokens) and not is_flag_token(tokens[i + 1]):
        nxt = tokens[i + 1]
        if not state.url and parts and looks_like_url(nxt):
            # сам URL команды ещё впереди, не глотаем его
            break
        if kind is ArgKind.BALANCED and is_balanced(" ".join(parts)):
            break
        parts.append(nxt)
        i += 1
    return " ".join(parts), i


def _process_long_flag(tokens: List[str], i: int, state: _ParseState) -> int:
    name, sep, inline = tokens[i].partition("=")
    spec = LONG_FLAGS.get(name)
    if spec is None:
        if sep and len(name) > 2:
            state.raw_flags[name[2:]] = inline
        else:
            state.raw_flags[tokens[i][2:]] = True
        logger.debug("unrecognized flag %s recorded as raw", tokens[i])
        return i
    if spec.kind is ArgKind.SWITCH:
        spec.apply(state, None)
        return i
    value, i = _collect(spec.kind, tokens, i, state, first=inline if sep else None)
    spec.apply(state, value)
    return i


def _process_short_flags(tokens: List[str], i: int, state: _ParseState) -> int:
    cluster = tokens[i][1:]
    for pos, letter in enumerate(cluster):
        name = SHORT_FLAGS.get(letter)
        if name is None:
            state.raw_flags[letter] = True
            continue
        spec = LONG_FLAGS[name]
        if spec.kind is ArgKind.SWITCH:
            spec.apply(state, None)
            continue
        # -XPOST: остаток кластера и есть значение
        rest = cluster[pos + 1:] or None
        value, last = _collect(spec.kind, tokens, i, state, first=rest)
        spec.apply(state, value)
        return last
    return i


def _parse_tokens(tokens: List[str], state: _ParseState) -> None:
    i = 0
    while i < len(tokens):
        token = tokens[i]
        if token in ("curl", "--"):
            pass
        elif token.startswith("--"):
            i = _process_long_flag(tokens, i, state)
        elif is_flag_token(token):
            i = _process_short_flags(tokens, i, state)
        elif state.url:
            # после URL позиционные токены считаются данными
            state.data_parts.append(token)
        else:
            state.url = token
        i += 1


# ---------------------------------------------------------------------------
# Сборка результата
# ---------------------------------------------------------------------------

def add_query(query: Dict[str, QueryValue], key: str, value: str) -> None:
    """Второе вхождение ключа превращает значение в список."""
    if key not in query:
        query[key] = value
    elif isinstance(query[key], list):
        query[key].append(value)
    else:
        query[key] = [query[key], value]


def get_header(headers: Dict[str, str], name: str) -> Optional[str]:
    lowered = name.lower()
    for key, value in headers.items():
        if key.lower() == lowered:
            return value
    return None


def normalize_headers(headers: Dict[str, str]) -> Dict[str, str]:
    """Сливает заголовки, отличающиеся только регистром, под первым написанием."""
    out: Dict[str, str] = {}
    seen: Dict[str, str] = {}
    for key, value in headers.items():
        existing = seen.get(key.lower())
        if existing is None:
            seen[key.lower()] = key
            out[key] = value
        else:
            out[existing] = f"{out[existing]}, {value}"
    return out


def rebuild_url(base: str, query: Dict[str, QueryValue]) -> str:
    pairs = []
    for key, value in query.items():
        for item in value if isinstance(value, list) else [value]:
            pairs.append((key, item))
    # непереводимые байты из argv приходят суррогатами; вернуть их как %XX
    qs = urlencode(pairs, errors="surrogateescape")
    return f"{base}?{qs}" if qs else base


def _synthesize_headers(state: _ParseState) -> Dict[str, str]:
    headers = dict(state.headers)
    if state.referer:
        headers["Referer"] = state.referer
    if state.user_agent:
        headers["User-Agent"] = state.user_agent
    if state.cookies:
        headers["Cookie"] = "; ".join(f"{k}={v}" for k, v in state.cookies.items())
    if state.json_mode:
        if get_header(headers, "Content-Type") is None:
            headers["Content-Type"] = "application/json"
        if get_header(headers, "Accept") is None:
            headers["Accept"] = "application/json"
    return headers


def _split_url(url: str, query: Dict[str, QueryValue]) -> str:
    """Возвращает base URL, параметры из строки запроса складывает в query."""
    if not url:
        return url
    try:
        parts = urlsplit(url)
    except ValueError:
        logger.debug("could not parse url %r, using it verbatim", url)
        return url
    if not (parts.scheme and parts.netloc):
        logger.debug("url %r is not absolute, using it verbatim", url)
        return url
    for key, value in parse_qsl(parts.query, keep_blank_values=True):
        add_query(query, key, value)
    # userinfo не трогаем, хост и порт в нижний регистр
    userinfo, at, hostport = parts.netloc.rpartition("@")
    netloc = f"{userinfo}{at}{hostport.lower()}"
    return f"{parts.scheme.lower()}://{netloc}{parts.path or '/'}"


def _materialize_body(data_parts: List[str], headers: Dict[str, str]):
    """(body, json, form) из накопленных кусков данных."""
    body = "&".join(data_parts)
    # двойное экранирование из shell-кавычек, best effort
    body = body.replace("\\\\n", "\\n").replace('\\\\"', '\\"')

    content_type = get_header(headers, "Content-Type")
    lowered = (content_type or "").lower()

    if "application/json" in lowered or (content_type is None and looks_like_json(body)):
        try:
            return body, json.loads(body), None
        except (ValueError, RecursionError):
            logger.debug("body looks like JSON but does not parse")
            return body, None, None

    if "application/x-www-form-urlencoded" in lowered or (
        content_type is None and looks_like_form(body)
    ):
        return body, None, dict(parse_qsl(body, keep_blank_values=True))

    return body, None, None


def _determine_method(state: _ParseState, body: Optional[str]) -> str:
    if state.method:
        return state.method
    if state.get_mode:
        return "GET"
    if body or state.multipart:
        return "POST"
    return "GET"


def build_result(state: _ParseState) -> CurlRequest:
    headers = _synthesize_headers(state)
    query: Dict[str, QueryValue] = {
        k: list(v) if isinstance(v, list) else v for k, v in state.query.items()
    }
    base_url = _split_url(state.url, query)

    body = json_value = form = None
    if state.get_mode and state.data_parts:
        # -G: данные уходят в строку запроса, тела нет
        for data in state.data_parts:
            for key, value in parse_qsl(data, keep_blank_values=True):
                add_query(query, key, value)
    else:
        if state.data_parts:
            body, json_value, form = _materialize_body(state.data_parts, headers)
        if not form and state.form:
            form = dict(state.form)

    return CurlRequest(
        method=_determine_method(state, body),
        url=rebuild_url(base_url, query),
        headers=normalize_headers(headers),
        query=query,
        cookies=dict(state.cookies),
        body=body,
        json=json_value,
        form=form or None,
        multipart=list(state.multipart) or None,
        auth=state.auth,
        compressed=state.compressed,
        insecure=state.insecure,
        follow_redirects=state.follow_redirects,
        referer=state.referer,
        user_agent=state.user_agent,
        http_version=state.http_version,
        timeout=state.timeout,
        raw_flags=dict(state.raw_flags),
    )


def parse_curl(curl_cmd: str) -> CurlRequest:
    """
    Разбирает команду curl в CurlRequest.

    Поддержка:
      -X / --request METHOD, -I / --head
      -H / --header "Name: value"
      -d / --data / --data-raw / --data-binary / --data-ascii / --data-urlencode
      --json '{...}'
      -F / --form name=value или name=@file;type=mime
      -u / --user user:pass
      -b / --cookie "a=1; b=2"
      -G / --get, -k / --insecure, -L / --location, --compressed
      -e / --referer, -A / --user-agent, --url
      --http1.1, --http2, --http2-prior-knowledge, -m / --max-time SEC
    Остальные флаги складываются в raw_flags как есть.
    """
    tokens = coalesce_quoted_tokens(tokenize(normalize_input(curl_cmd)))
    state = _ParseState()
    _parse_tokens(tokens, state)
    return build_result(state)


parse = parse_curl
