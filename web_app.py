import logging

from flask import Flask, render_template, request, jsonify
import requests
from requests.exceptions import RequestException, SSLError, Timeout, TooManyRedirects

from app_config import Settings
from curl_parser import parse_curl

settings = Settings.from_env()

app = Flask(__name__)
app.config["REQUEST_TIMEOUT"] = settings.request_timeout

# Нельзя выставлять эти служебные — requests сам выставит корректно
_DROP_HEADERS = ("host", "content-length", "transfer-encoding")
_TEXTUAL = ("text/", "json", "xml", "javascript", "yaml")


def _curl_from_payload():
    payload = request.get_json(force=True, silent=True) or {}
    return payload.get("curl") or ""


def build_request_kwargs(parsed, default_timeout):
    """Превращает CurlRequest в аргументы requests.request."""
    if not parsed.url.startswith(("http://", "https://")):
        raise ValueError(f"Нужен абсолютный http(s) URL, получено: {parsed.url!r}")

    files = None
    if parsed.multipart:
        # файлы с диска сервера намеренно не читаем
        if any(f.is_file for f in parsed.multipart):
            raise ValueError("Загрузка файлов через -F не поддерживается.")
        files = [(f.name, (None, f.value)) for f in parsed.multipart]

    auth = None
    if parsed.auth is not None:
        auth = (parsed.auth.user, parsed.auth.password or "")

    headers = {k: v for k, v in parsed.headers.items() if k.lower() not in _DROP_HEADERS}

    return {
        "method": parsed.method,
        "url": parsed.url,
        "headers": headers,
        "data": parsed.body.encode("utf-8") if parsed.body is not None else None,
        "files": files,
        "auth": auth,
        "verify": not parsed.insecure,
        "allow_redirects": parsed.follow_redirects,
        "timeout": parsed.timeout or default_timeout,
    }


@app.get("/")
def index():
    return render_template("index.html")


@app.post("/parse")
def parse():
    curl_cmd = _curl_from_payload()
    if not curl_cmd.strip():
        return jsonify({"error": "Нужно передать поле 'curl'"}), 400
    return jsonify(parse_curl(curl_cmd).to_dict()), 200


@app.post("/run")
def run():
    curl_cmd = _curl_from_payload()
    if not curl_cmd.strip():
        return jsonify({"error": "Нужно передать поле 'curl'"}), 400

    try:
        parsed = parse_curl(curl_cmd)
        kwargs = build_request_kwargs(parsed, app.config["REQUEST_TIMEOUT"])
        app.logger.info("replaying %s %s", kwargs["method"], kwargs["url"])

        resp = requests.request(**kwargs)

        # Пытаемся определить, текст ли это
        content_type = resp.headers.get("Content-Type", "")
        is_textual = any(ct in content_type for ct in _TEXTUAL)
        size_bytes = len(resp.content)

        if is_textual:
            # уважим кодировку, если известна
            resp.encoding = resp.encoding or "utf-8"
            body_text = resp.text
        else:
            # бинарь в base64 не возвращаем, чтоб не раздуть ответ — покажем заметку
            body_text = f"[binary content: {size_bytes} bytes, Content-Type: {content_type}]"

        return jsonify({
            "request": {
                "method": parsed.method,
                "url": resp.request.url,
                "headers": dict(resp.request.headers),
                "has_body": bool(parsed.body or parsed.multipart),
            },
            "response": {
                "status": resp.status_code,
                "reason": resp.reason,
                "url": resp.url,
                "elapsed_ms": int(resp.elapsed.total_seconds() * 1000),
                "headers": dict(resp.headers),
                "cookies": resp.cookies.get_dict(),
                "size_bytes": size_bytes,
                "body": body_text,
            }
        }), 200

    except ValueError as e:
        return jsonify({"error": str(e)}), 400
    except SSLError as e:
        return jsonify({"error": f"SSL error: {e}"}), 502
    except Timeout:
        return jsonify({"error": "Timeout"}), 504
    except TooManyRedirects:
        return jsonify({"error": "Too many redirects"}), 508
    except RequestException as e:
        return jsonify({"error": f"Request error: {e}"}), 502
    except Exception as e:
        app.logger.exception("unexpected error while replaying request")
        return jsonify({"error": f"Internal error: {e}"}), 500


if __name__ == "__main__":
    settings.validate()
    logging.basicConfig(level=settings.log_level)
    app.run(host=settings.host, port=settings.port, debug=settings.debug)
