"""
Командная строка: curl -> JSON.

    curl-to-json "curl -X POST https://api.example.com -d 'a=1'"
    curl-to-json -- -X POST https://api.example.com -d a=1
    pbpaste | curl-to-json
"""
import argparse
import json
import logging
import sys
from typing import List, Optional

from curl_parser import parse_curl

USAGE = (
    'Usage: curl-to-json "curl ..."\n'
    '  or: echo "curl ..." | curl-to-json'
)

_NEEDS_QUOTING = (" ", "\t", "\r", "\n", '"', "'", "\\")


def quote_word(word: str) -> str:
    """Экранирует слово так, чтобы tokenize вернул его без изменений."""
    if word and not any(ch in word for ch in _NEEDS_QUOTING):
        return word
    escaped = word.replace("\\", "\\\\").replace('"', '\\"')
    return f'"{escaped}"'


def reconstruct_command(words: List[str]) -> str:
    """
    Собирает строку команды из уже разделённых shell'ом слов.
    Одно слово считается готовой командой целиком.
    """
    if not words:
        return ""
    if len(words) == 1:
        return words[0]
    out = [] if words[0].lower() == "curl" else ["curl"]
    out.extend(quote_word(w) for w in words)
    return " ".join(out)


def _read_stdin() -> str:
    if sys.stdin is None or sys.stdin.isatty():
        return ""
    return sys.stdin.read()


def build_arg_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="curl-to-json",
        description="Convert a curl command into a JSON description of the request.",
    )
    parser.add_argument("command", nargs="*",
                        help="curl command as one string, or its words (after --)")
    parser.add_argument("--indent", type=int, default=2,
                        help="JSON indentation (default: 2)")
    parser.add_argument("--log-level", default="WARNING",
                        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
                        help="Logging level (default: WARNING)")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_arg_parser().parse_args(argv)
    logging.basicConfig(level=args.log_level, stream=sys.stderr)

    if args.command:
        text = reconstruct_command(args.command)
    else:
        text = _read_stdin()

    if not text.strip():
        print(USAGE, file=sys.stderr)
        return 1

    data = parse_curl(text).to_dict()
    output = json.dumps(data, indent=args.indent, ensure_ascii=False)
    try:
        output.encode("utf-8")
    except UnicodeEncodeError:
        # байты argv вне UTF-8 остаются суррогатами, их печатаем как \udcXX
        output = json.dumps(data, indent=args.indent)
    print(output)
    return 0


if __name__ == "__main__":
    sys.exit(main())
