"""
Directive types and the parser that extracts them from model output.

The model answers with free text that should contain one JSON object of
the form::

    {
      "nextCommand": {"type": "command"|"file"|"message"|"server", ...},
      "reasoning": "...",
      "expectation": "...",
      "continueAfter": true,
      "isComplete": false
    }

Prose may surround the object and may itself contain braces, so the object
is located by brace matching that skips over quoted strings rather than by
taking the first ``{`` to the last ``}``.
"""

import json
from dataclasses import dataclass
from typing import Any

from forge_core import DirectiveType, MessageSeverity, ParseError

DEFAULT_SERVER_COMMAND = "npx serve ."
DEFAULT_HOST = "localhost"
DEFAULT_MESSAGE_TITLE = "Update"


@dataclass(frozen=True)
class ShellCommand:
    """Run a shell command in the project workspace."""

    cmd: str

    kind = DirectiveType.COMMAND


@dataclass(frozen=True)
class FileWrite:
    """Write a file inside the project workspace."""

    path: str
    content: str

    kind = DirectiveType.FILE


@dataclass(frozen=True)
class Message:
    """Status message for the user."""

    text: str
    severity: MessageSeverity = MessageSeverity.INFO
    title: str = DEFAULT_MESSAGE_TITLE

    kind = DirectiveType.MESSAGE


@dataclass(frozen=True)
class ServerStart:
    """Start a preview server for the project."""

    cmd: str = DEFAULT_SERVER_COMMAND
    port: int | None = None
    host: str | None = None

    kind = DirectiveType.SERVER


Directive = ShellCommand | FileWrite | Message | ServerStart


@dataclass(frozen=True)
class AgentReply:
    """One parsed model reply."""

    directive: Directive
    reasoning: str = ""
    expectation: str = ""
    continue_after: bool = False
    is_complete: bool = False

    @property
    def should_stop(self) -> bool:
        return self.is_complete or not self.continue_after


def find_json_object(text: str) -> str:
    """
    Return the first balanced ``{...}`` substring of ``text``.

    Raises:
        ParseError: If there is no opening brace or it is never closed
    """
    start = text.find("{")
    if start == -1:
        raise ParseError("no JSON object found", raw=text)

    depth = 0
    in_string = False
    escaped = False

    for index in range(start, len(text)):
        char = text[index]

        if escaped:
            escaped = False
            continue
        if char == "\\":
            escaped = True
            continue
        if char == '"':
            in_string = not in_string
            continue
        if in_string:
            continue

        if char == "{":
            depth += 1
        elif char == "}":
            depth -= 1
            if depth == 0:
                return text[start:index + 1]

    raise ParseError("unmatched braces", raw=text)


def _require_str(fields: dict[str, Any], key: str, kind: str, raw: str) -> str:
    value = fields.get(key)
    if not isinstance(value, str) or (key != "content" and not value.strip()):
        raise ParseError(f"'{kind}' command requires a string '{key}'", raw=raw)
    return value


def _optional_str(fields: dict[str, Any], key: str) -> str | None:
    value = fields.get(key)
    if value is None:
        return None
    return str(value)


def _port(fields: dict[str, Any], raw: str) -> int | None:
    value = fields.get("port")
    if value is None or value == "":
        return None
    if isinstance(value, bool):
        raise ParseError(f"invalid port: {value!r}", raw=raw)
    try:
        port = int(value)
    except (TypeError, ValueError):
        raise ParseError(f"invalid port: {value!r}", raw=raw)
    if not 1 <= port <= 65535:
        raise ParseError(f"port out of range: {port}", raw=raw)
    return port


def _severity(value: Any) -> MessageSeverity:
    try:
        return MessageSeverity(str(value).lower())
    except ValueError:
        return MessageSeverity.INFO


def build_directive(fields: Any, raw: str = "") -> Directive:
    """
    Build a directive from a decoded ``nextCommand`` object.

    Fields not relevant to the command type are ignored.
    """
    if not isinstance(fields, dict):
        raise ParseError("'nextCommand' must be an object", raw=raw)

    kind = fields.get("type")
    if kind is None:
        raise ParseError("'nextCommand' is missing 'type'", raw=raw)

    try:
        directive_type = DirectiveType(kind)
    except ValueError:
        raise ParseError(f"unknown command type: {kind!r}", raw=raw)

    if directive_type is DirectiveType.COMMAND:
        return ShellCommand(cmd=_require_str(fields, "cmd", kind, raw))

    if directive_type is DirectiveType.FILE:
        return FileWrite(
            path=_require_str(fields, "path", kind, raw),
            content=_require_str(fields, "content", kind, raw),
        )

    if directive_type is DirectiveType.MESSAGE:
        return Message(
            text=_require_str(fields, "message", kind, raw),
            severity=_severity(fields.get("messageType") or MessageSeverity.INFO.value),
            title=_optional_str(fields, "title") or DEFAULT_MESSAGE_TITLE,
        )

    return ServerStart(
        cmd=_optional_str(fields, "cmd") or DEFAULT_SERVER_COMMAND,
        port=_port(fields, raw),
        host=_optional_str(fields, "host"),
    )


def _flag(payload: dict[str, Any], key: str) -> bool:
    value = payload.get(key, False)
    if isinstance(value, str):
        return value.strip().lower() == "true"
    return bool(value)


def parse_reply(raw_text: str) -> AgentReply:
    """
    Parse a full model reply.

    Raises:
        ParseError: On missing/unbalanced JSON, undecodable JSON, a missing
            'nextCommand', or missing type-specific fields
    """
    if not raw_text or not raw_text.strip():
        raise ParseError("empty response", raw=raw_text or "")

    candidate = find_json_object(raw_text)
    try:
        payload = json.loads(candidate)
    except json.JSONDecodeError as e:
        raise ParseError(f"invalid JSON ({e.msg})", raw=raw_text, cause=e)

    if not isinstance(payload, dict):
        raise ParseError("top-level value is not an object", raw=raw_text)
    if "nextCommand" not in payload:
        raise ParseError("missing 'nextCommand'", raw=raw_text)

    return AgentReply(
        directive=build_directive(payload["nextCommand"], raw_text),
        reasoning=str(payload.get("reasoning") or ""),
        expectation=str(payload.get("expectation") or ""),
        continue_after=_flag(payload, "continueAfter"),
        is_complete=_flag(payload, "isComplete"),
    )


def extract_directive(raw_text: str) -> Directive:
    """Extract just the directive from a model reply."""
    return parse_reply(raw_text).directive


def describe(directive: Directive) -> str:
    """Short human-readable label for logs."""
    match directive:
        case ShellCommand(cmd=cmd):
            return f"command: {cmd}"
        case FileWrite(path=path):
            return f"file: {path}"
        case Message(text=text):
            return f"message: {text[:80]}"
        case ServerStart(cmd=cmd):
            return f"server: {cmd}"
