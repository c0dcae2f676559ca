"""
The single place where LLM output is turned into Python data.

LLMResponse is the only response shape the rest of the package sees. unwrap_json()
walks a fallback ladder, from strict parsing to regex field extraction, and always
returns a value of the expected container type, empty when nothing could be recovered.
"""

import json
import re
from dataclasses import dataclass
from typing import Any, Dict, List, Literal, Optional, Sequence, Union

from truthcheck.core.logger import get_logger

logger = get_logger(__name__)

Expect = Literal["object", "array"]

_CODE_FENCE = re.compile(r"^```(?:json)?\s*|\s*```$", re.IGNORECASE)
_ARRAY_SPAN = re.compile(r"\[\s*\{[\s\S]*\}\s*\]")
_TRAILING_COMMA = re.compile(r",\s*([\]}])")
_OBJECT_FRAGMENT = re.compile(r"\{[^{}]*(?:\{[^{}]*\}[^{}]*)*\}")
_FIELD_VALUE = r'"{field}"\s*:\s*("(?:[^"\\]|\\.)*"|-?\d+(?:\.\d+)?|true|false|null)'


@dataclass(frozen=True)
class LLMResponse:
    """Raw text from the model, plus the decoded JSON when the provider already parsed it."""

    text: str = ""
    data: Any = None


def _empty(expect: Expect) -> Union[Dict[str, Any], List[Any]]:
    return [] if expect == "array" else {}


def _matches(value: Any, expect: Expect) -> bool:
    return isinstance(value, list) if expect == "array" else isinstance(value, dict)


def _coerce(value: Any, expect: Expect) -> Optional[Union[Dict[str, Any], List[Any]]]:
    if _matches(value, expect):
        return value
    # json_object mode wraps arrays: {"claims": [...]}
    if expect == "array" and isinstance(value, dict):
        lists = [v for v in value.values() if isinstance(v, list)]
        if len(lists) == 1:
            return lists[0]
    if expect == "object" and isinstance(value, list) and value and isinstance(value[0], dict):
        return value[0]
    return None


def _loads(text: str) -> Any:
    try:
        return json.loads(text)
    except (ValueError, TypeError):
        return None


def _close_open_brackets(text: str) -> Optional[str]:
    stack: List[str] = []
    in_str = False
    escaped = False
    for ch in text:
        if in_str:
            if escaped:
                escaped = False
            elif ch == "\\":
                escaped = True
            elif ch == '"':
                in_str = False
            continue
        if ch == '"':
            in_str = True
        elif ch == "{":
            stack.append("}")
        elif ch == "[":
            stack.append("]")
        elif ch in "}]" and stack:
            stack.pop()
    if in_str:
        return None
    return text + "".join(reversed(stack))


# -------------------------------------------------------------------------
# Ladder rungs
# -------------------------------------------------------------------------


def _strict(text: str, expect: Expect) -> Any:
    return _coerce(_loads(_CODE_FENCE.sub("", text.strip())), expect)


def _span(text: str, expect: Expect) -> Any:
    if expect == "array":
        m = _ARRAY_SPAN.search(text)
        candidate = m.group(0) if m else None
    else:
        start, end = text.find("{"), text.rfind("}")
        candidate = text[start : end + 1] if 0 <= start < end else None
    if not candidate:
        return None
    return _coerce(_loads(candidate), expect) or _coerce(_loads(_TRAILING_COMMA.sub(r"\1", candidate)), expect)


def _repair_truncated(text: str, expect: Expect) -> Any:
    start = text.find("[" if expect == "array" else "{")
    if start < 0:
        return None
    body = text[start:]

    cuts = []
    last_brace = body.rfind("}")
    if last_brace > 0:
        cuts.append(body[: last_brace + 1])
    last_comma = body.rfind(",")
    if last_comma > 0:
        cuts.append(body[:last_comma])

    for cut in cuts:
        closed = _close_open_brackets(_TRAILING_COMMA.sub(r"\1", cut).rstrip().rstrip(","))
        if closed is None:
            continue
        value = _coerce(_loads(_TRAILING_COMMA.sub(r"\1", closed)), expect)
        if value:
            return value
    return None


def _fragments(text: str, expect: Expect, fields: Sequence[str]) -> Any:
    objects = []
    for frag in _OBJECT_FRAGMENT.findall(text):
        obj = _loads(_TRAILING_COMMA.sub(r"\1", frag))
        if not isinstance(obj, dict):
            continue
        if fields and fields[0] not in obj:
            continue
        objects.append(obj)
    if not objects:
        return None
    return objects if expect == "array" else objects[0]


def _field_regex(text: str, expect: Expect, fields: Sequence[str]) -> Any:
    if not fields:
        return None

    if expect == "array":
        key = fields[0]
        values = [_loads(m) for m in re.findall(_FIELD_VALUE.format(field=re.escape(key)), text)]
        items = [{key: v} for v in values if v not in (None, "")]
        return items or None

    obj: Dict[str, Any] = {}
    for field in fields:
        m = re.search(_FIELD_VALUE.format(field=re.escape(field)), text)
        if m:
            obj[field] = _loads(m.group(1))
    return obj or None


def parse_json_loose(
    text: str, expect: Expect = "object", fields: Sequence[str] = ()
) -> Union[Dict[str, Any], List[Any]]:
    """
    Parse possibly malformed model output.

    Args:
        text: Raw model output
        expect: Container type the caller needs
        fields: Field names worth recovering by regex; the first one identifies array items

    Returns:
        Parsed dict/list, or an empty one when every strategy fails
    """
    if not isinstance(text, str) or not text.strip():
        return _empty(expect)

    ladder = (
        ("strict", lambda: _strict(text, expect)),
        ("span", lambda: _span(text, expect)),
        ("truncation_repair", lambda: _repair_truncated(text, expect)),
        ("fragments", lambda: _fragments(text, expect, fields)),
        ("field_regex", lambda: _field_regex(text, expect, fields)),
    )
    for name, rung in ladder:
        value = rung()
        if value is not None:
            if name != "strict":
                logger.debug(f"[Parsing] Recovered {expect} via {name}")
            return value

    logger.warning(f"[Parsing] Could not recover {expect} from model output ({len(text)} chars)")
    return _empty(expect)


def unwrap_json(
    response: Optional[LLMResponse], expect: Expect = "object", fields: Sequence[str] = ()
) -> Union[Dict[str, Any], List[Any]]:
    """Return the structured payload of a response, parsing its text only when needed."""
    if response is None:
        return _empty(expect)
    if response.data is not None:
        value = _coerce(response.data, expect)
        if value is not None:
            return value
    return parse_json_loose(response.text, expect, fields)
