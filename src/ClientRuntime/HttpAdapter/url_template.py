"""RFC 6570 URI template expansion (levels 1-4, without prefix truncation of mappings).

Generated request builders describe their endpoints with templates such as
``{+baseurl}/users/{user%2Did}/messages{?top,skip,select}``.  This module turns
such a template and a mapping of already-normalised values into a concrete URL.

Undefined values (``None``, empty sequences, empty mappings) are skipped, so a
query parameter without a value never appears in the expanded query string.
"""

from __future__ import annotations

import re
from typing import Any, Dict, List, Mapping, NamedTuple, Optional, Sequence, Tuple
from urllib.parse import quote

__all__ = ["expand_template", "template_variables"]

_EXPRESSION = re.compile(r"\{([^{}]+)\}")

_UNRESERVED = "-._~"
_RESERVED = ":/?#[]@!$&'()*+,;=%"


class _Operator(NamedTuple):
    first: str
    sep: str
    named: bool
    ifemp: str
    allow_reserved: bool


_OPERATORS: Dict[str, _Operator] = {
    "": _Operator("", ",", False, "", False),
    "+": _Operator("", ",", False, "", True),
    "#": _Operator("#", ",", False, "", True),
    ".": _Operator(".", ".", False, "", False),
    "/": _Operator("/", "/", False, "", False),
    ";": _Operator(";", ";", True, "", False),
    "?": _Operator("?", "&", True, "=", False),
    "&": _Operator("&", "&", True, "=", False),
}


def _encode(value: str, allow_reserved: bool) -> str:
    safe = _UNRESERVED + (_RESERVED if allow_reserved else "")
    return quote(value, safe=safe)


def _decode_name(name: str) -> str:
    # Template variable names may carry pct-encoded characters ({user%2Did}).
    return re.sub(r"%([0-9A-Fa-f]{2})", lambda m: chr(int(m.group(1), 16)), name)


def _parse_varspec(spec: str) -> Tuple[str, bool, Optional[int]]:
    explode = spec.endswith("*")
    if explode:
        spec = spec[:-1]
    prefix: Optional[int] = None
    if ":" in spec:
        spec, raw_prefix = spec.split(":", 1)
        prefix = int(raw_prefix)
    return spec, explode, prefix


def _is_undefined(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, (list, tuple)) and not value:
        return True
    if isinstance(value, Mapping) and not value:
        return True
    return False


def _expand_varspec(op: _Operator, spec: str, variables: Mapping[str, Any]) -> Optional[str]:
    name, explode, prefix = _parse_varspec(spec)
    lookup = _decode_name(name)
    value = variables.get(lookup, variables.get(name))
    if _is_undefined(value):
        return None

    if isinstance(value, Mapping):
        pairs = [(str(k), str(v)) for k, v in value.items() if v is not None]
        if explode:
            return op.sep.join(
                f"{_encode(k, op.allow_reserved)}={_encode(v, op.allow_reserved)}" for k, v in pairs
            )
        joined = ",".join(
            f"{_encode(k, op.allow_reserved)},{_encode(v, op.allow_reserved)}" for k, v in pairs
        )
        return f"{name}={joined}" if op.named else joined

    if isinstance(value, (list, tuple)):
        items = [str(item) for item in value if item is not None]
        if explode:
            if op.named:
                return op.sep.join(f"{name}={_encode(item, op.allow_reserved)}" for item in items)
            return op.sep.join(_encode(item, op.allow_reserved) for item in items)
        joined = ",".join(_encode(item, op.allow_reserved) for item in items)
        return f"{name}={joined}" if op.named else joined

    text = str(value)
    if prefix is not None:
        text = text[:prefix]
    encoded = _encode(text, op.allow_reserved)
    if op.named:
        return f"{name}{op.ifemp}" if not encoded else f"{name}={encoded}"
    return encoded


def _expand_expression(expression: str, variables: Mapping[str, Any]) -> str:
    operator_char = expression[0] if expression[0] in "+#./;?&" else ""
    op = _OPERATORS[operator_char]
    body = expression[len(operator_char):]
    parts: List[str] = []
    for spec in body.split(","):
        spec = spec.strip()
        if not spec:
            continue
        expanded = _expand_varspec(op, spec, variables)
        if expanded is not None:
            parts.append(expanded)
    if not parts:
        return ""
    return op.first + op.sep.join(parts)


def expand_template(template: str, variables: Mapping[str, Any]) -> str:
    """Expand ``template`` with ``variables``.

    Examples:
        >>> expand_template("http://localhost/me{?top,skip,select}", {"select": ["id", "displayName"]})
        'http://localhost/me?select=id,displayName'
        >>> expand_template("{+baseurl}/users/{id}", {"baseurl": "https://api.example.com/v1", "id": "a b"})
        'https://api.example.com/v1/users/a%20b'
    """
    return _EXPRESSION.sub(lambda match: _expand_expression(match.group(1), variables), template)


def template_variables(template: str) -> Sequence[str]:
    """Return the variable names referenced by ``template`` in order of appearance."""
    names: List[str] = []
    for match in _EXPRESSION.finditer(template):
        expression = match.group(1)
        body = expression[1:] if expression and expression[0] in "+#./;?&" else expression
        for spec in body.split(","):
            if spec.strip():
                names.append(_decode_name(_parse_varspec(spec.strip())[0]))
    return names
