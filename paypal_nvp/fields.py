"""
Name-Value-Pair wire format helpers.

NVP requests and responses are form-encoded (`KEY=value&KEY=value`).
Repeated data comes back as indexed list fields such as `L_LONGMESSAGE0`,
`L_LONGMESSAGE1`; the helpers here group those by their numeric suffix.
"""

import re
from collections.abc import Iterable, Mapping
from typing import Any
from urllib.parse import parse_qsl, urlencode

ERROR_FIELDS = ("SEVERITYCODE", "ERRORCODE", "SHORTMESSAGE", "LONGMESSAGE")

Params = Mapping[str, Any] | Iterable[tuple[str, Any]]


def as_pairs(params: Params) -> list[tuple[str, Any]]:
    if isinstance(params, Mapping):
        return list(params.items())
    return list(params)


def encode_nvp(params: Params, encoding: str = "utf-8") -> str:
    """Form-encode parameters, keeping their order and dropping `None` values."""
    return urlencode(
        [(name, str(value)) for name, value in as_pairs(params) if value is not None],
        encoding=encoding,
    )


def decode_nvp(body: str) -> dict[str, str]:
    """Decode a form-encoded response body; the last occurrence of a key wins."""
    return dict(parse_qsl(body.strip(), keep_blank_values=True))


def _index_pattern(name: str) -> re.Pattern:
    return re.compile(rf"^L_{re.escape(name)}(\d+)$")


def indexed_values(fields: Mapping[str, str], name: str) -> dict[int, str]:
    """Collect `L_<name><n>` fields into `{n: value}`, ordered by index."""
    pattern = _index_pattern(name)
    found = {}
    for key, value in fields.items():
        match = pattern.match(key)
        if match:
            found[int(match.group(1))] = value
    return dict(sorted(found.items()))


def group_indexed(
    fields: Mapping[str, str], names: Iterable[str]
) -> dict[int, dict[str, str]]:
    """
    Group several indexed list fields by their numeric suffix.

    Example:
        >>> group_indexed({"L_A0": "x", "L_B0": "y", "L_A3": "z"}, ["A", "B"])
        {0: {'A': 'x', 'B': 'y'}, 3: {'A': 'z'}}
    """
    grouped: dict[int, dict[str, str]] = {}
    for name in names:
        for index, value in indexed_values(fields, name).items():
            grouped.setdefault(index, {})[name] = value
    return dict(sorted(grouped.items()))


def format_error_entry(entry: Mapping[str, str]) -> str:
    """Render one indexed error as `severity code short. long.`"""
    text = ""
    if "SEVERITYCODE" in entry:
        text += entry["SEVERITYCODE"] + " "
    if "ERRORCODE" in entry:
        text += entry["ERRORCODE"] + " "
    if "SHORTMESSAGE" in entry:
        text += entry["SHORTMESSAGE"] + ". "
    if "LONGMESSAGE" in entry:
        text += entry["LONGMESSAGE"] + ". "
    return text.strip()


def extract_errors(fields: Mapping[str, str]) -> list[str]:
    """One error entry per `L_LONGMESSAGEn` present in the response."""
    grouped = group_indexed(fields, ERROR_FIELDS)
    return [
        format_error_entry(entry)
        for entry in grouped.values()
        if "LONGMESSAGE" in entry
    ]
