"""
Authorization group extraction from a decoded Access-Accept.

Sources, scanned in this order:
  - Filter-Id (11): one group name per attribute instance
  - Class (25): an LDAP DN yields its first ``CN=`` value; a ``group:``
    prefix is stripped; any other printable value is used verbatim.
    Binary Class values (the opaque NPS session cookie) are ignored.
  - Vendor-Specific: every string-valued vendor attribute
  - Reply-Message (18): only values prefixed with ``Group:``

Names are trimmed, empty names dropped and duplicates removed keeping the
first occurrence.
"""

import re
from collections.abc import Iterable, Mapping
from typing import Any

from nps_auth.utils.logger import get_logger

logger = get_logger("nps_auth.radius.groups", component="radius")

_CN_RE = re.compile(r"(?:^|,)\s*CN\s*=\s*((?:\\.|[^,])+)", re.IGNORECASE)
_GROUP_PREFIX = "group:"


def _class_group(value: Any) -> str | None:
    if not isinstance(value, str):
        return None
    text = value.strip()
    if text.lower().startswith(_GROUP_PREFIX):
        return text[len(_GROUP_PREFIX) :]
    match = _CN_RE.search(text)
    if match and "=" in text.split(",", 1)[0]:
        return match.group(1).replace("\\", "")
    return text


def _reply_message_group(value: Any) -> str | None:
    if isinstance(value, str) and value.strip().lower().startswith(_GROUP_PREFIX):
        return value.strip()[len(_GROUP_PREFIX) :]
    return None


def _candidates(attributes: Mapping[str, list[Any]]) -> Iterable[Any]:
    yield from attributes.get("Filter-Id", [])
    for value in attributes.get("Class", []):
        yield _class_group(value)
    for vsa in attributes.get("Vendor-Specific", []):
        value = vsa.get("value") if isinstance(vsa, Mapping) else None
        if isinstance(value, str):
            yield value
    for value in attributes.get("Reply-Message", []):
        yield _reply_message_group(value)


def extract_groups(attributes: Mapping[str, list[Any]] | None) -> list[str]:
    """Return the ordered, de-duplicated group names found in ``attributes``."""
    if not attributes:
        return []
    groups: list[str] = []
    seen: set[str] = set()
    for candidate in _candidates(attributes):
        if not isinstance(candidate, str):
            continue
        name = candidate.strip()
        if not name or name in seen:
            continue
        seen.add(name)
        groups.append(name)
    if groups:
        logger.debug(
            "Extracted RADIUS groups",
            event="radius.groups.extracted",
            groups=groups,
        )
    return groups


__all__ = ["extract_groups"]
