"""Recover command invocations from free-form model output.

The model is asked to answer with tags such as::

    <read-file>/etc/hosts</read-file>
    <save-memory key="hosts">the hosts file maps localhost</save-memory>

but nothing guarantees well formed markup, so :func:`parse` is a single tolerant
left-to-right scan: every malformed fragment is skipped, never reported, and the
rest of the response is still parsed.
"""

from __future__ import annotations

import re
from collections.abc import Mapping
from dataclasses import dataclass, field
from types import MappingProxyType

# Permissive on purpose: any run without '=' is a key, any quoted run without '"' is a value.
_ATTRIBUTE_RE = re.compile(r'([^=]+)="([^"]*)"', re.MULTILINE)


def _render(action: str, attributes: Mapping[str, str] | None, payload: str | None) -> str:
    xml = f"<{action}"
    if attributes is not None:
        # a bare trailing space keeps an empty mapping distinct from no attributes
        if not attributes:
            xml += " "
        for key in sorted(attributes):
            xml += f' {key}="{attributes[key]}"'
    return xml + f">{payload or ''}</{action}>"


@dataclass(frozen=True)
class Invocation:
    """One parsed command: action name, optional attributes, optional payload.

    Equality and hashing only look at the canonical form, which is also what the
    driver uses to detect a model repeating itself.
    """

    action: str
    attributes: Mapping[str, str] | None = field(default=None, compare=False)
    payload: str | None = field(default=None, compare=False)
    canonical: str = field(init=False)

    def __post_init__(self) -> None:
        if self.attributes is not None:
            object.__setattr__(self, "attributes", MappingProxyType(dict(self.attributes)))
        object.__setattr__(
            self, "canonical", _render(self.action, self.attributes, self.payload)
        )

    def __str__(self) -> str:
        return self.canonical


def _parse_attributes(raw: str) -> dict[str, str]:
    attributes: dict[str, str] = {}
    for match in _ATTRIBUTE_RE.finditer(raw):
        key = match.group(1).strip()
        if key:
            attributes[key] = match.group(2).strip()
    return attributes


def parse(text: str) -> list[Invocation]:
    """Parse model output into the ordered list of invocations it contains.

    Never raises. The result holds at most one invocation per ``<`` in ``text``.

    - A tag name ends at the first ``>`` or space.
    - A space before ``>`` means attributes were supplied: the result has an
      attribute mapping even when no ``key="value"`` pair matched.
    - The closing ``</name>`` is searched after the opening tag. When missing the
      candidate is dropped and scanning resumes one character past its ``<``.
    - The trimmed text between the tags is the payload. Empty text, or text that
      starts with ``<`` (nested markup, unsupported), gives no payload.
    """
    invocations: list[Invocation] = []
    if not text:
        return invocations

    size = len(text)
    current = 0
    while current < size:
        start = text.find("<", current)
        if start < 0:
            break

        invocation, consumed = _parse_tag_at(text, start)
        if invocation is None:
            current = start + 1
            continue

        invocations.append(invocation)
        current = consumed

    return invocations


def _parse_tag_at(text: str, start: int) -> tuple[Invocation | None, int]:
    """Try to read one complete tag starting at ``text[start] == '<'``.

    Returns the invocation and the index right after its closing tag, or
    ``(None, start)`` when the fragment is malformed.
    """
    gt = text.find(">", start + 1)
    if gt < 0:
        return None, start

    space = text.find(" ", start + 1, gt)
    name_end = space if space >= 0 else gt
    name = text[start + 1:name_end]
    if not name:
        return None, start

    closing = f"</{name}>"
    closing_idx = text.find(closing, gt + 1)
    if closing_idx < 0:
        return None, start

    attributes = _parse_attributes(text[space + 1:gt]) if space >= 0 else None

    body = text[gt + 1:closing_idx].strip()
    payload = body if body and not body.startswith("<") else None

    return Invocation(name, attributes, payload), closing_idx + len(closing)
