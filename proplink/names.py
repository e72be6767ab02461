"""Identifier allocation and registry key derivation."""

from __future__ import annotations

import keyword
import re
from collections import defaultdict
from typing import Dict, Iterable, List, Set

_CAMEL_BOUNDARY = re.compile(r"[A-Z]")
_UNSAFE_CHARS = re.compile(r"[^0-9A-Za-z_]")


class NameAllocator:
    """Hands out fresh identifiers, one counter per prefix.

    An allocator belongs to a single link run so repeated runs in the same
    process produce the same names.
    """

    def __init__(self, reserved: Iterable[str] = ()) -> None:
        self._counters: Dict[str, int] = defaultdict(int)
        self._taken: Set[str] = set(reserved)

    def reserve(self, name: str) -> None:
        self._taken.add(name)

    def fresh(self, prefix: str) -> str:
        """Return ``<prefix>_<n>`` for the next unused ``n``."""
        prefix = sanitize_identifier(prefix)
        while True:
            index = self._counters[prefix]
            self._counters[prefix] = index + 1
            candidate = f"{prefix}_{index}"
            if candidate not in self._taken:
                self._taken.add(candidate)
                return candidate


def sanitize_identifier(text: str) -> str:
    """Strip characters that cannot appear in a Python identifier."""
    cleaned = _UNSAFE_CHARS.sub("", text)
    if not cleaned:
        return "_"
    if cleaned[0].isdigit():
        cleaned = f"_{cleaned}"
    if keyword.iskeyword(cleaned):
        cleaned = f"{cleaned}_"
    return cleaned


def camel_to_dashed(name: str) -> str:
    """Convert ``backgroundColor`` to ``background-color``."""
    return _CAMEL_BOUNDARY.sub(lambda match: f"-{match.group(0)}", name).lower()


def registry_keys(name: str, vendor_prefixes: Iterable[str] = ("webkit",)) -> List[str]:
    """Return the registry keys a unit named ``name`` publishes.

    The primary key is the unit name itself. The dashed spelling is added
    when it differs, with an extra leading ``-`` for vendor-prefixed names
    (``webkitTransform`` -> ``-webkit-transform``).
    """
    dashed = camel_to_dashed(name)
    if any(dashed.startswith(f"{prefix}-") for prefix in vendor_prefixes):
        dashed = f"-{dashed}"
    keys = [name]
    if dashed != name:
        keys.append(dashed)
    return keys


__all__ = ["NameAllocator", "camel_to_dashed", "registry_keys", "sanitize_identifier"]
