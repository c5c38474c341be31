"""Alias table for institution renames.

An `AliasTable` maps a canonical display label to the historical names it
replaces. The default table covers the Kozhikode facility renames; a
deployment can replace it with a JSON file of the same shape:

    {"CHC Narikkuni": ["BFHC Narikkuni"], ...}
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Mapping, Iterable

log = logging.getLogger(__name__)

DEFAULT_ALIASES: dict[str, list[str]] = {
    "CHC Narikkuni": ["BFHC Narikkuni"],
    "CHC Olavanna": ["BFHC Olavanna"],
    "CHC Thiruvangoor": ["BFHC Thiruvangoor"],
    "Taluk Hospital Koyilandy": ["THQH Koyilandy"],
}


def sanitize(name: object) -> str:
    """Collapse whitespace runs to single spaces and trim."""
    return " ".join(str(name or "").split())


def normalize(name: object) -> str:
    """Sanitize and lowercase; the form used for all identity comparisons."""
    return sanitize(name).lower()


@dataclass(frozen=True)
class AliasTable:
    """Canonical label -> known aliases, with a reverse index on normalized names.

    Attributes:
        groups: Canonical display label mapped to its alias display names.
    """
    groups: Mapping[str, tuple[str, ...]]
    _index: dict[str, str] = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        index: dict[str, str] = {}
        for label, aliases in self.groups.items():
            for variant in (label, *aliases):
                key = normalize(variant)
                other = index.get(key)
                if other is not None and other != label:
                    raise ValueError(
                        f"alias {variant!r} registered for both {other!r} and {label!r}"
                    )
                index[key] = label
        object.__setattr__(self, "_index", index)

    @classmethod
    def from_mapping(cls, mapping: Mapping[str, Iterable[str]]) -> "AliasTable":
        groups = {sanitize(label): tuple(sanitize(a) for a in aliases) for label, aliases in mapping.items()}
        return cls(groups=groups)

    def label_for(self, name: object) -> str | None:
        """Return the canonical label for a name, or None if it is unregistered."""
        return self._index.get(normalize(name))

    def variants(self, label: str) -> tuple[str, ...]:
        """Return the label followed by all of its registered aliases."""
        return (label, *self.groups.get(label, ()))

    def __len__(self) -> int:
        return len(self.groups)


def load_alias_table(path: Path | None = None) -> AliasTable:
    """Build an AliasTable from a JSON file, or the default table when no path is given.

    Args:
        path: Optional JSON file of shape `{label: [alias, ...]}`.

    Raises:
        ValueError: if the file is not a JSON object of string lists, or an
            alias is registered under two labels.
    """
    if path is None:
        return AliasTable.from_mapping(DEFAULT_ALIASES)

    data = json.loads(path.read_text(encoding="utf-8"))
    if not isinstance(data, dict) or not all(
        isinstance(v, list) and all(isinstance(a, str) for a in v) for v in data.values()
    ):
        raise ValueError(f"{path}: expected a JSON object mapping labels to lists of names")

    table = AliasTable.from_mapping(data)
    log.info("Loaded %d institution alias groups from %s", len(table), path)
    return table
