"""Canonical institution keys and store match patterns.

`NameCanonicalizer.canonical_key` is what aggregation buckets are keyed on.
`NameCanonicalizer.match_patterns` produces case-insensitive,
whitespace-tolerant exact-match regexes for every known variant of a name,
so stored documents never need rewriting when an alias is added.
"""

from __future__ import annotations

import logging
import re
from typing import Iterable

from optometry_reports.canonical.aliases import AliasTable, load_alias_table, normalize, sanitize

log = logging.getLogger(__name__)


def exact_pattern(name: str) -> re.Pattern[str]:
    """Return a case-insensitive regex matching `name` with any whitespace padding.

    Internal single spaces in the sanitized name accept any run of
    whitespace; regex metacharacters in the name are escaped.

    Args:
        name: Raw or sanitized display name.
    """
    parts = [re.escape(p) for p in sanitize(name).split(" ")]
    return re.compile(r"^\s*" + r"\s+".join(parts) + r"\s*$", re.IGNORECASE)


class NameCanonicalizer:
    """Resolve institution name variants to one identity.

    Args:
        aliases: Alias table; defaults to the built-in table.
        coordinator_prefixes: Lowercase name prefixes that mark district
            coordinator pseudo-institutions (e.g. "DOC Kozhikode").
    """

    def __init__(
        self,
        aliases: AliasTable | None = None,
        coordinator_prefixes: Iterable[str] = ("doc", "dc"),
    ) -> None:
        self.aliases = aliases if aliases is not None else load_alias_table()
        self.coordinator_prefixes = tuple(p.strip().lower() for p in coordinator_prefixes if p.strip())

    def canonical_key(self, raw_name: object) -> str:
        """Return the normalized canonical key for a raw institution name."""
        label = self.aliases.label_for(raw_name)
        if label is not None:
            return normalize(label)
        return normalize(raw_name)

    def display_name(self, raw_name: object) -> str:
        """Return the canonical label for known names, else the sanitized input."""
        label = self.aliases.label_for(raw_name)
        return label if label is not None else sanitize(raw_name)

    def match_patterns(self, raw_name: object) -> list[re.Pattern[str]]:
        """Return exact-match patterns covering every known variant of `raw_name`.

        Unregistered names degrade to a single pattern for the sanitized
        input.
        """
        label = self.aliases.label_for(raw_name)
        if label is None:
            return [exact_pattern(sanitize(raw_name))]

        seen: set[str] = set()
        patterns: list[re.Pattern[str]] = []
        for variant in self.aliases.variants(label):
            key = normalize(variant)
            if key in seen:
                continue
            seen.add(key)
            patterns.append(exact_pattern(variant))
        return patterns

    def same_institution(self, a: object, b: object) -> bool:
        return self.canonical_key(a) == self.canonical_key(b)

    def is_coordinator(self, raw_name: object) -> bool:
        """True for district coordinator pseudo-institutions ("DOC <district>", "DC ...")."""
        key = normalize(raw_name)
        return any(key == p or key.startswith(p + " ") for p in self.coordinator_prefixes)
