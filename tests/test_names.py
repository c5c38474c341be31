from __future__ import annotations

import json
from pathlib import Path

import pytest

from optometry_reports.canonical.aliases import AliasTable, load_alias_table
from optometry_reports.canonical.names import NameCanonicalizer, exact_pattern


def test_canonical_key_collapses_whitespace_and_case() -> None:
    canon = NameCanonicalizer()
    assert canon.canonical_key("  CHC   Mukkam ") == "chc mukkam"


def test_aliases_share_canonical_key() -> None:
    canon = NameCanonicalizer()
    assert canon.canonical_key("BFHC Narikkuni") == "chc narikkuni"
    assert canon.canonical_key("chc  narikkuni") == "chc narikkuni"
    assert canon.canonical_key("THQH Koyilandy") == "taluk hospital koyilandy"
    assert canon.display_name("bfhc narikkuni") == "CHC Narikkuni"
    assert canon.same_institution("BFHC Olavanna", "CHC Olavanna")


def test_match_patterns_cover_every_alias() -> None:
    canon = NameCanonicalizer()
    pats = canon.match_patterns("bfhc narikkuni")
    assert len(pats) == 2
    for stored in ("CHC Narikkuni", " bfhc   NARIKKUNI ", "chc narikkuni"):
        assert any(p.match(stored) for p in pats)
    assert not any(p.match("CHC Narikkuni East") for p in pats)


def test_unknown_name_degrades_to_single_pattern() -> None:
    canon = NameCanonicalizer()
    pats = canon.match_patterns("Dist. Hospital,  Kannur")
    assert len(pats) == 1
    assert pats[0].match("dist. hospital, kannur")
    # the dot is literal, not a wildcard
    assert not pats[0].match("DistX Hospital, Kannur")


def test_exact_pattern_is_anchored() -> None:
    p = exact_pattern("CHC Mukkam")
    assert p.match("  chc\tmukkam  ")
    assert not p.match("CHC Mukkam Road")
    assert not p.match("Old CHC Mukkam")


def test_coordinator_prefixes() -> None:
    canon = NameCanonicalizer()
    assert canon.is_coordinator("DOC Kozhikode")
    assert canon.is_coordinator("dc  Kannur")
    assert not canon.is_coordinator("Docks Hospital")
    assert not canon.is_coordinator("CHC Mukkam")


def test_custom_alias_table_is_injected() -> None:
    table = AliasTable.from_mapping({"District Hospital Kannur": ["Dist. Hospital, Kannur"]})
    canon = NameCanonicalizer(table)
    assert canon.canonical_key("dist. hospital,  kannur") == "district hospital kannur"
    # default aliases are not implied
    assert canon.canonical_key("BFHC Narikkuni") == "bfhc narikkuni"


def test_conflicting_alias_rejected() -> None:
    with pytest.raises(ValueError):
        AliasTable.from_mapping({"CHC A": ["Old Name"], "CHC B": ["old  name"]})


def test_load_alias_table_from_json(tmp_path: Path) -> None:
    path = tmp_path / "aliases.json"
    path.write_text(json.dumps({"CHC Melady": ["PHC Melady"]}), encoding="utf-8")
    table = load_alias_table(path)
    assert table.label_for("phc melady") == "CHC Melady"
    assert len(table) == 1


def test_load_alias_table_rejects_bad_shape(tmp_path: Path) -> None:
    path = tmp_path / "aliases.json"
    path.write_text(json.dumps({"CHC Melady": "PHC Melady"}), encoding="utf-8")
    with pytest.raises(ValueError):
        load_alias_table(path)
