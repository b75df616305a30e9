"""Fuzzy header-to-field resolution for arbitrary CSV layouts.

Every (header, synonym) pair is scored: exact match 1.0, substring containment
0.9, otherwise ``1 - levenshtein / max_len``. Claims scoring at least
``SIMILARITY_THRESHOLD`` are granted strongest first, each header going to one
field only; a field that loses its best header falls back to its next-best
free one. Ties go to the earlier header, then to the earlier-declared field.
"""
from __future__ import annotations

from dataclasses import dataclass
import re
from typing import Mapping, Sequence


SIMILARITY_THRESHOLD = 0.7
CONTAINMENT_SCORE = 0.9
# single letters such as "l" or "t" would otherwise be "contained" in most headers
MIN_CONTAINMENT_LENGTH = 3

_NON_ALNUM = re.compile(r"[^a-z0-9]")


class StructuralInputError(ValueError):
    """Input cannot be processed at all (empty file, missing mandatory columns)."""


def normalize_header(raw_header: object) -> str:
    return _NON_ALNUM.sub("_", str(raw_header or "").strip().lower())


def levenshtein(a: str, b: str) -> int:
    if a == b:
        return 0
    if not a:
        return len(b)
    if not b:
        return len(a)
    previous = list(range(len(b) + 1))
    for i, ca in enumerate(a, start=1):
        current = [i]
        for j, cb in enumerate(b, start=1):
            if ca == cb:
                current.append(previous[j - 1])
            else:
                current.append(min(previous[j - 1], previous[j], current[j - 1]) + 1)
        previous = current
    return previous[-1]


def similarity(header: str, synonym: str) -> float:
    if header == synonym:
        return 1.0
    if not header or not synonym:
        return 0.0
    shorter = min(len(header), len(synonym))
    if shorter >= MIN_CONTAINMENT_LENGTH and (header in synonym or synonym in header):
        return CONTAINMENT_SCORE
    return 1.0 - levenshtein(header, synonym) / max(len(header), len(synonym))


@dataclass(frozen=True)
class ColumnMapping:
    headers: tuple[str, ...]
    indexes: dict[str, int]
    scores: dict[str, float]

    def has(self, field_name: str) -> bool:
        return field_name in self.indexes

    def value(self, row: Sequence[object], field_name: str) -> str | None:
        """Raw cell text for ``field_name``; None when unmapped or the row is short."""
        idx = self.indexes.get(field_name)
        if idx is None or idx >= len(row):
            return None
        cell = row[idx]
        if cell is None:
            return None
        return str(cell)

    def unmapped(self, field_names: Sequence[str]) -> list[str]:
        return [name for name in field_names if name not in self.indexes]

    def as_dict(self) -> dict[str, str]:
        return {name: self.headers[idx] for name, idx in self.indexes.items()}


def map_columns(
    headers: Sequence[object],
    synonyms: Mapping[str, Sequence[str]],
    threshold: float = SIMILARITY_THRESHOLD,
) -> ColumnMapping:
    normalized = [normalize_header(h) for h in headers]
    claims: list[tuple[float, int, int, str]] = []
    for field_order, (field_name, candidates) in enumerate(synonyms.items()):
        targets = [normalize_header(candidate) for candidate in candidates]
        for idx, header in enumerate(normalized):
            score = max((similarity(header, target) for target in targets), default=0.0)
            if score >= threshold:
                claims.append((score, idx, field_order, field_name))

    # strongest claim first, then earliest header, then field declaration order
    claims.sort(key=lambda claim: (-claim[0], claim[1], claim[2]))
    indexes: dict[str, int] = {}
    scores: dict[str, float] = {}
    taken: set[int] = set()
    for score, idx, _, field_name in claims:
        if field_name in indexes or idx in taken:
            continue
        indexes[field_name] = idx
        scores[field_name] = score
        taken.add(idx)

    ordered = {name: indexes[name] for name in synonyms if name in indexes}
    return ColumnMapping(tuple(str(h) for h in headers), ordered, scores)


def require_fields(
    mapping: ColumnMapping,
    required: Sequence[str | tuple[str, ...]],
    label: str = "input",
) -> None:
    """Raise ``StructuralInputError`` when a mandatory field (or one-of group) is unmapped."""
    missing: list[str] = []
    for requirement in required:
        if isinstance(requirement, tuple):
            if not any(mapping.has(name) for name in requirement):
                missing.append(" or ".join(requirement))
        elif not mapping.has(requirement):
            missing.append(requirement)
    if missing:
        raise StructuralInputError(f"Missing required {label} columns: {', '.join(missing)}")
