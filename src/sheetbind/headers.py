"""Header reconciliation: match header cells to target field names."""

from __future__ import annotations

import logging
import re
from collections.abc import Mapping, Sequence

from rapidfuzz import fuzz, utils

logger = logging.getLogger(__name__)

ColumnMap = dict[int, str]

DEFAULT_MATCHING_PERCENTAGE = 80

_WHITESPACE_RE = re.compile(r"\s+")


def normalize_header(text: str) -> str:
    """Lower-case, strip punctuation and collapse runs of whitespace."""
    return _WHITESPACE_RE.sub(" ", utils.default_process(text)).strip()


def similarity(field_name: str, header_text: str) -> float:
    """Partial-ratio score (0-100) between a field name and a header cell."""
    return fuzz.partial_ratio(normalize_header(field_name), normalize_header(header_text))


def reconcile_headers(
    header_cells: Sequence[str | None],
    field_names: Sequence[str],
    *,
    aliases: Mapping[str, str] | None = None,
    matching_percentage: int = DEFAULT_MATCHING_PERCENTAGE,
    passthrough: bool = True,
) -> ColumnMap:
    """Build the column-index → field-name map for one header row.

    *header_cells* holds the header row text indexed by column. Cells equal
    to a field's alias are claimed first. The remaining fields then take, in
    declaration order, their best unclaimed cell scoring at or above
    *matching_percentage* (leftmost wins ties). Unmatched fields are
    left out. With *passthrough*, leftover non-blank cells are mapped to
    their own trimmed text.
    """
    aliases = aliases or {}
    pool: dict[int, str] = {
        idx: text.strip()
        for idx, text in enumerate(header_cells)
        if text is not None and text.strip()
    }
    columns: ColumnMap = {}

    # Exact aliases reserve their cells before any field is scored.
    for name in field_names:
        alias = aliases.get(name)
        if alias is None:
            continue
        matched = next((idx for idx, text in pool.items() if text == alias), None)
        if matched is not None:
            logger.debug("Field %r matched alias %r at column %d", name, alias, matched)
            columns[matched] = name
            del pool[matched]

    for name in field_names:
        if name in columns.values():
            continue
        chosen: int | None = None
        best_score = -1.0
        for idx, text in pool.items():
            score = similarity(name, text)
            if score > best_score:
                best_score, chosen = score, idx
        if chosen is None:
            continue
        if best_score < matching_percentage:
            logger.debug(
                "Field %r unmatched (best %r scored %.1f < %d)",
                name, pool[chosen], best_score, matching_percentage,
            )
            continue
        logger.debug(
            "Field %r matched %r at column %d (score %.1f)",
            name, pool[chosen], chosen, best_score,
        )
        columns[chosen] = name
        del pool[chosen]

    if passthrough:
        taken = set(columns.values())
        for idx, text in pool.items():
            if text in taken:
                logger.warning("Ignoring duplicate header %r at column %d", text, idx)
                continue
            columns[idx] = text
            taken.add(text)

    return dict(sorted(columns.items()))


def header_labels(field_names: Sequence[str], aliases: Mapping[str, str] | None = None) -> list[str]:
    """Visible header labels for writing: the alias when configured, else the name."""
    aliases = aliases or {}
    return [aliases.get(name) or name for name in field_names]
