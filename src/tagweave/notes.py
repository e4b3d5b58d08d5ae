"""Load notes and their tags: flatten joined rows, export files, Markdown vaults."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Iterable

import yaml

logger = logging.getLogger(__name__)

# Matches YAML frontmatter delimited by ---
_FRONTMATTER_RE = re.compile(r"\A---\n(.*?)\n---\n?", re.DOTALL)

# Inline #tag tokens; must not be preceded by a word char (skips "C#", URLs with anchors)
_INLINE_TAG_RE = re.compile(r"(?<![\w#/])#([A-Za-z][\w/-]*)")

_UNDATED = datetime.min.replace(tzinfo=timezone.utc)


class ExportFormatError(ValueError):
    """An export file could not be interpreted as a list of notes."""


@dataclass(frozen=True)
class Tag:
    """A user-defined label, identified by id and displayed by name."""

    id: str
    name: str
    color: str | None = None
    user_id: str | None = None


@dataclass
class Note:
    """A single note with the tags attached to it."""

    id: str
    title: str = ""
    content: str = ""
    tags: list[Tag] = field(default_factory=list)
    user_id: str | None = None
    is_archived: bool = False
    updated_at: str | None = None


def _tag_from_mapping(data: Any) -> Tag | None:
    if not isinstance(data, dict):
        return None
    tag_id = data.get("id")
    name = data.get("name")
    if tag_id is None or not name:
        return None
    return Tag(
        id=str(tag_id),
        name=str(name),
        color=data.get("color"),
        user_id=data.get("user_id"),
    )


def flatten_note_row(row: Any) -> Note | None:
    """Normalize one note row into a Note.

    Accepts either the joined shape returned by a relational backend::

        {"id": ..., "note_tags": [{"tags": {"id": ..., "name": ...}}, ...]}

    or an already flat ``{"id": ..., "tags": [{"id": ..., "name": ...}]}``.
    Join entries without a tag record, and tags without id or name, are
    skipped. Returns None when the row has no id.
    """
    if not isinstance(row, dict) or row.get("id") is None:
        logger.debug("Skipping note row without id: %r", row)
        return None

    raw_tags: list[Any] = []
    if "note_tags" in row:
        for join in row.get("note_tags") or []:
            nested = join.get("tags") if isinstance(join, dict) else None
            # a to-one join can come back as a single-element list
            if isinstance(nested, list):
                nested = nested[0] if nested else None
            raw_tags.append(nested)
    else:
        raw_tags = list(row.get("tags") or [])

    tags: list[Tag] = []
    seen: set[str] = set()
    for raw in raw_tags:
        tag = _tag_from_mapping(raw)
        if tag is None:
            logger.debug("Skipping malformed tag on note %s: %r", row["id"], raw)
            continue
        if tag.id in seen:
            continue
        seen.add(tag.id)
        tags.append(tag)

    return Note(
        id=str(row["id"]),
        title=row.get("title") or "",
        content=row.get("content") or "",
        tags=tags,
        user_id=row.get("user_id"),
        is_archived=bool(row.get("is_archived", False)),
        updated_at=None if row.get("updated_at") is None else str(row["updated_at"]),
    )


def flatten_rows(rows: Iterable[Any]) -> list[Note]:
    """Flatten a sequence of note rows, dropping the ones without an id."""
    notes = []
    for row in rows:
        note = flatten_note_row(row)
        if note is not None:
            notes.append(note)
    return notes


def _timestamp(value: Any) -> datetime | None:
    """Parse an ``updated_at`` value; naive times are taken as UTC."""
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, str) and value:
        text = value[:-1] + "+00:00" if value.endswith("Z") else value
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError:
            return None
    else:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _recency(note: Note) -> tuple[bool, datetime]:
    stamp = _timestamp(note.updated_at)
    return stamp is not None, stamp or _UNDATED


def active_notes(notes: Iterable[Note], user_id: str | None = None) -> list[Note]:
    """Return the non-archived notes, optionally only those owned by ``user_id``.

    Notes carrying a parseable ``updated_at`` stamp come first, most recent
    first, compared as instants so differing UTC offsets order correctly.
    The sort is stable so undated notes keep their input order.
    """
    kept = [
        n
        for n in notes
        if not n.is_archived and (user_id is None or n.user_id == user_id)
    ]
    return sorted(kept, key=_recency, reverse=True)


def notes_for_tag(notes: Iterable[Note], tag_name: str) -> list[Note]:
    """All notes carrying a tag with the given name."""
    return [n for n in notes if any(t.name == tag_name for t in n.tags)]


def load_export(path: str | Path) -> list[Note]:
    """Load notes from a YAML or JSON export.

    The document is either a list of note rows or a mapping with a
    ``notes`` key holding that list.
    """
    path = Path(path)
    if not path.is_file():
        raise FileNotFoundError(f"Export file not found: {path}")

    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8"))
    except yaml.YAMLError as e:
        raise ExportFormatError(f"Could not parse {path.name}: {e}") from e

    if data is None:
        data = []
    if isinstance(data, dict):
        if "notes" not in data:
            raise ExportFormatError(f"{path.name}: expected a 'notes' key holding a list of notes")
        data = [] if data["notes"] is None else data["notes"]
    if not isinstance(data, list):
        raise ExportFormatError(
            f"{path.name}: expected a list of notes, got {type(data).__name__}"
        )

    notes = flatten_rows(data)
    logger.info("Loaded %d notes from %s", len(notes), path)
    return notes


def _frontmatter_tags(value: Any) -> list[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [part.strip() for part in value.split(",")]
    if isinstance(value, list):
        return [str(part).strip() for part in value if part is not None]
    return [str(value)]


def parse_note(path: Path, root: Path | None = None) -> Note:
    """Parse a single Markdown file into a Note.

    Tags come from the frontmatter ``tags`` field and from inline ``#tag``
    tokens in the body. Tag ids are lower-cased names, so ``#Python`` and
    ``python`` in frontmatter are the same tag.
    """
    raw = path.read_text(encoding="utf-8")

    frontmatter: dict = {}
    body = raw
    fm_match = _FRONTMATTER_RE.match(raw)
    if fm_match:
        try:
            frontmatter = yaml.safe_load(fm_match.group(1)) or {}
        except yaml.YAMLError:
            frontmatter = {}
        if not isinstance(frontmatter, dict):
            frontmatter = {}
        body = raw[fm_match.end() :]

    names = _frontmatter_tags(frontmatter.get("tags"))
    names.extend(_INLINE_TAG_RE.findall(body))

    tags: list[Tag] = []
    seen: set[str] = set()
    for name in names:
        name = name.lstrip("#").strip()
        if not name:
            continue
        tag_id = name.lower()
        if tag_id in seen:
            continue
        seen.add(tag_id)
        tags.append(Tag(id=tag_id, name=name))

    note_id = path.relative_to(root).as_posix() if root else path.name
    return Note(
        id=note_id,
        title=str(frontmatter.get("title") or path.stem),
        content=body.strip(),
        tags=tags,
        is_archived=bool(frontmatter.get("archived", False)),
        updated_at=None if frontmatter.get("updated") is None else str(frontmatter["updated"]),
    )


def load_vault(vault_path: str | Path) -> list[Note]:
    """Recursively load all Markdown notes from a vault directory.

    Skips hidden directories (e.g. .obsidian, .trash).
    """
    vault = Path(vault_path)
    if not vault.is_dir():
        raise FileNotFoundError(f"Vault directory not found: {vault}")

    notes: list[Note] = []
    for md_file in sorted(vault.rglob("*.md")):
        if any(part.startswith(".") for part in md_file.relative_to(vault).parts):
            continue
        notes.append(parse_note(md_file, root=vault))

    logger.info("Loaded %d notes from vault %s", len(notes), vault)
    return notes


def load_notes(source: str | Path) -> list[Note]:
    """Load notes from a vault directory or an export file."""
    source = Path(source)
    if source.is_dir():
        return load_vault(source)
    return load_export(source)
