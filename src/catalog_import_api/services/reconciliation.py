"""
Image Reconciliation

Associates spreadsheet rows that reference an image by file name with the
images uploaded alongside the spreadsheet:

- Row extraction (rows with a non-empty imageFileName column)
- Auto-matching by case-insensitive file name
- Reconciling the mapping whenever rows or images change
- Completeness validation before submit
- Payload assembly (target names, renames, first-wins dedup)

Every function here is a pure transformation over immutable snapshots.
MappingStore is the owned holder of the current snapshot for one import job.
"""

import logging
from dataclasses import dataclass, field, replace
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from catalog_import_api.utils import to_text

logger = logging.getLogger(__name__)

# Spreadsheet row 1 holds the headers, so the first data record is row 2
HEADER_ROW_OFFSET = 2

DEFAULT_IMAGE_COLUMN_KEYS: Tuple[str, ...] = (
    "imageFileName",
    "imagefilename",
    "ImageFileName",
)


# ============================================================================
# Snapshots
# ============================================================================

@dataclass(frozen=True)
class ImageRow:
    """A spreadsheet row that asks for an image."""
    row_index: int
    image_file_name: str


@dataclass(frozen=True)
class ImageAsset:
    """An uploaded image available for matching."""
    index: int
    name: str
    content: bytes = field(repr=False)
    content_type: Optional[str] = None

    def renamed(self, name: str) -> "ImageAsset":
        """Same bytes under a different file name."""
        return replace(self, name=name)


@dataclass(frozen=True)
class MappingEntry:
    """Current row -> image association."""
    row_index: int
    image_file_name: str  # row reference at the time the entry was computed
    image_file_index: Optional[int] = None
    manual: bool = False

    @property
    def required(self) -> bool:
        return bool(self.image_file_name)

    @property
    def resolved(self) -> bool:
        return self.image_file_index is not None


@dataclass(frozen=True)
class ValidationResult:
    """Outcome of the completeness check."""
    ok: bool
    unresolved_row_indexes: List[int] = field(default_factory=list)


@dataclass(frozen=True)
class NameCollision:
    """Two resolved rows that ended up with the same target name."""
    target_name: str
    kept_row_index: int
    dropped_row_index: int


# ============================================================================
# Row Extractor
# ============================================================================

def _read_reference(record: Any, column_keys: Sequence[str]) -> str:
    if not isinstance(record, Mapping):
        return ""

    value = None
    for key in column_keys:
        if record.get(key) is not None:
            value = record[key]
            break

    return to_text(value)


def extract_image_rows(
    records: Iterable[Any],
    column_keys: Sequence[str] = DEFAULT_IMAGE_COLUMN_KEYS,
) -> List[ImageRow]:
    """
    Derive the rows that reference an image.

    Args:
        records: Decoded spreadsheet records in file order, header excluded
        column_keys: Accepted spellings of the image column, first present wins

    Returns:
        ImageRow per record with a non-empty reference. row_index is the
        spreadsheet row number the operator sees (header is row 1).
    """
    rows = []
    for position, record in enumerate(records):
        name = _read_reference(record, column_keys)
        if name:
            rows.append(ImageRow(row_index=position + HEADER_ROW_OFFSET, image_file_name=name))
    return rows


# ============================================================================
# Auto-Matcher
# ============================================================================

def propose_match(row: ImageRow, assets: Sequence[ImageAsset]) -> Optional[int]:
    """
    Case-insensitive exact file name match.

    The lowest asset index wins when several images share the name.
    """
    wanted = row.image_file_name.lower()
    if not wanted:
        return None

    candidates = [asset.index for asset in assets if asset.name.lower() == wanted]
    return min(candidates) if candidates else None


# ============================================================================
# Mapping Store
# ============================================================================

def _carries_forward(entry: MappingEntry, asset_count: int) -> bool:
    # Manual choices survive while they still point into the image list
    if not entry.manual:
        return False
    return entry.image_file_index is None or 0 <= entry.image_file_index < asset_count


def reconcile(
    rows: Sequence[ImageRow],
    assets: Sequence[ImageAsset],
    previous: Sequence[MappingEntry] = (),
) -> Tuple[MappingEntry, ...]:
    """
    Recompute the mapping after the rows or the images changed.

    One entry per row, in row order. A previous entry is carried forward
    unchanged only when all of these hold:

    - its stored reference equals the row's current reference
    - it is manual (made through set_match)
    - its index is None or still inside the current image list

    Every other row gets a fresh automatic entry from propose_match. So a
    changed reference discards a manual choice, a manual choice pointing past
    a shrunk image list falls back to auto-matching, and non-manual entries
    passed in as previous are recomputed rather than trusted.
    """
    by_row = {entry.row_index: entry for entry in previous}
    entries = []

    for row in rows:
        existing = by_row.get(row.row_index)
        if (
            existing is not None
            and existing.image_file_name == row.image_file_name
            and _carries_forward(existing, len(assets))
        ):
            entries.append(existing)
            continue

        entries.append(
            MappingEntry(
                row_index=row.row_index,
                image_file_name=row.image_file_name,
                image_file_index=propose_match(row, assets),
            )
        )

    resolved = sum(1 for e in entries if e.resolved)
    logger.debug(f"Reconciled {len(entries)} rows against {len(assets)} images ({resolved} resolved)")
    return tuple(entries)


def set_match(
    entries: Sequence[MappingEntry],
    row_index: int,
    image_file_index: Optional[int],
) -> Tuple[MappingEntry, ...]:
    """
    Manual override of one row's image.

    The stored reference is left untouched so the next reconcile keeps the
    choice. An unknown row_index leaves the snapshot unchanged.
    """
    return tuple(
        replace(entry, image_file_index=image_file_index, manual=True)
        if entry.row_index == row_index
        else entry
        for entry in entries
    )


# ============================================================================
# Completeness Validator
# ============================================================================

def validate_mappings(entries: Sequence[MappingEntry]) -> ValidationResult:
    """Every row that names an image must have one picked."""
    unresolved = [e.row_index for e in entries if e.required and not e.resolved]
    return ValidationResult(ok=not unresolved, unresolved_row_indexes=unresolved)


# ============================================================================
# Payload Assembler
# ============================================================================

def _declared_targets(
    entries: Sequence[MappingEntry],
    assets: Sequence[ImageAsset],
) -> List[Tuple[MappingEntry, ImageAsset, str]]:
    by_index = {asset.index: asset for asset in assets}
    targets = []
    for entry in entries:
        if entry.image_file_index is None:
            continue
        asset = by_index.get(entry.image_file_index)
        if asset is None:
            continue
        target_name = (entry.image_file_name or asset.name).strip()
        if not target_name:
            continue
        targets.append((entry, asset, target_name))
    return targets


def find_name_collisions(
    entries: Sequence[MappingEntry],
    assets: Sequence[ImageAsset],
) -> List[NameCollision]:
    """Rows whose image would be dropped by first-wins dedup."""
    first_row: Dict[str, int] = {}
    collisions = []
    for entry, _asset, target_name in _declared_targets(entries, assets):
        if target_name in first_row:
            collisions.append(
                NameCollision(
                    target_name=target_name,
                    kept_row_index=first_row[target_name],
                    dropped_row_index=entry.row_index,
                )
            )
        else:
            first_row[target_name] = entry.row_index
    return collisions


def assemble_payload(
    entries: Sequence[MappingEntry],
    assets: Sequence[ImageAsset],
) -> Dict[str, ImageAsset]:
    """
    Build the named images to submit.

    When at least one entry declares a file name, each resolved entry
    contributes its image under the declared name (renamed if the upload had
    a different name) and the first row to claim a name keeps it. Otherwise
    every uploaded image is sent under its own name.
    """
    files: Dict[str, ImageAsset] = {}

    if not any(entry.image_file_name for entry in entries):
        for asset in assets:
            files[asset.name] = asset
        return files

    for entry, asset, target_name in _declared_targets(entries, assets):
        if target_name in files:
            logger.warning(
                f"Row {entry.row_index} maps to '{target_name}' which is already taken; keeping the first image"
            )
            continue
        files[target_name] = asset if asset.name == target_name else asset.renamed(target_name)

    return files


class MappingStore:
    """
    Owns the rows, images and mapping snapshot of one import.

    Every change to rows or images runs exactly one reconcile pass; manual
    overrides go through set_match. Snapshots handed out are immutable.
    """

    def __init__(self, column_keys: Sequence[str] = DEFAULT_IMAGE_COLUMN_KEYS):
        self.column_keys = tuple(column_keys)
        self.rows: Tuple[ImageRow, ...] = ()
        self.assets: Tuple[ImageAsset, ...] = ()
        self.entries: Tuple[MappingEntry, ...] = ()
        self._reconciling = False

    def _reconcile(self) -> None:
        if self._reconciling:
            raise RuntimeError("reconcile pass already in progress")
        self._reconciling = True
        try:
            self.entries = reconcile(self.rows, self.assets, self.entries)
        finally:
            self._reconciling = False

    def load_records(self, records: Iterable[Any]) -> Tuple[MappingEntry, ...]:
        """Replace the rows with those extracted from a fresh decode."""
        return self.load_rows(extract_image_rows(records, self.column_keys))

    def load_rows(self, rows: Iterable[ImageRow]) -> Tuple[MappingEntry, ...]:
        self.rows = tuple(rows)
        self._reconcile()
        return self.entries

    def load_assets(self, assets: Iterable[ImageAsset]) -> Tuple[MappingEntry, ...]:
        self.assets = tuple(assets)
        self._reconcile()
        return self.entries

    def has_row(self, row_index: int) -> bool:
        return any(entry.row_index == row_index for entry in self.entries)

    def set_match(self, row_index: int, image_file_index: Optional[int]) -> Tuple[MappingEntry, ...]:
        self.entries = set_match(self.entries, row_index, image_file_index)
        return self.entries

    def validate(self) -> ValidationResult:
        return validate_mappings(self.entries)

    def assemble(self) -> Dict[str, ImageAsset]:
        return assemble_payload(self.entries, self.assets)

    def collisions(self) -> List[NameCollision]:
        return find_name_collisions(self.entries, self.assets)

    def asset_for(self, entry: MappingEntry) -> Optional[ImageAsset]:
        if entry.image_file_index is None:
            return None
        return next((a for a in self.assets if a.index == entry.image_file_index), None)
