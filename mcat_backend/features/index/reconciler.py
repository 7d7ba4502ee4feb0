"""
Reconciler - diff a scan against the catalog and build the next catalog.

Classification is pure (`classify`); `reconcile` adds bounded concurrent metadata
extraction for new items. Nothing here writes to storage: the caller commits the
returned ReconcileResult through CatalogStore.apply.
"""
from __future__ import annotations

import asyncio
from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from pathlib import PurePath

from ...config import EXTRACT_CONCURRENCY, RENAME_TIE_BREAK
from ...shared import ErrorCode, ExtractionError, get_logger
from ..catalog.models import MediaEntry, ReconcileResult, ScanItem, ScanResult
from ..metadata.extractor import MetadataExtractor

logger = get_logger(__name__)


class RenamePolicy(str, Enum):
    """How vanished entries are paired with new files sharing their basename."""

    FIRST_MATCH = "first_match"
    UNIQUE_ONLY = "unique_only"

    @classmethod
    def parse(cls, value: "str | RenamePolicy | None") -> "RenamePolicy":
        if isinstance(value, RenamePolicy):
            return value
        try:
            return cls(str(value or "").strip().lower())
        except ValueError:
            logger.warning("Unknown rename tie-break %r, using %s", value, cls.FIRST_MATCH.value)
            return cls.FIRST_MATCH


@dataclass
class Classification:
    renamed: list[tuple[str, str]] = field(default_factory=list)
    deleted: list[str] = field(default_factory=list)
    new: list[ScanItem] = field(default_factory=list)
    unchanged: list[str] = field(default_factory=list)


def classify(
    catalog: Mapping[str, MediaEntry],
    scan: ScanResult,
    policy: RenamePolicy | str = RenamePolicy.FIRST_MATCH,
) -> Classification:
    """
    Split the catalog and the scan into renamed, deleted, new and unchanged paths.

    A catalog entry whose path vanished is paired with an unclaimed scanned file of
    the same basename whose path is not already cataloged. Candidates are taken in
    scan order. Under UNIQUE_ONLY a pairing needs exactly one vanished entry and
    exactly one candidate for that basename; anything else becomes delete + add.
    A cataloged same-name file is skipped rather than ending the lookup, so the entry
    can pair with a later uncataloged file instead of being classified as deleted.
    """
    policy = RenamePolicy.parse(policy)
    out = Classification()
    scanned = scan.paths

    candidates: dict[str, list[ScanItem]] = {}
    for item in scan.items:
        if item.path in catalog:
            continue
        candidates.setdefault(item.basename, []).append(item)

    vanished = [path for path in catalog if path not in scanned]
    vanished_per_name: dict[str, int] = {}
    for path in vanished:
        name = PurePath(path).name
        vanished_per_name[name] = vanished_per_name.get(name, 0) + 1

    claimed: set[str] = set()
    for path in vanished:
        name = PurePath(path).name
        match = None
        pool = candidates.get(name) or []
        if policy is RenamePolicy.UNIQUE_ONLY:
            if len(pool) == 1 and vanished_per_name.get(name) == 1:
                match = pool[0]
        else:
            match = next((item for item in pool if item.path not in claimed), None)
        if match is None:
            out.deleted.append(path)
            continue
        claimed.add(match.path)
        out.renamed.append((path, match.path))

    for item in scan.items:
        if item.path in catalog:
            out.unchanged.append(item.path)
        elif item.path not in claimed:
            out.new.append(item)
    return out


async def _extract_all(
    items: list[ScanItem],
    extractor: MetadataExtractor,
    concurrency: int,
) -> tuple[list[MediaEntry], list[dict]]:
    semaphore = asyncio.Semaphore(max(1, int(concurrency)))

    async def _one(item: ScanItem) -> MediaEntry | dict:
        async with semaphore:
            try:
                res = await asyncio.to_thread(extractor.extract, item.path, item.media_type)
            except Exception as exc:
                logger.warning("Extractor crashed on %s: %s", item.path, exc)
                return ExtractionError(str(exc), path=item.path).to_record()
        if not res.ok or res.data is None:
            logger.warning("Extraction failed for %s: %s", item.path, res.error)
            return {
                "code": res.code if not res.ok else ErrorCode.EXTRACTION_ERROR.value,
                "error": res.error or "Extractor returned no metadata",
                "path": item.path,
            }
        return MediaEntry(
            path=item.path,
            title=item.basename,
            media_type=item.media_type,
            duration_seconds=res.data.duration_seconds,
            thumbnail_ref=res.data.thumbnail_ref,
        )

    outcomes = await asyncio.gather(*(_one(item) for item in items))
    added = [o for o in outcomes if isinstance(o, MediaEntry)]
    errors = [o for o in outcomes if isinstance(o, dict)]
    return added, errors


async def reconcile(
    catalog: Mapping[str, MediaEntry],
    scan: ScanResult,
    extractor: MetadataExtractor,
    *,
    concurrency: int = EXTRACT_CONCURRENCY,
    policy: RenamePolicy | str = RENAME_TIE_BREAK,
) -> ReconcileResult:
    """
    Compute one pass: classification, extraction for new files, and the next catalog.

    Per-item extraction failures are collected in `errors`; the item is left out of
    the catalog and the rest of the batch still completes. The input catalog is not
    modified.
    """
    plan = classify(catalog, scan, policy)
    added, errors = await _extract_all(plan.new, extractor, concurrency) if plan.new else ([], [])

    updated: dict[str, MediaEntry] = dict(catalog)
    for path in plan.deleted:
        updated.pop(path, None)
    for old_path, new_path in plan.renamed:
        entry = updated.pop(old_path)
        updated[new_path] = entry.moved_to(new_path)
    for entry in added:
        updated[entry.path] = entry

    result = ReconcileResult(
        added=added,
        deleted=plan.deleted,
        renamed=plan.renamed,
        unchanged=plan.unchanged,
        errors=list(scan.errors) + errors,
        catalog=updated,
    )
    logger.debug("Reconcile %s: %s", scan.root, result.summary())
    return result
