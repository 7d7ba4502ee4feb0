"""
CatalogStore - persisted mapping path -> MediaEntry on top of the SQLite adapter.

Every method returns a Result; SQLite failures surface as CATALOG_IO_ERROR.
`apply` commits a whole reconciliation result in one transaction or nothing.
"""
from __future__ import annotations

from pathlib import Path
from typing import Any, Iterable

from ...adapters.db import Sqlite
from ...adapters.db.schema import migrate_schema
from ...shared import CatalogIOError, ErrorCode, MediaType, Result, epoch_seconds, get_logger
from .models import Bookmark, MediaEntry, ReconcileResult

logger = get_logger(__name__)

MAX_TAG_LENGTH = 100


def normalize_tags(tags: Iterable[Any]) -> list[str]:
    out: list[str] = []
    seen = set()
    for t in tags or []:
        if not isinstance(t, str):
            continue
        tag = t.strip()
        if not tag or len(tag) > MAX_TAG_LENGTH:
            continue
        if tag in seen:
            continue
        seen.add(tag)
        out.append(tag)
    return out


def _io_error(res: Result[Any], action: str) -> Result[Any]:
    return Result.Err(ErrorCode.CATALOG_IO_ERROR, f"{action} failed: {res.error}")


class CatalogStore:
    """Read/write access to one root's catalog file."""

    def __init__(self, db: Sqlite):
        self.db = db

    @classmethod
    async def open(cls, db_path: str | Path) -> Result["CatalogStore"]:
        db = Sqlite(str(db_path))
        migrated = await migrate_schema(db)
        if not migrated.ok:
            await db.aclose()
            return Result.Err(ErrorCode.CATALOG_IO_ERROR, migrated.error or "Catalog schema migration failed")
        return Result.Ok(cls(db))

    async def close(self) -> None:
        await self.db.aclose()

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def load_all(self) -> Result[list[MediaEntry]]:
        entries_res = await self.db.aquery(
            "SELECT path, title, media_type, duration_seconds, thumbnail_ref FROM media_entries ORDER BY path"
        )
        if not entries_res.ok:
            return _io_error(entries_res, "Catalog read")
        tags_res = await self.db.aquery("SELECT path, tag FROM entry_tags")
        if not tags_res.ok:
            return _io_error(tags_res, "Tag read")
        bookmarks_res = await self.db.aquery(
            "SELECT path, description, timestamp_seconds FROM bookmarks ORDER BY path, position, id"
        )
        if not bookmarks_res.ok:
            return _io_error(bookmarks_res, "Bookmark read")

        tags_by_path: dict[str, set[str]] = {}
        for row in tags_res.data or []:
            tags_by_path.setdefault(row["path"], set()).add(row["tag"])
        bookmarks_by_path: dict[str, list[Bookmark]] = {}
        for row in bookmarks_res.data or []:
            bookmarks_by_path.setdefault(row["path"], []).append(
                Bookmark(description=row["description"], timestamp_seconds=float(row["timestamp_seconds"]))
            )

        entries: list[MediaEntry] = []
        for row in entries_res.data or []:
            try:
                media_type = MediaType(row["media_type"])
            except ValueError:
                logger.warning("Skipping catalog row with unknown media type: %s", row["path"])
                continue
            entries.append(
                MediaEntry(
                    path=row["path"],
                    title=row["title"],
                    media_type=media_type,
                    duration_seconds=row["duration_seconds"],
                    thumbnail_ref=row["thumbnail_ref"],
                    tags=tags_by_path.get(row["path"], set()),
                    bookmarks=bookmarks_by_path.get(row["path"], []),
                )
            )
        return Result.Ok(entries)

    async def get(self, path: str) -> Result[MediaEntry]:
        loaded = await self.load_all()
        if not loaded.ok:
            return Result.Err(loaded.code, loaded.error or "Catalog read failed")
        for entry in loaded.data or []:
            if entry.path == path:
                return Result.Ok(entry)
        return Result.Err(ErrorCode.NOT_FOUND, f"Not in catalog: {path}")

    # ------------------------------------------------------------------
    # Single-entry writes
    # ------------------------------------------------------------------

    async def upsert(self, entry: MediaEntry) -> Result[bool]:
        try:
            async with self.db.atransaction() as tx:
                if not tx.ok:
                    return Result.Err(ErrorCode.CATALOG_IO_ERROR, tx.error or "Transaction failed")
                await self._write_entry(entry)
                await self._replace_tags(entry.path, entry.tags)
                await self._replace_bookmarks(entry.path, entry.bookmarks)
        except CatalogIOError as exc:
            return exc.to_result()
        if not tx.ok:
            return Result.Err(ErrorCode.CATALOG_IO_ERROR, tx.error or "Commit failed")
        return Result.Ok(True)

    async def remove(self, path: str) -> Result[bool]:
        res = await self.db.aexecute("DELETE FROM media_entries WHERE path = ?", (path,))
        if not res.ok:
            return _io_error(res, "Catalog delete")
        return Result.Ok(bool(res.data))

    async def rename(self, old_path: str, new_path: str) -> Result[bool]:
        res = await self.db.aexecute(
            "UPDATE media_entries SET path = ?, title = ?, updated_at = ? WHERE path = ?",
            (new_path, Path(new_path).name, epoch_seconds(), old_path),
        )
        if not res.ok:
            return _io_error(res, "Catalog rename")
        return Result.Ok(bool(res.data))

    # ------------------------------------------------------------------
    # User metadata
    # ------------------------------------------------------------------

    async def set_tags(self, path: str, tags: Iterable[Any]) -> Result[list[str]]:
        clean = normalize_tags(tags)
        exists = await self._entry_type(path)
        if not exists.ok:
            return Result.Err(exists.code, exists.error or "Lookup failed")
        try:
            async with self.db.atransaction() as tx:
                if not tx.ok:
                    return Result.Err(ErrorCode.CATALOG_IO_ERROR, tx.error or "Transaction failed")
                await self._replace_tags(path, clean)
        except CatalogIOError as exc:
            return exc.to_result()
        if not tx.ok:
            return Result.Err(ErrorCode.CATALOG_IO_ERROR, tx.error or "Commit failed")
        return Result.Ok(clean)

    async def add_bookmark(self, path: str, description: str, timestamp_seconds: float) -> Result[Bookmark]:
        kind = await self._entry_type(path)
        if not kind.ok:
            return Result.Err(kind.code, kind.error or "Lookup failed")
        if kind.data != MediaType.VIDEO:
            return Result.Err(ErrorCode.INVALID_INPUT, f"Bookmarks are only valid for videos: {path}")
        res = await self.db.aexecute(
            """
            INSERT INTO bookmarks (path, description, timestamp_seconds, position)
            VALUES (?, ?, ?, (SELECT COALESCE(MAX(position), -1) + 1 FROM bookmarks WHERE path = ?))
            """,
            (path, str(description), float(timestamp_seconds), path),
        )
        if not res.ok:
            return _io_error(res, "Bookmark insert")
        return Result.Ok(Bookmark(description=str(description), timestamp_seconds=float(timestamp_seconds)))

    async def remove_bookmark(self, path: str, timestamp_seconds: float) -> Result[int]:
        kind = await self._entry_type(path)
        if not kind.ok:
            return Result.Err(kind.code, kind.error or "Lookup failed")
        if kind.data != MediaType.VIDEO:
            return Result.Err(ErrorCode.INVALID_INPUT, f"Bookmarks are only valid for videos: {path}")
        res = await self.db.aexecute(
            "DELETE FROM bookmarks WHERE path = ? AND timestamp_seconds = ?",
            (path, float(timestamp_seconds)),
        )
        if not res.ok:
            return _io_error(res, "Bookmark delete")
        return Result.Ok(int(res.data or 0))

    async def _entry_type(self, path: str) -> Result[MediaType]:
        res = await self.db.aquery("SELECT media_type FROM media_entries WHERE path = ?", (path,))
        if not res.ok:
            return _io_error(res, "Catalog read")
        if not res.data:
            return Result.Err(ErrorCode.NOT_FOUND, f"Not in catalog: {path}")
        return Result.Ok(MediaType(res.data[0]["media_type"]))

    # ------------------------------------------------------------------
    # Reconciliation commit
    # ------------------------------------------------------------------

    async def apply(self, result: ReconcileResult) -> Result[dict[str, int]]:
        """
        Persist one reconciliation result atomically.

        Deletions run first so a vanished path never collides with a rename target;
        renames move tags and bookmarks through ON UPDATE CASCADE.
        """
        if not result.has_mutations:
            return Result.Ok(result.summary())
        try:
            async with self.db.atransaction() as tx:
                if not tx.ok:
                    return Result.Err(ErrorCode.CATALOG_IO_ERROR, tx.error or "Transaction failed")
                for path in result.deleted:
                    await self._checked(
                        self.db.aexecute("DELETE FROM media_entries WHERE path = ?", (path,)),
                        "Catalog delete",
                    )
                now = epoch_seconds()
                for old_path, new_path in result.renamed:
                    await self._checked(
                        self.db.aexecute(
                            "UPDATE media_entries SET path = ?, title = ?, updated_at = ? WHERE path = ?",
                            (new_path, Path(new_path).name, now, old_path),
                        ),
                        "Catalog rename",
                    )
                for entry in result.added:
                    await self._write_entry(entry)
        except CatalogIOError as exc:
            logger.error("Catalog commit rolled back: %s", exc)
            return exc.to_result()
        if not tx.ok:
            return Result.Err(ErrorCode.CATALOG_IO_ERROR, tx.error or "Commit failed")
        return Result.Ok(result.summary())

    # ------------------------------------------------------------------
    # Helpers (raise CatalogIOError so an open transaction rolls back)
    # ------------------------------------------------------------------

    @staticmethod
    async def _checked(coro, action: str) -> Any:
        res = await coro
        if not res.ok:
            raise CatalogIOError(f"{action} failed: {res.error}")
        return res.data

    async def _write_entry(self, entry: MediaEntry) -> None:
        now = epoch_seconds()
        await self._checked(
            self.db.aexecute(
                """
                INSERT INTO media_entries (path, title, media_type, duration_seconds, thumbnail_ref, created_at, updated_at)
                VALUES (?, ?, ?, ?, ?, ?, ?)
                ON CONFLICT(path) DO UPDATE SET
                    title = excluded.title,
                    media_type = excluded.media_type,
                    duration_seconds = excluded.duration_seconds,
                    thumbnail_ref = excluded.thumbnail_ref,
                    updated_at = excluded.updated_at
                """,
                (
                    entry.path,
                    entry.title,
                    entry.media_type.value,
                    entry.duration_seconds if entry.media_type == MediaType.VIDEO else None,
                    entry.thumbnail_ref,
                    now,
                    now,
                ),
            ),
            "Catalog upsert",
        )

    async def _replace_tags(self, path: str, tags: Iterable[str]) -> None:
        await self._checked(self.db.aexecute("DELETE FROM entry_tags WHERE path = ?", (path,)), "Tag clear")
        rows = [(path, tag) for tag in sorted(set(tags))]
        if rows:
            await self._checked(
                self.db.aexecutemany("INSERT INTO entry_tags (path, tag) VALUES (?, ?)", rows),
                "Tag insert",
            )

    async def _replace_bookmarks(self, path: str, bookmarks: list[Bookmark]) -> None:
        await self._checked(self.db.aexecute("DELETE FROM bookmarks WHERE path = ?", (path,)), "Bookmark clear")
        rows = [
            (path, b.description, float(b.timestamp_seconds), position)
            for position, b in enumerate(bookmarks or [])
        ]
        if rows:
            await self._checked(
                self.db.aexecutemany(
                    "INSERT INTO bookmarks (path, description, timestamp_seconds, position) VALUES (?, ?, ?, ?)",
                    rows,
                ),
                "Bookmark insert",
            )
