"""File-backed booking snapshot used as the persistence collaborator."""

from __future__ import annotations

import json
import logging
import os
import uuid
from datetime import datetime
from pathlib import Path
from typing import IO, Collection, Iterable, Optional

import portalocker

from .collision import find_collision
from .exceptions import CollisionError, FormatError, PersistenceError
from .grouping import group_bookings
from .interaction import CreateRequest, UpdateRequest
from .models import Booking, RangedRecord, RecordId, Slot, parse_record
from .paths import bookings_path
from .time_segments import SLOT_MINUTES
from .validation import Reason, check_cancel, raise_for_reason, validate_new_bookings

StoredRecord = Slot | RangedRecord


def _new_record_id() -> str:
    return uuid.uuid4().hex


class BookingRepository:
    """Reads and writes booking rows (flat slots or ranged records) as JSON lines.

    Every write re-reads the file under an exclusive lock and repeats the
    collision check, so a commit computed against a stale snapshot fails with
    :class:`CollisionError` instead of double-booking a resource.
    """

    def __init__(
        self,
        path: Path | None = None,
        logger: logging.Logger | None = None,
        lock_timeout: float = 10.0,
        slot_minutes: int = SLOT_MINUTES,
    ) -> None:
        self._path = Path(path) if path is not None else bookings_path()
        self._path.parent.mkdir(parents=True, exist_ok=True)
        self._lock_timeout = lock_timeout
        self._slot_minutes = slot_minutes
        self._logger = logger or logging.getLogger("labbook.repository")
        self._ensure_file()

    # ------------------------------------------------------------------
    # Public API
    def load_records(self) -> list[StoredRecord]:
        self._logger.debug("Loading booking records", extra={"event": "bookings_load_all"})
        return self._deserialize(self._read_lines())

    def load_bookings(self) -> list[Booking]:
        return group_bookings(self.load_records(), self._slot_minutes)

    def create(
        self, request: CreateRequest, *, now: datetime, admin_override: bool = False
    ) -> list[RangedRecord]:
        raise_for_reason(validate_new_bookings(request.drafts, now=now, admin_override=admin_override))
        created = [
            RangedRecord(
                record_id=_new_record_id(),
                resource_id=draft.resource_id,
                owner_id=draft.owner_id,
                date=draft.date,
                start=draft.start,
                end=draft.end,
                context_key=draft.context_key,
                created_batch_key=draft.created_batch_key,
            )
            for draft in request.drafts
        ]

        def transform(records: list[StoredRecord]) -> list[StoredRecord]:
            pool = list(records)
            for record in created:
                self._ensure_free(record, pool, ())
                pool.append(record)
            return pool

        self._rewrite(transform, event="bookings_create", ids=[record.record_id for record in created])
        return created

    def apply_update(
        self, request: UpdateRequest, *, now: Optional[datetime] = None, admin_override: bool = False
    ) -> RangedRecord:
        """Persist a moved/resized booking.

        The first old id is rewritten as a ranged record; any further ids are
        legacy slots of the same booking and are deleted.
        """

        old_ids = request.old_ids
        if not old_ids:
            raise PersistenceError("No booking id provided for update")
        booking = request.booking
        if now is not None and not admin_override and booking.ends_at() < now:
            raise_for_reason(Reason.PAST)
        primary_id = old_ids[0]
        updated = RangedRecord(
            record_id=primary_id,
            resource_id=booking.resource_id,
            owner_id=booking.owner_id,
            date=booking.date,
            start=booking.start,
            end=booking.end,
            context_key=booking.context_key,
            created_batch_key=booking.created_batch_key,
        )

        def transform(records: list[StoredRecord]) -> list[StoredRecord]:
            if not any(primary_id in record.ids for record in records):
                raise PersistenceError(f"Booking {primary_id!r} no longer exists")
            self._ensure_free(updated, records, old_ids)
            kept: list[StoredRecord] = []
            for record in records:
                if record.ids[0] == primary_id:
                    kept.append(updated)
                elif record.ids[0] not in old_ids:
                    kept.append(record)
            return kept

        self._rewrite(transform, event="bookings_update", ids=list(old_ids))
        return updated

    def cancel(self, ids: Collection[RecordId], *, now: datetime, admin_override: bool = False) -> int:
        targets = set(ids)
        affected = [booking for booking in self.load_bookings() if targets.intersection(booking.ids)]
        raise_for_reason(check_cancel(affected, now=now, admin_override=admin_override))

        removed = 0

        def transform(records: list[StoredRecord]) -> list[StoredRecord]:
            nonlocal removed
            kept = [record for record in records if record.ids[0] not in targets]
            removed = len(records) - len(kept)
            return kept

        self._rewrite(transform, event="bookings_cancel", ids=list(targets))
        return removed

    # ------------------------------------------------------------------
    # Internal helpers
    def _ensure_free(
        self, record: RangedRecord, pool: Iterable[StoredRecord], ignored_ids: Collection[RecordId]
    ) -> None:
        clash = find_collision(record, pool, ignored_ids, self._slot_minutes)
        if clash is not None:
            self._logger.warning(
                "Commit collides with stored booking",
                extra={
                    "event": "bookings_commit_collision",
                    "resource_id": record.resource_id,
                    "date": record.date.isoformat(),
                    "conflicting_ids": list(clash.ids),
                },
            )
            raise CollisionError("Booking overlaps with another booking.")

    def _rewrite(self, transform, *, event: str, ids: list) -> None:
        self._logger.info("Rewriting booking records", extra={"event": event, "ids": ids})
        try:
            with portalocker.Lock(
                self._path,
                mode="r+",
                timeout=self._lock_timeout,
                flags=portalocker.LockFlags.EXCLUSIVE,
                encoding="utf-8",
            ) as locked_file:
                locked_file.seek(0)
                records = self._deserialize(line.rstrip("\n") for line in locked_file if line.strip())
                result = transform(records)
                self._write_all(locked_file, result)
        except (CollisionError, PersistenceError):
            raise
        except portalocker.LockException as exc:
            self._logger.exception("Timed out waiting for booking file lock", extra={"event": f"{event}_locked"})
            raise PersistenceError("Booking file is locked by another process") from exc
        except OSError as exc:
            self._logger.exception("Failed to rewrite booking records", extra={"event": f"{event}_failed"})
            raise PersistenceError("Unable to persist bookings") from exc

    @staticmethod
    def _write_all(locked_file: IO[str], records: Iterable[StoredRecord]) -> None:
        locked_file.seek(0)
        locked_file.truncate()
        for record in records:
            locked_file.write(json.dumps(record.to_json_dict(), separators=(",", ":")))
            locked_file.write("\n")
        locked_file.flush()
        os.fsync(locked_file.fileno())

    def _ensure_file(self) -> None:
        if not self._path.exists():
            self._logger.debug(
                "Creating bookings file",
                extra={"event": "bookings_file_init", "path": str(self._path)},
            )
            self._path.touch()

    def _read_lines(self) -> list[str]:
        try:
            with portalocker.Lock(
                self._path,
                mode="r",
                timeout=self._lock_timeout,
                flags=portalocker.LockFlags.SHARED,
                encoding="utf-8",
            ) as locked_file:
                return [line.rstrip("\n") for line in locked_file if line.strip()]
        except FileNotFoundError:
            self._ensure_file()
            return []
        except (OSError, portalocker.LockException) as exc:
            self._logger.exception("Failed reading bookings file")
            raise PersistenceError("Unable to read bookings") from exc

    def _deserialize(self, lines: Iterable[str]) -> list[StoredRecord]:
        records: list[StoredRecord] = []
        for index, line in enumerate(lines, start=1):
            try:
                records.append(parse_record(json.loads(line)))
            except (json.JSONDecodeError, FormatError, TypeError, AttributeError):
                self._logger.exception(
                    "Skipping malformed booking record",
                    extra={"event": "bookings_skip_invalid", "line_index": index},
                )
        return records
