"""Review session over one file's extracted table.

Backs the review grid: single-cell edits, row and column inserts and dirty
cell tracking. Every mutation immediately writes the whole table back,
identically into ``table_data`` and ``edited_table_data``.
"""

import copy
import logging
from typing import List, Optional, Set, Tuple

from core.exceptions import BadRequestError, ConflictError, NotFoundError
from models.file_record import FileRecord, FileStatus
from services.file_repository import FileRepository
from services.table_normalizer import rectangularize

logger = logging.getLogger(__name__)

Table = List[List[str]]
Cell = Tuple[int, int]


def default_column_header(position: int) -> str:
    return f"Column {position + 1}"


class ReviewSession:
    """Editable view of a completed file's table.

    With ``check_version`` on, a write fails with ``ConflictError`` when the
    record changed since this session last read or wrote it.
    """

    def __init__(
        self,
        repository: FileRepository,
        file_id: int,
        owner_id: Optional[str] = None,
        check_version: bool = True,
    ):
        self.repository = repository
        self.file_id = file_id
        self.owner_id = owner_id
        self.check_version = check_version
        self.version: Optional[int] = None
        self.status: Optional[FileStatus] = None
        self.record: Optional[FileRecord] = None
        self._table: Table = []
        self._dirty: Set[Cell] = set()

    async def load(self, expected_version: Optional[int] = None) -> Table:
        """Read the record; ``expected_version`` pins the version a client saw."""
        if self.owner_id is not None:
            record = await self.repository.get_for_owner(self.file_id, self.owner_id)
        else:
            record = await self.repository.get(self.file_id)
            if record is None:
                raise NotFoundError("File not found", {"file_id": self.file_id})
        if expected_version is not None and record.version != expected_version:
            raise ConflictError(
                "File was modified by another writer",
                {"file_id": self.file_id, "expected_version": expected_version,
                 "current_version": record.version},
            )
        self._sync(record)
        self._dirty.clear()
        return self.table

    @property
    def table(self) -> Table:
        return copy.deepcopy(self._table)

    @property
    def dirty_cells(self) -> frozenset:
        return frozenset(self._dirty)

    def is_dirty(self, row: int, col: int) -> bool:
        return (row, col) in self._dirty

    async def set_cell(self, row: int, col: int, value: str) -> Table:
        self._ensure_editable()
        if not (0 <= row < len(self._table)) or not (0 <= col < len(self._table[row])):
            raise BadRequestError(
                "Cell is outside the table", {"row": row, "col": col}
            )
        if self._table[row][col] == value:
            return self.table

        updated = self.table
        updated[row][col] = value
        await self._persist(updated)
        self._dirty.add((row, col))
        return self.table

    async def replace_table(self, table: Table) -> Table:
        """Swap in a whole table, marking every cell that differs as dirty."""
        self._ensure_editable()
        if not table or not table[0]:
            raise BadRequestError("Table must have a non-empty header row")
        updated = rectangularize(table)
        if updated == self._table:
            return self.table

        previous = self._table
        await self._persist(updated)
        for r, row in enumerate(self._table):
            for c, value in enumerate(row):
                before = previous[r][c] if r < len(previous) and c < len(previous[r]) else None
                if before != value:
                    self._dirty.add((r, c))
        return self.table

    async def insert_row(self, position: Optional[int] = None) -> Table:
        """Insert a blank row; the header row always stays at index 0."""
        self._ensure_editable()
        if not self._table:
            return self.table
        if position is None:
            position = len(self._table)
        if not 1 <= position <= len(self._table):
            raise BadRequestError("Row position out of range", {"position": position})

        width = len(self._table[0])
        updated = self.table
        updated.insert(position, [""] * width)
        await self._persist(updated)

        self._dirty = {(r + 1 if r >= position else r, c) for r, c in self._dirty}
        self._dirty.update((position, c) for c in range(width))
        logger.debug(f"Inserted row at {position} in file {self.file_id}")
        return self.table

    async def insert_column(self, position: Optional[int] = None) -> Table:
        """Insert a column headed ``Column N`` with blank cells below."""
        self._ensure_editable()
        if not self._table:
            return self.table
        width = len(self._table[0])
        if position is None:
            position = width
        if not 0 <= position <= width:
            raise BadRequestError("Column position out of range", {"position": position})

        updated = self.table
        for index, row in enumerate(updated):
            row.insert(position, default_column_header(position) if index == 0 else "")
        await self._persist(updated)

        self._dirty = {(r, c + 1 if c >= position else c) for r, c in self._dirty}
        self._dirty.update((r, position) for r in range(len(updated)))
        logger.debug(f"Inserted column at {position} in file {self.file_id}")
        return self.table

    def _ensure_editable(self) -> None:
        if self.status is None:
            raise ConflictError("Review session is not loaded", {"file_id": self.file_id})
        if self.status is not FileStatus.COMPLETE:
            raise ConflictError(
                "Only completed files can be edited",
                {"file_id": self.file_id, "status": self.status.value},
            )

    async def _persist(self, table: Table) -> None:
        table = rectangularize(table)
        record = await self.repository.update(
            self.file_id,
            {"table_data": table, "edited_table_data": copy.deepcopy(table)},
            expected_version=self.version if self.check_version else None,
        )
        self._sync(record)

    def _sync(self, record: FileRecord) -> None:
        self.record = record
        self._table = copy.deepcopy(record.table_data or [])
        self.version = record.version
        self.status = record.file_status
