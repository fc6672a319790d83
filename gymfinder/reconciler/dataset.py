"""Tabular dataset file handling.

Loads a city's gym CSV, writes the untouched backup, and persists the
updated rows atomically with the dataset's quoting rules.
"""

import csv
import io
import os
import shutil
import tempfile
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from structlog.stdlib import BoundLogger

from gymfinder.core.logging import get_logger


class DatasetIntegrityError(Exception):
    """The dataset cannot be processed safely. Raised before any write."""

    def __init__(self, path: Path, message: str):
        self.path = path
        self.message = message
        super().__init__(f"{path}: {message}")


@dataclass(frozen=True)
class RowShapeMismatch:
    """A data row dropped because its field count disagrees with the header."""

    line: int
    expected: int
    actual: int


@dataclass
class Dataset:
    """In-memory rows of one dataset file."""

    path: Path
    header: list[str]
    rows: list[list[str]]
    address_column: str
    coordinates_column: str
    name_column: Optional[str] = None
    dropped: list[RowShapeMismatch] = field(default_factory=list)

    def __post_init__(self) -> None:
        self._address_index = self.header.index(self.address_column)
        self._coordinates_index = self.header.index(self.coordinates_column)
        self._name_index = (
            self.header.index(self.name_column)
            if self.name_column and self.name_column in self.header
            else None
        )

    def __len__(self) -> int:
        return len(self.rows)

    def address(self, row_index: int) -> str:
        return self.rows[row_index][self._address_index].strip()

    def coordinates(self, row_index: int) -> str:
        return self.rows[row_index][self._coordinates_index].strip()

    def name(self, row_index: int) -> str:
        if self._name_index is None:
            return ""
        return self.rows[row_index][self._name_index].strip()

    def set_coordinates(self, row_index: int, value: str) -> bool:
        """Write a coordinate value; returns True if the row changed."""
        row = self.rows[row_index]
        if row[self._coordinates_index] == value:
            return False
        row[self._coordinates_index] = value
        return True


def load_dataset(
    path: Path,
    address_column: str = "address",
    coordinates_column: str = "coordinates",
    name_column: Optional[str] = "name",
    logger: Optional[BoundLogger] = None,
) -> Dataset:
    """Read a dataset file.

    Rows whose field count differs from the header are dropped and
    reported as RowShapeMismatch entries; blank lines are ignored.

    Args:
        path: Dataset CSV path
        address_column: Column grouping rows by address
        coordinates_column: Column receiving "<lat>,<lon>"
        name_column: Optional column used to label log lines
        logger: Log sink for dropped-row warnings

    Returns:
        The loaded dataset

    Raises:
        DatasetIntegrityError: Missing, unreadable or empty file, or a
            required column is absent
    """
    log = logger or get_logger()

    try:
        text = path.read_text(encoding="utf-8-sig")
    except FileNotFoundError as e:
        raise DatasetIntegrityError(path, "dataset file not found") from e
    except UnicodeDecodeError as e:
        raise DatasetIntegrityError(path, f"dataset is not valid UTF-8: {e}") from e
    except OSError as e:
        raise DatasetIntegrityError(path, f"cannot read dataset: {e}") from e

    reader = csv.reader(io.StringIO(text, newline=""))
    try:
        header_row = next(reader, None)
        if not header_row:
            raise DatasetIntegrityError(path, "dataset is empty or has no header row")

        header = [name.strip() for name in header_row]
        for column in (address_column, coordinates_column):
            if column not in header:
                raise DatasetIntegrityError(path, f"missing required column {column!r}")

        rows: list[list[str]] = []
        dropped: list[RowShapeMismatch] = []
        for row in reader:
            if not row:
                continue
            if len(row) != len(header):
                mismatch = RowShapeMismatch(
                    line=reader.line_num, expected=len(header), actual=len(row)
                )
                log.warning(
                    "Dropping malformed row",
                    line=mismatch.line,
                    expected=mismatch.expected,
                    actual=mismatch.actual,
                )
                dropped.append(mismatch)
                continue
            rows.append(row)
    except csv.Error as e:
        raise DatasetIntegrityError(path, f"malformed CSV: {e}") from e

    log.info("Loaded dataset", path=str(path), rows=len(rows), dropped=len(dropped))
    return Dataset(
        path=path,
        header=header,
        rows=rows,
        address_column=address_column,
        coordinates_column=coordinates_column,
        name_column=name_column,
        dropped=dropped,
    )


def write_backup(source: Path, backup_path: Path) -> Path:
    """Copy the unmodified dataset file to its backup path and flush it to disk."""
    backup_path.parent.mkdir(parents=True, exist_ok=True)
    shutil.copyfile(source, backup_path)
    with open(backup_path, "rb") as f:
        os.fsync(f.fileno())
    return backup_path


def quote_field(value: str) -> str:
    """Quote a field if it contains a comma, quote, or newline."""
    if any(ch in value for ch in (",", '"', "\n", "\r")):
        return '"' + value.replace('"', '""') + '"'
    return value


def serialize(dataset: Dataset) -> str:
    lines = [",".join(quote_field(name) for name in dataset.header)]
    lines.extend(",".join(quote_field(value) for value in row) for row in dataset.rows)
    return "\n".join(lines) + "\n"


def save_dataset(dataset: Dataset, path: Optional[Path] = None) -> Path:
    """Write the dataset atomically, preserving column order.

    The content goes to a temporary file in the same directory which then
    replaces the target, so the target is never left half written.
    """
    target = path or dataset.path
    fd, tmp_name = tempfile.mkstemp(
        dir=target.parent, prefix=f".{target.name}.", suffix=".tmp"
    )
    try:
        with os.fdopen(fd, "w", encoding="utf-8", newline="") as f:
            f.write(serialize(dataset))
            f.flush()
            os.fsync(f.fileno())
        os.replace(tmp_name, target)
    except BaseException:
        Path(tmp_name).unlink(missing_ok=True)
        raise
    return target
