"""
Random tables.

A Table maps every integer covered by its entries' roll targets to an
entry. Totals outside [min_target, max_target] are clamped to the edge
entry when the matching clamp flag is set.

Tables are read from CSV files of (roll target, value) rows:

    roll,result
    1-2,goblins
    3,an empty room
    4+,a dragon

The header row is optional and blank rows are skipped. Relative paths are
looked up in the working directory, then in each search path in order.
"""

import csv
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Sequence, Union

from .dice import DicePool, DiceRoll, DiceRollResult, Die
from .errors import CrawlError, error_invalid_table, error_table_lookup
from .rolls import OverOrEqual, RollTarget, parse_roll_target

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]


@dataclass(frozen=True)
class TableEntry:
    roll_target: RollTarget
    value: str


@dataclass(frozen=True)
class TableRollResult:
    """The entry a roll landed on, with the roll that selected it."""
    entry: TableEntry
    roll: DiceRollResult

    @property
    def value(self) -> str:
        return self.entry.value

    @property
    def total(self) -> int:
        return self.roll.total


@dataclass
class Table:
    """
    An indexed list of entries.

    Build with Table.from_entries(); the constructor does no indexing.
    """
    entries: List[TableEntry]
    roll_targets: Dict[int, int]
    min_target: int
    max_target: int
    clamp_to_min: bool = False
    clamp_to_max: bool = False
    name: str = field(default="", compare=False)

    @classmethod
    def from_entries(
        cls,
        entries: Iterable[TableEntry],
        clamp_to_min: bool = False,
        clamp_to_max: Optional[bool] = None,
        name: str = "",
    ) -> "Table":
        """
        Index entries by the totals they cover; later entries win overlaps.

        Args:
            entries: Table rows in file order
            clamp_to_min: Resolve totals below the lowest target to the lowest entry
            clamp_to_max: Resolve totals above the highest target to the highest
                entry. None clamps only when the highest entry is an open
                bound such as "11+".
            name: Used in error messages

        Raises:
            InterpreterError: If there are no entries
        """
        entries = list(entries)
        if not entries:
            raise error_invalid_table(f"table {name or '<unnamed>'} has no entries")

        roll_targets: Dict[int, int] = {}
        for index, entry in enumerate(entries):
            for total in entry.roll_target.covers():
                roll_targets[total] = index

        if not roll_targets:
            raise error_invalid_table(f"table {name or '<unnamed>'} covers no roll totals")

        min_target = min(roll_targets)
        max_target = max(roll_targets)
        if clamp_to_max is None:
            top = entries[roll_targets[max_target]]
            clamp_to_max = isinstance(top.roll_target, OverOrEqual)

        return cls(entries, roll_targets, min_target, max_target,
                   clamp_to_min, clamp_to_max, name)

    def lookup(self, total: int) -> TableEntry:
        """
        Find the entry for a roll total.

        Raises:
            InterpreterError: If the total has no entry and is not clamped
        """
        index = self.roll_targets.get(total)
        if index is None:
            if total < self.min_target and self.clamp_to_min:
                index = self.roll_targets[self.min_target]
            elif total > self.max_target and self.clamp_to_max:
                index = self.roll_targets[self.max_target]
            else:
                raise error_table_lookup(total, self.name)
        return self.entries[index]

    def roll(self, dice_roll: DiceRoll, rng=None) -> TableRollResult:
        result = dice_roll.roll(rng)
        return TableRollResult(self.lookup(result.total), result)

    def auto_dice(self) -> DiceRoll:
        """
        One die spanning the table's targets.

        A table starting at 1 rolls d(max_target); one starting higher rolls a
        die with a side per target, shifted up by a modifier, so 2-12 rolls
        1d11 + 1.
        """
        if self.max_target < 1:
            raise error_invalid_table(
                f"table {self.name or '<unnamed>'} has no positive roll targets to roll"
            )
        low = max(self.min_target, 1)
        return DiceRoll(DicePool((Die(self.max_target - low + 1),)), low - 1)

    def auto_roll(self, rng=None) -> TableRollResult:
        return self.roll(self.auto_dice(), rng)

    def __len__(self) -> int:
        return len(self.entries)


def resolve_table_path(path: PathLike, search_paths: Sequence[PathLike] = ()) -> Path:
    """
    Locate a table file.

    Raises:
        FileNotFoundError: If no candidate exists
    """
    candidate = Path(path).expanduser()
    if candidate.is_absolute():
        if candidate.is_file():
            return candidate
        raise FileNotFoundError(f"no such table file: {candidate}")

    searched = [Path.cwd()] + [Path(p).expanduser() for p in search_paths]
    for directory in searched:
        full = directory / candidate
        if full.is_file():
            return full
    raise FileNotFoundError(
        f"table file {str(path)!r} not found in: {', '.join(str(d) for d in searched)}"
    )


def read_entries(csv_path: Path) -> List[TableEntry]:
    """
    Read (roll target, value) rows from a CSV file.

    Raises:
        ValueError: If a row is malformed or the file is not valid CSV
    """
    entries: List[TableEntry] = []
    first_row = True
    with open(csv_path, 'r', encoding='utf-8', newline='') as f:
        reader = csv.reader(f)
        try:
            for row in reader:
                row_number = reader.line_num
                cells = [cell.strip() for cell in row]
                if not any(cells):
                    continue
                if len(cells) < 2:
                    raise ValueError(f"{csv_path}:{row_number}: expected a roll target and a value")
                try:
                    target = parse_roll_target(cells[0])
                except CrawlError as e:
                    if first_row:
                        first_row = False  # header
                        continue
                    raise ValueError(f"{csv_path}:{row_number}: {e.reason}") from None
                first_row = False
                entries.append(TableEntry(target, cells[1]))
        except csv.Error as e:
            raise ValueError(f"{csv_path}:{reader.line_num}: {e}") from None
    return entries


def load_table(
    path: PathLike,
    search_paths: Sequence[PathLike] = (),
    clamp_to_min: bool = False,
) -> Table:
    """
    Load a table from a CSV file.

    Args:
        path: File name, as written in `load table "..."`
        search_paths: Directories tried after the working directory
        clamp_to_min: Clamp totals below the lowest target

    Returns:
        The table, named after `path`

    Raises:
        FileNotFoundError: If the file can't be found
        ValueError: If a row is malformed
        InterpreterError: If the file holds no entries
    """
    csv_path = resolve_table_path(path, search_paths)
    entries = read_entries(csv_path)
    table = Table.from_entries(entries, clamp_to_min=clamp_to_min, name=str(path))
    logger.debug("loaded table %s from %s (%d entries, targets %d-%d)",
                 path, csv_path, len(entries), table.min_target, table.max_target)
    return table
