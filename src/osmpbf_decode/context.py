"""Per-block decoding context: string table and scaling parameters."""
from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class StringTable:
    """Strings interned by one data block.

    Index 0 is the reserved delimiter and never resolves.
    """

    strings: tuple[str, ...] = ()

    @classmethod
    def from_message(cls, table) -> StringTable:
        return cls(tuple(s.decode("utf-8", errors="replace") for s in table.s))

    def get(self, index: int) -> str | None:
        """Return the string at ``index``, or None if there is none."""
        if index <= 0 or index >= len(self.strings):
            return None
        return self.strings[index]

    def __len__(self) -> int:
        return len(self.strings)


@dataclass(frozen=True)
class BlockContext:
    """Everything needed to turn one block's raw fields into values.

    Built once per PrimitiveBlock and passed explicitly to every decode
    call; never reused for another block.
    """

    strings: StringTable
    granularity: int
    lat_offset: int
    lon_offset: int
    date_granularity: int

    @classmethod
    def from_block(cls, block) -> BlockContext:
        # Unset fields read back as the schema defaults (100, 0, 0, 1000).
        return cls(
            strings=StringTable.from_message(block.stringtable),
            granularity=block.granularity,
            lat_offset=block.lat_offset,
            lon_offset=block.lon_offset,
            date_granularity=block.date_granularity,
        )
