from __future__ import annotations

import hashlib
import lzma
import struct
import zlib
from dataclasses import dataclass
from pathlib import Path
from typing import BinaryIO, Iterator, Protocol
from warnings import warn

from google.protobuf.message import DecodeError

from osmpbf_core.errors import FormatError
from osmpbf_core.osmformat import Blob, BlobHeader
from osmpbf_core.protocol import (
    BLOB_HEADER_LEN_FMT,
    BLOB_HEADER_LEN_SIZE,
    MAX_BLOB_HEADER_SIZE,
    MAX_BLOB_SIZE,
)


@dataclass(frozen=True)
class BlockPosition:
    """Where a block sits in the stream, known before its blob is read."""

    type: str
    offset: int
    datasize: int
    indexdata: bytes = b""


@dataclass(frozen=True)
class FileBlock:
    """A decompressed block payload with its type label."""

    type: str
    data: bytes
    offset: int = 0
    indexdata: bytes = b""


class BlockAdapter(Protocol):
    def skip_block(self, block_type: str) -> bool: ...

    def handle_block(self, block: FileBlock) -> None: ...

    def complete(self) -> None: ...


def decode_blob(raw: bytes) -> bytes:
    """Decode a Blob message and return its uncompressed payload."""
    blob = Blob()
    try:
        blob.ParseFromString(raw)
    except DecodeError as e:
        raise FormatError("E_BLOB_WIRE", str(e)) from e

    if blob.HasField("raw"):
        data = blob.raw
    elif blob.HasField("zlib_data"):
        try:
            data = zlib.decompress(blob.zlib_data)
        except zlib.error as e:
            raise FormatError("E_BLOB_WIRE", f"zlib: {e}") from e
    elif blob.HasField("lzma_data"):
        try:
            data = lzma.decompress(blob.lzma_data)
        except lzma.LZMAError as e:
            raise FormatError("E_BLOB_WIRE", f"lzma: {e}") from e
    else:
        present = [fd.name for fd, _ in blob.ListFields() if fd.name != "raw_size"]
        raise FormatError("E_BLOB_UNSUPPORTED", ", ".join(present) or "empty blob")

    if blob.HasField("raw_size") and len(data) != blob.raw_size:
        raise FormatError("E_BLOB_SIZE", f"got {len(data)} bytes, declared {blob.raw_size}")
    return data


class BlockReader:
    """Streams PBF blocks: disk framing is truth.

    - Each block is a big-endian length, a BlobHeader, then a Blob.
    - Clean EOF ends the stream; a torn trailing block is warned about and ends it.
    """

    def __init__(self, source: Path | str | BinaryIO):
        if isinstance(source, (str, Path)):
            self.f: BinaryIO = open(source, "rb")
            self._owned = True
        else:
            self.f = source
            self._owned = False
        # Bytes consumed so far; streams such as pipes cannot tell() or seek().
        self.offset = 0
        self.index: list[dict] = []
        self.scan_stats = {
            "blocks": 0,
            "skipped": 0,
            "bytes": 0,
            "torn": 0,
        }

    def close(self) -> None:
        if self._owned:
            self.f.close()

    def __enter__(self) -> BlockReader:
        return self

    def __exit__(self, *exc) -> None:
        self.close()

    def get_scan_stats(self) -> dict:
        return dict(self.scan_stats)

    def _read(self, n: int) -> bytes:
        """Read exactly ``n`` bytes unless EOF comes first."""
        chunks = []
        remaining = n
        while remaining > 0:
            chunk = self.f.read(remaining)
            if not chunk:
                break
            chunks.append(chunk)
            remaining -= len(chunk)
        data = b"".join(chunks)
        self.offset += len(data)
        return data

    def _read_position(self) -> BlockPosition | None:
        start_off = self.offset
        prefix = self._read(BLOB_HEADER_LEN_SIZE)

        # Clean EOF
        if len(prefix) == 0:
            return None

        if len(prefix) < BLOB_HEADER_LEN_SIZE:
            self.scan_stats["torn"] += 1
            warn(f"Truncated block length at offset {start_off}. Stopping scan.")
            return None

        (hlen,) = struct.unpack(BLOB_HEADER_LEN_FMT, prefix)
        if hlen > MAX_BLOB_HEADER_SIZE:
            raise FormatError(
                "E_BLOCK_SIZE", f"BlobHeader of {hlen} bytes at offset {start_off}"
            )

        raw_header = self._read(hlen)
        if len(raw_header) != hlen:
            self.scan_stats["torn"] += 1
            warn(f"Torn BlobHeader at offset {start_off}. Stopping scan.")
            return None

        header = BlobHeader()
        try:
            header.ParseFromString(raw_header)
        except DecodeError as e:
            raise FormatError("E_BLOB_WIRE", f"BlobHeader at offset {start_off}: {e}") from e

        if header.datasize < 0 or header.datasize > MAX_BLOB_SIZE:
            raise FormatError(
                "E_BLOCK_SIZE", f"Blob of {header.datasize} bytes at offset {start_off}"
            )

        return BlockPosition(
            type=header.type,
            offset=start_off,
            datasize=header.datasize,
            indexdata=header.indexdata,
        )

    def _read_blob(self, pos: BlockPosition) -> bytes | None:
        raw = self._read(pos.datasize)
        if len(raw) != pos.datasize:
            self.scan_stats["torn"] += 1
            warn(f"Torn blob payload at offset {pos.offset}. Stopping scan.")
            return None
        return raw

    def _record(self, pos: BlockPosition, status: str, raw: bytes | None) -> None:
        self.index.append(
            {
                "offset": int(pos.offset),
                "type": pos.type,
                "datasize": int(pos.datasize),
                "content_hash": hashlib.sha256(raw).hexdigest() if raw is not None else None,
                "status": status,
            }
        )
        self.scan_stats["blocks"] += 1
        self.scan_stats["bytes"] += pos.datasize

    def __iter__(self) -> Iterator[FileBlock]:
        """Yield every block, decompressed, in file order."""
        while True:
            pos = self._read_position()
            if pos is None:
                return
            raw = self._read_blob(pos)
            if raw is None:
                return
            data = decode_blob(raw)
            self._record(pos, "DECODED", raw)
            yield FileBlock(pos.type, data, pos.offset, pos.indexdata)

    def process(self, adapter: BlockAdapter) -> None:
        """Feed every block to ``adapter``; skipped blobs are never decompressed."""
        while True:
            pos = self._read_position()
            if pos is None:
                break

            if adapter.skip_block(pos.type):
                if self._read_blob(pos) is None:
                    break
                self._record(pos, "SKIPPED", None)
                self.scan_stats["skipped"] += 1
                continue

            raw = self._read_blob(pos)
            if raw is None:
                break
            data = decode_blob(raw)
            self._record(pos, "DECODED", raw)
            adapter.handle_block(FileBlock(pos.type, data, pos.offset, pos.indexdata))

        adapter.complete()
