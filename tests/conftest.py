import lzma
import struct
import zlib

import pytest

from osmpbf_core.osmformat import Blob, BlobHeader, HeaderBlock, PrimitiveBlock


def encode_block(block_type: str, payload: bytes, compression: str = "zlib") -> bytes:
    """Frame ``payload`` as one length-prefixed BlobHeader + Blob."""
    blob = Blob()
    blob.raw_size = len(payload)
    if compression == "zlib":
        blob.zlib_data = zlib.compress(payload)
    elif compression == "lzma":
        blob.lzma_data = lzma.compress(payload)
    else:
        blob.raw = payload
    blob_bytes = blob.SerializeToString()

    header = BlobHeader()
    header.type = block_type
    header.datasize = len(blob_bytes)
    header_bytes = header.SerializeToString()
    return struct.pack(">I", len(header_bytes)) + header_bytes + blob_bytes


def primitive_block(strings=(), **params):
    """PrimitiveBlock with string table ["", *strings] and the given params."""
    block = PrimitiveBlock()
    block.stringtable.s.append(b"")
    block.stringtable.s.extend(s.encode("utf-8") for s in strings)
    for name, value in params.items():
        setattr(block, name, value)
    return block


def header_block(left=-1_000_000_000, right=2_000_000_000, top=3_000_000_000, bottom=-4_000_000_000):
    header = HeaderBlock()
    header.bbox.left = left
    header.bbox.right = right
    header.bbox.top = top
    header.bbox.bottom = bottom
    return header


@pytest.fixture
def sample_blocks():
    """Header, an unknown extension block, and one data block of each kind."""
    header = header_block()
    header.required_features.extend(["OsmSchema-V0.6", "DenseNodes"])
    header.writingprogram = "unit-test"

    data = primitive_block(["amenity", "cafe", "highway", "residential", "outer", "alice"])
    dense = data.primitivegroup.add().dense
    dense.id.extend([1, 1, 1])
    dense.lat.extend([520000000, 10, 10])
    dense.lon.extend([130000000, -10, -10])
    dense.keys_vals.extend([1, 2, 0, 0, 0])

    way = data.primitivegroup.add().ways.add()
    way.id = 10
    way.refs.extend([1, 1, 1])
    way.keys.append(3)
    way.vals.append(4)

    rel = data.primitivegroup.add().relations.add()
    rel.id = 20
    rel.memids.append(10)
    rel.types.append(1)
    rel.roles_sid.append(5)

    return [
        ("OSMHeader", header.SerializeToString()),
        ("OSMIndex", b"opaque extension payload"),
        ("OSMData", data.SerializeToString()),
    ]


@pytest.fixture
def pbf_file(tmp_path, sample_blocks):
    path = tmp_path / "sample.osm.pbf"
    path.write_bytes(b"".join(encode_block(t, payload) for t, payload in sample_blocks))
    return path
