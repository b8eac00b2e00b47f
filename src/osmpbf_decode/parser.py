from __future__ import annotations

from datetime import datetime, timezone
from pathlib import Path
from typing import BinaryIO
from warnings import warn

from google.protobuf.message import DecodeError

from osmpbf_core.blocks import BlockReader, FileBlock
from osmpbf_core.errors import FormatError
from osmpbf_core.osmformat import HeaderBlock, PrimitiveBlock
from osmpbf_core.protocol import (
    BLOCK_DATA,
    BLOCK_HEADER,
    KNOWN_BLOCK_TYPES,
    MEMBER_TYPES,
    SUPPORTED_FEATURES,
)

from .codec import decode_lat, decode_lon, decode_timestamp, delta_decode
from .context import BlockContext, StringTable
from .entities import BBox, Header, Member, Metadata, Node, Relation, Way
from .sink import EntitySink


def _check_aligned(what: str, **arrays) -> None:
    """All arrays must share one length."""
    lengths = {name: len(values) for name, values in arrays.items()}
    if len(set(lengths.values())) > 1:
        detail = ", ".join(f"{name}={n}" for name, n in lengths.items())
        raise FormatError("E_ALIGNMENT", f"{what}: {detail}")


def _tags(strings: StringTable, keys, vals, owner: str) -> dict[str, str]:
    _check_aligned(owner, keys=keys, vals=vals)
    tags: dict[str, str] = {}
    for k, v in zip(keys, vals):
        key = strings.get(k)
        value = strings.get(v)
        if key is None or value is None:
            raise FormatError("E_STRING_INDEX", f"{owner}: tag ({k}, {v})")
        tags[key] = value
    return tags


def _metadata(ctx: BlockContext, msg) -> Metadata | None:
    if not msg.HasField("info"):
        return None
    info = msg.info
    return Metadata(
        version=info.version,
        timestamp=decode_timestamp(ctx, info.timestamp if info.HasField("timestamp") else None),
        changeset=info.changeset,
        uid=info.uid,
        user=ctx.strings.get(info.user_sid) if info.HasField("user_sid") else None,
        visible=info.visible if info.HasField("visible") else None,
    )


def decode_nodes(ctx: BlockContext, nodes) -> list[Node]:
    out: list[Node] = []
    for n in nodes:
        out.append(
            Node(
                id=n.id,
                lat=decode_lat(ctx, n.lat),
                lon=decode_lon(ctx, n.lon),
                tags=_tags(ctx.strings, n.keys, n.vals, f"node {n.id}"),
                metadata=_metadata(ctx, n),
            )
        )
    return out


def _dense_tags(strings: StringTable, keys_vals, count: int) -> list[dict[str, str]]:
    """Split the 0-delimited key/value index stream into one dict per node."""
    if not keys_vals:
        return [{} for _ in range(count)]

    out: list[dict[str, str]] = []
    current: dict[str, str] = {}
    i = 0
    end = len(keys_vals)
    while i < end:
        k = keys_vals[i]
        if k == 0:
            out.append(current)
            current = {}
            i += 1
            continue
        if i + 1 >= end:
            raise FormatError("E_DENSE_TAGS", f"key {k} without value at position {i}")
        v = keys_vals[i + 1]
        key = strings.get(k)
        value = strings.get(v)
        if key is None or value is None:
            raise FormatError("E_STRING_INDEX", f"dense node tag ({k}, {v})")
        current[key] = value
        i += 2

    if current:
        raise FormatError("E_DENSE_TAGS", "tag stream not terminated")
    if len(out) != count:
        raise FormatError("E_DENSE_TAGS", f"tags for {len(out)} nodes, expected {count}")
    return out


def _dense_metadata(ctx: BlockContext, info, count: int) -> list[Metadata]:
    arrays = {
        "version": list(info.version),
        "timestamp": delta_decode(info.timestamp),
        "changeset": delta_decode(info.changeset),
        "uid": delta_decode(info.uid),
        "user_sid": delta_decode(info.user_sid),
        "visible": list(info.visible),
    }
    for name, values in arrays.items():
        if values and len(values) != count:
            raise FormatError("E_ALIGNMENT", f"dense {name}={len(values)}, id={count}")

    def at(name: str, i: int, default=None):
        values = arrays[name]
        return values[i] if values else default

    out: list[Metadata] = []
    for i in range(count):
        user_sid = at("user_sid", i)
        out.append(
            Metadata(
                version=at("version", i, -1),
                timestamp=decode_timestamp(ctx, at("timestamp", i)),
                changeset=at("changeset", i, 0),
                uid=at("uid", i, 0),
                user=ctx.strings.get(user_sid) if user_sid is not None else None,
                visible=at("visible", i),
            )
        )
    return out


def decode_dense(ctx: BlockContext, dense) -> list[Node]:
    ids = delta_decode(dense.id)
    lats = delta_decode(dense.lat)
    lons = delta_decode(dense.lon)
    _check_aligned("dense nodes", id=ids, lat=lats, lon=lons)

    count = len(ids)
    tags = _dense_tags(ctx.strings, dense.keys_vals, count)
    if dense.HasField("denseinfo"):
        metadata: list[Metadata | None] = _dense_metadata(ctx, dense.denseinfo, count)
    else:
        metadata = [None] * count

    return [
        Node(
            id=ids[i],
            lat=decode_lat(ctx, lats[i]),
            lon=decode_lon(ctx, lons[i]),
            tags=tags[i],
            metadata=metadata[i],
        )
        for i in range(count)
    ]


def decode_ways(ctx: BlockContext, ways) -> list[Way]:
    out: list[Way] = []
    for w in ways:
        refs = delta_decode(w.refs)
        locations: tuple[tuple[float, float], ...] = ()
        if len(w.lat) or len(w.lon):
            lats = delta_decode(w.lat)
            lons = delta_decode(w.lon)
            _check_aligned(f"way {w.id}", refs=refs, lat=lats, lon=lons)
            locations = tuple(
                (decode_lat(ctx, lat), decode_lon(ctx, lon)) for lat, lon in zip(lats, lons)
            )
        out.append(
            Way(
                id=w.id,
                refs=tuple(refs),
                tags=_tags(ctx.strings, w.keys, w.vals, f"way {w.id}"),
                metadata=_metadata(ctx, w),
                locations=locations,
            )
        )
    return out


def decode_relations(ctx: BlockContext, relations) -> list[Relation]:
    out: list[Relation] = []
    for r in relations:
        memids = delta_decode(r.memids)
        _check_aligned(f"relation {r.id}", roles_sid=r.roles_sid, memids=memids, types=r.types)
        members = tuple(
            Member(ref=ref, type=MEMBER_TYPES.get(t, str(t)), role=ctx.strings.get(role))
            for ref, t, role in zip(memids, r.types, r.roles_sid)
        )
        out.append(
            Relation(
                id=r.id,
                members=members,
                tags=_tags(ctx.strings, r.keys, r.vals, f"relation {r.id}"),
                metadata=_metadata(ctx, r),
            )
        )
    return out


def decode_header(msg) -> Header:
    bbox = None
    if msg.HasField("bbox"):
        bbox = BBox(
            left=msg.bbox.left,
            right=msg.bbox.right,
            top=msg.bbox.top,
            bottom=msg.bbox.bottom,
        )
    replication_ts = None
    if msg.HasField("osmosis_replication_timestamp"):
        seconds = msg.osmosis_replication_timestamp
        try:
            replication_ts = datetime.fromtimestamp(seconds, tz=timezone.utc)
        except (OverflowError, OSError, ValueError) as e:
            raise FormatError("E_TIMESTAMP_RANGE", f"replication timestamp {seconds}") from e
    return Header(
        bbox=bbox,
        required_features=tuple(msg.required_features),
        optional_features=tuple(msg.optional_features),
        writing_program=msg.writingprogram if msg.HasField("writingprogram") else None,
        source=msg.source if msg.HasField("source") else None,
        replication_timestamp=replication_ts,
        replication_sequence_number=(
            msg.osmosis_replication_sequence_number
            if msg.HasField("osmosis_replication_sequence_number")
            else None
        ),
        replication_base_url=(
            msg.osmosis_replication_base_url
            if msg.HasField("osmosis_replication_base_url")
            else None
        ),
    )


class BlockDecoder:
    """Decodes OSMHeader and OSMData blocks and hands entities to a sink.

    Per-block state (string table, granularity, offsets) lives in a
    BlockContext built for each data block, so the decoder itself carries
    no block state between calls.
    """

    def __init__(self, sink: EntitySink, check_features: bool = True):
        self.sink = sink
        self.check_features = check_features
        self.stats = {
            "header_blocks": 0,
            "data_blocks": 0,
            "skipped_blocks": 0,
            "groups": 0,
            "nodes": 0,
            "ways": 0,
            "relations": 0,
        }

    def get_stats(self) -> dict:
        return dict(self.stats)

    def skip_block(self, block_type: str) -> bool:
        if block_type in KNOWN_BLOCK_TYPES:
            return False

        self.stats["skipped_blocks"] += 1
        warn(f"Skipped block of type: {block_type}")
        return True

    def handle_block(self, block: FileBlock) -> None:
        if block.type == BLOCK_HEADER:
            self.decode_header_block(block.data)
        elif block.type == BLOCK_DATA:
            self.decode_primitive_block(block.data)

    def complete(self) -> None:
        self.sink.complete()

    def decode_header_block(self, data: bytes) -> Header:
        msg = HeaderBlock()
        try:
            msg.ParseFromString(data)
        except DecodeError as e:
            raise FormatError("E_HEADER_WIRE", str(e)) from e

        header = decode_header(msg)
        if self.check_features:
            missing = [f for f in header.required_features if f not in SUPPORTED_FEATURES]
            if missing:
                raise FormatError("E_FEATURE_UNSUPPORTED", ", ".join(missing))

        self.stats["header_blocks"] += 1
        self.sink.header(header)
        return header

    def decode_primitive_block(self, data: bytes) -> BlockContext:
        block = PrimitiveBlock()
        try:
            block.ParseFromString(data)
        except DecodeError as e:
            raise FormatError("E_DATA_WIRE", str(e)) from e

        ctx = BlockContext.from_block(block)
        self.stats["data_blocks"] += 1
        for group in block.primitivegroup:
            self.decode_group(ctx, group)
        return ctx

    def decode_group(self, ctx: BlockContext, group) -> None:
        """Decode every populated variant, then emit in file order.

        Nothing reaches the sink unless the whole group decodes.
        """
        nodes: list[Node] = []
        ways: list[Way] = []
        relations: list[Relation] = []

        # Exactly one of these should be populated, but all are honoured.
        if len(group.nodes):
            nodes.extend(decode_nodes(ctx, group.nodes))
        if group.HasField("dense"):
            nodes.extend(decode_dense(ctx, group.dense))
        if len(group.ways):
            ways.extend(decode_ways(ctx, group.ways))
        if len(group.relations):
            relations.extend(decode_relations(ctx, group.relations))

        self.stats["groups"] += 1
        for node in nodes:
            self.sink.node(node)
        for way in ways:
            self.sink.way(way)
        for relation in relations:
            self.sink.relation(relation)
        self.stats["nodes"] += len(nodes)
        self.stats["ways"] += len(ways)
        self.stats["relations"] += len(relations)


def decode_file(
    source: Path | str | BinaryIO,
    sink: EntitySink,
    check_features: bool = True,
) -> BlockDecoder:
    """Decode a whole PBF file or stream into ``sink``."""
    decoder = BlockDecoder(sink, check_features=check_features)
    with BlockReader(source) as reader:
        reader.process(decoder)
    return decoder
