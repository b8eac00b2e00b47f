from __future__ import annotations

import json
from dataclasses import asdict
from pathlib import Path

import pandas as pd
import pyarrow as pa
import pyarrow.parquet as pq

from osmpbf_decode.entities import Header, Metadata, Node, Relation, Way
from osmpbf_decode.sink import EntitySink

CANONICAL_JSON_KW = {"sort_keys": True, "separators": (",", ":"), "ensure_ascii": False}

_META_FIELDS = [
    ("version", pa.int32()),
    ("timestamp", pa.timestamp("ms", tz="UTC")),
    ("changeset", pa.int64()),
    ("uid", pa.int32()),
    ("user", pa.string()),
    ("visible", pa.bool_()),
]

NODE_SCHEMA = pa.schema(
    [
        ("id", pa.int64()),
        ("lat", pa.float64()),
        ("lon", pa.float64()),
        ("tags", pa.string()),
    ]
    + _META_FIELDS
)

WAY_SCHEMA = pa.schema(
    [
        ("id", pa.int64()),
        ("refs", pa.list_(pa.int64())),
        ("lats", pa.list_(pa.float64())),
        ("lons", pa.list_(pa.float64())),
        ("tags", pa.string()),
    ]
    + _META_FIELDS
)

RELATION_SCHEMA = pa.schema(
    [
        ("id", pa.int64()),
        ("member_refs", pa.list_(pa.int64())),
        ("member_types", pa.list_(pa.string())),
        ("member_roles", pa.list_(pa.string())),
        ("tags", pa.string()),
    ]
    + _META_FIELDS
)


def _tags_json(tags: dict[str, str]) -> str:
    return json.dumps(tags, **CANONICAL_JSON_KW)


def _meta_columns(meta: Metadata | None) -> dict:
    if meta is None:
        return {name: None for name, _ in _META_FIELDS}
    return {
        "version": meta.version,
        "timestamp": meta.timestamp,
        "changeset": meta.changeset,
        "uid": meta.uid,
        "user": meta.user,
        "visible": meta.visible,
    }


class TableSink(EntitySink):
    """Collects entities as rows and writes them as Parquet tables."""

    def __init__(self):
        self.header_record: Header | None = None
        self.nodes: list[dict] = []
        self.ways: list[dict] = []
        self.relations: list[dict] = []

    def header(self, header: Header) -> None:
        self.header_record = header

    def node(self, node: Node) -> None:
        self.nodes.append(
            {
                "id": node.id,
                "lat": node.lat,
                "lon": node.lon,
                "tags": _tags_json(node.tags),
                **_meta_columns(node.metadata),
            }
        )

    def way(self, way: Way) -> None:
        self.ways.append(
            {
                "id": way.id,
                "refs": list(way.refs),
                "lats": [lat for lat, _ in way.locations],
                "lons": [lon for _, lon in way.locations],
                "tags": _tags_json(way.tags),
                **_meta_columns(way.metadata),
            }
        )

    def relation(self, relation: Relation) -> None:
        self.relations.append(
            {
                "id": relation.id,
                "member_refs": [m.ref for m in relation.members],
                "member_types": [m.type for m in relation.members],
                "member_roles": [m.role for m in relation.members],
                "tags": _tags_json(relation.tags),
                **_meta_columns(relation.metadata),
            }
        )

    def to_frames(self) -> dict[str, pd.DataFrame]:
        return {
            "nodes": pd.DataFrame(self.nodes, columns=NODE_SCHEMA.names),
            "ways": pd.DataFrame(self.ways, columns=WAY_SCHEMA.names),
            "relations": pd.DataFrame(self.relations, columns=RELATION_SCHEMA.names),
        }

    def write(self, out_path: Path) -> dict[str, int]:
        """Write header.json and one Parquet file per non-empty entity table."""
        out_path = Path(out_path)
        out_path.mkdir(parents=True, exist_ok=True)

        if self.header_record is not None:
            header_bytes = json.dumps(
                asdict(self.header_record), default=str, **CANONICAL_JSON_KW
            ).encode("utf-8")
            (out_path / "header.json").write_bytes(header_bytes)

        schemas = {"nodes": NODE_SCHEMA, "ways": WAY_SCHEMA, "relations": RELATION_SCHEMA}
        counts: dict[str, int] = {}
        for name, df in self.to_frames().items():
            counts[name] = len(df)
            if df.empty:
                continue
            table = pa.Table.from_pandas(df, schema=schemas[name], preserve_index=False)
            pq.write_table(table, out_path / f"{name}.parquet")
        return counts
