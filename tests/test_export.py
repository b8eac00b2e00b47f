import json
import os
import subprocess
import sys
from pathlib import Path

import pyarrow.parquet as pq

from conftest import encode_block, header_block
from osmpbf_decode import decode_file
from osmpbf_export.tables import TableSink

REPO = Path(__file__).resolve().parents[1]


def run(*args):
    env = dict(os.environ)
    env["PYTHONPATH"] = os.pathsep.join(filter(None, [str(REPO / "src"), env.get("PYTHONPATH")]))
    return subprocess.run(
        [sys.executable, "-m", *args], cwd=REPO, env=env, check=False, capture_output=True, text=True
    )


def test_table_sink_writes_parquet(tmp_path, pbf_file):
    sink = TableSink()
    decode_file(pbf_file, sink)
    out = tmp_path / "out"
    counts = sink.write(out)

    assert counts == {"nodes": 3, "ways": 1, "relations": 1}

    nodes = pq.read_table(out / "nodes.parquet").to_pandas()
    assert nodes["id"].tolist() == [1, 2, 3]
    assert nodes["lat"].tolist()[0] == 52.0
    assert json.loads(nodes["tags"][0]) == {"amenity": "cafe"}
    assert nodes["user"].isna().all()

    ways = pq.read_table(out / "ways.parquet").to_pylist()
    assert ways[0]["refs"] == [1, 2, 3]
    assert ways[0]["lats"] == []

    relations = pq.read_table(out / "relations.parquet").to_pylist()
    assert relations[0]["member_refs"] == [10]
    assert relations[0]["member_types"] == ["way"]
    assert relations[0]["member_roles"] == ["outer"]

    header = json.loads((out / "header.json").read_text(encoding="utf-8"))
    assert header["bbox"]["left"] == -1_000_000_000
    assert header["writing_program"] == "unit-test"


def test_table_sink_skips_empty_tables(tmp_path):
    sink = TableSink()
    counts = sink.write(tmp_path / "empty")

    assert counts == {"nodes": 0, "ways": 0, "relations": 0}
    assert list((tmp_path / "empty").iterdir()) == []


def test_export_cli(tmp_path, pbf_file):
    out = tmp_path / "export"
    r = run("osmpbf_export.cli", str(pbf_file), str(out))
    assert r.returncode == 0, r.stderr + r.stdout
    assert "PASS" in r.stdout
    assert "Nodes: 3" in r.stdout

    streams = out / "nodes.parquet"
    assert streams.exists()
    assert streams.stat().st_size > 0

    # Corrupt the data block and ensure failure
    bad = tmp_path / "bad.osm.pbf"
    bad.write_bytes(
        encode_block("OSMHeader", header_block().SerializeToString())
        + encode_block("OSMData", b"\x12\x05\x01")
    )
    r = run("osmpbf_export.cli", str(bad), str(tmp_path / "export_fail"))
    assert r.returncode != 0
    assert r.stdout.startswith("Decoding:")
    assert "FATAL:" in r.stdout


def test_inspect_cli(pbf_file):
    r = run("osmpbf_decode.cli", "header", str(pbf_file))
    assert r.returncode == 0, r.stderr + r.stdout
    header = json.loads(r.stdout)
    assert header["required_features"] == ["OsmSchema-V0.6", "DenseNodes"]
    assert header["bbox"] == {"left": -1_000_000_000, "right": 2_000_000_000, "top": 3_000_000_000, "bottom": -4_000_000_000}

    r = run("osmpbf_decode.cli", "blocks", str(pbf_file))
    assert r.returncode == 0, r.stderr + r.stdout
    entries = [json.loads(line) for line in r.stdout.splitlines()]
    assert [e["type"] for e in entries] == ["OSMHeader", "OSMIndex", "OSMData"]

    r = run("osmpbf_decode.cli", "stats", str(pbf_file))
    assert r.returncode == 0, r.stderr + r.stdout
    stats = json.loads(r.stdout)
    assert stats["nodes"] == 3
    assert stats["skipped_blocks"] == 1
