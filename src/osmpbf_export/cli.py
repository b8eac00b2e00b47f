"""OSM PBF - File to Parquet exporter."""
from __future__ import annotations

from pathlib import Path

import click

from osmpbf_decode.parser import decode_file
from osmpbf_export.tables import TableSink


def export_pbf(pbf_path: Path, out_path: Path, check_features: bool = True) -> dict[str, int]:
    """Decode a PBF file and write its entities as Parquet tables."""
    click.echo(f"Decoding: {pbf_path}")

    sink = TableSink()
    decoder = decode_file(pbf_path, sink, check_features=check_features)
    counts = sink.write(out_path)

    stats = decoder.get_stats()
    click.echo(f"PASS: Tables written to {out_path}")
    click.echo(f"  Blocks: {stats['header_blocks'] + stats['data_blocks']} (skipped {stats['skipped_blocks']})")
    click.echo(f"  Nodes: {counts['nodes']}")
    click.echo(f"  Ways: {counts['ways']}")
    click.echo(f"  Relations: {counts['relations']}")
    return counts


@click.command()
@click.argument("pbf", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.argument("out", type=click.Path(path_type=Path))
@click.option("--no-feature-check", is_flag=True, help="Decode even if the header requires unknown features")
def main(pbf: Path, out: Path, no_feature_check: bool) -> None:
    """Export a PBF file into Parquet tables."""
    try:
        export_pbf(pbf, out, check_features=not no_feature_check)
    except Exception as e:
        # Fail closed, with a single-line reason.
        click.echo(f"FATAL: {e}")
        raise SystemExit(1)


if __name__ == "__main__":
    main()
