import json
from dataclasses import asdict
from pathlib import Path

import click

from osmpbf_core.blocks import BlockReader
from osmpbf_core.errors import FormatError
from osmpbf_core.protocol import BLOCK_HEADER

from .parser import BlockDecoder, decode_file
from .sink import EntitySink

CANONICAL_JSON_KW = {"sort_keys": True, "separators": (",", ":"), "ensure_ascii": False, "default": str}


def _echo_json(obj) -> None:
    click.echo(json.dumps(obj, **CANONICAL_JSON_KW))


def _fail(e: Exception) -> None:
    click.echo(f"FATAL: {e}")
    raise SystemExit(1)


@click.group()
def main():
    pass


@main.command("header")
@click.argument("path", type=click.Path(exists=True, dir_okay=False, path_type=Path))
def header_cmd(path: Path):
    """Print the file header as JSON."""
    try:
        with BlockReader(path) as reader:
            decoder = BlockDecoder(EntitySink(), check_features=False)
            for block in reader:
                if block.type == BLOCK_HEADER:
                    _echo_json(asdict(decoder.decode_header_block(block.data)))
                    return
    except FormatError as e:
        _fail(e)
    _fail(FormatError("E_HEADER_WIRE", "no OSMHeader block"))


@main.command("blocks")
@click.argument("path", type=click.Path(exists=True, dir_okay=False, path_type=Path))
def blocks_cmd(path: Path):
    """Print one JSON line per block: offset, type, size, hash."""
    try:
        with BlockReader(path) as reader:
            for _ in reader:
                _echo_json(reader.index[-1])
    except FormatError as e:
        _fail(e)


@main.command("stats")
@click.argument("path", type=click.Path(exists=True, dir_okay=False, path_type=Path))
def stats_cmd(path: Path):
    """Decode every block and print entity counts."""
    try:
        decoder = decode_file(path, EntitySink())
    except FormatError as e:
        _fail(e)
    _echo_json(decoder.get_stats())


if __name__ == "__main__":
    main()
