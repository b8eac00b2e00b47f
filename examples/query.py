"""Query exported tables - list tagged nodes for a key."""
from __future__ import annotations

import sys
from pathlib import Path

import duckdb


def main() -> None:
    if len(sys.argv) < 3:
        print("Usage: python query.py <export_path> <tag_key>")
        print("Example: python query.py out/ amenity")
        sys.exit(1)

    export = Path(sys.argv[1])
    tag_key = sys.argv[2]

    con = duckdb.connect(":memory:")
    con.execute(f"CREATE VIEW nodes AS SELECT * FROM '{export}/nodes.parquet'")

    sql = """
    SELECT
        id,
        lat,
        lon,
        json_extract_string(tags, '$."' || ? || '"') AS value
    FROM nodes
    WHERE json_extract_string(tags, '$."' || ? || '"') IS NOT NULL
    ORDER BY id
    """

    print(f"--- Nodes tagged {tag_key} ---\n")

    df = con.execute(sql, [tag_key, tag_key]).fetchdf()
    if df.empty:
        print("No matching nodes.")
    else:
        for _, row in df.iterrows():
            print(f"NODE {row['id']}: {row['value']}")
            print(f"  At: {row['lat']:.7f}, {row['lon']:.7f}")


if __name__ == "__main__":
    main()
