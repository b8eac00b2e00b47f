"""OSM PBF protocol constants.

Single source of truth for block labels, scaling defaults and framing bounds.
Reader and decoder must remain synchronized on these values.
"""

# Block type labels (BlobHeader.type)
BLOCK_HEADER = "OSMHeader"
BLOCK_DATA = "OSMData"
KNOWN_BLOCK_TYPES = frozenset({BLOCK_HEADER, BLOCK_DATA})

# Coordinates are stored in nanodegrees scaled by the block granularity.
NANO = 1e9

# PrimitiveBlock defaults when the fields are absent
DEFAULT_GRANULARITY = 100  # nanodegrees per unit
DEFAULT_DATE_GRANULARITY = 1000  # milliseconds per unit

# Framing: [Len(4, big endian) | BlobHeader(Len) | Blob(BlobHeader.datasize)]
BLOB_HEADER_LEN_FMT = ">I"
BLOB_HEADER_LEN_SIZE = 4

# Safety bounds from the format definition
MAX_BLOB_HEADER_SIZE = 64 * 1024  # 64 KiB
MAX_BLOB_SIZE = 32 * 1024 * 1024  # 32 MiB

# Required features this decoder understands
SUPPORTED_FEATURES = frozenset(
    {
        "OsmSchema-V0.6",
        "DenseNodes",
        "HistoricalInformation",
        "LocationsOnWays",
    }
)

# Relation.MemberType enum values
MEMBER_TYPES = {0: "node", 1: "way", 2: "relation"}
