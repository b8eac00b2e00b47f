"""OSM PBF Core - Shared schema, framing and protocol constants."""
from .blocks import BlockPosition, BlockReader, FileBlock, decode_blob
from .errors import ERRORS, FormatError

__all__ = ["BlockPosition", "BlockReader", "FileBlock", "decode_blob", "ERRORS", "FormatError"]
