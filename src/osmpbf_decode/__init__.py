"""OSM PBF Decode - Block-level decoding engine."""
from osmpbf_core.errors import FormatError

from .context import BlockContext, StringTable
from .entities import BBox, Header, Member, Metadata, Node, Relation, Way
from .parser import BlockDecoder, decode_file
from .sink import CollectingSink, EntitySink

__all__ = [
    "FormatError",
    "BlockContext",
    "StringTable",
    "BBox",
    "Header",
    "Member",
    "Metadata",
    "Node",
    "Relation",
    "Way",
    "BlockDecoder",
    "decode_file",
    "CollectingSink",
    "EntitySink",
]
