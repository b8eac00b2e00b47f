"""Entity sinks: where decoded records go."""
from __future__ import annotations

from dataclasses import dataclass, field

from .entities import Header, Node, Relation, Way


class EntitySink:
    """Receives decoded records in file order.

    Every hook is a no-op here; override the kinds you consume.
    """

    def header(self, header: Header) -> None:
        pass

    def node(self, node: Node) -> None:
        pass

    def way(self, way: Way) -> None:
        pass

    def relation(self, relation: Relation) -> None:
        pass

    def complete(self) -> None:
        """Called once after the last block of a stream."""


@dataclass
class CollectingSink(EntitySink):
    """Keeps everything in memory."""

    headers: list[Header] = field(default_factory=list)
    nodes: list[Node] = field(default_factory=list)
    ways: list[Way] = field(default_factory=list)
    relations: list[Relation] = field(default_factory=list)
    completed: bool = False

    def header(self, header: Header) -> None:
        self.headers.append(header)

    def node(self, node: Node) -> None:
        self.nodes.append(node)

    def way(self, way: Way) -> None:
        self.ways.append(way)

    def relation(self, relation: Relation) -> None:
        self.relations.append(relation)

    def complete(self) -> None:
        self.completed = True
