"""
Graph Definition for the Flow Engine.

A flow is an ordered list of nodes and an ordered list of edges. Insertion
order matters: the first ``start`` node is the entry point and outgoing
edges are tried in the order they were added.

The graph is a read-only definition. The ``inputs`` and ``outputs`` on a
``NodeSpec`` are only seed values; each run copies them into its own
``RunState`` and never writes back to the graph.
"""

from typing import Any, Dict, List, Optional, Union
from pydantic import BaseModel, Field


# Built-in node types
START = "start"
END = "end"

BUILTIN_TYPES = (START, END)


class NodeSpec(BaseModel):
    """A unit of work in the flow."""
    id: str = Field(..., description="Unique node identifier within the flow")
    type: str = Field(..., description="Node type, used to pick the handler")
    inputs: Dict[str, Any] = Field(default_factory=dict, description="Seed inputs")
    outputs: Dict[str, Any] = Field(default_factory=dict, description="Seed outputs")


class EdgeSpec(BaseModel):
    """A conditional transition between two nodes."""
    id: str = Field(..., description="Unique edge identifier within the flow")
    source: str = Field(..., description="Source node id")
    target: str = Field(..., description="Target node id")
    conditions: Dict[str, Any] = Field(
        default_factory=dict,
        description="Flat equality map, or a predicate tree under 'all' / 'any'",
    )


class FlowDefinition(BaseModel):
    """The external load format of a flow."""
    name: Optional[str] = None
    nodes: List[NodeSpec] = Field(default_factory=list)
    edges: List[EdgeSpec] = Field(default_factory=list)

    class Config:
        json_schema_extra = {
            "example": {
                "name": "approval",
                "nodes": [
                    {"id": "start", "type": "start"},
                    {"id": "review", "type": "reviewDocument"},
                    {"id": "end", "type": "end"},
                ],
                "edges": [
                    {"id": "e1", "source": "start", "target": "review"},
                    {
                        "id": "e2",
                        "source": "review",
                        "target": "end",
                        "conditions": {"approved": True},
                    },
                ],
            }
        }


FlowDefinitionLike = Union[FlowDefinition, Dict[str, Any]]


class FlowGraph:
    """
    Node and edge storage with the structural queries the engine needs.

    No referential validation happens on insert: an edge may point at a
    node that does not exist, in which case ``get_target_node`` returns
    None and traversal simply stops there.
    """

    def __init__(self):
        self.nodes: Dict[str, NodeSpec] = {}
        self.edges: Dict[str, EdgeSpec] = {}

    @classmethod
    def from_definition(cls, definition: FlowDefinitionLike) -> "FlowGraph":
        """Build a graph from a ``FlowDefinition`` or its dict form."""
        if not isinstance(definition, FlowDefinition):
            definition = FlowDefinition.model_validate(definition)

        graph = cls()
        for node in definition.nodes:
            graph.add_node(node)
        for edge in definition.edges:
            graph.add_edge(edge)
        return graph

    def add_node(self, node: NodeSpec) -> "FlowGraph":
        """Add a node, replacing any node with the same id."""
        self.nodes[node.id] = node
        return self

    def add_edge(self, edge: EdgeSpec) -> "FlowGraph":
        """Add an edge, replacing any edge with the same id."""
        self.edges[edge.id] = edge
        return self

    def get_node(self, node_id: str) -> Optional[NodeSpec]:
        return self.nodes.get(node_id)

    def get_start_node(self) -> Optional[NodeSpec]:
        """Return the first node of type ``start``, or None."""
        for node in self.nodes.values():
            if node.type == START:
                return node
        return None

    def get_outgoing_edges(self, node_id: str) -> List[EdgeSpec]:
        """Return the edges leaving ``node_id``, in insertion order."""
        return [edge for edge in self.edges.values() if edge.source == node_id]

    def get_target_node(self, edge_id: str) -> Optional[NodeSpec]:
        """Return the target node of an edge, or None if either is missing."""
        edge = self.edges.get(edge_id)
        if edge is None:
            return None
        return self.nodes.get(edge.target)

    def node_types(self) -> List[str]:
        """Distinct node types in node order."""
        seen: List[str] = []
        for node in self.nodes.values():
            if node.type not in seen:
                seen.append(node.type)
        return seen

    def validate(self) -> List[str]:
        """
        Check the graph structure.

        The engine does not need this to run (dangling edges are allowed),
        but the API uses it to reject definitions that can never work.

        Returns:
            List of validation errors (empty if valid)
        """
        errors = []

        if not self.nodes:
            errors.append("Flow must have at least one node")
            return errors

        if self.get_start_node() is None:
            errors.append("Flow must have a node of type 'start'")

        for edge in self.edges.values():
            if edge.source not in self.nodes:
                errors.append(f"Edge '{edge.id}' source '{edge.source}' not found")
            if edge.target not in self.nodes:
                errors.append(f"Edge '{edge.id}' target '{edge.target}' not found")

        return errors

    def to_mermaid(self) -> str:
        """Generate a Mermaid diagram of the graph."""
        lines = ["graph TD"]

        for node_id, node in self.nodes.items():
            if node.type == START:
                lines.append(f'    {node_id}(("{node_id}"))')
            elif node.type == END:
                lines.append(f'    {node_id}((("{node_id}")))')
            else:
                lines.append(f'    {node_id}["{node_id}: {node.type}"]')

        for edge in self.edges.values():
            if edge.conditions:
                label = _condition_label(edge.conditions)
                lines.append(f"    {edge.source} -->|{label}| {edge.target}")
            else:
                lines.append(f"    {edge.source} --> {edge.target}")

        return "\n".join(lines)

    def __repr__(self) -> str:
        return (
            f"FlowGraph(nodes={list(self.nodes.keys())}, "
            f"edges={list(self.edges.keys())})"
        )


def _condition_label(conditions: Dict[str, Any]) -> str:
    if "all" in conditions or "any" in conditions:
        return " / ".join(key for key in ("all", "any") if key in conditions)
    return ", ".join(f"{key}={value!r}" for key, value in conditions.items()).replace('"', "'")
