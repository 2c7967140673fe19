"""
FlowMachine - An async directed-graph workflow executor.

Describe a process as nodes and conditional edges, register handlers for
node types, and walk the graph from its start node to a result.
"""

__version__ = "1.0.0"
