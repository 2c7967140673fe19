"""
Workflows package - Sample flow definitions.
"""

from flowmachine.workflows.document_approval import (
    create_document_approval_flow,
    register_document_approval_flow,
)

__all__ = [
    "create_document_approval_flow",
    "register_document_approval_flow",
]
