"""
Tasks package - Built-in handlers registered on the global handler registry.
"""

from flowmachine.tasks.builtin import (
    create_document,
    review_document,
    approve_document,
    reject_document,
    notify_creator,
)

__all__ = [
    "create_document",
    "review_document",
    "approve_document",
    "reject_document",
    "notify_creator",
]
