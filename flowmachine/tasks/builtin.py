"""
Built-in Handlers for the Document Approval Workflow.

These handlers back the demo workflow. Each one receives the node's
input mapping (the previous node's outputs merged in) and returns the
fields it produces.
"""

from typing import Any, Dict
from datetime import datetime
import logging

from flowmachine.engine.handlers import register_handler


logger = logging.getLogger(__name__)


# Documents shorter than this are sent back by the reviewer
MIN_CONTENT_LENGTH = 20


@register_handler("createDocument")
async def create_document(inputs: Dict[str, Any]) -> Dict[str, Any]:
    """
    Create a draft document.

    Uses inputs (all optional):
    - title, content, creator
    """
    document = {
        "documentId": inputs.get("documentId", "doc-123"),
        "title": inputs.get("title", "Important Contract"),
        "content": inputs.get("content", "Contract details for the upcoming engagement."),
        "status": "draft",
        "creator": inputs.get("creator", "user1"),
    }
    logger.info(f"Created document {document['documentId']}")
    return document


@register_handler("reviewDocument")
async def review_document(inputs: Dict[str, Any]) -> Dict[str, Any]:
    """
    Review a document and decide whether it can be approved.

    A document is approved when its content is at least
    ``MIN_CONTENT_LENGTH`` characters long.
    """
    content = inputs.get("content") or ""
    approved = len(content) >= MIN_CONTENT_LENGTH
    return {
        "documentId": inputs.get("documentId"),
        "title": inputs.get("title"),
        "status": "reviewed",
        "creator": inputs.get("creator"),
        "reviewer": inputs.get("reviewer", "reviewer1"),
        "approved": approved,
        "comments": "Looks good" if approved else "Needs more details",
    }


@register_handler("approveDocument")
async def approve_document(inputs: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "documentId": inputs.get("documentId"),
        "title": inputs.get("title"),
        "status": "approved",
        "creator": inputs.get("creator"),
        "approver": inputs.get("approver", "manager1"),
        "approvalDate": datetime.now().isoformat(),
    }


@register_handler("rejectDocument")
async def reject_document(inputs: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "documentId": inputs.get("documentId"),
        "title": inputs.get("title"),
        "status": "rejected",
        "creator": inputs.get("creator"),
        "rejector": inputs.get("approver", "manager1"),
        "rejectionDate": datetime.now().isoformat(),
        "reason": "Missing information",
    }


@register_handler("notifyCreator")
async def notify_creator(inputs: Dict[str, Any]) -> Dict[str, Any]:
    """Tell the document's creator how it ended up."""
    subject = f"Document {inputs.get('status')}: {inputs.get('title')}"
    logger.info(f"Notifying {inputs.get('creator')}: {subject}")
    return {
        "notificationSent": True,
        "recipient": inputs.get("creator"),
        "subject": subject,
        "documentId": inputs.get("documentId"),
    }
