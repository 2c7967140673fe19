#!/usr/bin/env python3
"""
Simple run script for the FlowMachine service.

Usage:
    python run.py

Or with custom settings:
    HOST=127.0.0.1 PORT=8080 python run.py
"""

import uvicorn
import os


def main():
    """Run the FastAPI application."""
    host = os.getenv("HOST", "0.0.0.0")
    port = int(os.getenv("PORT", "8000"))
    reload = os.getenv("RELOAD", "true").lower() == "true"

    print(f"FlowMachine serving on http://{host}:{port} (docs at /docs)")
    print("Demo flow ID: document-approval-demo")

    uvicorn.run(
        "flowmachine.main:app",
        host=host,
        port=port,
        reload=reload,
        log_level="info",
    )


if __name__ == "__main__":
    main()
