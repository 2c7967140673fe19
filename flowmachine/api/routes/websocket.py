"""
WebSocket Routes for Real-time Execution Streaming.

Streams each node execution as the flow runs.
"""

from fastapi import APIRouter, WebSocket, WebSocketDisconnect
import logging

from flowmachine.api.routes.flows import execute_flow
from flowmachine.engine.context import NodeExecution
from flowmachine.storage.memory import flow_storage


logger = logging.getLogger(__name__)

router = APIRouter(tags=["WebSocket"])


@router.websocket("/ws/run/{flow_id}")
async def websocket_run(websocket: WebSocket, flow_id: str):
    """
    WebSocket endpoint for real-time flow execution.

    Message format (client -> server):
    ```json
    {"action": "start", "inputs": {"title": "..."}}
    ```

    Message format (server -> client), one per executed node:
    ```json
    {
        "type": "step",
        "step": 1,
        "node_id": "create",
        "node_type": "createDocument",
        "inputs": {...},
        "outputs": {...},
        "timestamp": "..."
    }
    ```
    followed by a single ``completed`` message with status, result and metrics.
    """
    stored = await flow_storage.get(flow_id)
    if not stored:
        await websocket.close(code=4004, reason=f"Flow '{flow_id}' not found")
        return

    await websocket.accept()
    logger.info(f"WebSocket connected for flow: {flow_id}")

    try:
        data = await websocket.receive_json()

        if data.get("action") != "start":
            await websocket.send_json({
                "type": "error",
                "error": "Expected 'start' action"
            })
            await websocket.close()
            return

        step_counter = 0

        async def on_step(record: NodeExecution):
            nonlocal step_counter
            step_counter += 1
            await websocket.send_json({
                "type": "step",
                "step": step_counter,
                **record.to_dict(),
            })

        await websocket.send_json({"type": "started", "flow_id": flow_id})

        run, _ = await execute_flow(stored, data.get("inputs") or {}, on_step=on_step)

        await websocket.send_json({
            "type": "completed",
            "run_id": run.run_id,
            "status": run.status,
            "result": run.result,
            "metrics": run.metrics,
            "error": run.error,
        })
        await websocket.close()

    except WebSocketDisconnect:
        logger.info(f"Client disconnected from flow {flow_id}")
    finally:
        logger.info(f"WebSocket closed for flow: {flow_id}")
