from fastapi import APIRouter, WebSocket, WebSocketDisconnect

router = APIRouter()


@router.websocket("/ws")
async def realtime_channel(websocket: WebSocket):
    manager = websocket.app.state.services.realtime
    await manager.connect(websocket)
    try:
        # Subscribers only listen; inbound frames are read to detect disconnects
        while True:
            await websocket.receive_text()
    except WebSocketDisconnect:
        pass
    finally:
        manager.disconnect(websocket)
