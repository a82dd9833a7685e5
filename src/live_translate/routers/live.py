import base64
import binascii
import logging
import uuid
from typing import Optional, get_args

from fastapi import APIRouter, Query, WebSocket, WebSocketDisconnect

from ..pipeline.controller import SessionController
from ..pipeline.errors import PipelineError
from ..schemas.pipeline_settings import TranscriptSourceKind
from ..services.connection_manager import ConnectionManager
from ..services.speech_player import BroadcastSpeechPlayer
from .session import error_status

router = APIRouter(prefix="/api/live", tags=["Live Translation"])
logger = logging.getLogger(__name__)


async def handle_connection(
    websocket: WebSocket,
    client_id: str,
    manager: ConnectionManager,
    controller: SessionController,
    player: BroadcastSpeechPlayer,
):
    """
    Main loop for a single listening/capturing client.

    Inbound messages:
    - start {source_language, transcript_source?}: start a session
    - stop: stop capturing (queued phrases keep playing)
    - audio_chunk {data}: base64 16-bit PCM forwarded to the transcript source
    - playback_end / playback_error {utterance_id}: completion of a speak event
    - heartbeat: answered with a heartbeat

    Every pipeline event is pushed to all clients; a snapshot is sent on connect.
    """
    client = await manager.connect(websocket, client_id)
    await manager.send_message(
        client_id, {"type": "snapshot", "session": controller.snapshot().model_dump(mode="json")}
    )

    async def send_error(message: str, status: Optional[int] = None):
        payload = {"type": "error", "message": message}
        if status is not None:
            payload["status"] = status
        await manager.send_message(client_id, payload)

    try:
        while True:
            data = await websocket.receive_json()
            if not isinstance(data, dict):
                await send_error("Messages must be JSON objects")
                continue
            event_type = data.get("type")
            client.update_activity()

            if event_type == "heartbeat":
                await manager.send_message(client_id, {"type": "heartbeat"})

            elif event_type == "start":
                source_language = data.get("source_language") or ""
                transcript_source = data.get("transcript_source")
                if transcript_source is not None and transcript_source not in get_args(TranscriptSourceKind):
                    await send_error(f"Unknown transcript source: {transcript_source!r}", 422)
                    continue
                try:
                    await controller.start(source_language, transcript_source)
                except PipelineError as exc:
                    logger.warning(f"Start from {client_id} rejected: {exc}")
                    await send_error(str(exc), error_status(exc))

            elif event_type == "stop":
                await controller.stop()

            elif event_type == "audio_chunk":
                payload = data.get("data")
                if not payload:
                    logger.warning(f"Received audio_chunk event without data for {client_id}")
                    continue
                audio_b64 = payload.get("audio") if isinstance(payload, dict) else payload
                try:
                    chunk = base64.b64decode(audio_b64, validate=True)
                except (binascii.Error, TypeError, ValueError):
                    await send_error("audio_chunk data is not valid base64")
                    continue
                await controller.feed_audio(chunk)

            elif event_type == "playback_end":
                player.resolve(str(data.get("utterance_id", "")))

            elif event_type == "playback_error":
                message = data.get("message") or "Client reported a playback error"
                player.resolve(str(data.get("utterance_id", "")), error=str(message))

            else:
                logger.debug(f"Ignoring unknown message type {event_type!r} from {client_id}")

    except WebSocketDisconnect:
        logger.info(f"Client {client_id} disconnected")
    except Exception as e:
        logger.error(f"Error in live connection for {client_id}: {e}", exc_info=True)
    finally:
        manager.disconnect(client_id, client)


@router.websocket("/connect")
async def live_endpoint(websocket: WebSocket, client_id: Optional[str] = Query(default=None)):
    state = websocket.app.state
    await handle_connection(
        websocket,
        client_id or uuid.uuid4().hex,
        state.connection_manager,
        state.session_controller,
        state.speech_player,
    )
