"""
Live Tone Meter
===============

WebSocket endpoint that scores a draft while it is being typed.

The client sends every change of the draft:

    {"text": "Can you send it", "draftId": "composer-1"}   # draftId optional

and receives, once the draft has been quiet for the debounce interval:

    {"draftId": "composer-1", "text": "Can you send it", "analysis": {...}}

Clearing the draft answers immediately with `"analysis": null`. Results
for text that has since changed are never sent.
"""

import json

from fastapi import APIRouter, WebSocket, WebSocketDisconnect

from chatmind.agent.debounce import Debouncer, ToneMeter
from chatmind.agent.types import ToneAnalysis
from chatmind.api.routes import logger as api_logger

logger = api_logger.child("Live")

router = APIRouter()

DEFAULT_DRAFT = "default"


@router.websocket("/tone-impact-meter/live")
async def live_tone(websocket: WebSocket):
    await websocket.accept()

    debouncer = Debouncer(interval_ms=websocket.app.state.tone_debounce_ms)
    debouncer.start()

    async def push(draft_id: str, text: str, analysis: ToneAnalysis) -> None:
        await websocket.send_json({"draftId": draft_id, "text": text, "analysis": analysis.to_dict()})

    meter = ToneMeter(websocket.app.state.router, debouncer, on_result=push)
    logger.info("Live tone session opened")

    try:
        while True:
            raw = await websocket.receive_text()
            try:
                message = json.loads(raw)
            except json.JSONDecodeError:
                await websocket.send_json({"error": "Invalid JSON message"})
                continue

            if not isinstance(message, dict) or not isinstance(message.get("text"), str):
                await websocket.send_json({"error": "text (string) is required"})
                continue

            draft_id = str(message.get("draftId") or DEFAULT_DRAFT)
            text = message["text"]
            meter.update(draft_id, text)

            if not text.strip():
                await websocket.send_json({"draftId": draft_id, "text": "", "analysis": None})

    except WebSocketDisconnect:
        logger.info("Live tone session closed")
    finally:
        debouncer.stop()
