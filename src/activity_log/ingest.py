"""Slack message ingestion running alongside the polling collector."""

from __future__ import annotations

import logging
import threading
from datetime import datetime
from pathlib import Path
from typing import Any, Callable, Mapping, Optional, Protocol

from slack_sdk.errors import SlackApiError
from slack_sdk.socket_mode import SocketModeClient
from slack_sdk.socket_mode.request import SocketModeRequest
from slack_sdk.socket_mode.response import SocketModeResponse
from slack_sdk.web import WebClient

from .config import IngestSettings
from .models import MessageRecord
from .storage import MessageWriter

logger = logging.getLogger(__name__)

EventHandler = Callable[[Mapping[str, Any]], Any]


def build_message_record(
    event: Any,
    settings: IngestSettings,
    now: Optional[datetime] = None,
) -> Optional[MessageRecord]:
    """Filter one inbound event and turn it into a record, or return None."""
    if not isinstance(event, Mapping) or event.get("type") != "message":
        logger.debug("Ignoring non-message event: %r", event)
        return None

    channel = str(event.get("channel") or "")
    user = str(event.get("user") or "")
    subtype = event.get("subtype")
    if subtype:
        logger.debug("Drop subtype=%r user=%s ch=%s", subtype, user, channel)
        return None

    text = event.get("text")
    if not isinstance(text, str) or not text.strip():
        logger.debug("Drop empty text user=%s ch=%s", user, channel)
        return None

    if not settings.log_all and user != settings.self_user_id:
        logger.debug("Drop message from %s (want %s)", user, settings.self_user_id)
        return None

    return MessageRecord(
        timestamp=now or datetime.now().astimezone(),
        source=settings.source,
        direction=settings.direction,
        title=channel,
        text=text,
        metadata={
            "channelId": channel,
            "threadTs": str(event.get("thread_ts") or ""),
            "userId": user,
            "ts": str(event.get("ts") or ""),
        },
    )


class MessageIngestor:
    """Persists qualifying message events, one file per message."""

    def __init__(self, settings: IngestSettings, writer: Optional[MessageWriter] = None) -> None:
        self.settings = settings
        self._writer = writer or MessageWriter(settings.message_dir)

    def handle_event(self, event: Mapping[str, Any]) -> Optional[Path]:
        record = build_message_record(event, self.settings)
        if record is None:
            return None
        try:
            path = self._writer.save(record)
        except OSError:
            logger.exception("Failed to save message from channel %s", record.title)
            return None
        logger.debug("Saved message to %s", path)
        return path


class EventStream(Protocol):
    def run(self, handler: EventHandler, stop_event: threading.Event) -> None:
        """Deliver events to ``handler`` until ``stop_event`` is set."""


class SlackEventStream:
    """Receives Events API payloads over a Slack Socket Mode connection."""

    def __init__(self, settings: IngestSettings) -> None:
        self.settings = settings
        self._web_client = WebClient(token=settings.bot_token)

    def run(self, handler: EventHandler, stop_event: threading.Event) -> None:
        self._check_auth()
        client = SocketModeClient(
            app_token=self.settings.app_token,
            web_client=self._web_client,
        )

        def on_request(client: SocketModeClient, request: SocketModeRequest) -> None:
            client.send_socket_mode_response(
                SocketModeResponse(envelope_id=request.envelope_id)
            )
            if request.type != "events_api":
                logger.debug("Ignoring socket mode request type=%s", request.type)
                return
            payload = request.payload or {}
            if payload.get("type") != "event_callback":
                return
            try:
                handler(payload.get("event") or {})
            except Exception:
                logger.exception("Message handler failed.")

        client.socket_mode_request_listeners.append(on_request)
        logger.debug("Connecting to Slack socket mode.")
        client.connect()
        try:
            stop_event.wait()
        finally:
            client.close()
            logger.info("Slack ingest stopped.")

    def _check_auth(self) -> None:
        try:
            auth = self._web_client.auth_test()
        except SlackApiError as exc:
            logger.warning("Slack auth test error: %s", exc)
            return
        logger.info(
            "Slack auth ok: team=%s url=%s bot_user_id=%s",
            auth.get("team"),
            auth.get("url"),
            auth.get("user_id"),
        )


def run_ingest(
    ingestor: MessageIngestor,
    stream: EventStream,
    stop_event: threading.Event,
) -> None:
    """Pump events from ``stream`` into ``ingestor``; never raises."""
    try:
        stream.run(ingestor.handle_event, stop_event)
    except Exception:
        logger.exception("Message ingest terminated unexpectedly.")


def start_ingest_thread(
    settings: IngestSettings,
    stop_event: threading.Event,
    stream: Optional[EventStream] = None,
) -> threading.Thread:
    """Run the ingestor in a daemon thread that shares only ``stop_event``."""
    if settings.debug:
        logger.setLevel(logging.DEBUG)
        logging.getLogger("slack_sdk").setLevel(logging.DEBUG)
    ingestor = MessageIngestor(settings)
    thread = threading.Thread(
        target=run_ingest,
        args=(ingestor, stream or SlackEventStream(settings), stop_event),
        name="slack-ingest",
        daemon=True,
    )
    thread.start()
    logger.info("Slack ingest thread started; saving messages to %s", settings.message_dir)
    return thread
