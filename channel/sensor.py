"""Live MQTT subscription that tracks readings against the active threshold."""

from __future__ import annotations

import logging
import queue
import threading
from dataclasses import replace
from datetime import datetime, timezone
from typing import Any, Callable, Optional
from uuid import uuid4

import paho.mqtt.client as mqtt

from channel.events import (
    ChannelError,
    ChannelEvent,
    ChannelState,
    Connected,
    ConnectionState,
    Disconnected,
    ReadingReceived,
    Reconnecting,
    ThresholdExceeded,
    ThresholdUpdated,
)
from channel.parsing import BrokerEndpoint, exceeds_threshold, parse_broker_url, parse_sensor_payload
from models.errors import PayloadError

logger = logging.getLogger(__name__)

DEFAULT_THRESHOLD = 30.0
DEFAULT_REFRESH_INTERVAL = 60.0
RECONNECT_DELAY_SECONDS = 5
CONNECT_TIMEOUT_SECONDS = 30.0
KEEPALIVE_SECONDS = 60

_BACKGROUND_STATES = ("inactive", "background")

ThresholdFetcher = Callable[[], Optional[float]]
ExceededHook = Callable[[float, float], None]
ClientFactory = Callable[[str, str], Any]


def build_mqtt_client(client_id: str, transport: str) -> mqtt.Client:
    return mqtt.Client(
        mqtt.CallbackAPIVersion.VERSION2,
        client_id=client_id,
        clean_session=True,
        protocol=mqtt.MQTTv311,
        transport=transport,
    )


class SensorChannel:
    """Subscribe to a sensor topic and publish state snapshots and typed events.

    Three independent entry points mutate state: paho's network thread, the
    threshold refresher thread and :meth:`handle_app_state`. Every mutation
    replaces the :class:`ChannelState` snapshot under a lock and is dropped
    once :meth:`close` has run.
    """

    def __init__(
        self,
        broker_url: Optional[str],
        topic: Optional[str],
        fetch_threshold: ThresholdFetcher,
        refresh_interval: float = DEFAULT_REFRESH_INTERVAL,
        default_threshold: float = DEFAULT_THRESHOLD,
        on_threshold_exceeded: Optional[ExceededHook] = None,
        client_factory: ClientFactory = build_mqtt_client,
    ) -> None:
        self.broker_url = broker_url
        self.topic = topic
        self.refresh_interval = refresh_interval
        self.default_threshold = default_threshold
        self.events: "queue.Queue[ChannelEvent]" = queue.Queue()
        self._fetch_threshold = fetch_threshold
        self._on_threshold_exceeded = on_threshold_exceeded
        self._client_factory = client_factory
        self._client: Any = None
        self._state = ChannelState()
        self._lock = threading.Lock()
        self._closed = False
        self._stop = threading.Event()
        self._wake = threading.Event()
        self._refresher: Optional[threading.Thread] = None
        self._app_state = "active"

    @property
    def state(self) -> ChannelState:
        return self._state

    @property
    def closed(self) -> bool:
        return self._closed

    def start(self) -> None:
        """Begin threshold refreshes and, when configured, connect to the broker."""
        if self._closed:
            raise RuntimeError("SensorChannel has been closed.")
        if self._refresher is not None:
            return

        self._refresher = threading.Thread(
            target=self._refresh_loop,
            name="threshold-refresher",
            daemon=True,
        )
        self._refresher.start()

        if not self.broker_url or not self.topic:
            self._record_error("MQTT configuration missing. Set MQTT_BROKER_URL and MQTT_TOPIC.")
            return

        try:
            endpoint = parse_broker_url(self.broker_url)
        except ValueError as exc:
            self._record_error(str(exc), connection_state=ConnectionState.error)
            return
        self._connect(endpoint)

    def close(self) -> None:
        """Stop the refresher, unsubscribe and close the broker connection."""
        with self._lock:
            if self._closed:
                return
            self._state = replace(self._state, connection_state=ConnectionState.disconnected)
            self._closed = True

        self._stop.set()
        self._wake.set()
        client, self._client = self._client, None
        if client is not None:
            if self.topic:
                client.unsubscribe(self.topic)
            client.disconnect()
            client.loop_stop()
        self.events.put(Disconnected())
        logger.info("Sensor channel closed", extra={"topic": self.topic})

    def handle_app_state(self, next_state: str) -> None:
        """React to foreground/background transitions of the hosting app."""
        previous, self._app_state = self._app_state, next_state
        if self._closed:
            return
        if previous in _BACKGROUND_STATES and next_state == "active":
            logger.info("App returned to foreground, reconnecting", extra={"topic": self.topic})
            if self._client is not None:
                try:
                    self._client.reconnect()
                except OSError as exc:
                    # paho's loop thread keeps retrying on its own schedule
                    self._record_error(
                        f"Reconnect failed: {exc}",
                        connection_state=ConnectionState.reconnecting,
                    )
            self._wake.set()

    def refresh_threshold(self) -> Optional[float]:
        """Fetch the active threshold once and fold the result into state."""
        try:
            fetched = self._fetch_threshold()
        except Exception as exc:  # noqa: BLE001 - any fetch failure falls back to the last value
            with self._lock:
                if self._closed:
                    return None
                threshold = self._state.threshold
                if threshold is None:
                    threshold = self.default_threshold
                message = f"Failed to fetch threshold: {exc}"
                self._state = replace(self._state, threshold=threshold, threshold_error=message)
            logger.warning(
                "Threshold fetch failed, keeping previous value",
                extra={"threshold": threshold, "reason": str(exc)},
            )
            self.events.put(ThresholdUpdated(value=threshold, error=message))
            return threshold

        if fetched is None:
            threshold = self.default_threshold
            message = "No thresholds configured, using default"
        else:
            threshold = float(fetched)
            message = None

        with self._lock:
            if self._closed:
                return None
            self._state = replace(self._state, threshold=threshold, threshold_error=message)
        logger.debug("Threshold refreshed", extra={"threshold": threshold})
        self.events.put(ThresholdUpdated(value=threshold, error=message))
        return threshold

    def _refresh_loop(self) -> None:
        while not self._stop.is_set():
            self.refresh_threshold()
            self._wake.wait(self.refresh_interval)
            self._wake.clear()

    def _connect(self, endpoint: BrokerEndpoint) -> None:
        client_id = f"py-monitor-{uuid4().hex[:12]}"
        client = self._client_factory(client_id, endpoint.transport)
        if endpoint.transport == "websockets":
            client.ws_set_options(path=endpoint.path)
        if endpoint.tls:
            client.tls_set()
        client.connect_timeout = CONNECT_TIMEOUT_SECONDS
        client.reconnect_delay_set(min_delay=RECONNECT_DELAY_SECONDS, max_delay=RECONNECT_DELAY_SECONDS)
        client.on_connect = self._on_connect
        client.on_connect_fail = self._on_connect_fail
        client.on_disconnect = self._on_disconnect
        client.on_subscribe = self._on_subscribe
        client.on_message = self._on_message
        self._client = client

        logger.info(
            "Connecting to broker",
            extra={"topic": self.topic, "reason": f"{endpoint.host}:{endpoint.port}"},
        )
        client.connect_async(endpoint.host, endpoint.port, keepalive=KEEPALIVE_SECONDS)
        client.loop_start()

    def _on_connect(self, client: Any, _userdata: Any, _flags: Any, reason_code: Any, _properties: Any) -> None:
        if reason_code.is_failure:
            self._record_error(f"Broker refused connection: {reason_code}", connection_state=ConnectionState.error)
            return
        if not self._update(connection_state=ConnectionState.connected, error=None):
            return
        logger.info("Connected to broker", extra={"topic": self.topic, "connection_state": "connected"})
        self.events.put(Connected())
        client.subscribe(self.topic, qos=0)

    def _on_connect_fail(self, _client: Any, _userdata: Any) -> None:
        self._record_error("Connection to broker failed", connection_state=ConnectionState.error)

    def _on_disconnect(
        self, _client: Any, _userdata: Any, _flags: Any, reason_code: Any, _properties: Any
    ) -> None:
        if not self._update(connection_state=ConnectionState.reconnecting):
            return
        logger.info(
            "Disconnected from broker, reconnecting",
            extra={"topic": self.topic, "connection_state": "reconnecting", "reason": str(reason_code)},
        )
        self.events.put(Reconnecting())

    def _on_subscribe(self, _client: Any, _userdata: Any, _mid: int, reason_codes: Any, _properties: Any) -> None:
        failures = [code for code in reason_codes if code.is_failure]
        if failures:
            self._record_error(f"Subscribe to {self.topic!r} failed: {failures[0]}")
            return
        logger.info("Subscribed to topic", extra={"topic": self.topic})

    def _on_message(self, _client: Any, _userdata: Any, message: Any) -> None:
        received_at = datetime.now(timezone.utc)
        try:
            payload = parse_sensor_payload(message.payload, received_at)
        except PayloadError as exc:
            self._record_error(f"Message parse error: {exc}")
            return

        with self._lock:
            if self._closed:
                return
            self._state = replace(
                self._state,
                temperature=payload.temperature,
                timestamp=payload.timestamp,
                error=None,
            )
            threshold = self._state.threshold
        logger.debug("Reading received", extra={"temperature": payload.temperature})
        self.events.put(ReadingReceived(temperature=payload.temperature, timestamp=payload.timestamp))

        if exceeds_threshold(payload.temperature, threshold):
            self._signal_exceeded(payload.temperature, threshold)

    def _signal_exceeded(self, temperature: float, threshold: float) -> None:
        logger.warning(
            "Temperature exceeds threshold",
            extra={"temperature": temperature, "threshold": threshold},
        )
        self.events.put(ThresholdExceeded(temperature=temperature, threshold=threshold))
        if self._on_threshold_exceeded is not None:
            self._on_threshold_exceeded(temperature, threshold)

    def _update(self, **changes: Any) -> bool:
        with self._lock:
            if self._closed:
                return False
            self._state = replace(self._state, **changes)
            return True

    def _record_error(self, message: str, connection_state: Optional[ConnectionState] = None) -> None:
        changes: dict[str, Any] = {"error": message}
        if connection_state is not None:
            changes["connection_state"] = connection_state
        if not self._update(**changes):
            return
        logger.error(message, extra={"topic": self.topic})
        self.events.put(ChannelError(message=message))
