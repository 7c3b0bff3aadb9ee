"""MQTT transport: plate submissions in, arrival notifications out."""

from __future__ import annotations

import asyncio
import json
import logging
from typing import Any, cast

import paho.mqtt.client as mqtt

from platenotify.bus import EventBus, SubscriptionToken
from platenotify.config import PlateNotifyConfig
from platenotify.ingress.adapter import SUBMIT_METHOD, IngressAdapter, StatusCategory
from platenotify.models.arrival import ArrivalEvent


class MqttIngress:
    """Threaded paho-mqtt runtime feeding plate reports into the adapter.

    Every message on the ingest topic is treated as a submission body and
    handed to :meth:`IngressAdapter.handle` on the asyncio loop. When a
    notify topic is configured, each published arrival is sent there as a
    ``PLATE_DETECTED`` message once :meth:`attach_notifier` has run.

    :meth:`start` and :meth:`stop` block on the network and may run in an
    executor; the notifier methods touch the bus and belong on the loop.
    """

    def __init__(
        self,
        config: PlateNotifyConfig,
        adapter: IngressAdapter,
        *,
        loop: asyncio.AbstractEventLoop,
        bus: EventBus | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        self._config = config
        self._adapter = adapter
        self._loop = loop
        self._bus = bus
        self._logger = logger or logging.getLogger(__name__)
        self._client: mqtt.Client | None = None
        self._running = False
        self._subscription: SubscriptionToken | None = None
        self._tasks: set[asyncio.Task[None]] = set()

    @property
    def is_running(self) -> bool:
        return self._running

    def start(self) -> None:
        """Connect, subscribe to the ingest topic and start the network loop."""
        self.stop()
        config = self._config
        self._logger.debug(
            "MQTT ingress start host=%s port=%s topic=%s",
            config.mqtt_host,
            config.mqtt_port,
            config.mqtt_ingest_topic,
        )

        client = mqtt.Client(
            callback_api_version=cast(Any, mqtt).CallbackAPIVersion.VERSION2,
            client_id=config.mqtt_client_id,
        )
        client.enable_logger(self._logger)
        if config.mqtt_username:
            client.username_pw_set(config.mqtt_username, config.mqtt_password)

        def on_connect(
            c: mqtt.Client,
            _userdata: Any,
            _flags: Any,
            reason_code: Any,
            _properties: Any,
        ) -> None:
            if reason_code.value != 0:
                self._logger.warning("MQTT connect failed: %s", reason_code)
                return
            self._logger.debug("MQTT subscribing topic=%s", config.mqtt_ingest_topic)
            c.subscribe(config.mqtt_ingest_topic, qos=1)

        def on_message(_c: mqtt.Client, _userdata: Any, msg: mqtt.MQTTMessage) -> None:
            self._loop.call_soon_threadsafe(self._submit, bytes(msg.payload))

        def on_disconnect(
            _client: mqtt.Client,
            _userdata: Any,
            _disconnect_flags: Any,
            reason_code: Any,
            _properties: Any,
        ) -> None:
            if self._running:
                self._logger.debug("MQTT disconnected: %s", reason_code)

        client.on_connect = on_connect
        client.on_message = on_message
        client.on_disconnect = on_disconnect

        client.connect(config.mqtt_host, config.mqtt_port, keepalive=config.mqtt_keepalive)
        client.loop_start()

        self._client = client
        self._running = True
        self._logger.info("MQTT ingress listening on %s", config.mqtt_ingest_topic)

    def attach_notifier(self) -> None:
        """Forward bus arrivals to the notify topic. Call on the event loop."""
        if self._bus is None or not self._config.mqtt_notify_topic or self._subscription is not None:
            return
        self._subscription = self._bus.subscribe(self._notify)

    def detach_notifier(self) -> None:
        """Stop forwarding bus arrivals. Call on the event loop."""
        if self._bus is not None and self._subscription is not None:
            self._bus.unsubscribe(self._subscription)
        self._subscription = None

    def stop(self) -> None:
        """Disconnect and stop the network loop."""
        client = self._client
        self._client = None
        was_running = self._running
        self._running = False
        if client is None:
            return
        try:
            if was_running:
                client.disconnect()
        finally:
            client.loop_stop()
            self._logger.debug("MQTT network loop stopped")

    def _submit(self, payload: bytes) -> None:
        task = self._loop.create_task(self._handle(payload))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _handle(self, payload: bytes) -> None:
        response = await self._adapter.handle(SUBMIT_METHOD, payload)
        if response.status is StatusCategory.OK:
            self._logger.debug("MQTT submission accepted: %s", response.payload.get("message"))
        else:
            self._logger.info(
                "MQTT submission %s: %s",
                response.status.value,
                response.payload.get("message"),
            )

    def _notify(self, event: ArrivalEvent) -> None:
        client = self._client
        topic = self._config.mqtt_notify_topic
        if client is None or not topic:
            return
        client.publish(topic, json.dumps(event.to_message()), qos=1)
