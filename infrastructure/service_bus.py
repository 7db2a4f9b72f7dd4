"""
Azure Service Bus Event Source.

Receives AtoN change events from a Service Bus topic subscription and hands
them to the registered listeners. Each receiver thread runs its own polling
loop, so listeners are invoked from several threads at once.

Message body (JSON):
    {"kind": "changed", "payload": {...} | "<json text>"}
    {"kind": "removed", "fid_filter": ["AtoN-1", ...] | "IN ('AtoN-1','AtoN-2')"}

Message settlement:
    - decoded and dispatched     -> complete
    - undecodable body           -> dead-letter (MalformedEvent)
    - unexpected listener error  -> abandon (redelivered by Service Bus)

Authentication Priority (Identity-First):
    1. Managed Identity via SERVICE_BUS_NAMESPACE (DefaultAzureCredential)
    2. Connection string via SERVICE_BUS_CONNECTION_STRING (local dev)

Exports:
    ServiceBusEventSource: IEventSource over a topic subscription
    decode_change_event: Message body -> ChangeEvent
"""

import json
import threading
from typing import Any, List, Optional

from azure.identity import DefaultAzureCredential
from azure.servicebus import ServiceBusClient, ServiceBusReceivedMessage, ServiceBusReceiver
from azure.servicebus.exceptions import (
    OperationTimeoutError,
    ServiceBusConnectionError,
    ServiceBusError,
)
from pydantic import ValidationError as PydanticValidationError

from config import ListenerConfig
from core.errors import ErrorCode, get_error_classification
from core.models import ChangeEvent
from exceptions import MalformedPayloadError
from .event_source import EventSourceBase


def _queue_error_dimensions(error: BaseException) -> dict:
    return {
        'error_code': ErrorCode.QUEUE_ERROR.value,
        'error_classification': get_error_classification(ErrorCode.QUEUE_ERROR).value,
        'error_type': type(error).__name__,
        'error_message': str(error),
    }


def decode_change_event(body: Any, message_id: Optional[str] = None) -> ChangeEvent:
    """
    Decode a message body into a ChangeEvent.

    Raises:
        MalformedPayloadError: body is not JSON or not a change event
    """
    try:
        data = json.loads(body) if isinstance(body, (str, bytes)) else body
        if not isinstance(data, dict):
            raise MalformedPayloadError(f"Event body must be a JSON object, got {type(data).__name__}")
        if message_id and not data.get('message_id'):
            data = {**data, 'message_id': message_id}
        return ChangeEvent(**data)
    except (json.JSONDecodeError, UnicodeDecodeError, PydanticValidationError) as e:
        raise MalformedPayloadError(f"Undecodable change event: {e}") from e


class ServiceBusEventSource(EventSourceBase):
    """
    IEventSource over an Azure Service Bus topic subscription.

    start() launches ``receiver_count`` polling threads. stop() signals them,
    waits for in-flight messages to settle and closes the client.
    """

    def __init__(self, config: ListenerConfig,
                 client: Optional[ServiceBusClient] = None,
                 shutdown_event: Optional[threading.Event] = None):
        super().__init__()
        self.config = config
        self._sb_client = client
        self._stop_event = shutdown_event if shutdown_event else threading.Event()
        self._threads: List[threading.Thread] = []
        self._client_lock = threading.Lock()
        self.poll_interval_on_error = 5
        self.messages_completed = 0
        self.messages_dead_lettered = 0
        self._counter_lock = threading.Lock()

    def _get_sb_client(self) -> ServiceBusClient:
        with self._client_lock:
            if self._sb_client is None:
                if self.config.namespace:
                    self.logger.info(f"🔐 Using Managed Identity for: {self.config.namespace}")
                    self._sb_client = ServiceBusClient(
                        fully_qualified_namespace=self.config.namespace,
                        credential=DefaultAzureCredential()
                    )
                elif self.config.connection_string:
                    self.logger.warning("⚠️ Using connection string auth (set SERVICE_BUS_NAMESPACE for production)")
                    self._sb_client = ServiceBusClient.from_connection_string(self.config.connection_string)
                else:
                    raise ValueError(
                        "No Service Bus connection configured. "
                        "Set SERVICE_BUS_NAMESPACE or SERVICE_BUS_CONNECTION_STRING"
                    )
            return self._sb_client

    # ========================================================================
    # LIFECYCLE
    # ========================================================================

    def start(self) -> None:
        if self._threads:
            return
        self._get_sb_client()
        for index in range(self.config.receiver_count):
            thread = threading.Thread(
                target=self._run_loop,
                name=f"aton-receiver-{index}",
                daemon=True
            )
            thread.start()
            self._threads.append(thread)
        self.logger.info(
            f"🚀 {len(self._threads)} receiver(s) on {self.config.topic}/{self.config.subscription}"
        )

    def stop(self, timeout: float = 30.0) -> None:
        self._stop_event.set()
        for thread in self._threads:
            thread.join(timeout=timeout)
        self._threads = []
        with self._client_lock:
            if self._sb_client is not None:
                try:
                    self._sb_client.close()
                    self.logger.info("🛑 Service Bus client closed")
                except ServiceBusError as e:
                    self.logger.warning(f"⚠️ Error closing Service Bus client: {e}")
                self._sb_client = None

    @property
    def is_running(self) -> bool:
        return any(t.is_alive() for t in self._threads)

    # ========================================================================
    # RECEIVE LOOP
    # ========================================================================

    def _run_loop(self) -> None:
        client = self._get_sb_client()
        while not self._stop_event.is_set():
            try:
                with client.get_subscription_receiver(
                    topic_name=self.config.topic,
                    subscription_name=self.config.subscription,
                    max_wait_time=self.config.max_wait_time_seconds,
                ) as receiver:
                    while not self._stop_event.is_set():
                        messages = receiver.receive_messages(
                            max_message_count=self.config.max_message_count,
                            max_wait_time=self.config.max_wait_time_seconds
                        )
                        for message in messages:
                            if self._stop_event.is_set():
                                receiver.abandon_message(message)
                                continue
                            self.process_message(message, receiver)

            except (ServiceBusConnectionError, OperationTimeoutError) as e:
                self.logger.warning(
                    f"⚠️ Transient Service Bus error: {type(e).__name__}: {e}",
                    extra={'custom_dimensions': _queue_error_dimensions(e)}
                )
                self._stop_event.wait(self.poll_interval_on_error)

            except ServiceBusError as e:
                self.logger.error(
                    f"❌ Service Bus error: {type(e).__name__}: {e}",
                    extra={'custom_dimensions': _queue_error_dimensions(e)}
                )
                self._stop_event.wait(self.poll_interval_on_error)

        self.logger.info(f"🛑 Receiver {threading.current_thread().name} exited")

    def process_message(self, message: ServiceBusReceivedMessage, receiver: ServiceBusReceiver) -> bool:
        """
        Decode, dispatch and settle one message.

        Returns True when the message was completed.
        """
        try:
            event = decode_change_event(str(message), message_id=message.message_id)
        except MalformedPayloadError as e:
            self.logger.error(
                f"❌ Dead-lettering malformed event {message.message_id}: {e}",
                extra={'custom_dimensions': {'message_id': message.message_id, 'error_code': e.error_code.value}}
            )
            receiver.dead_letter_message(message, reason="MalformedEvent", error_description=str(e)[:1024])
            with self._counter_lock:
                self.messages_dead_lettered += 1
            return False

        try:
            self.dispatch(event)
        except Exception:
            self.logger.exception(f"❌ Listener failed on {message.message_id}, abandoning for redelivery")
            receiver.abandon_message(message)
            return False

        receiver.complete_message(message)
        with self._counter_lock:
            self.messages_completed += 1
        return True
