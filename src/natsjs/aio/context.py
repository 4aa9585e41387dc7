from __future__ import annotations

import logging
from typing import Any, Awaitable, Callable, TypeVar

from anyio import CancelScope, Event, create_task_group
from exceptiongroup import ExceptionGroup

from ..core.connection import Connection
from ..core.msg import Msg as CoreMsg
from ..errors import (
    APIResponseError,
    InvalidJSAckError,
    JetStreamNotEnabledError,
    NoMatchingStreamError,
    NoRespondersError,
    NoStreamResponseError,
    PubAckRejectedError,
    RequestCancelledError,
    ResponseDecodeError,
    StreamNameRequiredError,
)
from ..protocol import (
    AccountInfo,
    BindMode,
    BindPlan,
    ConsumerConfig,
    ConsumerInfo,
    InvalidResponseError,
    JetStreamOptions,
    PubAck,
    PublishOptions,
    StreamConfig,
    StreamInfo,
    SubscribeOptions,
    finalize_consumer_config,
    needs_consumer_lookup,
    plan_attach,
    plan_create,
    plan_direct,
    select_bind_mode,
)
from ..protocol.constant import (
    DEFAULT_SUB_PENDING_MSGS_LIMIT,
    JS_API_ERR_CODE_NOT_ENABLED,
)
from ..protocol.serialization import (
    decode_response,
    encode_consumer_create_request,
    encode_publish_headers,
    encode_stream_create_request,
    encode_stream_lookup_request,
    parse_account_info,
    parse_api_error,
    parse_consumer_info,
    parse_pub_ack,
    parse_stream_info,
    parse_stream_names,
)
from .msg import Msg
from .subscription import JetStreamSubscription

logger = logging.getLogger("natsjs.aio.context")

T = TypeVar("T")


async def jetstream(
    connection: Connection,
    options: JetStreamOptions | None = None,
) -> JetStream:
    """Create a JetStream context.

    Unless direct mode is enabled, the account information is requested
    to make sure that JetStream is enabled.

    Raises:
        JetStreamNotEnabledError: when JetStream is not enabled for the account.
    """
    js = JetStream(connection, options)
    if not js.options.direct:
        await js.account_info()
    return js


class JetStream:
    """JetStream context used to publish to streams and bind subscriptions
    to consumers."""

    def __init__(
        self,
        connection: Connection,
        options: JetStreamOptions | None = None,
    ) -> None:
        self.options = options or JetStreamOptions()
        self._connection = connection
        self._api = self.options.new_api_subjects()

    def __repr__(self) -> str:
        return (
            f"<natsjs.aio.context.JetStream prefix={self.options.api_prefix!r} "
            f"direct={self.options.direct}>"
        )

    #############################
    # Publish                   #
    #############################

    async def publish(
        self,
        subject: str,
        payload: bytes = b"",
        options: PublishOptions | None = None,
        headers: dict[str, str] | None = None,
    ) -> PubAck:
        """Publish a message to a stream and wait for its acknowledgment.

        Raises:
            NoStreamResponseError: when no stream listens on the subject.
            PubAckRejectedError: when the stream refuses the message.
            InvalidJSAckError: when the acknowledgment is not valid.
            RequestCancelledError: when the cancel event of the options is set.
        """
        opts = options or PublishOptions()
        hdr = encode_publish_headers(
            headers,
            msg_id=opts.msg_id,
            expected_stream=opts.expected_stream,
            expected_last_seq=opts.expected_last_seq,
            expected_last_msg_id=opts.expected_last_msg_id,
        )
        try:
            if opts.cancel is not None:
                resp = await self._request_with_cancel(
                    subject, payload, hdr, opts.cancel
                )
            else:
                resp = await self._connection.request(
                    subject,
                    payload,
                    headers=hdr,
                    timeout=opts.timeout or self.options.wait,
                )
        except NoRespondersError as exc:
            raise NoStreamResponseError() from exc
        try:
            raw = decode_response(resp.data())
            err = parse_api_error(raw)
        except InvalidResponseError as exc:
            raise InvalidJSAckError() from exc
        if err is not None:
            raise PubAckRejectedError(err.code, err.description)
        ack = parse_pub_ack(raw)
        if ack is None:
            raise InvalidJSAckError()
        return ack

    async def _request_with_cancel(
        self,
        subject: str,
        payload: bytes,
        headers: dict[str, str] | None,
        cancel: Event,
    ) -> CoreMsg:
        if cancel.is_set():
            raise RequestCancelledError()
        response: CoreMsg | None = None

        try:
            async with create_task_group() as tg:

                async def watch_cancel() -> None:
                    await cancel.wait()
                    tg.cancel_scope.cancel()

                tg.start_soon(watch_cancel)
                response = await self._connection.request(
                    subject, payload, headers=headers
                )
                tg.cancel_scope.cancel()
        except ExceptionGroup as exc_group:
            # Task groups wrap errors, unwrap the request error
            if len(exc_group.exceptions) == 1:
                raise exc_group.exceptions[0] from None
            raise
        if response is None:
            raise RequestCancelledError()
        return response

    #############################
    # Subscribe                 #
    #############################

    async def subscribe(
        self,
        subject: str,
        cb: Callable[[Msg], Awaitable[None]] | None = None,
        *,
        queue: str | None = None,
        options: SubscribeOptions | None = None,
    ) -> JetStreamSubscription:
        """Subscribe to a subject through a JetStream consumer.

        The consumer is looked up when attaching, or created on the stream
        capturing the subject. Messages are given to the callback when
        there is one, else they can be consumed from the subscription.
        """
        return await self._subscribe(
            subject, queue, cb, options or SubscribeOptions()
        )

    async def queue_subscribe(
        self,
        subject: str,
        queue: str,
        cb: Callable[[Msg], Awaitable[None]] | None = None,
        *,
        options: SubscribeOptions | None = None,
    ) -> JetStreamSubscription:
        """Subscribe to a subject as a member of a queue group."""
        return await self._subscribe(
            subject, queue, cb, options or SubscribeOptions()
        )

    async def pull_subscribe(
        self,
        subject: str,
        batch: int,
        *,
        options: SubscribeOptions | None = None,
    ) -> JetStreamSubscription:
        """Subscribe to a subject through a pull consumer."""
        opts = (options or SubscribeOptions()).with_pull(batch)
        return await self._subscribe(subject, None, None, opts)

    async def _subscribe(
        self,
        subject: str,
        queue: str | None,
        cb: Callable[[Msg], Awaitable[None]] | None,
        options: SubscribeOptions,
    ) -> JetStreamSubscription:
        plan = await self._plan_binding(subject, cb is not None, options)
        logger.debug("Binding subscription to %s: %r", subject, plan)
        sub = JetStreamSubscription(self, cb, plan.auto_ack)
        # Subscribe first, so that the subscription can be removed on failure
        await sub._start(
            plan.local_subject,
            queue,
            options.pending_msgs_limit or DEFAULT_SUB_PENDING_MSGS_LIMIT,
        )
        try:
            if plan.should_create():
                info = await self._create_consumer(sub, plan)
                stream = info.stream_name
                consumer = info.name
                deliver = info.config.deliver_subject or ""
            else:
                stream, consumer, deliver = plan.stream, plan.consumer, plan.deliver
            sub._ensure_binding().resolve(
                stream,
                consumer,
                deliver,
                created=plan.should_create(),
                pull=plan.pull,
            )
            if plan.is_pull_mode():
                await sub.poll()
        except BaseException:
            with CancelScope(shield=True):
                await sub.unsubscribe()
            raise
        return sub

    async def _plan_binding(
        self,
        subject: str,
        has_callback: bool,
        options: SubscribeOptions,
    ) -> BindPlan:
        mode = select_bind_mode(has_callback, options, self.options.direct)
        new_inbox = self._connection.new_inbox
        if mode == BindMode.DIRECT:
            return plan_direct(subject, has_callback, options, new_inbox)
        if mode == BindMode.ATTACH:
            info: ConsumerInfo | None = None
            if needs_consumer_lookup(options):
                info = await self.consumer_info(
                    options.stream or "", options.consumer or ""
                )
            return plan_attach(subject, has_callback, options, info, new_inbox)
        stream = await self._lookup_stream_by_subject(subject)
        return plan_create(subject, has_callback, options, stream, new_inbox)

    async def _create_consumer(
        self,
        sub: JetStreamSubscription,
        plan: BindPlan,
    ) -> ConsumerInfo:
        if plan.config is None:
            raise RuntimeError("Consumer configuration not planned")
        pending_msgs_limit, _ = sub.pending_limits()
        config = finalize_consumer_config(plan.config, pending_msgs_limit)
        info = await self.add_consumer(plan.stream, config)
        logger.debug("Created consumer %s on stream %s", info.name, info.stream_name)
        return info

    async def _lookup_stream_by_subject(self, subject: str) -> str:
        try:
            raw = await self._api_request(
                self._api.stream_names(), encode_stream_lookup_request(subject)
            )
        except APIResponseError as exc:
            raise NoMatchingStreamError(subject) from exc
        streams = self._parse(parse_stream_names, raw)
        if len(streams) != 1:
            raise NoMatchingStreamError(subject)
        return streams[0]

    #############################
    # Management                #
    #############################

    async def account_info(self) -> AccountInfo:
        try:
            raw = await self._api_request(self._api.account_info())
        except APIResponseError as exc:
            if exc.code == JS_API_ERR_CODE_NOT_ENABLED:
                raise JetStreamNotEnabledError() from exc
            raise
        return self._parse(parse_account_info, raw)

    async def add_stream(self, config: StreamConfig) -> StreamInfo:
        if not config.name:
            raise StreamNameRequiredError()
        raw = await self._api_request(
            self._api.stream_create(config.name),
            encode_stream_create_request(config),
        )
        return self._parse(parse_stream_info, raw)

    async def stream_info(self, stream: str) -> StreamInfo:
        if not stream:
            raise StreamNameRequiredError()
        raw = await self._api_request(self._api.stream_info(stream))
        return self._parse(parse_stream_info, raw)

    async def add_consumer(self, stream: str, config: ConsumerConfig) -> ConsumerInfo:
        """Create a consumer.

        Durable consumers are created through the durable create endpoint,
        ephemeral consumers through the consumer create endpoint.
        """
        if not stream:
            raise StreamNameRequiredError()
        if config.durable_name:
            subject = self._api.durable_create(stream, config.durable_name)
        else:
            subject = self._api.consumer_create(stream)
        raw = await self._api_request(
            subject, encode_consumer_create_request(stream, config)
        )
        return self._parse(parse_consumer_info, raw)

    async def consumer_info(self, stream: str, consumer: str) -> ConsumerInfo:
        raw = await self._api_request(self._api.consumer_info(stream, consumer))
        return self._parse(parse_consumer_info, raw)

    #############################
    # API helpers               #
    #############################

    async def _api_request(self, subject: str, payload: bytes = b"") -> dict[str, Any]:
        """Send a request to the JetStream API and decode the response.

        Raises:
            JetStreamNotEnabledError: when nobody answers the request.
            APIResponseError: when the response holds an error.
            ResponseDecodeError: when the response is not valid JSON.
        """
        try:
            resp = await self._connection.request(
                subject, payload, timeout=self.options.wait
            )
        except NoRespondersError as exc:
            raise JetStreamNotEnabledError() from exc
        raw = self._parse(decode_response, resp.data())
        err = self._parse(parse_api_error, raw)
        if err is not None:
            raise APIResponseError(err.code, err.description)
        return raw

    @staticmethod
    def _parse(parser: Callable[[Any], T], data: Any) -> T:
        try:
            return parser(data)
        except InvalidResponseError as exc:
            raise ResponseDecodeError(str(exc)) from exc
