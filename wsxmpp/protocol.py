########################################################################
# File name: protocol.py
# This file is part of: wsxmpp
#
# LICENSE
#
# This program is free software: you can redistribute it and/or modify
# it under the terms of the GNU Lesser General Public License as
# published by the Free Software Foundation, either version 3 of the
# License, or (at your option) any later version.
#
# This program is distributed in the hope that it will be useful, but
# WITHOUT ANY WARRANTY; without even the implied warranty of
# MERCHANTABILITY or FITNESS FOR A PARTICULAR PURPOSE.  See the GNU
# Lesser General Public License for more details.
#
# You should have received a copy of the GNU Lesser General Public
# License along with this program.  If not, see
# <http://www.gnu.org/licenses/>.
#
########################################################################
"""
:mod:`~wsxmpp.protocol` --- XMPP connection over a message transport
####################################################################

The :class:`XMPPConnection` glues a message transport (such as
:class:`~wsxmpp.websocket.WebSocketTransport`) to the negotiation state
machine in :mod:`wsxmpp.statemachine`. It owns the
:class:`~wsxmpp.statemachine.StreamContext`, sends what the transitions ask
for and reports the events through signals.

.. autoclass:: XMPPConnection

Transports
==========

A transport is any object with the following methods:

.. method:: send(text)

   Send one message. Must not block.

.. method:: close()

   Close the connection. The transport calls
   :meth:`XMPPConnection.connection_lost` once it is closed.

It reports to the connection by calling
:meth:`~XMPPConnection.connection_made`,
:meth:`~XMPPConnection.message_received` and
:meth:`~XMPPConnection.connection_lost`, in the manner of
:class:`asyncio.Protocol`.

"""
import asyncio
import logging

from . import callbacks, disco, errors, nonza, statemachine, xml
from .dispatcher import StanzaDispatcher
from .events import (
    ConnectionFailed,
    Direction,
    ElementObserved,
    MessageReceived,
    PresenceReceived,
    QueryReceived,
    SignedIn,
)
from .statemachine import State
from .utils import split_tag


_MUTED = "<!-- some bytes omitted -->"


class XMPPConnection:
    """
    One client connection.

    :param jid: The JID to authenticate as. A resource, if any, is requested
        when binding.
    :type jid: :class:`~wsxmpp.structs.JID`
    :param password: The password.
    :type password: :class:`str`
    :param capabilities: What the client advertises via service discovery;
        defaults to a fresh :class:`~wsxmpp.disco.Capabilities`.
    :type capabilities: :class:`~wsxmpp.disco.Capabilities`
    :param handlers: Additional :class:`~wsxmpp.dispatcher.IQHandler`
        objects; they are offered requests after the service discovery
        handlers.
    :param items: Items answered to disco#items requests.
    :type items: iterable of :class:`~wsxmpp.disco.Item`
    :param mechanism_classes: :mod:`aiosasl` mechanism classes to use.
    :param logger: Parent logger for this connection.
    :type logger: :class:`logging.Logger`

    Inbound messages are processed strictly one after the other. Once
    :meth:`start` has been called, :meth:`message_received` only queues the
    message and a single consumer task feeds it to the state machine;
    without a running consumer, messages are processed in-line.

    .. autoattribute:: state

    .. autoattribute:: local_jid

    .. automethod:: start

    .. automethod:: feed

    .. automethod:: send

    .. automethod:: send_iq_and_wait_for_reply

    .. automethod:: close

    Signals:

    .. signal:: on_connection_failed(message, exc)

       The connection failed; emitted at most once.

    .. signal:: on_signed_in(jid)

       The stream is negotiated and bound to `jid`.

    .. signal:: on_element(element, direction)

       An element was received or sent; `direction` is a
       :class:`~wsxmpp.events.Direction`.

    .. signal:: on_iq(iq)

       An IQ was received. Requests are answered by the handler pipeline
       independently of this signal.

    .. signal:: on_message(message)

    .. signal:: on_presence(presence)
    """

    on_connection_failed = callbacks.Signal()
    on_signed_in = callbacks.Signal()
    on_element = callbacks.Signal()
    on_iq = callbacks.Signal()
    on_message = callbacks.Signal()
    on_presence = callbacks.Signal()

    def __init__(self, jid, password, *,
                 capabilities=None,
                 handlers=(),
                 items=(),
                 mechanism_classes=None,
                 logger=logging.getLogger("wsxmpp")):
        super().__init__()
        self._logger = logger.getChild("XMPPConnection")
        for name in ["on_connection_failed", "on_signed_in", "on_element",
                     "on_iq", "on_message", "on_presence"]:
            getattr(self, name).logger = self._logger.getChild(name)

        if capabilities is None:
            capabilities = disco.Capabilities()
        self.capabilities = capabilities
        self.dispatcher = StanzaDispatcher(
            [
                disco.InfoHandler(capabilities),
                disco.ItemsHandler(items),
            ] + list(handlers),
            logger=self._logger.getChild("dispatcher"),
        )

        self._context = statemachine.initial_context(
            jid, password,
            mechanism_classes=mechanism_classes,
        )
        self._transport = None
        self._queue = asyncio.Queue()
        self._consumer = None
        self._pending_iqs = {}

    @property
    def state(self):
        """
        The current :class:`~wsxmpp.statemachine.State`.
        """
        return self._context.state

    @property
    def local_jid(self):
        """
        The local JID; the bound JID once the resource is bound.
        """
        return self._context.jid

    @property
    def context(self):
        return self._context

    def start(self):
        """
        Start the consumer task. Must be called from within a running event
        loop, before the transport is opened.
        """
        if self._consumer is not None:
            raise RuntimeError("already started")
        self._consumer = asyncio.ensure_future(self._consume())

    async def _consume(self):
        while True:
            text, exc = await self._queue.get()
            if text is None:
                self._connection_lost(exc)
                return
            self.feed(text)

    def _stop_consumer(self):
        if self._consumer is None:
            return
        if not self._consumer.done():
            self._consumer.cancel()
        self._consumer = None

    # transport callbacks

    def connection_made(self, transport):
        try:
            transition = statemachine.transport_opened(self._context)
        except errors.ProtocolViolation:
            transport.close()
            raise
        self._transport = transport
        self._apply(transition)

    def message_received(self, text):
        if self._consumer is None:
            self.feed(text)
        else:
            self._queue.put_nowait((text, None))

    def connection_lost(self, exc):
        if self._consumer is None or self._consumer.done():
            self._connection_lost(exc)
        else:
            self._queue.put_nowait((None, exc))

    def _connection_lost(self, exc):
        self._transport = None
        self._apply(statemachine.transport_closed(self._context, exc))
        self._fail_pending(exc or ConnectionError("connection closed"))

    # processing

    def _log_received(self, text, frame=None):
        if not self._logger.isEnabledFor(logging.DEBUG):
            return
        if frame is not None and frame.element is not None and \
                nonza.is_sasl(frame.element):
            text = "<{} xmlns={!r}>{}".format(
                split_tag(frame.element)[1],
                frame.element.nsmap.get(None),
                _MUTED,
            )
        self._logger.debug("RECV %r", text)

    def feed(self, text):
        """
        Process the inbound message `text` synchronously: decode it, run the
        transition and send whatever it produces.
        """
        try:
            frame = xml.decode(text)
        except errors.StreamError as exc:
            self._log_received(text)
            self._logger.warning("failed to decode frame: %s", exc)
            if self._transport is not None and \
                    self._context.state != State.DISCONNECTED:
                self._send_element(
                    nonza.StreamError.from_exception(exc).to_element()
                )
            self._apply(statemachine.abort(
                self._context,
                nonza.StreamError.from_exception(exc).message,
                exc,
            ))
            return

        self._log_received(text, frame)
        try:
            transition = statemachine.transition(
                self._context,
                frame,
                self.dispatcher,
            )
        except Exception as exc:
            self._logger.exception(
                "unexpected exception while processing frame"
            )
            transition = statemachine.abort(
                self._context,
                "internal error while processing frame",
                exc,
            )
        self._apply(transition)

    def _apply(self, transition):
        self._context = transition.context

        for event in transition.events:
            if isinstance(event, ElementObserved):
                self.on_element(event.element, event.direction)

        for element in transition.outgoing:
            self._send_element(element)

        failed = None
        for event in transition.events:
            if isinstance(event, ConnectionFailed):
                failed = event
                self.on_connection_failed(event.message, event.error)
            elif isinstance(event, SignedIn):
                self._logger.info("signed in as %s", event.jid)
                self.on_signed_in(event.jid)
            elif isinstance(event, QueryReceived):
                self._handle_iq_response(event.iq)
                self.on_iq(event.iq)
            elif isinstance(event, MessageReceived):
                self.on_message(event.message)
            elif isinstance(event, PresenceReceived):
                self.on_presence(event.presence)

        if failed is not None:
            self._fail_pending(failed.error)
            self._close_transport()

    def _send_element(self, element):
        if self._transport is None:
            raise ConnectionError("not connected")
        text = xml.encode(element)
        if self._logger.isEnabledFor(logging.DEBUG):
            if nonza.is_sasl(element):
                self._logger.debug("SENT %r", "<{}>{}".format(
                    split_tag(element)[1], _MUTED
                ))
            else:
                self._logger.debug("SENT %r", text)
        self._transport.send(text)
        self.on_element(element, Direction.OUTBOUND)

    def _close_transport(self):
        transport, self._transport = self._transport, None
        if transport is not None:
            transport.close()

    # IQ tracking

    def _handle_iq_response(self, iq):
        if not iq.type_.is_response:
            return
        keys = [(iq.from_, iq.id_)]
        local_jid = self._context.jid
        # needed for some servers
        if iq.from_ == local_jid:
            keys.append((None, iq.id_))
        elif iq.from_ is None:
            keys.append((local_jid, iq.id_))
        for key in keys:
            fut = self._pending_iqs.pop(key, None)
            if fut is not None:
                break
        else:
            self._logger.debug("unexpected IQ response: from=%s, id=%r",
                               iq.from_, iq.id_)
            return
        if fut.done():
            return
        if iq.type_.is_error:
            if iq.error is None:
                fut.set_exception(errors.XMPPCancelError(
                    errors.ErrorCondition.UNDEFINED_CONDITION
                ))
            else:
                fut.set_exception(iq.error.to_exception())
        else:
            fut.set_result(iq.payload)

    def _fail_pending(self, exc):
        pending, self._pending_iqs = self._pending_iqs, {}
        for fut in pending.values():
            if not fut.done():
                fut.set_exception(exc)

    # public API

    def send(self, stanza_obj):
        """
        Send the stanza `stanza_obj`.

        :raises ConnectionError: if the stream is not negotiated.
        """
        if self._context.state != State.NEGOTIATED:
            raise ConnectionError(
                "cannot send stanzas in state {}".format(
                    self._context.state.name
                )
            )
        self._send_element(stanza_obj.to_element())

    async def send_iq_and_wait_for_reply(self, iq, *, timeout=None):
        """
        Send the IQ request `iq` and wait for the reply.

        :param timeout: Time in seconds to wait for the reply, or
            :data:`None` to wait indefinitely.
        :raises wsxmpp.errors.XMPPError: if the reply is an error.
        :raises TimeoutError: if no reply arrives within `timeout`.
        :raises ConnectionError: if the connection fails before a reply
            arrives.
        :return: The payload of the result (or :data:`None`).

        Only a reply coming from the addressee of `iq` is accepted; a reply
        without ``from`` matches a request to the local JID and vice versa.
        """
        iq.autoset_id()
        key = (iq.to, iq.id_)
        fut = asyncio.get_running_loop().create_future()
        self._pending_iqs[key] = fut
        try:
            self.send(iq)
            return await asyncio.wait_for(fut, timeout)
        except asyncio.TimeoutError:
            raise TimeoutError(
                "no reply to IQ {!r} within {}s".format(iq.id_, timeout)
            ) from None
        finally:
            if self._pending_iqs.get(key) is fut:
                del self._pending_iqs[key]

    def close(self):
        """
        Close the stream and the transport. No failure is reported; pending
        IQ requests fail with :class:`ConnectionError`.
        """
        if self._transport is not None:
            self._apply(statemachine.close(self._context))
        self._fail_pending(ConnectionError("connection closed"))
        self._close_transport()
        self._stop_consumer()
