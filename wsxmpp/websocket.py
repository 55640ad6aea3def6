########################################################################
# File name: websocket.py
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
:mod:`~wsxmpp.websocket` --- WebSocket transport
################################################

.. autoclass:: WebSocketTransport

"""
import asyncio
import logging

import aiohttp

from . import errors

#: WebSocket sub-protocol of :rfc:`7395`.
SUBPROTOCOL = "xmpp"


class WebSocketTransport:
    """
    Carry an XMPP stream over a WebSocket, using :mod:`aiohttp`.

    :param url: The ``ws://`` or ``wss://`` URL of the server.
    :type url: :class:`str`
    :param protocol: The object receiving the transport callbacks, usually
        an :class:`~wsxmpp.protocol.XMPPConnection`.
    :param session: The :class:`aiohttp.ClientSession` to use. If
        :data:`None`, a session is created on :meth:`open` and closed
        together with the transport.
    :param logger: Parent logger.

    Text messages are delivered to the protocol in order; binary messages
    are not part of the framing and are dropped. Sends are queued and written
    by a single task, so :meth:`send` never blocks.

    .. automethod:: open

    .. automethod:: send

    .. automethod:: close
    """

    def __init__(self, url, protocol, *, session=None,
                 logger=logging.getLogger("wsxmpp")):
        super().__init__()
        self.url = url
        self._protocol = protocol
        self._session = session
        self._owns_session = session is None
        self._logger = logger.getChild("WebSocketTransport")
        self._ws = None
        self._closing = False
        self._exception = None
        self._send_queue = asyncio.Queue()
        self._reader_task = None
        self._writer_task = None

    async def open(self):
        """
        Connect to :attr:`url` and notify the protocol.

        :raises wsxmpp.errors.TransportError: if the connection cannot be
            established.
        """
        if self._ws is not None:
            raise RuntimeError("transport already open")

        if self._session is None:
            self._session = aiohttp.ClientSession()

        self._logger.debug("connecting to %s", self.url)
        try:
            self._ws = await self._session.ws_connect(
                self.url,
                protocols=(SUBPROTOCOL,),
            )
        except (aiohttp.ClientError, OSError) as exc:
            await self._release_session()
            raise errors.TransportError(
                "failed to connect to {}: {}".format(self.url, exc)
            ) from exc

        if self._ws.protocol != SUBPROTOCOL:
            self._logger.warning(
                "server did not agree to the %r sub-protocol (got %r)",
                SUBPROTOCOL,
                self._ws.protocol,
            )

        self._reader_task = asyncio.ensure_future(self._reader())
        self._writer_task = asyncio.ensure_future(self._writer())
        self._protocol.connection_made(self)

    def send(self, text):
        """
        Queue the message `text` for sending.

        :raises wsxmpp.errors.TransportError: if the transport is closed.
        """
        if self._ws is None or self._closing:
            raise errors.TransportError("transport is closed")
        self._send_queue.put_nowait(text)

    def close(self):
        """
        Close the WebSocket after all queued messages have been written.
        """
        if self._closing:
            return
        self._closing = True
        self._send_queue.put_nowait(None)

    async def _writer(self):
        while True:
            text = await self._send_queue.get()
            if text is None:
                break
            try:
                await self._ws.send_str(text)
            except (aiohttp.ClientError, ConnectionError) as exc:
                self._logger.warning("failed to send: %s", exc)
                self._exception = errors.TransportError(
                    "failed to send: {}".format(exc)
                )
                break
        await self._ws.close()

    async def _reader(self):
        try:
            async for msg in self._ws:
                if msg.type == aiohttp.WSMsgType.TEXT:
                    self._protocol.message_received(msg.data)
                elif msg.type == aiohttp.WSMsgType.BINARY:
                    self._logger.warning("dropping binary message")
                elif msg.type == aiohttp.WSMsgType.ERROR:
                    self._exception = errors.TransportError(
                        "websocket error: {}".format(self._ws.exception())
                    )
                    break
        finally:
            if self._writer_task is not None and \
                    not self._writer_task.done():
                self._writer_task.cancel()
            if not self._ws.closed:
                await self._ws.close()
            await self._release_session()

        exc = self._exception
        if exc is None and not self._closing:
            exc = errors.TransportError(
                "websocket closed by peer (code {})".format(
                    self._ws.close_code
                )
            )
        self._closing = True
        self._protocol.connection_lost(exc)

    async def _release_session(self):
        if self._owns_session and self._session is not None:
            session, self._session = self._session, None
            await session.close()
