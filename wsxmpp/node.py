########################################################################
# File name: node.py
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
:mod:`~wsxmpp.node` --- XMPP network nodes (clients)
####################################################

.. autoclass:: Client

"""
import asyncio
import logging

from . import stanza, structs
from .protocol import XMPPConnection
from .websocket import WebSocketTransport


class Client:
    """
    An XMPP client connecting over WebSocket.

    :param jid: Jabber ID to connect as; a resource, if present, is
        requested when binding.
    :type jid: :class:`~wsxmpp.structs.JID` or :class:`str`
    :param password: The password.
    :param url: The WebSocket URL of the server.
    :param session: Optional :class:`aiohttp.ClientSession` to connect with.
    :param logger: Parent logger.

    The remaining keyword arguments (`capabilities`, `handlers`, `items` and
    `mechanism_classes`) are passed to the
    :class:`~wsxmpp.protocol.XMPPConnection`.

    The client makes exactly one connection attempt per :meth:`connect`;
    there are no retries. The password is given up during the attempt, so
    a client which failed or was disconnected cannot connect again; create
    a new one instead.

    .. attribute:: connection

       The :class:`~wsxmpp.protocol.XMPPConnection`. Connect to its signals
       to receive stanzas.

    .. autoattribute:: local_jid

    .. automethod:: connect

    .. automethod:: disconnect

    .. automethod:: send_presence

    The client is also an asynchronous context manager which connects on
    entry and disconnects on exit.
    """

    def __init__(self, jid, password, url, *,
                 capabilities=None,
                 handlers=(),
                 items=(),
                 mechanism_classes=None,
                 session=None,
                 logger=logging.getLogger("wsxmpp")):
        super().__init__()
        if isinstance(jid, str):
            jid = structs.JID.fromstr(jid)
        self._logger = logger.getChild("Client")
        self.connection = XMPPConnection(
            jid, password,
            capabilities=capabilities,
            handlers=handlers,
            items=items,
            mechanism_classes=mechanism_classes,
            logger=logger,
        )
        self._transport = WebSocketTransport(
            url,
            self.connection,
            session=session,
            logger=logger,
        )

    @property
    def local_jid(self):
        """
        The JID of the client; the bound JID once connected.
        """
        return self.connection.local_jid

    async def connect(self):
        """
        Open the transport and negotiate the stream.

        :return: The bound JID.
        :raises wsxmpp.errors.TransportError: if the server cannot be reached.
        :raises ConnectionError: the failure reported by the connection, for
            example :class:`~wsxmpp.errors.AuthenticationFailure`.
        """
        fut = asyncio.get_running_loop().create_future()

        def on_signed_in(jid):
            if not fut.done():
                fut.set_result(jid)
            return True

        def on_connection_failed(message, exc):
            if not fut.done():
                fut.set_exception(exc)
            return True

        signed_in_token = self.connection.on_signed_in.connect(on_signed_in)
        failed_token = self.connection.on_connection_failed.connect(
            on_connection_failed
        )
        try:
            self.connection.start()
            await self._transport.open()
            jid = await fut
        except Exception:
            self.disconnect()
            raise
        finally:
            self.connection.on_signed_in.disconnect(signed_in_token)
            self.connection.on_connection_failed.disconnect(failed_token)

        self._logger.info("connected as %s", jid)
        return jid

    def disconnect(self):
        """
        Close the stream and the transport.
        """
        self.connection.close()

    def send_presence(self, show=structs.PresenceShow.NONE, status=None):
        """
        Send an available presence with the given `show` and `status`,
        carrying the entity capabilities of the connection.
        """
        presence = stanza.Presence(
            show=show,
            status=status,
            extensions=[self.connection.capabilities.to_caps_element()],
        )
        self.connection.send(presence)

    async def __aenter__(self):
        await self.connect()
        return self

    async def __aexit__(self, exc_type, exc_value, traceback):
        self.disconnect()
