########################################################################
# File name: events.py
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
:mod:`~wsxmpp.events` --- Events emitted by the connection state machine
########################################################################

The state machine and the stanza dispatcher do not call back into
application code. They return lists of the following immutable event
objects, which the :class:`~wsxmpp.protocol.XMPPConnection` turns into
signal emissions.

.. autoclass:: Direction

.. autoclass:: ConnectionFailed(message, error)

.. autoclass:: SignedIn(jid)

.. autoclass:: ElementObserved(element, direction)

.. autoclass:: QueryReceived(iq)

.. autoclass:: MessageReceived(message)

.. autoclass:: PresenceReceived(presence)

"""
import collections

from enum import Enum


class Direction(Enum):
    INBOUND = "in"
    OUTBOUND = "out"


class ConnectionFailed(collections.namedtuple("ConnectionFailed",
                                              ["message", "error"])):
    """
    The connection failed. Emitted exactly once per connection; the state
    machine is :attr:`~.State.DISCONNECTED` afterwards.

    .. attribute:: message

       Human-readable reason.

    .. attribute:: error

       The exception describing the failure, usually one of the
       :class:`ConnectionError` subclasses of :mod:`wsxmpp.errors`.
    """

    __slots__ = []


SignedIn = collections.namedtuple("SignedIn", ["jid"])

ElementObserved = collections.namedtuple(
    "ElementObserved",
    ["element", "direction"],
)

QueryReceived = collections.namedtuple("QueryReceived", ["iq"])

MessageReceived = collections.namedtuple("MessageReceived", ["message"])

PresenceReceived = collections.namedtuple("PresenceReceived", ["presence"])
