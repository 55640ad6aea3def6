########################################################################
# File name: testutils.py
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
This module contains utilities used for testing wsxmpp code: a scripted
server for the negotiation, a transport which records what is sent and the
usual helpers for running coroutines and observing signals.
"""
import asyncio
import logging
import os
import unittest.mock

from . import callbacks, xml
from .utils import namespaces


logger = logging.getLogger(__name__)


GLOBAL_TIMEOUT_FACTOR = 1.0

# and now we slap on some extra for CI
if os.environ.get("CI") == "true":
    GLOBAL_TIMEOUT_FACTOR *= 4
    logger.debug("increasing GLOBAL_TIMEOUT_FACTOR for CI")


def get_timeout(base):
    return base * GLOBAL_TIMEOUT_FACTOR


DEFAULT_TIMEOUT = get_timeout(1.0)


def run_coroutine(coroutine, timeout=DEFAULT_TIMEOUT, loop=None):
    if not loop:
        loop = asyncio.get_event_loop()
    return loop.run_until_complete(
        asyncio.wait_for(
            coroutine,
            timeout=timeout))


def make_listener(instance):
    """
    Return a :class:`unittest.mock.Mock` which has children connected to each
    :class:`wsxmpp.callbacks.Signal` of `instance`.

    The children are named exactly like the signals.
    """
    result = unittest.mock.Mock([])
    names = {
        name
        for type_ in type(instance).__mro__
        for name in type_.__dict__
    }
    for name in names:
        signal = getattr(instance, name)
        if not isinstance(signal, callbacks.AdHocSignal):
            continue
        cb = unittest.mock.Mock()
        setattr(result, name, cb)
        cb.return_value = None
        signal.connect(cb)
    return result


class CoroutineMock(unittest.mock.Mock):
    delay = 0

    async def __call__(self, *args, **kwargs):
        result = super().__call__(*args, **kwargs)
        await asyncio.sleep(self.delay)
        return result


class TransportMock:
    """
    Stand-in for a message transport which records the sent messages.

    .. attribute:: sent

       List of the messages passed to :meth:`send`, as text.

    .. attribute:: closed

       Whether :meth:`close` was called.
    """

    def __init__(self):
        super().__init__()
        self.sent = []
        self.closed = False

    def send(self, text):
        if self.closed:
            raise ConnectionError("transport closed")
        self.sent.append(text)

    def close(self):
        self.closed = True

    def sent_elements(self):
        """
        Return the sent messages parsed into :mod:`lxml` elements.
        """
        return [xml.decode(text).element for text in self.sent]

    def pop_sent(self):
        """
        Return and forget the sent messages, parsed as with
        :meth:`sent_elements`.
        """
        result = self.sent_elements()
        self.sent.clear()
        return result


# canned server messages

def server_open(stream_id="s1", domain="icq.org"):
    return (
        '<open xmlns="{}" from="{}" id="{}" version="1.0" '
        'xml:lang="en"/>'.format(namespaces.framing, domain, stream_id)
    )


def server_stream_header(stream_id="s1", domain="icq.org"):
    return (
        "<stream:stream xmlns='jabber:client' "
        "xmlns:stream='{}' from='{}' id='{}' version='1.0'>".format(
            namespaces.xmlstream, domain, stream_id
        )
    )


def server_features(mechanisms=(), *, bind=False, session=False):
    parts = []
    if mechanisms:
        parts.append('<mechanisms xmlns="{}">{}</mechanisms>'.format(
            namespaces.sasl,
            "".join(
                "<mechanism>{}</mechanism>".format(mechanism)
                for mechanism in mechanisms
            )
        ))
    if bind:
        parts.append('<bind xmlns="{}"/>'.format(namespaces.rfc6120_bind))
    if session:
        parts.append('<session xmlns="{}"><optional/></session>'.format(
            namespaces.rfc3921_session
        ))
    return '<stream:features xmlns:stream="{}">{}</stream:features>'.format(
        namespaces.xmlstream,
        "".join(parts),
    )


def server_sasl(localname, text=None):
    if text is None:
        return '<{} xmlns="{}"/>'.format(localname, namespaces.sasl)
    return '<{0} xmlns="{1}">{2}</{0}>'.format(
        localname, namespaces.sasl, text
    )


def server_sasl_failure(condition, text=None):
    inner = "<{}/>".format(condition)
    if text is not None:
        inner += "<text>{}</text>".format(text)
    return '<failure xmlns="{}">{}</failure>'.format(namespaces.sasl, inner)


def server_bind_result(id_, jid):
    return (
        '<iq xmlns="jabber:client" type="result" id="{}">'
        '<bind xmlns="{}"><jid>{}</jid></bind>'
        '</iq>'.format(id_, namespaces.rfc6120_bind, jid)
    )


def server_iq_result(id_):
    return '<iq xmlns="jabber:client" type="result" id="{}"/>'.format(id_)


def server_stream_error(condition, text=None):
    inner = '<{} xmlns="{}"/>'.format(condition, namespaces.streams)
    if text is not None:
        inner += '<text xmlns="{}">{}</text>'.format(namespaces.streams, text)
    return '<stream:error xmlns:stream="{}">{}</stream:error>'.format(
        namespaces.xmlstream,
        inner,
    )


SERVER_CLOSE = '<close xmlns="{}"/>'.format(namespaces.framing)
