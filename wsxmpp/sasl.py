########################################################################
# File name: sasl.py
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
:mod:`~wsxmpp.sasl` -- SASL mechanism negotiation
#################################################

The mechanisms themselves are implemented by :mod:`aiosasl`. Since the
connection state machine processes one frame at a time and never waits for
the server, the :class:`aiosasl.SASLMechanism` coroutine is not run on an
event loop. Instead, it is suspended whenever it wants to talk to the server
and resumed by :class:`SASLNegotiator` when the server's answer arrives.

.. autofunction:: select

.. autoclass:: SASLNegotiator()

.. autoclass:: SASLXMPPInterface

"""
import logging

import aiosasl

from . import errors

logger = logging.getLogger(__name__)


#: Mechanism classes tried when none are configured explicitly.
DEFAULT_MECHANISM_CLASSES = (
    aiosasl.SCRAM,
    aiosasl.PLAIN,
)


class _Exchange:
    """
    Awaitable which suspends the mechanism coroutine, hands `request` to
    whoever drives it and returns what the driver sends back.
    """

    def __init__(self, request):
        self.request = request

    def __await__(self):
        reply = yield self.request
        return reply


class SASLXMPPInterface(aiosasl.SASLInterface):
    """
    :class:`aiosasl.SASLInterface` whose requests are handed out to the
    :class:`SASLNegotiator` instead of being sent over a stream.

    The negotiator answers each request with a ``(state, payload)`` pair,
    where `state` is ``"challenge"``, ``"success"`` or ``"failure"``.
    """

    async def _exchange(self, request):
        state, payload = await _Exchange(request)
        if state == "failure":
            condition, text = payload
            raise aiosasl.SASLFailure(condition, text=text)
        return state, payload

    async def initiate(self, mechanism, payload=None):
        return await self._exchange(("auth", mechanism, payload))

    async def respond(self, payload):
        return await self._exchange(("response", payload))

    async def abort(self):
        # nothing is sent; the negotiator fails the stream instead
        return "failure", None


class SASLNegotiator:
    """
    One SASL session: the selected mechanism together with the suspended
    :mod:`aiosasl` coroutine. Use :func:`select` to create instances.

    .. attribute:: mechanism

       The name of the selected mechanism, e.g. ``"PLAIN"``.

    .. automethod:: initiate

    .. automethod:: next_challenge

    .. automethod:: success

    .. automethod:: failure

    A negotiator is single-use. After :meth:`success` or :meth:`failure`
    (or any error), the mechanism coroutine and with it the credentials are
    dropped.
    """

    def __init__(self, mechanism_name, mechanism, token):
        super().__init__()
        self.mechanism = mechanism_name
        self._coro = mechanism.authenticate(
            aiosasl.SASLStateMachine(SASLXMPPInterface()),
            token,
        )

    @property
    def done(self):
        return self._coro is None

    def _discard(self):
        if self._coro is not None:
            self._coro.close()
            self._coro = None

    def _resume(self, value):
        if self._coro is None:
            raise RuntimeError("SASL session already finished")
        try:
            return self._coro.send(value)
        except StopIteration:
            self._coro = None
            raise
        except Exception as exc:
            # mechanisms raise all kinds of errors on malformed server data
            self._coro = None
            raise self._convert(exc) from exc

    @staticmethod
    def _convert(exc):
        if isinstance(exc, aiosasl.SASLError):
            return errors.AuthenticationFailure(
                getattr(exc, "opaque_error", None),
                getattr(exc, "text", None) or str(exc),
            )
        return errors.AuthenticationFailure(
            None,
            str(exc) or type(exc).__name__,
        )

    def _expect(self, request, kind):
        if not isinstance(request, tuple) or request[0] != kind:
            self._discard()
            raise errors.AuthenticationFailure(
                None,
                "unexpected request from SASL mechanism: {!r}".format(
                    request
                ),
            )
        return request

    def initiate(self):
        """
        Start the mechanism and return the initial response as
        :class:`bytes`, or :data:`None` if the mechanism sends none.

        :raises wsxmpp.errors.AuthenticationFailure: if the mechanism fails
            to start, for example because the credentials cannot be prepared.
        """
        try:
            request = self._resume(None)
        except StopIteration:
            raise errors.AuthenticationFailure(
                None,
                "SASL mechanism finished without authenticating",
            ) from None
        _, mechanism, payload = self._expect(request, "auth")
        logger.debug("initiating SASL with mechanism %s", mechanism)
        return payload

    def next_challenge(self, payload):
        """
        Feed the decoded server challenge `payload` into the mechanism and
        return the response to send.

        :raises wsxmpp.errors.AuthenticationFailure: if the mechanism rejects
            the challenge.
        """
        try:
            request = self._resume(("challenge", payload))
        except StopIteration:
            raise errors.AuthenticationFailure(
                None,
                "SASL mechanism finished on a challenge",
            ) from None
        _, response = self._expect(request, "response")
        return response

    def success(self, payload=None):
        """
        Complete the mechanism with the additional data `payload` sent along
        with the server's success (or :data:`None`).

        :raises wsxmpp.errors.AuthenticationFailure: if the mechanism does
            not accept the server's final data.
        """
        try:
            request = self._resume(("success", payload))
        except StopIteration:
            return
        self._discard()
        raise errors.AuthenticationFailure(
            None,
            "SASL mechanism continued after success: {!r}".format(request),
        )

    def failure(self, condition, text=None):
        """
        Discard the session after the server reported failure and return the
        :class:`~wsxmpp.errors.AuthenticationFailure` to report.
        """
        self._discard()
        return errors.AuthenticationFailure(condition, text)

    def __repr__(self):
        return "<SASLNegotiator mechanism={!r} done={}>".format(
            self.mechanism,
            self.done,
        )


def _find_supported(offered, mechanism_classes):
    for name in offered:
        for mechanism_class in mechanism_classes:
            token = mechanism_class.any_supported([name])
            if token is not None:
                return name, mechanism_class, token
    return None, None, None


def select(offered, jid, password, *, mechanism_classes=None):
    """
    Select a mechanism out of the `offered` mechanism names and return a
    fresh :class:`SASLNegotiator` for it.

    :param offered: Mechanism names announced by the server.
    :type offered: sequence of :class:`str`
    :param jid: The JID to authenticate as; its localpart is the user name.
    :type jid: :class:`~wsxmpp.structs.JID`
    :param password: The password.
    :type password: :class:`str`
    :param mechanism_classes: :class:`aiosasl.SASLMechanism` subclasses to
        use, defaults to :data:`DEFAULT_MECHANISM_CLASSES`.
    :raises wsxmpp.errors.UnsupportedMechanismError: if no offered mechanism
        is supported.

    The offered mechanisms are considered in the order the server announced
    them; the first one supported by any of the `mechanism_classes` wins.
    """
    if mechanism_classes is None:
        mechanism_classes = DEFAULT_MECHANISM_CLASSES

    name, mechanism_class, token = _find_supported(
        offered,
        mechanism_classes,
    )
    if mechanism_class is None:
        logger.warning("no supported SASL mechanism in %r", list(offered))
        raise errors.UnsupportedMechanismError(offered)

    username = jid.localpart

    async def credential_provider():
        return username, password

    logger.debug("selected SASL mechanism %s", name)
    return SASLNegotiator(
        name,
        mechanism_class(credential_provider),
        token,
    )
