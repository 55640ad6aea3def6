########################################################################
# File name: statemachine.py
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
:mod:`~wsxmpp.statemachine` -- Client stream negotiation
########################################################

The negotiation of a client stream is implemented as a set of pure
functions operating on a :class:`StreamContext`. Each function returns a
:class:`Transition`: the new context, the elements to send (in order) and
the events to emit. Nothing in this module performs I/O; the
:class:`~wsxmpp.protocol.XMPPConnection` owns the transport and applies the
transitions.

.. autoclass:: State

.. autoclass:: StreamContext

.. autoclass:: Transition(context, outgoing, events)

.. autofunction:: initial_context

.. autofunction:: transport_opened

.. autofunction:: transition

.. autofunction:: transport_closed

.. autofunction:: abort

.. autofunction:: close

"""
import collections
import functools
import logging

from enum import Enum

from . import errors, nonza, stanza, structs
from . import sasl as sasl_mod
from .events import (  # NOQA: F401
    ConnectionFailed,
    Direction,
    ElementObserved,
    MessageReceived,
    PresenceReceived,
    QueryReceived,
    SignedIn,
)
from .xml import FrameKind, make_open_element, make_close_element
from .utils import split_tag

logger = logging.getLogger(__name__)


@functools.total_ordering
class State(Enum):
    """
    The states of a client stream, in the order they are passed during
    negotiation.

    .. attribute:: DISCONNECTED

       Initial state, and the state entered on any failure.

    .. attribute:: CONNECTED

       The transport is open and the ``<open/>`` was sent.

    .. attribute:: STREAM_INITIATED

       The server opened the stream; waiting for the features.

    .. attribute:: AUTHENTICATING

       SASL is in progress.

    .. attribute:: AUTHENTICATED

       SASL succeeded and the stream restart was sent.

    .. attribute:: BIND_REQUESTED

       The resource bind request is outstanding.

    .. attribute:: BIND_RESPONDED

       The resource is bound. Never held for longer than one transition.

    .. attribute:: SESSION_PENDING

       The session establishment request is outstanding.

    .. attribute:: NEGOTIATED

       The stream is ready for stanzas.
    """

    DISCONNECTED = 0
    CONNECTED = 1
    STREAM_INITIATED = 2
    AUTHENTICATING = 3
    AUTHENTICATED = 4
    BIND_REQUESTED = 5
    BIND_RESPONDED = 6
    SESSION_PENDING = 7
    NEGOTIATED = 8

    def __lt__(self, other):
        return self.value < other.value


class StreamContext(collections.namedtuple(
        "StreamContext",
        [
            "state",
            "jid",
            "password",
            "mechanism_classes",
            "stream_id",
            "features",
            "sasl",
            "bind_id",
            "session_id",
        ])):
    """
    The negotiation state of one connection.

    .. attribute:: state

       The current :class:`State`.

    .. attribute:: jid

       The local :class:`~wsxmpp.structs.JID`; replaced by the bound JID once
       the resource is bound.

    .. attribute:: password

       The password, until it is handed to the SASL mechanism.

    .. attribute:: mechanism_classes

       The :mod:`aiosasl` mechanism classes to use, or :data:`None` for the
       defaults.

    .. attribute:: stream_id

       The id of the current stream generation, as announced by the server.

    .. attribute:: features

       The :class:`~wsxmpp.nonza.StreamFeatures` of the current stream
       generation, or :data:`None` if they have not been received yet.

    .. attribute:: sasl

       The :class:`~wsxmpp.sasl.SASLNegotiator` while authenticating.

    .. attribute:: bind_id

       Id of the outstanding resource bind request.

    .. attribute:: session_id

       Id of the outstanding session establishment request.
    """

    __slots__ = []


Transition = collections.namedtuple(
    "Transition",
    ["context", "outgoing", "events"],
)


def initial_context(jid, password, *, mechanism_classes=None):
    """
    Return a fresh :class:`StreamContext` in :attr:`State.DISCONNECTED` for
    authenticating as `jid` with `password`.

    If `jid` carries a resource, that resource is requested when binding.
    """
    return StreamContext(
        state=State.DISCONNECTED,
        jid=jid,
        password=password,
        mechanism_classes=mechanism_classes,
        stream_id=None,
        features=None,
        sasl=None,
        bind_id=None,
        session_id=None,
    )


def _fail(context, events, message, error):
    logger.warning("connection failed in state %s: %s",
                   context.state.name, message)
    if context.sasl is not None:
        context.sasl.failure(None)
    context = context._replace(
        state=State.DISCONNECTED,
        password=None,
        sasl=None,
        bind_id=None,
        session_id=None,
    )
    return Transition(context, [], events + [ConnectionFailed(message, error)])


def _protocol_violation(context, events, frame):
    if frame.element is not None:
        what = frame.element.tag
    else:
        what = frame.kind.value
    message = "unexpected {!r} in state {}".format(what, context.state.name)
    return _fail(context, events, message, errors.ProtocolViolation(message))


def _enter(context, state, **kwargs):
    logger.debug("%s -> %s", context.state.name, state.name)
    return context._replace(state=state, **kwargs)


def transport_opened(context):
    """
    The transport is open: send the ``<open/>`` addressed to the domain of
    the JID and enter :attr:`State.CONNECTED`.

    :raises wsxmpp.errors.ProtocolViolation: if `context` is not
        :attr:`State.DISCONNECTED`, or if it is spent: a context which
        failed or was closed has given up its password and cannot
        authenticate again. Start over with :func:`initial_context`.
    """
    if context.state != State.DISCONNECTED:
        raise errors.ProtocolViolation(
            "transport opened in state {}".format(context.state.name)
        )
    if context.password is None:
        raise errors.ProtocolViolation(
            "transport opened on a spent stream context"
        )

    return Transition(
        _enter(context, State.CONNECTED,
               stream_id=None, features=None, sasl=None),
        [make_open_element(context.jid.domain)],
        [],
    )


def abort(context, message, error):
    """
    Fail the connection for a reason detected outside of this module, such
    as a frame which could not be decoded. A no-op when already
    disconnected.
    """
    if context.state == State.DISCONNECTED:
        return Transition(context, [], [])
    return _fail(context, [], message, error)


def transport_closed(context, exc=None):
    """
    The transport was closed, with `exc` describing the reason if it was not
    a clean close. Unless already disconnected, this fails the connection.
    """
    if exc is None:
        exc = errors.TransportError("connection closed")
    return abort(context, str(exc) or type(exc).__name__, exc)


def close(context):
    """
    Close the stream on behalf of the client: send ``<close/>`` if the
    stream is open and enter :attr:`State.DISCONNECTED` without reporting a
    failure.
    """
    if context.state == State.DISCONNECTED:
        return Transition(context, [], [])
    if context.sasl is not None:
        context.sasl.failure(None)
    return Transition(
        _enter(context, State.DISCONNECTED,
               password=None, sasl=None, bind_id=None, session_id=None),
        [make_close_element()],
        [],
    )


def _on_connected(context, frame, events, dispatcher):
    if frame.kind != FrameKind.STREAM_START:
        return _protocol_violation(context, events, frame)

    return Transition(
        _enter(context, State.STREAM_INITIATED, stream_id=frame.stream_id),
        [],
        events,
    )


def _on_stream_initiated(context, frame, events, dispatcher):
    if (frame.kind != FrameKind.STANZA or
            not nonza.StreamFeatures.is_features(frame.element)):
        return _protocol_violation(context, events, frame)

    features = nonza.StreamFeatures.from_element(frame.element)
    logger.debug("received features: %r", features)

    try:
        negotiator = sasl_mod.select(
            features.mechanisms,
            context.jid,
            context.password,
            mechanism_classes=context.mechanism_classes,
        )
        payload = negotiator.initiate()
    except (errors.UnsupportedMechanismError,
            errors.AuthenticationFailure) as exc:
        return _fail(context._replace(features=features), events,
                     str(exc), exc)

    return Transition(
        _enter(context, State.AUTHENTICATING,
               features=features,
               sasl=negotiator,
               password=None),
        [nonza.SASLAuth(negotiator.mechanism, payload).to_element()],
        events,
    )


def _on_authenticating(context, frame, events, dispatcher):
    if frame.kind != FrameKind.STANZA or not nonza.is_sasl(frame.element):
        return _protocol_violation(context, events, frame)

    localname = split_tag(frame.element)[1]
    negotiator = context.sasl

    try:
        if localname == "challenge":
            challenge = nonza.SASLChallenge.from_element(frame.element)
            response = negotiator.next_challenge(challenge.payload)
            return Transition(
                context,
                [nonza.SASLResponse(response).to_element()],
                events,
            )

        if localname == "success":
            success = nonza.SASLSuccess.from_element(frame.element)
            negotiator.success(success.payload)
            logger.debug("authenticated using %s", negotiator.mechanism)
            return Transition(
                _enter(context, State.AUTHENTICATED, sasl=None),
                [make_open_element(context.jid.domain)],
                events,
            )
    except ValueError as exc:
        # undecodable base64 payload
        return _fail(context, events, str(exc),
                     errors.ProtocolViolation(str(exc)))
    except errors.AuthenticationFailure as exc:
        return _fail(context, events, str(exc), exc)

    if localname == "failure":
        failure = nonza.SASLFailure.from_element(frame.element)
        exc = negotiator.failure(failure.condition, failure.text)
        return _fail(context._replace(sasl=None), events,
                     failure.text or failure.condition, exc)

    return _protocol_violation(context, events, frame)


def _on_authenticated(context, frame, events, dispatcher):
    if frame.kind != FrameKind.STREAM_START:
        return _protocol_violation(context, events, frame)

    request = stanza.IQ(
        structs.IQType.SET,
        payload=nonza.Bind(resource=context.jid.resource).to_element(),
    )
    request.autoset_id()

    return Transition(
        _enter(context, State.BIND_REQUESTED,
               stream_id=frame.stream_id,
               features=None,
               bind_id=request.id_),
        [request.to_element()],
        events,
    )


def _is_bind_result(context, el):
    if split_tag(el) != stanza.IQ.TAG:
        return False
    if el.get("id") == context.bind_id:
        return True
    return (el.get("id") is None and
            el.find("{{{}}}{}".format(*nonza.Bind.TAG)) is not None)


def _bind_failed(context, events, reason):
    logger.warning("bind failed: %s", reason)
    return _fail(context, events, "bind failed", errors.BindFailure(
        "bind failed: {}".format(reason)
    ))


def _on_bind_requested(context, frame, events, dispatcher):
    if frame.kind != FrameKind.STANZA:
        return _protocol_violation(context, events, frame)

    el = frame.element
    if nonza.StreamFeatures.is_features(el):
        if context.features is not None:
            return _protocol_violation(context, events, frame)
        return Transition(
            context._replace(features=nonza.StreamFeatures.from_element(el)),
            [],
            events,
        )

    if not _is_bind_result(context, el):
        logger.warning("ignoring %r while waiting for bind result", el.tag)
        return Transition(context, [], events)

    try:
        result = stanza.IQ.from_element(el)
    except errors.StanzaDecodeError as exc:
        return _bind_failed(context, events, str(exc))

    if result.type_ != structs.IQType.RESULT:
        return _bind_failed(context, events, repr(result.error))

    if (result.payload is None or
            split_tag(result.payload) != nonza.Bind.TAG):
        return _bind_failed(context, events, "no bind payload")

    try:
        bound_jid = nonza.Bind.from_element(result.payload).jid
    except ValueError as exc:
        return _bind_failed(context, events, str(exc))

    if bound_jid is None:
        return _bind_failed(context, events, "no jid in bind result")

    logger.debug("bound to %s", bound_jid)
    context = _enter(context, State.BIND_RESPONDED,
                     jid=bound_jid, bind_id=None)

    if context.features is not None and not context.features.session:
        logger.debug("server does not offer sessions")
        return Transition(
            _enter(context, State.NEGOTIATED),
            [],
            events + [SignedIn(bound_jid)],
        )

    request = stanza.IQ(
        structs.IQType.SET,
        payload=nonza.Session().to_element(),
    )
    request.autoset_id()

    return Transition(
        _enter(context, State.SESSION_PENDING, session_id=request.id_),
        [request.to_element()],
        events,
    )


def _on_session_pending(context, frame, events, dispatcher):
    if frame.kind != FrameKind.STANZA:
        return _protocol_violation(context, events, frame)

    el = frame.element
    is_ack = (split_tag(el) == stanza.IQ.TAG and
              el.get("id") == context.session_id)

    context = _enter(context, State.NEGOTIATED, session_id=None)
    events = events + [SignedIn(context.jid)]

    if is_ack:
        return Transition(context, [], events)

    # not the reply to the session request, but it counts as ack
    return _dispatch(context, el, events, dispatcher)


def _dispatch(context, el, events, dispatcher):
    replies, dispatched = dispatcher.dispatch(el)
    return Transition(
        context,
        [reply.to_element() for reply in replies],
        events + dispatched,
    )


def _on_negotiated(context, frame, events, dispatcher):
    if frame.kind != FrameKind.STANZA:
        return _protocol_violation(context, events, frame)
    return _dispatch(context, frame.element, events, dispatcher)


_HANDLERS = {
    State.CONNECTED: _on_connected,
    State.STREAM_INITIATED: _on_stream_initiated,
    State.AUTHENTICATING: _on_authenticating,
    State.AUTHENTICATED: _on_authenticated,
    State.BIND_REQUESTED: _on_bind_requested,
    State.SESSION_PENDING: _on_session_pending,
    State.NEGOTIATED: _on_negotiated,
}


def transition(context, frame, dispatcher):
    """
    Consume one inbound :class:`~wsxmpp.xml.Frame`.

    :param context: The current context.
    :type context: :class:`StreamContext`
    :param frame: The decoded frame.
    :type frame: :class:`~wsxmpp.xml.Frame`
    :param dispatcher: Handles stanzas once the stream is negotiated.
    :type dispatcher: :class:`~wsxmpp.dispatcher.StanzaDispatcher`
    :rtype: :class:`Transition`

    In :attr:`State.DISCONNECTED`, frames are ignored. Otherwise, an
    :class:`ElementObserved` event is emitted first; a stream error anywhere
    in the frame (as root or direct child) then fails the connection,
    regardless of state, and so does the server closing the stream.

    Any frame which is not expected in the current state fails the
    connection with :class:`~wsxmpp.errors.ProtocolViolation`.
    """
    if context.state == State.DISCONNECTED:
        logger.debug("ignoring %s frame while disconnected", frame.kind.value)
        return Transition(context, [], [])

    events = []
    if frame.element is not None:
        events.append(ElementObserved(frame.element, Direction.INBOUND))
        stream_error = nonza.find_stream_error(frame.element)
        if stream_error is not None:
            return _fail(context, events,
                         stream_error.message,
                         stream_error.to_exception())

    if frame.kind == FrameKind.STREAM_END:
        return _fail(context, events, "stream closed by peer",
                     ConnectionError("stream closed by peer"))

    try:
        handler = _HANDLERS[context.state]
    except KeyError:
        raise RuntimeError(
            "invalid state: {}".format(context.state)
        ) from None

    return handler(context, frame, events, dispatcher)
