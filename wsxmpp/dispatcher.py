########################################################################
# File name: dispatcher.py
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
:mod:`~wsxmpp.dispatcher` --- Routing of stanzas on a negotiated stream
######################################################################

Once the stream is negotiated, every inbound element is handed to a
:class:`StanzaDispatcher`. It classifies the element by its local name and
turns it into events; IQ requests additionally run through the ordered
pipeline of :class:`IQHandler` objects, which always produces exactly one
reply.

.. autoclass:: IQHandler

.. autoclass:: StanzaDispatcher

"""
import abc
import logging

from . import errors, stanza, structs
from .events import QueryReceived, MessageReceived, PresenceReceived
from .utils import split_tag

logger = logging.getLogger(__name__)


class IQHandler(metaclass=abc.ABCMeta):
    """
    A capability which may answer IQ requests.

    .. automethod:: handle
    """

    @abc.abstractmethod
    def handle(self, iq):
        """
        Inspect the request `iq` (a get or set :class:`~wsxmpp.stanza.IQ`).

        Return the reply :class:`~wsxmpp.stanza.IQ` to claim the request, or
        :data:`None` to pass it on to the next handler. Raising a
        :class:`~wsxmpp.errors.XMPPError` answers the request with the
        corresponding error.
        """


class StanzaDispatcher:
    """
    Classify stanzas and answer IQ requests.

    :param handlers: The capability handlers, in the order they are offered
        requests.
    :type handlers: iterable of :class:`IQHandler`
    :param logger: Logger to use, defaults to the module logger.

    .. attribute:: handlers

       The handlers as :class:`tuple`; fixed after construction.

    .. automethod:: dispatch
    """

    def __init__(self, handlers=(), *, logger=logger):
        super().__init__()
        self.handlers = tuple(handlers)
        self._logger = logger

    def dispatch(self, element):
        """
        Process the inbound :mod:`lxml` element `element`.

        :return: The replies to send (a list of :class:`~wsxmpp.stanza.IQ`)
            and the events to emit.
        :rtype: pair of lists

        Elements which are no stanzas are ignored.
        """
        if not isinstance(element.tag, str):
            return [], []

        _, localname = split_tag(element)
        if localname == "iq":
            return self._dispatch_iq(element)
        elif localname == "message":
            return [], self._decode_or_drop(
                stanza.Message, MessageReceived, element
            )
        elif localname == "presence":
            return [], self._decode_or_drop(
                stanza.Presence, PresenceReceived, element
            )

        self._logger.debug("ignoring non-stanza element %r", element.tag)
        return [], []

    def _decode_or_drop(self, cls, event_cls, element):
        try:
            obj = cls.from_element(element)
        except errors.StanzaDecodeError as exc:
            self._logger.warning("dropping undecodable stanza: %s", exc)
            return []
        return [event_cls(obj)]

    def _dispatch_iq(self, element):
        try:
            iq = stanza.IQ.from_element(element)
        except errors.StanzaDecodeError as exc:
            return self._reject_undecodable(element, exc), []

        self._logger.debug("incoming iq: %r", iq)
        events = [QueryReceived(iq)]
        if not iq.type_.is_request:
            return [], events

        return [self._handle_request(iq)], events

    def _reject_undecodable(self, element, exc):
        id_ = element.get("id")
        type_ = element.get("type")
        if not id_ or type_ not in ("get", "set"):
            self._logger.warning("dropping undecodable iq: %s", exc)
            return []

        self._logger.warning("answering undecodable iq with bad-request: %s",
                             exc)
        request = stanza.IQ(structs.IQType(type_), id_=id_)
        for attr, name in [("from_", "from"), ("to", "to")]:
            value = element.get(name)
            if value is None:
                continue
            try:
                setattr(request, attr, structs.JID.fromstr(value))
            except ValueError:
                # the reply goes out without that address
                pass
        return [request.make_error(stanza.Error(
            condition=errors.ErrorCondition.BAD_REQUEST,
            type_=structs.ErrorType.MODIFY,
            text=str(exc),
        ))]

    def _handle_request(self, iq):
        for handler in self.handlers:
            try:
                reply = handler.handle(iq)
            except errors.XMPPError as exc:
                self._logger.debug("%r answered %r with %r", handler, iq, exc)
                return iq.make_error(stanza.Error.from_exception(exc))
            except Exception:
                self._logger.exception("IQ handler %r failed", handler)
                return iq.make_error(stanza.Error(
                    condition=errors.ErrorCondition.UNDEFINED_CONDITION,
                    type_=structs.ErrorType.CANCEL,
                ))

            if reply is None:
                continue

            return self._check_reply(iq, reply)

        self._logger.debug("no handler for %r", iq)
        return iq.make_error(stanza.Error(
            condition=errors.ErrorCondition.SERVICE_UNAVAILABLE,
            type_=structs.ErrorType.CANCEL,
        ))

    def _check_reply(self, iq, reply):
        if not reply.type_.is_response:
            self._logger.error("IQ handler returned non-reply %r", reply)
            return iq.make_error(stanza.Error(
                condition=errors.ErrorCondition.INTERNAL_SERVER_ERROR,
                type_=structs.ErrorType.WAIT,
            ))
        reply.id_ = iq.id_
        reply.from_ = iq.to
        reply.to = iq.from_
        return reply
