########################################################################
# File name: structs.py
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
:mod:`~wsxmpp.structs` --- Simple data holders for common data types
####################################################################

These classes provide a way to hold structured data which is commonly
encountered in the XMPP realm.

Jabber IDs
==========

.. autoclass:: JID(localpart, domain, resource)

Enumerations
============

.. autoclass:: IQType

.. autoclass:: MessageType

.. autoclass:: PresenceType

.. autoclass:: PresenceShow

.. autoclass:: ErrorType

"""

import collections
import enum


class ErrorType(enum.Enum):
    """
    Enumeration for the :rfc:`6120` specified stanza error types.

    .. attribute:: AUTH

       Retry after providing credentials.

    .. attribute:: CANCEL

       Do not retry (the error cannot be remedied).

    .. attribute:: CONTINUE

       Proceed (the condition was only a warning).

    .. attribute:: MODIFY

       Retry after changing the data sent.

    .. attribute:: WAIT

       Retry after waiting (the error is temporary).
    """

    AUTH = "auth"
    CANCEL = "cancel"
    CONTINUE = "continue"
    MODIFY = "modify"
    WAIT = "wait"


class MessageType(enum.Enum):
    """
    Enumeration for the :rfc:`6121` specified Message stanza types.
    """

    NORMAL = "normal"
    CHAT = "chat"
    GROUPCHAT = "groupchat"
    HEADLINE = "headline"
    ERROR = "error"

    @property
    def is_error(self):
        return self == MessageType.ERROR

    @property
    def is_request(self):
        return False

    @property
    def is_response(self):
        return self == MessageType.ERROR


class PresenceType(enum.Enum):
    """
    Enumeration for the :rfc:`6121` specified Presence stanza types.

    .. attribute:: AVAILABLE

       Represented by the absence of the ``type`` attribute; the value
       :data:`None` is used for it on the wire.
    """

    ERROR = "error"
    PROBE = "probe"
    SUBSCRIBE = "subscribe"
    SUBSCRIBED = "subscribed"
    UNAVAILABLE = "unavailable"
    UNSUBSCRIBE = "unsubscribe"
    UNSUBSCRIBED = "unsubscribed"
    AVAILABLE = None

    @property
    def is_error(self):
        return self == PresenceType.ERROR

    @property
    def is_presence_state(self):
        """
        True for the :attr:`AVAILABLE` and :attr:`UNAVAILABLE` types.
        """
        return (self == PresenceType.AVAILABLE or
                self == PresenceType.UNAVAILABLE)


class PresenceShow(enum.Enum):
    """
    Enumeration of the ``<show/>`` values of an available presence.
    :attr:`NONE` means the element is absent.
    """

    NONE = None
    AWAY = "away"
    CHAT = "chat"
    DND = "dnd"
    XA = "xa"


class IQType(enum.Enum):
    """
    Enumeration for the :rfc:`6120` specified IQ stanza types.

    .. attribute:: GET

       The stanza requests information.

    .. attribute:: SET

       The stanza provides data that is needed for an operation to be
       completed.

    .. attribute:: RESULT

       The stanza is a response to a successful get or set request.

    .. attribute:: ERROR

       The stanza reports an error regarding a get or set request.

    .. autoattribute:: is_error

    .. autoattribute:: is_request

    .. autoattribute:: is_response
    """

    GET = "get"
    SET = "set"
    ERROR = "error"
    RESULT = "result"

    @property
    def is_error(self):
        """
        True for the :attr:`ERROR` type, false otherwise.
        """
        return self == IQType.ERROR

    @property
    def is_request(self):
        """
        True for request types (:attr:`GET` and :attr:`SET`), false otherwise.
        """
        return self == IQType.GET or self == IQType.SET

    @property
    def is_response(self):
        """
        True for the response types (:attr:`RESULT` and :attr:`ERROR`), false
        otherwise.
        """
        return self == IQType.RESULT or self == IQType.ERROR


def _check_part(name, value):
    if not value:
        raise ValueError("{} must not be empty".format(name))
    if len(value.encode("utf-8")) > 1023:
        raise ValueError("{} too long".format(name))


class JID(collections.namedtuple("JID", ["localpart", "domain", "resource"])):
    """
    Represent a :term:`Jabber ID (JID) <Jabber ID>`.

    To construct a :class:`JID`, either use the actual constructor, or use the
    :meth:`fromstr` class method.

    :param localpart: The part in front of the ``@`` of the JID. The empty
        string (or :data:`None`) means that the JID has no localpart.
    :type localpart: :class:`str` or :data:`None`
    :param domain: The domain of the JID. This is the only mandatory part of
        a JID.
    :type domain: :class:`str`
    :param resource: The resource part of the JID or :data:`None` to omit the
        resource part.
    :type resource: :class:`str` or :data:`None`
    :raises ValueError: if the JID composed of the given parts is invalid

    The parts are taken verbatim, so that a parsed JID always serialises back
    to the exact string it was parsed from.

    .. automethod:: fromstr

    .. autoattribute:: is_bare

    .. autoattribute:: is_domain

    :class:`JID` objects are immutable. To obtain a JID object with a changed
    property, use one of the following methods:

    .. automethod:: bare

    .. automethod:: replace(*, [localpart], [domain], [resource])
    """

    __slots__ = []

    def __new__(cls, localpart, domain, resource):
        if localpart is None:
            localpart = ""
        _check_part("domain", domain)
        if localpart:
            _check_part("localpart", localpart)
        if resource is not None:
            _check_part("resource", resource)
        if "@" in domain or "/" in domain:
            raise ValueError("invalid character in domain: {!r}".format(
                domain
            ))
        return super().__new__(cls, localpart, domain, resource)

    def replace(self, **kwargs):
        """
        Construct a new :class:`JID` object, using the values of the current
        JID. Use the arguments to override specific attributes on the new
        object.

        :raises: See :class:`JID`
        """
        new_kwargs = self._asdict()
        for key, value in kwargs.items():
            if key not in new_kwargs:
                raise TypeError("replace() got an unexpected keyword argument"
                                " {!r}".format(key))
            new_kwargs[key] = value
        return type(self)(**new_kwargs)

    def __str__(self):
        result = self.domain
        if self.localpart:
            result = self.localpart + "@" + result
        if self.resource is not None:
            result += "/" + self.resource
        return result

    def bare(self):
        """
        Return this JID with the :attr:`resource` set to :data:`None`.
        """
        return self.replace(resource=None)

    @property
    def is_bare(self):
        """
        :data:`True` if the JID is bare, i.e. has no :attr:`resource` part.
        """
        return self.resource is None

    @property
    def is_domain(self):
        """
        :data:`True` if the JID is a domain, i.e. if both the :attr:`localpart`
        and the :attr:`resource` are absent.
        """
        return self.resource is None and not self.localpart

    @classmethod
    def fromstr(cls, s):
        """
        Construct a JID out of a string of the form
        ``[localpart@]domain[/resource]``.

        :raises ValueError: if the string does not describe a valid JID.
        """
        nodedomain, sep, resource = s.partition("/")
        if not sep:
            resource = None

        localpart, sep, domain = nodedomain.partition("@")
        if not sep:
            domain = localpart
            localpart = None
        elif not localpart:
            raise ValueError("localpart must not be empty")
        return cls(localpart, domain, resource)
