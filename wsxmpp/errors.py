########################################################################
# File name: errors.py
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
:mod:`~wsxmpp.errors` --- Exception classes
###########################################

Transport errors
================

.. autoclass:: TransportError

Exception classes mapping to XMPP stream errors
===============================================

.. autoclass:: StreamError

.. autoclass:: StreamErrorCondition

Stream negotiation exceptions
=============================

All of these are fatal to the connection they occur on.

.. autoclass:: StreamNegotiationFailure

.. autoclass:: UnsupportedMechanismError

.. autoclass:: AuthenticationFailure

.. autoclass:: BindFailure

.. autoclass:: ProtocolViolation

Exception classes mapping to XMPP stanza errors
===============================================

.. autoclass:: StanzaError

.. autoclass:: StanzaDecodeError

.. autoclass:: XMPPError

.. autoclass:: ErrorCondition

.. autoclass:: XMPPAuthError

.. autoclass:: XMPPModifyError

.. autoclass:: XMPPCancelError

.. autoclass:: XMPPWaitError

.. autofunction:: error_class_for_type

"""
import enum

from . import structs
from .utils import namespaces, tag_to_str


def format_error_text(condition, text=None):
    error_tag = tag_to_str(condition.value)
    if text:
        error_tag += " ({!r})".format(text)
    return error_tag


class ErrorCondition(enum.Enum):
    """
    Enumeration to represent a :rfc:`6120` stanza error condition. Please
    see :rfc:`6120`, section 8.3.3, for the semantics of the individual
    conditions.

    The values are ``(namespace, localname)`` tuples of the condition
    element.
    """

    BAD_REQUEST = (namespaces.stanzas, "bad-request")
    CONFLICT = (namespaces.stanzas, "conflict")
    FEATURE_NOT_IMPLEMENTED = (namespaces.stanzas, "feature-not-implemented")
    FORBIDDEN = (namespaces.stanzas, "forbidden")
    GONE = (namespaces.stanzas, "gone")
    INTERNAL_SERVER_ERROR = (namespaces.stanzas, "internal-server-error")
    ITEM_NOT_FOUND = (namespaces.stanzas, "item-not-found")
    JID_MALFORMED = (namespaces.stanzas, "jid-malformed")
    NOT_ACCEPTABLE = (namespaces.stanzas, "not-acceptable")
    NOT_ALLOWED = (namespaces.stanzas, "not-allowed")
    NOT_AUTHORIZED = (namespaces.stanzas, "not-authorized")
    POLICY_VIOLATION = (namespaces.stanzas, "policy-violation")
    RECIPIENT_UNAVAILABLE = (namespaces.stanzas, "recipient-unavailable")
    REDIRECT = (namespaces.stanzas, "redirect")
    REGISTRATION_REQUIRED = (namespaces.stanzas, "registration-required")
    REMOTE_SERVER_NOT_FOUND = (namespaces.stanzas, "remote-server-not-found")
    REMOTE_SERVER_TIMEOUT = (namespaces.stanzas, "remote-server-timeout")
    RESOURCE_CONSTRAINT = (namespaces.stanzas, "resource-constraint")
    SERVICE_UNAVAILABLE = (namespaces.stanzas, "service-unavailable")
    SUBSCRIPTION_REQUIRED = (namespaces.stanzas, "subscription-required")
    UNDEFINED_CONDITION = (namespaces.stanzas, "undefined-condition")
    UNEXPECTED_REQUEST = (namespaces.stanzas, "unexpected-request")


class StreamErrorCondition(enum.Enum):
    """
    Enumeration to represent a :rfc:`6120` stream error condition. Please
    see :rfc:`6120`, section 4.9.3, for the semantics of the individual
    conditions.

    The members are the stable classification of stream errors; the values
    are ``(namespace, localname)`` tuples of the condition element.
    """

    BAD_FORMAT = (namespaces.streams, "bad-format")
    BAD_NAMESPACE_PREFIX = (namespaces.streams, "bad-namespace-prefix")
    CONFLICT = (namespaces.streams, "conflict")
    CONNECTION_TIMEOUT = (namespaces.streams, "connection-timeout")
    HOST_GONE = (namespaces.streams, "host-gone")
    HOST_UNKNOWN = (namespaces.streams, "host-unknown")
    IMPROPER_ADDRESSING = (namespaces.streams, "improper-addressing")
    INTERNAL_SERVER_ERROR = (namespaces.streams, "internal-server-error")
    INVALID_FROM = (namespaces.streams, "invalid-from")
    INVALID_NAMESPACE = (namespaces.streams, "invalid-namespace")
    INVALID_XML = (namespaces.streams, "invalid-xml")
    NOT_AUTHORIZED = (namespaces.streams, "not-authorized")
    NOT_WELL_FORMED = (namespaces.streams, "not-well-formed")
    POLICY_VIOLATION = (namespaces.streams, "policy-violation")
    REMOTE_CONNECTION_FAILED = (namespaces.streams, "remote-connection-failed")
    RESET = (namespaces.streams, "reset")
    RESOURCE_CONSTRAINT = (namespaces.streams, "resource-constraint")
    RESTRICTED_XML = (namespaces.streams, "restricted-xml")
    SEE_OTHER_HOST = (namespaces.streams, "see-other-host")
    SYSTEM_SHUTDOWN = (namespaces.streams, "system-shutdown")
    UNDEFINED_CONDITION = (namespaces.streams, "undefined-condition")
    UNSUPPORTED_ENCODING = (namespaces.streams, "unsupported-encoding")
    UNSUPPORTED_FEATURE = (namespaces.streams, "unsupported-feature")
    UNSUPPORTED_STANZA_TYPE = (namespaces.streams, "unsupported-stanza-type")
    UNSUPPORTED_VERSION = (namespaces.streams, "unsupported-version")


class TransportError(ConnectionError):
    """
    The transport failed to deliver or lost the connection. Raised by the
    transport implementations, never by the negotiation core.
    """


class StreamError(ConnectionError):
    """
    A stream-level error, either received from the server or detected
    locally (such as malformed XML). Always fatal to the stream.

    .. attribute:: condition

       The :class:`StreamErrorCondition` member.

    .. attribute:: text

       The human-readable text sent along with the error or :data:`None`.
    """

    def __init__(self, condition, text=None):
        super().__init__("stream error: {}".format(
            format_error_text(condition, text))
        )
        self.condition = condition
        self.text = text


class StreamNegotiationFailure(ConnectionError):
    pass


class UnsupportedMechanismError(StreamNegotiationFailure):
    """
    None of the SASL mechanisms offered by the server is supported locally.

    .. attribute:: offered

       The list of mechanism names the server offered.
    """

    def __init__(self, offered):
        super().__init__(
            "supported sasl mechanism not available (offered: {})".format(
                ", ".join(offered) or "none"
            )
        )
        self.offered = list(offered)


class AuthenticationFailure(StreamNegotiationFailure):
    """
    The server rejected the credentials or the SASL exchange failed.

    .. attribute:: condition

       The SASL failure condition (e.g. ``"not-authorized"``) or
       :data:`None`.

    .. attribute:: text

       Optional text sent along with the failure.
    """

    def __init__(self, condition, text=None):
        msg = "authentication failed: {}".format(condition)
        if text:
            msg += " ('{}')".format(text)
        super().__init__(msg)
        self.condition = condition
        self.text = text


class BindFailure(StreamNegotiationFailure):
    """
    The server did not bind a resource.
    """


class ProtocolViolation(StreamNegotiationFailure):
    """
    The server sent an element which is not valid at the current point of
    the negotiation.
    """


class StanzaError(Exception):
    pass


class StanzaDecodeError(StanzaError, ValueError):
    """
    A stanza could not be decoded into its typed representation.

    .. attribute:: element

       The offending :mod:`lxml` element.
    """

    def __init__(self, message, element=None):
        super().__init__(message)
        self.element = element


class XMPPError(StanzaError):
    """
    Exception representing an error defined in the XMPP protocol.

    :param condition: The :rfc:`6120` defined error condition
    :type condition: :class:`ErrorCondition`
    :param text: Optional human-readable text explaining the error
    :type text: :class:`str`

    Raise one of the subclasses from an iq handler to answer the request
    with the corresponding error; the class determines the error type.
    """

    TYPE = structs.ErrorType.CANCEL

    def __init__(self, condition, text=None):
        super().__init__(format_error_text(condition, text=text))
        self.condition = condition
        self.text = text


class XMPPAuthError(XMPPError, PermissionError):
    TYPE = structs.ErrorType.AUTH


class XMPPModifyError(XMPPError, ValueError):
    TYPE = structs.ErrorType.MODIFY


class XMPPCancelError(XMPPError):
    TYPE = structs.ErrorType.CANCEL


class XMPPWaitError(XMPPError):
    TYPE = structs.ErrorType.WAIT


class XMPPContinueError(XMPPError):
    TYPE = structs.ErrorType.CONTINUE


_ERROR_CLASSES = {
    cls.TYPE: cls
    for cls in [
        XMPPAuthError,
        XMPPModifyError,
        XMPPCancelError,
        XMPPWaitError,
        XMPPContinueError,
    ]
}


def error_class_for_type(type_):
    """
    Return the :class:`XMPPError` subclass for the :class:`ErrorType`
    `type_`.
    """
    return _ERROR_CLASSES[type_]
