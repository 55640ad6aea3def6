########################################################################
# File name: nonza.py
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
:mod:`~wsxmpp.nonza` --- Non-stanza stream-level elements (Nonzas)
##################################################################

This module contains the models for stream-level elements which are not
stanzas, plus the resource binding and session establishment payloads
used during negotiation.

General
=======

.. autoclass:: StreamError

.. autofunction:: find_stream_error

.. autoclass:: StreamFeatures

SASL
====

.. autoclass:: SASLAuth

.. autoclass:: SASLChallenge

.. autoclass:: SASLResponse

.. autoclass:: SASLFailure

.. autoclass:: SASLSuccess

.. autofunction:: is_sasl

Resource binding and session
============================

.. autoclass:: Bind

.. autoclass:: Session

"""
import base64
import binascii

from . import errors, structs
from .utils import namespaces, etree, split_tag


def _tag(tag):
    return "{{{}}}{}".format(*tag)


def _element(tag):
    return etree.Element(_tag(tag), nsmap={None: tag[0]})


def _encode_payload(payload):
    if payload is None:
        return None
    if not payload:
        return "="
    return base64.b64encode(payload).decode("ascii")


def _decode_payload(el):
    text = (el.text or "").strip()
    if text == "=" or not text:
        return b""
    try:
        return base64.b64decode(text.encode("ascii"), validate=True)
    except (binascii.Error, UnicodeEncodeError):
        raise ValueError("invalid base64 payload in {}".format(
            split_tag(el)[1]
        )) from None


class StreamError:
    """
    A stream error element.

    .. attribute:: condition

       The :class:`~wsxmpp.errors.StreamErrorCondition`. Unknown conditions
       are read as :attr:`~.StreamErrorCondition.UNDEFINED_CONDITION`.

    .. attribute:: text

       Optional human-readable text.
    """

    TAG = (namespaces.xmlstream, "error")

    def __init__(self,
                 condition=errors.StreamErrorCondition.UNDEFINED_CONDITION,
                 text=None):
        super().__init__()
        self.condition = condition
        self.text = text

    @classmethod
    def from_element(cls, el):
        condition = errors.StreamErrorCondition.UNDEFINED_CONDITION
        text = None
        for child in el:
            if not isinstance(child.tag, str):
                continue
            tag = split_tag(child)
            if tag == (namespaces.streams, "text"):
                text = child.text
                continue
            try:
                condition = errors.StreamErrorCondition(tag)
            except ValueError:
                pass
        return cls(condition=condition, text=text)

    @classmethod
    def from_exception(cls, exc):
        return cls(condition=exc.condition, text=exc.text)

    def to_exception(self):
        return errors.StreamError(
            condition=self.condition,
            text=self.text
        )

    def to_element(self):
        el = etree.Element(
            _tag(self.TAG),
            nsmap={"stream": namespaces.xmlstream},
        )
        etree.SubElement(
            el,
            _tag(self.condition.value),
            nsmap={None: namespaces.streams},
        )
        if self.text:
            text_el = etree.SubElement(
                el,
                _tag((namespaces.streams, "text")),
                nsmap={None: namespaces.streams},
            )
            text_el.text = self.text
        return el

    @property
    def message(self):
        """
        The text of the error or, if there is none, the name of the
        condition.
        """
        return self.text or self.condition.value[1]


def find_stream_error(el):
    """
    Return the :class:`StreamError` carried by `el` as root or as direct
    child, or :data:`None` if there is none.
    """
    if not isinstance(el.tag, str):
        return None
    if split_tag(el) == StreamError.TAG:
        return StreamError.from_element(el)
    found = el.find(_tag(StreamError.TAG))
    if found is not None:
        return StreamError.from_element(found)
    return None


class StreamFeatures:
    """
    The set of features announced by the server in ``<stream:features/>``.

    .. attribute:: mechanisms

       List of SASL mechanism names, in the order the server offered them.

    .. attribute:: bind

       Whether resource binding is offered.

    .. attribute:: session

       Whether session establishment is offered.

    .. attribute:: tags

       List of ``(namespace, localname)`` tuples of all feature elements.

    .. automethod:: has_feature
    """

    TAG = (namespaces.xmlstream, "features")

    def __init__(self, mechanisms=(), *, bind=False, session=False, tags=()):
        super().__init__()
        self.mechanisms = list(mechanisms)
        self.bind = bind
        self.session = session
        self.tags = list(tags)

    @classmethod
    def is_features(cls, el):
        return isinstance(el.tag, str) and split_tag(el) == cls.TAG

    @classmethod
    def from_element(cls, el):
        if not cls.is_features(el):
            raise ValueError("not a features element: {!r}".format(el.tag))

        mechanisms = []
        tags = []
        for child in el:
            if not isinstance(child.tag, str):
                continue
            tag = split_tag(child)
            tags.append(tag)
            if tag == (namespaces.sasl, "mechanisms"):
                for mechanism in child.iterfind(
                        _tag((namespaces.sasl, "mechanism"))):
                    if mechanism.text and mechanism.text.strip():
                        mechanisms.append(mechanism.text.strip())

        return cls(
            mechanisms,
            bind=(namespaces.rfc6120_bind, "bind") in tags,
            session=(namespaces.rfc3921_session, "session") in tags,
            tags=tags,
        )

    def has_feature(self, tag):
        return tag in self.tags

    def __repr__(self):
        return "<StreamFeatures mechanisms={!r} bind={} session={}>".format(
            self.mechanisms,
            self.bind,
            self.session,
        )


def is_sasl(el):
    """
    Return true if `el` is in the SASL namespace.
    """
    return (isinstance(el.tag, str) and
            split_tag(el)[0] == namespaces.sasl)


class SASLAuth:
    """
    Start SASL authentication. `payload` is the initial response as
    :class:`bytes` or :data:`None` if the mechanism sends none.
    """

    TAG = (namespaces.sasl, "auth")

    def __init__(self, mechanism, payload=None):
        super().__init__()
        self.mechanism = mechanism
        self.payload = payload

    def to_element(self):
        el = _element(self.TAG)
        el.set("mechanism", self.mechanism)
        el.text = _encode_payload(self.payload)
        return el


class SASLChallenge:
    """
    A SASL challenge. :attr:`payload` holds the decoded bytes.
    """

    TAG = (namespaces.sasl, "challenge")

    def __init__(self, payload):
        super().__init__()
        self.payload = payload

    @classmethod
    def from_element(cls, el):
        return cls(_decode_payload(el))


class SASLResponse:
    """
    A SASL response.
    """

    TAG = (namespaces.sasl, "response")

    def __init__(self, payload):
        super().__init__()
        self.payload = payload

    def to_element(self):
        el = _element(self.TAG)
        el.text = _encode_payload(self.payload)
        return el


class SASLSuccess:
    """
    Indication of SASL success, with optional final payload supplied by the
    server. :attr:`payload` is :data:`None` if the element is empty.
    """

    TAG = (namespaces.sasl, "success")

    def __init__(self, payload=None):
        super().__init__()
        self.payload = payload

    @classmethod
    def from_element(cls, el):
        if not (el.text or "").strip():
            return cls(None)
        return cls(_decode_payload(el))


class SASLFailure:
    """
    Indication of SASL failure.

    .. attribute:: condition

       The local name of the condition which caused the authentication to
       fail, e.g. ``"not-authorized"``.

    .. attribute:: text

       Optional human-readable text.
    """

    TAG = (namespaces.sasl, "failure")

    def __init__(self, condition="temporary-auth-failure", text=None):
        super().__init__()
        self.condition = condition
        self.text = text

    @classmethod
    def from_element(cls, el):
        condition = "undefined-condition"
        text = None
        for child in el:
            if not isinstance(child.tag, str):
                continue
            namespace, localname = split_tag(child)
            if namespace != namespaces.sasl:
                continue
            if localname == "text":
                text = child.text
            else:
                condition = localname
        return cls(condition, text)

    def to_exception(self):
        return errors.AuthenticationFailure(self.condition, self.text)


class Bind:
    """
    The resource binding payload. When sent, :attr:`resource` is the
    requested resource (or :data:`None` to let the server pick one); when
    received, :attr:`jid` is the bound :class:`~wsxmpp.structs.JID`.
    """

    TAG = (namespaces.rfc6120_bind, "bind")

    def __init__(self, jid=None, resource=None):
        super().__init__()
        self.jid = jid
        self.resource = resource

    @classmethod
    def from_element(cls, el):
        jid = el.findtext(_tag((namespaces.rfc6120_bind, "jid")))
        resource = el.findtext(_tag((namespaces.rfc6120_bind, "resource")))
        if jid is not None:
            jid = structs.JID.fromstr(jid.strip())
        return cls(jid=jid, resource=resource)

    def to_element(self):
        el = _element(self.TAG)
        if self.resource is not None:
            etree.SubElement(
                el,
                _tag((namespaces.rfc6120_bind, "resource"))
            ).text = self.resource
        if self.jid is not None:
            etree.SubElement(
                el,
                _tag((namespaces.rfc6120_bind, "jid"))
            ).text = str(self.jid)
        return el


class Session:
    """
    The legacy :rfc:`3921` session establishment payload.
    """

    TAG = (namespaces.rfc3921_session, "session")

    def to_element(self):
        return _element(self.TAG)
