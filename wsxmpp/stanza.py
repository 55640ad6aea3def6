########################################################################
# File name: stanza.py
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
:mod:`~wsxmpp.stanza` --- Envelopes for IQ, Message and Presence stanzas
#######################################################################

This module provides the typed envelopes for the three stanza kinds of
:rfc:`6120`. The envelopes are plain objects on top of :mod:`lxml`
elements: decoding is done explicitly per kind with
:meth:`StanzaBase.from_element`, which raises
:class:`~wsxmpp.errors.StanzaDecodeError` for any shape it does not
understand, and encoding with :meth:`StanzaBase.to_element`.

.. autoclass:: StanzaBase

.. autoclass:: IQ

.. autoclass:: Message

.. autoclass:: Presence

.. autoclass:: Error

.. autofunction:: from_element

"""
import copy

from . import errors, structs
from .utils import namespaces, etree, make_id, split_tag


def _safe_format_attr(obj, attr_name):
    value = getattr(obj, attr_name, None)
    if value is None:
        return "None"
    return str(value)


def _parse_jid_attr(el, name):
    value = el.get(name)
    if value is None:
        return None
    try:
        return structs.JID.fromstr(value)
    except ValueError as exc:
        raise errors.StanzaDecodeError(
            "invalid {!r} address: {}".format(name, exc),
            el,
        ) from None


def _parse_enum_attr(el, name, enum_class, default=None):
    value = el.get(name, default)
    try:
        return enum_class(value)
    except ValueError:
        raise errors.StanzaDecodeError(
            "invalid {} type: {!r}".format(split_tag(el)[1], value),
            el,
        ) from None


def _child_text(el, tag):
    child = el.find("{{{}}}{}".format(*tag))
    if child is None:
        return None
    return child.text or ""


def _make_element(tag, nsmap=None):
    namespace, localname = tag
    return etree.Element(
        "{{{}}}{}".format(namespace, localname),
        nsmap=nsmap or {None: namespace},
    )


class Error:
    """
    An XMPP stanza error.

    :param condition: The error condition.
    :type condition: :class:`~wsxmpp.errors.ErrorCondition`
    :param type_: The type of the error
    :type type_: :class:`~wsxmpp.structs.ErrorType`
    :param text: The optional error text
    :type text: :class:`str` or :data:`None`

    Conversion to and from exceptions is supported with the following
    methods:

    .. automethod:: to_exception

    .. automethod:: from_exception
    """

    TAG = (namespaces.client, "error")

    def __init__(self,
                 condition=errors.ErrorCondition.UNDEFINED_CONDITION,
                 type_=structs.ErrorType.CANCEL,
                 text=None):
        super().__init__()
        self.condition = condition
        self.type_ = type_
        self.text = text

    @classmethod
    def from_exception(cls, exc):
        """
        Construct a new :class:`Error` from the attributes of the
        :class:`~wsxmpp.errors.XMPPError` `exc`.
        """
        return cls(
            condition=exc.condition,
            type_=exc.TYPE,
            text=exc.text,
        )

    def to_exception(self):
        """
        Convert the error to the :class:`~wsxmpp.errors.XMPPError` subclass
        matching :attr:`type_`.
        """
        return errors.error_class_for_type(self.type_)(
            condition=self.condition,
            text=self.text,
        )

    @classmethod
    def from_element(cls, el):
        type_ = _parse_enum_attr(el, "type", structs.ErrorType)

        condition = None
        text = None
        for child in el:
            if not isinstance(child.tag, str):
                continue
            tag = split_tag(child)
            if tag == (namespaces.stanzas, "text"):
                text = child.text or ""
                continue
            if condition is None:
                try:
                    condition = errors.ErrorCondition(tag)
                except ValueError:
                    # application specific condition
                    pass

        if condition is None:
            raise errors.StanzaDecodeError(
                "error without defined condition",
                el,
            )

        return cls(condition=condition, type_=type_, text=text)

    def to_element(self):
        el = _make_element(self.TAG)
        el.set("type", self.type_.value)
        etree.SubElement(
            el,
            "{{{}}}{}".format(*self.condition.value),
            nsmap={None: namespaces.stanzas},
        )
        if self.text:
            text_el = etree.SubElement(
                el,
                "{{{}}}text".format(namespaces.stanzas),
                nsmap={None: namespaces.stanzas},
            )
            text_el.text = self.text
        return el

    def __repr__(self):
        payload = ""
        if self.text:
            payload = " text={!r}".format(self.text)

        return "<{} type={!r}{}>".format(
            self.condition.value[1],
            self.type_,
            payload)


class StanzaBase:
    """
    Base for all stanza classes. The common attributes are:

    .. attribute:: from_

       The :class:`~wsxmpp.structs.JID` of the sending entity or
       :data:`None`.

    .. attribute:: to

       The :class:`~wsxmpp.structs.JID` of the receiving entity or
       :data:`None`.

    .. attribute:: id_

       The stanza id or :data:`None`.

    .. attribute:: error

       Either :data:`None` or an :class:`Error` instance.

    .. automethod:: autoset_id

    .. automethod:: make_error

    .. automethod:: from_element

    .. automethod:: to_element
    """

    TAG = None

    def __init__(self, *, from_=None, to=None, id_=None, error=None):
        super().__init__()
        self.from_ = from_
        self.to = to
        self.id_ = id_
        self.error = error

    def autoset_id(self):
        """
        If the :attr:`id_` already has a non-false (false is also the empty
        string!) value, this method is a no-op.

        Otherwise, the :attr:`id_` attribute is filled with a fresh random
        identifier (see :func:`~wsxmpp.utils.make_id`).
        """
        if self.id_:
            return
        self.id_ = make_id()

    def _make_reply(self, type_):
        obj = type(self)(type_)
        obj.from_ = self.to
        obj.to = self.from_
        obj.id_ = self.id_
        return obj

    def make_error(self, error):
        """
        Create a new instance of this stanza which has the given `error`
        value set as :attr:`error`.

        In addition, the :attr:`id_`, :attr:`from_` and :attr:`to` values are
        transferred from the original (with from and to being swapped). Also,
        the :attr:`type_` is set to ``"error"``.
        """
        obj = self._make_reply(self.ERROR_TYPE)
        obj.error = error
        return obj

    @classmethod
    def _check_tag(cls, el):
        if not isinstance(el.tag, str) or split_tag(el) != cls.TAG:
            raise errors.StanzaDecodeError(
                "expected {}, got {!r}".format(cls.TAG[1], el.tag),
                el,
            )

    def _decode_common(self, el):
        self.from_ = _parse_jid_attr(el, "from")
        self.to = _parse_jid_attr(el, "to")
        self.id_ = el.get("id")

    def _encode_common(self, el):
        if self.from_ is not None:
            el.set("from", str(self.from_))
        if self.to is not None:
            el.set("to", str(self.to))
        if self.id_ is not None:
            el.set("id", self.id_)
        if self.type_.value is not None:
            el.set("type", self.type_.value)

    def _decode_error(self, el):
        error_el = el.find("{{{}}}error".format(namespaces.client))
        if error_el is None:
            if self.type_.is_error:
                raise errors.StanzaDecodeError(
                    "{} of type error without error child".format(
                        self.TAG[1]
                    ),
                    el,
                )
            return
        self.error = Error.from_element(error_el)

    @classmethod
    def from_element(cls, el):
        """
        Decode the :mod:`lxml` element `el` into a new instance.

        :raises wsxmpp.errors.StanzaDecodeError: if the element is not of the
            expected kind or shape.
        """
        cls._check_tag(el)
        obj = cls.__new__(cls)
        StanzaBase.__init__(obj)
        obj._decode(el)
        return obj

    def _decode(self, el):
        raise NotImplementedError

    def to_element(self):
        """
        Encode the stanza as new :mod:`lxml` element in the ``jabber:client``
        namespace.
        """
        el = _make_element(self.TAG)
        self._encode_common(el)
        self._encode_children(el)
        if self.error is not None:
            el.append(self.error.to_element())
        return el

    def _encode_children(self, el):
        pass


class IQ(StanzaBase):
    """
    An XMPP IQ stanza.

    .. attribute:: type_

       The :class:`~wsxmpp.structs.IQType` of the stanza.

    .. attribute:: payload

       The :mod:`lxml` element which forms the payload of the IQ, or
       :data:`None`.

    Decoding requires the ``id`` and ``type`` attributes and allows at most
    one payload element besides the error.

    .. automethod:: make_reply
    """

    TAG = (namespaces.client, "iq")
    ERROR_TYPE = structs.IQType.ERROR

    def __init__(self, type_, *, payload=None, error=None, **kwargs):
        super().__init__(error=error, **kwargs)
        self.type_ = type_
        self.payload = payload

    def _decode(self, el):
        self._decode_common(el)
        if not self.id_:
            raise errors.StanzaDecodeError("IQ requires ID", el)
        if el.get("type") is None:
            raise errors.StanzaDecodeError("IQ requires type", el)
        self.type_ = _parse_enum_attr(el, "type", structs.IQType)

        self.payload = None
        for child in el:
            if not isinstance(child.tag, str):
                continue
            if split_tag(child) == Error.TAG:
                continue
            if self.payload is not None:
                raise errors.StanzaDecodeError(
                    "IQ with more than one payload",
                    el,
                )
            self.payload = child

        if self.type_.is_request and self.payload is None:
            raise errors.StanzaDecodeError("request IQ without payload", el)

        self.error = None
        self._decode_error(el)

    def _encode_children(self, el):
        if self.payload is not None:
            el.append(copy.deepcopy(self.payload))

    def make_reply(self, type_):
        """
        Create a reply of the given `type_` for this request. The reply
        carries the same :attr:`id_`, with :attr:`from_` and :attr:`to`
        swapped.

        :raises ValueError: if this IQ is not a request
        """
        if not self.type_.is_request:
            raise ValueError("make_reply requires request IQ")
        obj = super()._make_reply(type_)
        return obj

    def __repr__(self):
        payload = ""
        if self.type_.is_error:
            payload = " error={!r}".format(self.error)
        elif self.payload is not None:
            payload = " data={}".format(self.payload.tag)

        return "<iq from={} to={} id={} type={}{}>".format(
            _safe_format_attr(self, "from_"),
            _safe_format_attr(self, "to"),
            _safe_format_attr(self, "id_"),
            _safe_format_attr(self, "type_"),
            payload,
        )


class _ExtensibleStanza(StanzaBase):
    KNOWN_CHILDREN = frozenset()

    def _decode_extensions(self, el):
        self.extensions = [
            child
            for child in el
            if isinstance(child.tag, str)
            and split_tag(child) not in self.KNOWN_CHILDREN
            and split_tag(child) != Error.TAG
        ]

    def _encode_extensions(self, el):
        for child in self.extensions:
            el.append(copy.deepcopy(child))


class Message(_ExtensibleStanza):
    """
    An XMPP message stanza.

    .. attribute:: type_

       The :class:`~wsxmpp.structs.MessageType`. An absent or unknown
       ``type`` attribute is read as :attr:`~.MessageType.NORMAL`.

    .. attribute:: body

       The text of the ``<body/>`` child or :data:`None`.

    .. attribute:: extensions

       List of the extension elements carried by the message.

    .. automethod:: make_reply
    """

    TAG = (namespaces.client, "message")
    ERROR_TYPE = structs.MessageType.ERROR
    KNOWN_CHILDREN = frozenset([
        (namespaces.client, "body"),
    ])

    def __init__(self, type_=structs.MessageType.NORMAL, *, body=None,
                 extensions=(), **kwargs):
        super().__init__(**kwargs)
        self.type_ = type_
        self.body = body
        self.extensions = list(extensions)

    def _decode(self, el):
        self._decode_common(el)
        try:
            self.type_ = structs.MessageType(el.get("type", "normal"))
        except ValueError:
            self.type_ = structs.MessageType.NORMAL
        self.body = _child_text(el, (namespaces.client, "body"))
        self._decode_extensions(el)
        self.error = None
        self._decode_error(el)

    def _encode_children(self, el):
        if self.body is not None:
            body = etree.SubElement(
                el,
                "{{{}}}body".format(namespaces.client),
            )
            body.text = self.body
        self._encode_extensions(el)

    def make_reply(self):
        """
        Create a reply for the message. The :attr:`id_` attribute is cleared
        in the reply. The :attr:`from_` and :attr:`to` are swapped and the
        :attr:`type_` attribute is the same as the one of the original
        message.
        """
        obj = super()._make_reply(self.type_)
        obj.id_ = None
        return obj

    def __repr__(self):
        return "<message from={} to={} id={} type={}>".format(
            _safe_format_attr(self, "from_"),
            _safe_format_attr(self, "to"),
            _safe_format_attr(self, "id_"),
            _safe_format_attr(self, "type_"),
        )


class Presence(_ExtensibleStanza):
    """
    An XMPP presence stanza.

    .. attribute:: type_

       The :class:`~wsxmpp.structs.PresenceType`.

    .. attribute:: show

       The :class:`~wsxmpp.structs.PresenceShow` value. An unknown value is
       read as :attr:`~.PresenceShow.NONE`.

    .. attribute:: status

       The text of the ``<status/>`` child or :data:`None`.

    .. attribute:: extensions

       List of extension elements, for example the entity capabilities
       ``<c/>`` element.
    """

    TAG = (namespaces.client, "presence")
    ERROR_TYPE = structs.PresenceType.ERROR
    KNOWN_CHILDREN = frozenset([
        (namespaces.client, "show"),
        (namespaces.client, "status"),
    ])

    def __init__(self, type_=structs.PresenceType.AVAILABLE, *,
                 show=structs.PresenceShow.NONE, status=None, extensions=(),
                 **kwargs):
        super().__init__(**kwargs)
        self.type_ = type_
        self.show = show
        self.status = status
        self.extensions = list(extensions)

    def _decode(self, el):
        self._decode_common(el)
        self.type_ = _parse_enum_attr(el, "type", structs.PresenceType)
        try:
            self.show = structs.PresenceShow(
                _child_text(el, (namespaces.client, "show"))
            )
        except ValueError:
            self.show = structs.PresenceShow.NONE
        self.status = _child_text(el, (namespaces.client, "status"))
        self._decode_extensions(el)
        self.error = None
        self._decode_error(el)

    def _encode_children(self, el):
        if self.show.value is not None:
            show = etree.SubElement(
                el,
                "{{{}}}show".format(namespaces.client),
            )
            show.text = self.show.value
        if self.status is not None:
            status = etree.SubElement(
                el,
                "{{{}}}status".format(namespaces.client),
            )
            status.text = self.status
        self._encode_extensions(el)

    def __repr__(self):
        return "<presence from={} to={} id={} type={}>".format(
            _safe_format_attr(self, "from_"),
            _safe_format_attr(self, "to"),
            _safe_format_attr(self, "id_"),
            _safe_format_attr(self, "type_"),
        )


STANZA_CLASSES = {
    cls.TAG[1]: cls
    for cls in [IQ, Message, Presence]
}


def from_element(el):
    """
    Decode `el` into an :class:`IQ`, :class:`Message` or :class:`Presence`,
    depending on its local name.

    :raises wsxmpp.errors.StanzaDecodeError: if `el` is not a stanza or
        cannot be decoded.
    """
    if not isinstance(el.tag, str):
        raise errors.StanzaDecodeError("not a stanza", el)
    try:
        cls = STANZA_CLASSES[split_tag(el)[1]]
    except KeyError:
        raise errors.StanzaDecodeError(
            "not a stanza: {!r}".format(el.tag),
            el,
        ) from None
    return cls.from_element(el)
