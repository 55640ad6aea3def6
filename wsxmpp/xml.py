########################################################################
# File name: xml.py
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
:mod:`~wsxmpp.xml` --- Framing of XMPP streams over message transports
######################################################################

Over WebSocket (:rfc:`7395`), every transport message carries exactly one
complete XML element. The stream itself is opened and closed with
``<open/>`` and ``<close/>`` elements in the framing namespace. Older
servers (following the draft framing) instead send the unbalanced
``<stream:stream>`` header as a message of its own, which is the only
malformed input this module tolerates.

.. autoclass:: FrameKind

.. autoclass:: Frame(kind, element, stream_id)

.. autofunction:: encode

.. autofunction:: decode

.. autofunction:: build_open_frame

.. autofunction:: build_close_frame

.. autofunction:: make_open_element

"""
import collections
import re

from enum import Enum

from . import errors
from .utils import namespaces, etree, split_tag


_STREAM_FOOTER = re.compile(r"^\s*</\s*(?:[\w.-]+:)?stream\s*>\s*$")

STREAM_HEADER_TAG = (namespaces.xmlstream, "stream")
OPEN_TAG = (namespaces.framing, "open")
CLOSE_TAG = (namespaces.framing, "close")


class FrameKind(Enum):
    """
    .. attribute:: STREAM_START

       The stream was opened (or restarted) by the server.

    .. attribute:: STANZA

       Any complete element: stanzas and nonzas alike.

    .. attribute:: STREAM_END

       The server closed the stream.
    """

    STREAM_START = "stream-start"
    STANZA = "stanza"
    STREAM_END = "stream-end"


class Frame(collections.namedtuple("Frame", ["kind", "element", "stream_id"])):
    """
    One decoded transport message.

    .. attribute:: kind

       The :class:`FrameKind`.

    .. attribute:: element

       The parsed :mod:`lxml` element. For a draft stream header this is the
       (childless) ``<stream:stream>`` element; for a stream footer it is
       :data:`None`.

    .. attribute:: stream_id

       The stream id announced by a :attr:`~FrameKind.STREAM_START` frame, or
       :data:`None`.
    """

    __slots__ = []

    def __new__(cls, kind, element, stream_id=None):
        return super().__new__(cls, kind, element, stream_id)


def make_parser():
    """
    Create a parser which is suitably configured for parsing a single XMPP
    frame: no entity resolution, no DTD loading and no network access.
    """
    return etree.XMLParser(
        resolve_entities=False,
        load_dtd=False,
        no_network=True,
        remove_blank_text=False,
    )


def _not_well_formed(text=None):
    return errors.StreamError(
        errors.StreamErrorCondition.NOT_WELL_FORMED,
        text=text,
    )


def _check_restricted(tree):
    if tree.docinfo.doctype:
        raise errors.StreamError(
            errors.StreamErrorCondition.RESTRICTED_XML,
            text="document type declarations are not allowed",
        )
    for node in tree.getroot().iter():
        if not isinstance(node.tag, str):
            raise errors.StreamError(
                errors.StreamErrorCondition.RESTRICTED_XML,
                text="comments and processing instructions are not allowed",
            )


_PREFIXED_HEADER = re.compile(
    rb"^(\s*(?:<\?xml[^>]*\?>\s*)?<stream:stream)(?=[\s>])"
)
_DEFAULT_NS_DECL = re.compile(rb"\sxmlns\s*=")


def _bind_header_namespaces(data):
    """
    Declare the ``stream`` prefix and the ``jabber:client`` default
    namespace on a ``<stream:stream>`` header which relies on them without
    declaring them.
    """
    match = _PREFIXED_HEADER.match(data)
    if match is None:
        return data

    head = data[:match.end()]
    tail = data[match.end():]
    decls = b""
    if b"xmlns:stream" not in tail:
        decls += " xmlns:stream='{}'".format(
            namespaces.xmlstream
        ).encode("ascii")
    if _DEFAULT_NS_DECL.search(tail) is None:
        decls += " xmlns='{}'".format(namespaces.client).encode("ascii")
    return head + decls + tail


def _parse_stream_header(data):
    data = _bind_header_namespaces(data)
    parser = etree.XMLPullParser(
        events=("start",),
        resolve_entities=False,
        load_dtd=False,
        no_network=True,
    )
    try:
        parser.feed(data)
        events = list(parser.read_events())
    except etree.XMLSyntaxError as exc:
        raise _not_well_formed(str(exc)) from None

    if len(events) != 1:
        raise _not_well_formed("incomplete element")

    _, el = events[0]
    if split_tag(el) != STREAM_HEADER_TAG:
        raise _not_well_formed("incomplete element")

    return el


def encode(element):
    """
    Serialise the :mod:`lxml` element `element` into the text of one
    transport message. No XML declaration is emitted.
    """
    return etree.tostring(element, encoding="unicode")


def decode(text):
    """
    Parse the transport message `text` into a :class:`Frame`.

    :raises wsxmpp.errors.StreamError: with
        :attr:`~.StreamErrorCondition.NOT_WELL_FORMED` if `text` is neither a
        complete element nor a stream header, or with
        :attr:`~.StreamErrorCondition.RESTRICTED_XML` if it uses XML features
        forbidden in XMPP.
    """
    if _STREAM_FOOTER.match(text):
        return Frame(FrameKind.STREAM_END, None)

    data = text.encode("utf-8")
    try:
        root = etree.fromstring(data, make_parser())
    except etree.XMLSyntaxError:
        el = _parse_stream_header(data)
        return Frame(FrameKind.STREAM_START, el, el.get("id"))

    _check_restricted(root.getroottree())

    tag = split_tag(root)
    if tag == OPEN_TAG or tag == STREAM_HEADER_TAG:
        return Frame(FrameKind.STREAM_START, root, root.get("id"))
    if tag == CLOSE_TAG:
        return Frame(FrameKind.STREAM_END, root)
    return Frame(FrameKind.STANZA, root)


def make_open_element(domain):
    """
    Return the ``<open/>`` element which opens (or restarts) the stream to
    `domain`.
    """
    el = etree.Element(
        "{{{}}}{}".format(*OPEN_TAG),
        nsmap={None: namespaces.framing},
    )
    el.set("to", domain)
    el.set("version", "1.0")
    return el


def make_close_element():
    return etree.Element(
        "{{{}}}{}".format(*CLOSE_TAG),
        nsmap={None: namespaces.framing},
    )


def build_open_frame(domain):
    """
    Build the ``<open/>`` element for `domain` and return it serialised.
    """
    return encode(make_open_element(domain))


def build_close_frame():
    """
    Build the ``<close/>`` element which ends the stream and return it
    serialised.
    """
    return encode(make_close_element())
