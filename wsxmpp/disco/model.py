########################################################################
# File name: model.py
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
import base64
import collections
import hashlib

from xml.sax.saxutils import escape

from ..utils import namespaces, etree

namespaces.xep0030_info = "http://jabber.org/protocol/disco#info"
namespaces.xep0030_items = "http://jabber.org/protocol/disco#items"
namespaces.xep0115_caps = "http://jabber.org/protocol/caps"

INFO_QUERY_TAG = (namespaces.xep0030_info, "query")
ITEMS_QUERY_TAG = (namespaces.xep0030_items, "query")
CAPS_TAG = (namespaces.xep0115_caps, "c")

DEFAULT_NODE = "https://github.com/wsxmpp/wsxmpp"


class Identity(collections.namedtuple("Identity",
                                      ["category", "type_", "name", "lang"])):
    """
    A :xep:`30` identity.

    .. attribute:: category

    .. attribute:: type_

    .. attribute:: name

       Optional human-readable name.

    .. attribute:: lang

       Optional language of the :attr:`name`.
    """

    __slots__ = []

    def __new__(cls, category="client", type_="pc", name=None, lang=None):
        return super().__new__(cls, category, type_, name, lang)

    def to_element(self):
        el = etree.Element(
            "{{{}}}identity".format(namespaces.xep0030_info)
        )
        el.set("category", self.category)
        el.set("type", self.type_)
        if self.name is not None:
            el.set("name", self.name)
        if self.lang is not None:
            el.set("{{{}}}lang".format(namespaces.xml), self.lang)
        return el


class Item(collections.namedtuple("Item", ["jid", "node", "name"])):
    """
    A :xep:`30` item.
    """

    __slots__ = []

    def __new__(cls, jid, node=None, name=None):
        return super().__new__(cls, jid, node, name)

    def to_element(self):
        el = etree.Element(
            "{{{}}}item".format(namespaces.xep0030_items)
        )
        el.set("jid", str(self.jid))
        if self.node is not None:
            el.set("node", self.node)
        if self.name is not None:
            el.set("name", self.name)
        return el


def build_identities_string(identities):
    identities = [
        b"/".join([
            escape(identity.category).encode("utf-8"),
            escape(identity.type_).encode("utf-8"),
            escape(str(identity.lang or "")).encode("utf-8"),
            escape(identity.name or "").encode("utf-8"),
        ])
        for identity in identities
    ]

    if len(set(identities)) != len(identities):
        raise ValueError("duplicate identity")

    identities.sort()
    identities.append(b"")
    return b"<".join(identities)


def build_features_string(features):
    features = list(escape(feature).encode("utf-8") for feature in features)

    if len(set(features)) != len(features):
        raise ValueError("duplicate feature")

    features.sort()
    features.append(b"")
    return b"<".join(features)


def hash_query(identities, features, algo="sha1"):
    """
    Compute the :xep:`115` verification string of the given `identities` and
    `features`.
    """
    hashimpl = hashlib.new(algo)
    hashimpl.update(build_identities_string(identities))
    hashimpl.update(build_features_string(features))
    return base64.b64encode(hashimpl.digest()).decode("ascii")


class Capabilities(collections.namedtuple("Capabilities",
                                          ["identity", "node", "features"])):
    """
    What this client advertises about itself via :xep:`30` and :xep:`115`.

    :param identity: The identity of the client; defaults to a ``client/pc``
        identity named ``wsxmpp``.
    :type identity: :class:`Identity`
    :param node: The :xep:`115` node URI of the software.
    :type node: :class:`str`
    :param features: Namespaces of the supported features.
    :type features: iterable of :class:`str`

    The :attr:`features` are stored as :class:`frozenset` and always include
    the disco#info and disco#items namespaces.

    .. autoattribute:: ver

    .. automethod:: to_caps_element

    .. automethod:: to_info_element
    """

    __slots__ = []

    STATIC_FEATURES = frozenset({
        namespaces.xep0030_info,
        namespaces.xep0030_items,
    })

    def __new__(cls, identity=None, node=DEFAULT_NODE, features=()):
        if identity is None:
            identity = Identity("client", "pc", "wsxmpp")
        features = frozenset(features) | cls.STATIC_FEATURES
        return super().__new__(cls, identity, node, features)

    @property
    def ver(self):
        """
        The :xep:`115` verification string (SHA-1).
        """
        return hash_query([self.identity], self.features)

    @property
    def caps_node(self):
        """
        The ``node#ver`` string peers use to query this client.
        """
        return "{}#{}".format(self.node, self.ver)

    def to_caps_element(self):
        """
        Return the ``<c/>`` element to attach to presence.
        """
        el = etree.Element(
            "{{{}}}{}".format(*CAPS_TAG),
            nsmap={None: namespaces.xep0115_caps},
        )
        el.set("hash", "sha-1")
        el.set("node", self.node)
        el.set("ver", self.ver)
        return el

    def to_info_element(self, node=None):
        """
        Return the disco#info ``<query/>`` answering a request for `node`.
        """
        el = etree.Element(
            "{{{}}}{}".format(*INFO_QUERY_TAG),
            nsmap={None: namespaces.xep0030_info},
        )
        if node is not None:
            el.set("node", node)
        el.append(self.identity.to_element())
        for feature in sorted(self.features):
            etree.SubElement(
                el,
                "{{{}}}feature".format(namespaces.xep0030_info),
            ).set("var", feature)
        return el
