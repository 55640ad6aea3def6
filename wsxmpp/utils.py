########################################################################
# File name: utils.py
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
:mod:`~wsxmpp.utils` --- Internal utils
#######################################

Miscellaneous utilities used throughout the wsxmpp codebase.

.. data:: namespaces

   Collects all the namespaces from the various modules. Each module defines
   its namespaces as attributes on this object; the short-hand names are
   used throughout the code base instead of repeating the URIs.

.. autoclass:: Namespaces

.. autofunction:: to_nmtoken

.. autofunction:: make_id

.. autofunction:: tag_to_str

"""

import base64
import random

import lxml.etree as etree

__all__ = [
    "etree",
    "namespaces",
]

#: Number of random bytes used for stanza identifiers.
RANDOM_ID_BYTES = 120 // 8


class Namespaces:
    """
    Manage short-hands for XML namespaces.

    Instances of this class may be used to assign mnemonic short-hands
    to XML namespaces, for example:

    .. code-block:: python

        namespaces = Namespaces()
        namespaces.foo = "urn:example:foo"
        namespaces.bar = "urn:example:bar"

    The class ensures that only one short-hand is bound to each namespace,
    that no short-hand is redefined to point to a different namespace and
    that short-hands cannot be deleted. Violations raise :class:`ValueError`
    and :class:`AttributeError` respectively.

    The defined short-hands MUST NOT start with an underscore.
    """

    def __init__(self):
        self._all_namespaces = {}

    def __setattr__(self, attr, value):
        if not attr.startswith("_"):
            try:
                existing_attr = self._all_namespaces[value]
                if attr != existing_attr:
                    raise ValueError(
                        "namespace {} already defined as {}".format(
                            value,
                            existing_attr,
                        )
                    )
            except KeyError:
                try:
                    if getattr(self, attr) != value:
                        raise ValueError("inconsistent namespace redefinition")
                except AttributeError:
                    pass
            self._all_namespaces[value] = attr
        super().__setattr__(attr, value)

    def __delattr__(self, attr):
        if not attr.startswith("_"):
            raise AttributeError("deleting short-hands is prohibited")
        super().__delattr__(attr)


namespaces = Namespaces()
namespaces.xmlstream = "http://etherx.jabber.org/streams"
namespaces.framing = "urn:ietf:params:xml:ns:xmpp-framing"
namespaces.client = "jabber:client"
namespaces.sasl = "urn:ietf:params:xml:ns:xmpp-sasl"
namespaces.stanzas = "urn:ietf:params:xml:ns:xmpp-stanzas"
namespaces.streams = "urn:ietf:params:xml:ns:xmpp-streams"
namespaces.rfc6120_bind = "urn:ietf:params:xml:ns:xmpp-bind"
namespaces.rfc3921_session = "urn:ietf:params:xml:ns:xmpp-session"
namespaces.xml = "http://www.w3.org/XML/1998/namespace"


def to_nmtoken(rand_token):
    """
    Convert a (random) token given as raw :class:`bytes` or
    :class:`int` to a valid NMTOKEN
    <https://www.w3.org/TR/xml/#NT-Nmtoken>.

    The encoding as a valid nmtoken is injective, ensuring that two
    different inputs cannot yield the same token.
    """

    if isinstance(rand_token, int):
        rand_token = rand_token.to_bytes(
            (rand_token.bit_length() + 7) // 8,
            "little"
        )
        e = base64.urlsafe_b64encode(rand_token).rstrip(b"=").decode("ascii")
        return ":" + e

    if isinstance(rand_token, bytes):
        e = base64.urlsafe_b64encode(rand_token).rstrip(b"=").decode("ascii")
        if not e:
            e = "."
        return e

    raise TypeError("rand_token must be a bytes or int instance")


def make_id():
    """
    Return a fresh random stanza identifier.
    """
    return to_nmtoken(random.getrandbits(8 * RANDOM_ID_BYTES))


def tag_to_str(tag):
    """
    Format a ``(namespace, localname)`` pair in Clark notation.
    """
    namespace, localname = tag
    if namespace is None:
        return localname
    return "{{{}}}{}".format(namespace, localname)


def split_tag(el):
    """
    Return the ``(namespace, localname)`` pair of the lxml element `el`.
    """
    qname = etree.QName(el)
    return qname.namespace, qname.localname
