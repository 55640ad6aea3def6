########################################################################
# File name: service.py
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
import logging

from .. import errors, structs
from ..dispatcher import IQHandler
from ..utils import namespaces, etree, split_tag

from .model import INFO_QUERY_TAG, ITEMS_QUERY_TAG

logger = logging.getLogger(__name__)


def _is_get_for(iq, tag):
    return (iq.type_ == structs.IQType.GET and
            iq.payload is not None and
            isinstance(iq.payload.tag, str) and
            split_tag(iq.payload) == tag)


class InfoHandler(IQHandler):
    """
    Answer disco#info requests from the :class:`~.Capabilities`
    `capabilities`.

    Requests without node and requests for the :xep:`115` ``node#ver``
    node are answered with the identity and the features. Any other node
    is answered with ``<item-not-found/>``.
    """

    def __init__(self, capabilities):
        super().__init__()
        self.capabilities = capabilities

    def handle(self, iq):
        if not _is_get_for(iq, INFO_QUERY_TAG):
            return None

        node = iq.payload.get("node")
        if node is not None and node != self.capabilities.caps_node:
            logger.debug("disco#info request for unknown node %r", node)
            raise errors.XMPPCancelError(
                condition=errors.ErrorCondition.ITEM_NOT_FOUND
            )

        reply = iq.make_reply(structs.IQType.RESULT)
        reply.payload = self.capabilities.to_info_element(node)
        return reply

    def __repr__(self):
        return "<InfoHandler node={!r}>".format(self.capabilities.node)


class ItemsHandler(IQHandler):
    """
    Answer disco#items requests for the root node with a static list of
    :class:`~.Item` objects (empty by default).
    """

    def __init__(self, items=()):
        super().__init__()
        self.items = tuple(items)

    def handle(self, iq):
        if not _is_get_for(iq, ITEMS_QUERY_TAG):
            return None

        if iq.payload.get("node") is not None:
            raise errors.XMPPCancelError(
                condition=errors.ErrorCondition.ITEM_NOT_FOUND
            )

        query = etree.Element(
            "{{{}}}{}".format(*ITEMS_QUERY_TAG),
            nsmap={None: namespaces.xep0030_items},
        )
        for item in self.items:
            query.append(item.to_element())

        reply = iq.make_reply(structs.IQType.RESULT)
        reply.payload = query
        return reply

    def __repr__(self):
        return "<ItemsHandler items={}>".format(len(self.items))
