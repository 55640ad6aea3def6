########################################################################
# File name: __init__.py
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
:mod:`~wsxmpp.disco` --- Service discovery support (:xep:`0030`)
################################################################

This subpackage answers :xep:`Service Discovery <30>` requests sent to the
client and computes the :xep:`Entity Capabilities <115>` advertisement.

What the client advertises is described by a :class:`Capabilities` object,
supplied when the connection is constructed and never changed afterwards.
The :class:`InfoHandler` and :class:`ItemsHandler` are
:class:`~wsxmpp.dispatcher.IQHandler` implementations; the connection puts
them at the front of its handler pipeline.

Capabilities
============

.. autoclass:: Capabilities

.. autoclass:: Identity

.. autoclass:: Item

.. autofunction:: hash_query

Handlers
========

.. autoclass:: InfoHandler

.. autoclass:: ItemsHandler

"""
from .model import (  # NOQA: F401
    Capabilities,
    Identity,
    Item,
    hash_query,
    DEFAULT_NODE,
)
from .service import (  # NOQA: F401
    InfoHandler,
    ItemsHandler,
)
