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
Version information
###################

There are two ways to obtain the imported version of the :mod:`wsxmpp`
package:

.. autodata:: __version__

.. data:: version

   Alias of :data:`__version__`.

.. autodata:: version_info

Overview
########

.. autosummary::
    :nosignatures:

    wsxmpp.Client
    wsxmpp.protocol.XMPPConnection
    wsxmpp.statemachine
    wsxmpp.disco.Capabilities

"""
from ._version import version_info, __version__, version  # NOQA: F401

#: The imported :mod:`wsxmpp` version as a tuple.
#:
#: The components of the tuple are, in order: `major version`, `minor version`,
#: `patch level`, and `pre-release identifier`.
version_info = version_info

#: The imported :mod:`wsxmpp` version as a string.
#:
#: The version number is dot-separated; in pre-release or development versions,
#: the version number is followed by a hypen-separated pre-release identifier.
__version__ = __version__

from .errors import (  # NOQA: F401
    XMPPAuthError,
    XMPPCancelError,
    XMPPContinueError,
    XMPPModifyError,
    XMPPWaitError,
    ErrorCondition,
    StreamErrorCondition,
)
from .stanza import Presence, IQ, Message  # NOQA: F401
from .structs import (  # NOQA: F401
    JID,
    PresenceShow,
    MessageType,
    PresenceType,
    IQType,
    ErrorType,
)
from .disco import Capabilities, Identity  # NOQA: F401
from .dispatcher import IQHandler  # NOQA: F401
from .protocol import XMPPConnection  # NOQA: F401
from .node import Client  # NOQA: F401
