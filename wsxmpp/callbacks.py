########################################################################
# File name: callbacks.py
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
:mod:`~wsxmpp.callbacks` -- Signals for connection events
#########################################################

The connection reports its lifecycle and the stanzas it receives through
signals. A signal is declared as class attribute and yields a separate
:class:`AdHocSignal` per instance:

.. code-block:: python

   class Emitter:
       on_event = callbacks.Signal()

   def handler(arg):
       pass

   emitter = Emitter()
   emitter.on_event.connect(handler)
   emitter.on_event("foo")  # calls `handler`

.. autoclass:: Signal

.. autoclass:: AdHocSignal

"""

import abc
import asyncio
import collections
import functools
import logging
import types
import weakref


logger = logging.getLogger(__name__)


class AdHocSignal:
    """
    A single emitter. Callables are attached with :meth:`connect` and invoked
    in registration order by :meth:`fire`.

    .. automethod:: fire

    .. automethod:: connect

    .. automethod:: context_connect

    .. automethod:: disconnect

    .. automethod:: future

    .. attribute:: logger

       The :class:`logging.Logger` exceptions raised by listeners are logged
       to. Defaults to the module logger; connections replace it by a child
       of their own logger.

    Connection modes:

    .. attribute:: STRONG

       Keep a strong reference to the callable and call it in-line.

    .. attribute:: WEAK

       Keep a weak reference to the callable (:class:`weakref.WeakMethod`
       for bound methods). Dead references are dropped on the next
       emission.

    .. attribute:: AUTO_FUTURE

       Pass an :class:`asyncio.Future` instead of a callable. It receives the
       single argument of the next emission as result, or as exception if the
       argument is an :class:`Exception`, and is disconnected afterwards.

    For :attr:`STRONG` and :attr:`WEAK`, a listener returning a true value is
    disconnected.
    """

    def __init__(self):
        super().__init__()
        self._connections = collections.OrderedDict()
        self.logger = logger

    @classmethod
    def STRONG(cls, f):
        if not hasattr(f, "__call__"):
            raise TypeError("must be callable, got {!r}".format(f))
        return functools.partial(cls._strong_wrapper, f)

    @classmethod
    def WEAK(cls, f):
        if not hasattr(f, "__call__"):
            raise TypeError("must be callable, got {!r}".format(f))
        if isinstance(f, types.MethodType):
            ref = weakref.WeakMethod(f)
        else:
            ref = weakref.ref(f)
        return functools.partial(cls._weakref_wrapper, ref)

    @classmethod
    def AUTO_FUTURE(cls, f):
        def future_wrapper(args, kwargs):
            if len(args) > 0:
                arg = args[0]
            else:
                arg = None
            if f.done():
                return False
            if isinstance(arg, Exception):
                f.set_exception(arg)
            else:
                f.set_result(arg)
            return False
        return future_wrapper

    @staticmethod
    def _weakref_wrapper(fref, args, kwargs):
        f = fref()
        if f is None:
            return False
        return not f(*args, **kwargs)

    @staticmethod
    def _strong_wrapper(f, args, kwargs):
        return not f(*args, **kwargs)

    def connect(self, f, mode=None):
        """
        Connect `f` to the signal using `mode` (default :attr:`STRONG`) and
        return an opaque token for :meth:`disconnect`.
        """
        mode = mode or self.STRONG
        self.logger.debug("connecting %r with mode %r", f, mode)
        token = object()
        self._connections[token] = mode(f)
        return token

    def context_connect(self, f, mode=None):
        """
        Return a context manager which keeps `f` connected while the context
        is entered.
        """
        return SignalConnectionContext(self, f, mode=mode)

    def disconnect(self, token):
        """
        Disconnect the connection identified by `token`. This never raises,
        even if an invalid `token` is passed.
        """
        try:
            del self._connections[token]
        except KeyError:
            pass

    def fire(self, *args, **kwargs):
        """
        Emit the signal, calling all connected objects in-line with the given
        arguments and in the order they were registered.

        A listener raising an exception is disconnected and the exception is
        logged to :attr:`logger`; the other listeners and the emitter are not
        affected.

        The ad-hoc signal object itself can be called instead of
        :meth:`fire`.
        """
        for token, wrapper in list(self._connections.items()):
            try:
                keep = wrapper(args, kwargs)
            except Exception:
                self.logger.exception("listener attached to signal raised")
                keep = False
            if not keep:
                del self._connections[token]

    def future(self):
        """
        Return an :class:`asyncio.Future` connected using :attr:`AUTO_FUTURE`.

        Must be called from within a running event loop.
        """
        fut = asyncio.get_running_loop().create_future()
        self.connect(fut, self.AUTO_FUTURE)
        return fut

    __call__ = fire


class SignalConnectionContext:
    def __init__(self, signal, *args, **kwargs):
        self._signal = signal
        self._args = args
        self._kwargs = kwargs

    def __enter__(self):
        try:
            token = self._signal.connect(*self._args, **self._kwargs)
        finally:
            del self._args
            del self._kwargs
        self._token = token
        return token

    def __exit__(self, exc_type, exc_value, traceback):
        self._signal.disconnect(self._token)
        return False


class AbstractSignal(metaclass=abc.ABCMeta):
    def __init__(self, *, doc=None):
        super().__init__()
        self.__doc__ = doc
        self._instances = weakref.WeakKeyDictionary()

    @classmethod
    @abc.abstractmethod
    def make_adhoc_signal(cls):
        pass

    def __get__(self, instance, owner):
        if instance is None:
            return self
        try:
            return self._instances[instance]
        except KeyError:
            new = self.make_adhoc_signal()
            self._instances[instance] = new
            return new

    def __set__(self, instance, value):
        raise AttributeError("cannot override Signal attribute")

    def __delete__(self, instance):
        raise AttributeError("cannot override Signal attribute")


class Signal(AbstractSignal):
    """
    A descriptor which returns per-instance :class:`AdHocSignal` objects on
    attribute access.
    """

    @classmethod
    def make_adhoc_signal(cls):
        return AdHocSignal()
