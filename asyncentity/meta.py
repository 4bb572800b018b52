"""
Useful metamagic classes, such as async ABCs.
"""

import functools
import inspect
from abc import ABCMeta


class hybridmethod(object):
    """
    A method that is bound to the instance when called on an instance, and to the class when called
    on the class.

    .. code-block:: python3

        class Post(Model):
            @hybridmethod
            async def delete(self_or_cls, where=None):
                ...

        await Post.delete({"title": "draft"})  # class-level
        await post.delete()  # instance-level

    An alternative instance implementation can be provided with :meth:`.hybridmethod.instancemethod`.
    """

    def __init__(self, fclass, finstance=None):
        """
        :param fclass: The function to call when accessed through the class.
        :param finstance: The function to call when accessed through an instance.
        """
        self.fclass = fclass
        self.finstance = finstance or fclass
        functools.update_wrapper(self, fclass)

    def instancemethod(self, finstance):
        """
        Sets the function used when accessed through an instance.
        """
        self.finstance = finstance
        return self

    def __get__(self, instance, owner):
        if instance is None:
            return self.fclass.__get__(owner, type(owner))

        return self.finstance.__get__(instance, owner)


# Copied from https://github.com/dabeaz/curio/blob/master/curio/meta.py
# Copyright (C) David Beazley (Dabeaz LLC)
# This code is licenced under the MIT licence.
# This code has been minutely edited in formatting and docstrings.

class AsyncABCMeta(ABCMeta):
    """
    Metaclass that gives all of the features of an abstract base class, but
    additionally enforces coroutine correctness on subclasses. If any method
    is defined as a coroutine in a parent, it must also be defined as a
    coroutine in any child.
    """

    def __init__(cls, name, bases, methods, **kwargs):
        coros = {}
        for base in reversed(cls.__mro__):
            coros.update((name, val) for name, val in vars(base).items()
                         if inspect.iscoroutinefunction(val))

        for name, val in vars(cls).items():
            if name in coros and not inspect.iscoroutinefunction(val):
                raise TypeError('Must use async def %s%s' % (name, inspect.signature(val)))
        super().__init__(name, bases, methods)


class AsyncABC(metaclass=AsyncABCMeta):
    pass

# END COPIED CODE
