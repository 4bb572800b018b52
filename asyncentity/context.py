"""
The ambient execution context.

This is a per-call-chain key/value store, used to make the current transaction available to every
coroutine in a chain without passing it around explicitly.

.. code-block:: python3

    token = context.publish("transaction", tr)
    try:
        await do_work()  # anything awaited in here can call context.get("transaction")
    finally:
        context.reset(token)

The store is built on :mod:`contextvars`. asyncio copies the current context when a task is
created, so a task spawned from a chain refers to the same bag as its parent at spawn time.
Publishing always creates a new bag, so a chain never changes what a parent or sibling chain sees.
"""
import contextlib
import contextvars
import types
import typing

_bag = contextvars.ContextVar("asyncentity_context", default=None)


def get(key: str, default: typing.Any = None) -> typing.Any:
    """
    Gets a value published in the current chain.

    :param key: The key the value was published under.
    :param default: The value to return if nothing was published.
    """
    bag = _bag.get()
    if bag is None:
        return default

    return bag.get(key, default)


def publish(key: str, value: typing.Any) -> contextvars.Token:
    """
    Publishes a value in the current chain.

    :param key: The key to publish the value under.
    :param value: The value to publish.
    :return: A token that can be passed to :func:`.reset` to discard this publication.
    """
    bag = dict(_bag.get() or {})
    bag[key] = value
    return _bag.set(bag)


def reset(token: contextvars.Token):
    """
    Discards a publication, restoring the bag that was current before it.

    :param token: The token returned from :func:`.publish`.
    """
    _bag.reset(token)


@contextlib.contextmanager
def scope(**values):
    """
    Publishes values for the duration of a ``with`` block.
    """
    token = _bag.set({**(_bag.get() or {}), **values})
    try:
        yield
    finally:
        _bag.reset(token)


def current() -> typing.Mapping[str, typing.Any]:
    """
    :return: A read-only view of the bag for the current chain.
    """
    return types.MappingProxyType(_bag.get() or {})


def size() -> int:
    """
    :return: The number of values published in the current chain.
    """
    return len(_bag.get() or {})
