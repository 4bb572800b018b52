"""
Transaction propagation.

A unit of work is run inside a transaction that is published into the :mod:`asyncentity.context`
store, so that every query awaited by it finds the transaction without being passed it.

.. code-block:: python3

    async def create_user():
        user = User(name="ginger")
        await user.save()  # uses the published transaction
        return user

    user = await start_transaction(db.connector, create_user)

"""
import logging
import typing

from asyncentity import context
from asyncentity.backends.base import BaseConnector, BaseTransaction, TransactionState
from asyncentity.exc import NoActiveTransactionError, TransactionError

logger = logging.getLogger(__name__)

#: The context key the active transaction is published under.
TRANSACTION = "transaction"

UnitOfWork = typing.Callable[[], typing.Awaitable[typing.Any]]


def get_transaction(required: bool = True) -> typing.Optional[BaseTransaction]:
    """
    Gets the transaction published in the current chain.

    :param required: If True, raise when there is no transaction. Otherwise, return None.
    """
    tr = context.get(TRANSACTION)
    if tr is None and required:
        raise NoActiveTransactionError("No transaction is active in this context")

    return tr


async def begin(connector: BaseConnector) -> BaseTransaction:
    """
    Acquires a new transaction from the connector and begins it.
    """
    tr = connector.get_transaction()
    try:
        await tr.begin()
    except BaseException:
        # a connection acquired before BEGIN failed must still go back to the pool
        await tr.close()
        raise

    return tr


async def _finish(tr: BaseTransaction, rollback: bool = False):
    # rollback or commit, then always hand the connection back
    try:
        if tr.state is not TransactionState.BEGUN:
            return

        if rollback:
            await tr.rollback()
        else:
            await tr.commit()
    finally:
        await tr.close()


async def start_transaction(connector: BaseConnector, unit_of_work: UnitOfWork) -> typing.Any:
    """
    Runs a unit of work inside a new transaction.

    The transaction is committed if the unit of work completes, and rolled back if it raises. In
    the latter case, a :class:`.TransactionError` is raised with the original exception as its
    cause. A cancelled unit of work is rolled back too, and the cancellation is re-raised unwrapped.

    :param connector: The :class:`.BaseConnector` to get the connection from.
    :param unit_of_work: A zero-argument callable returning an awaitable.
    :return: The result of the unit of work.
    """
    tr = await begin(connector)
    token = context.publish(TRANSACTION, tr)
    try:
        try:
            result = await unit_of_work()
        except Exception as e:
            logger.debug("Unit of work failed in transaction {}, rolling back".format(tr.id))
            await _finish(tr, rollback=True)
            raise TransactionError(e) from e
        except BaseException:
            logger.debug("Unit of work cancelled in transaction {}, rolling back".format(tr.id))
            await _finish(tr, rollback=True)
            raise

        await _finish(tr)
        return result
    finally:
        context.reset(token)


FinishCallback = typing.Callable[..., typing.Awaitable[None]]


async def start_response_managed_transaction(connector: BaseConnector,
                                             on_finished: typing.Callable[[FinishCallback], None],
                                             unit_of_work: UnitOfWork) -> typing.Any:
    """
    Runs a unit of work inside a transaction whose end is decided by a response lifecycle.

    The unit of work is awaited, but the transaction stays open until the callback registered
    through ``on_finished`` fires. It is called with ``error`` and ``status`` keyword arguments;
    an error or a status of 400 and above rolls back, anything else commits.

    :param connector: The :class:`.BaseConnector` to get the connection from.
    :param on_finished: Registers the finish callback with the response lifecycle.
    :param unit_of_work: A zero-argument callable returning an awaitable.
    :return: The result of the unit of work.
    """
    tr = await begin(connector)

    async def finished(error: BaseException = None, status: int = None):
        if error is not None:
            logger.error("Closing transaction {} because of an error".format(tr.id),
                         exc_info=error)
        elif status is not None and status >= 400:
            logger.debug("Response finished with status {}, rolling back {}".format(status, tr.id))

        await _finish(tr, rollback=error is not None or (status is not None and status >= 400))

    on_finished(finished)
    token = context.publish(TRANSACTION, tr)
    try:
        return await unit_of_work()
    finally:
        context.reset(token)


class ResponseLifecycle(object):
    """
    A generic response-finish signal.

    Callbacks are registered with :meth:`.on_finished`, and fired once with either
    :meth:`.finish` or :meth:`.fail`.

    .. code-block:: python3

        lifecycle = ResponseLifecycle()
        await start_response_managed_transaction(connector, lifecycle.on_finished, handler)
        ...
        await lifecycle.finish(200)

    """

    def __init__(self):
        self._callbacks = []
        self.finished = False

    def on_finished(self, cb: FinishCallback):
        self._callbacks.append(cb)

    async def _fire(self, **kwargs):
        if self.finished:
            return

        self.finished = True
        for cb in self._callbacks:
            await cb(**kwargs)

    async def finish(self, status: int = 200):
        """
        Signals that the response was sent with the specified status.
        """
        await self._fire(status=status)

    async def fail(self, error: BaseException):
        """
        Signals that producing the response failed.
        """
        await self._fire(error=error)
