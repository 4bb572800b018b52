"""
ASGI integration.

.. code-block:: python3

    app = TransactionMiddleware(app, db)

Every HTTP request is then handled inside a response-managed transaction: the transaction is
committed once the response has been sent with a successful status, and rolled back if the status
is 400 or above or the application raises.
"""
import logging

from asyncentity import db as md_db
from asyncentity.transaction import ResponseLifecycle

logger = logging.getLogger(__name__)


class TransactionMiddleware(object):
    """
    An ASGI middleware that runs every HTTP request in a transaction.
    """

    def __init__(self, app, db: 'md_db.DatabaseInterface' = None):
        """
        :param app: The ASGI application to wrap.
        :param db: The :class:`.DatabaseInterface` to use. Defaults to the interface configured
            with :func:`.init`.
        """
        self.app = app
        self._db = db

    @property
    def db(self) -> 'md_db.DatabaseInterface':
        return self._db or md_db.get_interface()

    async def __call__(self, scope, receive, send):
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        lifecycle = ResponseLifecycle()
        status = None

        async def send_wrapper(message):
            nonlocal status
            if message["type"] == "http.response.start":
                status = message["status"]

            await send(message)

            if message["type"] == "http.response.body" and not message.get("more_body", False):
                await lifecycle.finish(status)

        async def handle():
            await self.app(scope, receive, send_wrapper)

        try:
            await self.db.response_managed_transaction(lifecycle.on_finished, handle)
        except BaseException as e:
            # includes cancellation, e.g. when the client disconnects
            await lifecycle.fail(e)
            raise

        # an application that returned without sending a body still needs its transaction closed
        if not lifecycle.finished:
            await lifecycle.finish(status or 500)
