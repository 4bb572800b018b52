"""
Exceptions for asyncentity.
"""


class DatabaseException(Exception):
    """
    The base class for ALL exceptions.

    Catch this if you wish to catch any custom exception raised inside the lib.
    """


class SchemaError(DatabaseException):
    """
    Raised when there is an error in the model schema.
    """


class CyclicDependencyError(SchemaError):
    """
    Raised when the foreign keys between models form a cycle, meaning there is no order the tables
    can be created in.
    """


class UnresolvableColumnTypeError(SchemaError):
    """
    Raised when the storage type of a column cannot be determined.
    """


class ColumnValidationError(DatabaseException):
    """
    Raised when a column fails validation.
    """


class IntegrityError(DatabaseException):
    """
    Raised when a column's integrity is not preserved (e.g. null or unique violations).
    """


class OperationalError(DatabaseException):
    """
    Raised when an operational error has occurred.
    """


class NoSuchColumnError(DatabaseException):
    """
    Raised when a non-existing column is requested.
    """


class UnresolvedAttributeError(NoSuchColumnError):
    """
    Raised when a query attribute does not match a column on any of the queried models.
    """


class AmbiguousAttributeError(DatabaseException):
    """
    Raised when a query attribute matches a column on more than one of the queried models.
    """

    def __init__(self, attribute_name: str, matches):
        #: The attribute that could not be resolved.
        self.attribute_name = attribute_name

        #: The fully qualified names of every column that matched.
        self.matches = list(matches)
        super().__init__("Multiple attribute matches found for {} - {}"
                         .format(attribute_name, ", ".join(self.matches)))


class NoActiveTransactionError(DatabaseException):
    """
    Raised when a query is made without a transaction published in the current execution context.
    """


class TransactionError(DatabaseException):
    """
    Raised when the unit of work inside a transaction fails. The transaction has been rolled back.

    The original exception is available as ``__cause__`` and as :attr:`.original`.
    """

    def __init__(self, original: BaseException):
        #: The exception raised by the unit of work.
        self.original = original
        super().__init__("Transaction rolled back: {!r}".format(original))


class ApplicationException(DatabaseException):
    """
    The base class for record lookup failures.

    These carry an HTTP style status code, so that web frameworks can map them to a response.
    """
    status = 500


class RecordNotFoundError(ApplicationException):
    """
    Raised when no row was found where exactly one was required.
    """
    status = 404


class MultipleRecordsFoundError(ApplicationException):
    """
    Raised when more than one row was found where at most one was required.
    """
    status = 500
