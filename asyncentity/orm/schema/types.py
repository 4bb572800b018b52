"""
Column types.

A column type only decides how a column is declared in a CREATE TABLE statement; values are passed
to the driver unchanged.
"""
import abc
import typing

from asyncentity.exc import ColumnValidationError
from asyncentity.orm.schema import column as md_column


class ColumnType(abc.ABC):
    """
    Implements some underlying mechanisms for a :class:`.Column`.

    The only method that is required to be implemented on children is :meth:`.ColumnType.sql`,
    which is used in CREATE TABLE declarations.

    .. code-block:: python3

        class Inet(ColumnType):
            def sql(self):
                return "INET"

        class Server(Model):
            address = Column(Inet())

    """
    __slots__ = ("column",)

    def __init__(self):
        #: The column this type object is associated with.
        self.column = None  # type: md_column.Column

    def __repr__(self):
        return "<ColumnType {}>".format(self.sql())

    @abc.abstractmethod
    def sql(self) -> str:
        """
        :return: The str SQL name of this type.
        """

    @classmethod
    def create_default(cls) -> 'ColumnType':
        """
        Creates the default object for this type in the event that a type is passed to a column,
        instead of an instance.
        """
        return cls()


class Integer(ColumnType):
    """
    Represents an integer type. Auto-incrementing integer columns are declared as a serial.
    """
    __slots__ = ()

    def sql(self):
        if self.column is not None and self.column.autoincrement:
            return "SERIAL"

        return "INT"


class SmallInt(Integer):
    """
    Represents a small integer type.
    """
    __slots__ = ()

    def sql(self):
        return "SMALLINT"


class BigInt(Integer):
    """
    Represents a big integer type.
    """
    __slots__ = ()

    def sql(self):
        if self.column is not None and self.column.autoincrement:
            return "BIGSERIAL"

        return "BIGINT"


class Real(ColumnType):
    __slots__ = ()

    def sql(self):
        return "REAL"


class Boolean(ColumnType):
    __slots__ = ()

    def sql(self):
        return "BOOLEAN"


class String(ColumnType):
    """
    Represents a string type.
    """
    __slots__ = ("size",)

    #: The longest VARCHAR that can be declared.
    MAX_SIZE = 255

    def __init__(self, size: int = None):
        """
        :param size: The maximum length of the string, or None for no explicit limit.
        """
        super().__init__()
        if size is not None and size > self.MAX_SIZE:
            raise ColumnValidationError("String length {} is longer than the maximum of {}"
                                        .format(size, self.MAX_SIZE))

        self.size = size

    def sql(self):
        if self.size is None:
            return "VARCHAR"

        return "VARCHAR({})".format(self.size)


class Text(ColumnType):
    """
    Represents a TEXT type. TEXT types have no size limit, unlike :class:`.String`.
    """
    __slots__ = ()

    def sql(self):
        return "TEXT"


class Timestamp(ColumnType):
    """
    Represents a timezone-aware TIMESTAMP type.
    """
    __slots__ = ()

    def sql(self):
        return "TIMESTAMP WITH TIME ZONE"


_TYPE_NAMES = {
    "int": Integer,
    "integer": Integer,
    "number": Integer,
    "serial": Integer,
    "string": String,
    "str": String,
    "bool": Boolean,
    "boolean": Boolean,
    "text": Text,
    "timestamp": Timestamp,
}


def get_column_type(name: str) -> typing.Optional[typing.Type[ColumnType]]:
    """
    Gets a column type by its name, e.g. ``"int"`` or ``"string"``.

    :param name: The case-insensitive name of the type.
    :return: The :class:`.ColumnType` class, or None if the name is not known.
    """
    return _TYPE_NAMES.get(name.lower())
