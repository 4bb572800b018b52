import logging
import typing

from cached_property import cached_property

from asyncentity.exc import UnresolvableColumnTypeError
from asyncentity.orm.schema import types as md_types

logger = logging.getLogger(__name__)

ON_DELETE_POLICIES = ("restrict", "cascade", "no action", "set null", "set default")


class ForeignKey(object):
    """
    Represents the ``REFERENCES`` part of a column.

    .. code-block:: python3

        class Post(Model):
            author_id = Column(Integer, foreign_key=ForeignKey("user"))

    """

    def __init__(self, table: str, column: str = "id", on_delete: str = "cascade", *,
                 schema: str = None, model=None):
        """
        :param table: The name of the referenced table.
        :param column: The name of the referenced column.
        :param on_delete: What to do with this row when the referenced row is deleted.
        :param schema: The schema of the referenced table. Defaults to the referencing table's.
        :param model: The referenced model, if it is already known.
        """
        on_delete = on_delete.lower()
        if on_delete not in ON_DELETE_POLICIES:
            raise ValueError("Invalid ON DELETE policy {!r}, must be one of {}"
                             .format(on_delete, ", ".join(ON_DELETE_POLICIES)))

        self.table = table
        self.column = column
        self.on_delete = on_delete
        self.schema = schema
        self.model = model

    def __repr__(self):
        return "<ForeignKey references={}.{} on_delete={}>".format(self.table, self.column,
                                                                   self.on_delete)


class Column(object):
    """
    Represents a column in a table in a database.

    .. code-block:: python3

        class User(Model):
            name = Column(String(64), nullable=False)

    Accessing the column on a model instance reads and writes the instance's
    :class:`.Attribute` for it, so assignments are tracked for saving.

    .. code-block:: python3

        user = User(name="ginger")
        user.name = "bellette"  # marks the attribute dirty
    """

    def __init__(self, type_: 'typing.Union[md_types.ColumnType, typing.Type[md_types.ColumnType], str]',
                 *,
                 name: str = None,
                 primary_key: bool = False,
                 autoincrement: bool = False,
                 nullable: bool = True,
                 unique: bool = False,
                 index: bool = False,
                 foreign_key: ForeignKey = None):
        """
        :param type_:
            The :class:`.ColumnType` that represents the type of this column. This can also be a
            type class or a type name understood by :func:`.get_column_type`.

        :param name:
            The name of the column in the table. Defaults to the lower-cased attribute name.

        :param primary_key:
            Is this column the table's primary key?

        :param autoincrement:
            Should this column auto-increment?

        :param nullable:
            Can this column be NULL?

        :param unique:
            Is this column unique?

        :param index:
            Should a plain index be created for this column?

        :param foreign_key:
            The :class:`.ForeignKey` associated with this column.
        """
        #: The name of the column in the table.
        self.name = name

        #: The name of the attribute on the model.
        self.property = None  # type: str

        #: The model this column was first declared on.
        self.model = None

        self._type = type_

        #: If this Column is a primary key.
        self.primary_key = primary_key

        #: If this Column is to autoincrement.
        self.autoincrement = autoincrement

        #: If this Column is nullable.
        self.nullable = nullable

        #: If this Column is unique.
        self.unique = unique

        #: If this Column is indexed.
        self.indexed = index

        #: The foreign key associated with this column.
        self.foreign_key = foreign_key

    def __repr__(self):
        return "<Column model={} name={} type={!r}>".format(
            getattr(self.model, "__name__", None), self.name, self._type
        )

    def __set_name__(self, owner, name: str):
        """
        Called to update the model and the name of this Column.
        """
        logger.debug("Column created with name {} on {}".format(name, owner))
        self.property = name
        if self.name is None:
            self.name = name.lower()

        self.model = owner

    @cached_property
    def type(self) -> md_types.ColumnType:
        """
        The :class:`.ColumnType` of this column.

        :raises UnresolvableColumnTypeError: If the declared type is missing or not recognised.
        """
        type_ = self._type
        if isinstance(type_, str):
            type_ = md_types.get_column_type(type_) or type_

        if isinstance(type_, type) and issubclass(type_, md_types.ColumnType):
            type_ = type_.create_default()

        if not isinstance(type_, md_types.ColumnType):
            raise UnresolvableColumnTypeError("Cannot resolve the type {!r} of column {}"
                                              .format(self._type, self.property or self.name))

        type_.column = self
        return type_

    @property
    def data_type(self) -> str:
        """
        :return: The rendered SQL type of this column.
        """
        return self.type.sql()

    @property
    def not_null(self) -> bool:
        return not self.nullable

    @property
    def references(self) -> typing.Optional[ForeignKey]:
        return self.foreign_key

    def __get__(self, instance, owner):
        if instance is None:
            return self

        attribute = instance._attributes.get(self.property)
        if attribute is None:
            return None

        return attribute.value

    def __set__(self, instance, value):
        instance.set_attribute(self.property, value)


class DerivedColumn(object):
    """
    A read-only value computed from the other attributes of a model instance. It has no column in
    the table, and is never saved.

    .. code-block:: python3

        class Programmer(Model):
            first_name = Column(String(64))
            last_name = Column(String(64))

            @DerivedColumn
            def full_name(self):
                return "{} {}".format(self.first_name, self.last_name)

    """

    def __init__(self, get: typing.Callable[[typing.Any], typing.Any]):
        """
        :param get: Called with the model instance to compute the value.
        """
        self.get = get

        #: The name of the attribute on the model.
        self.name = getattr(get, "__name__", None)

        #: The model this derived column was declared on.
        self.model = None

    def __repr__(self):
        return "<DerivedColumn model={} name={}>".format(getattr(self.model, "__name__", None),
                                                         self.name)

    def __set_name__(self, owner, name: str):
        self.name = name
        self.model = owner

    def __get__(self, instance, owner):
        if instance is None:
            return self

        return self.get(instance)

    def __set__(self, instance, value):
        raise AttributeError("Derived column {} is read-only".format(self.name))


def define_derived_column(model, name: str, get: typing.Callable[[typing.Any], typing.Any]) \
        -> DerivedColumn:
    """
    Declares a :class:`.DerivedColumn` on an existing model.
    """
    derived = DerivedColumn(get)
    derived.__set_name__(model, name)
    setattr(model, name, derived)
    model.metadata.add_derived_column(model, derived)
    return derived
