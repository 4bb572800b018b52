"""
Model objects.
"""
import json
import logging
import typing
from collections import OrderedDict

from asyncentity.exc import MultipleRecordsFoundError, RecordNotFoundError
from asyncentity.meta import AsyncABCMeta, hybridmethod
from asyncentity.orm import metadata as md_metadata
from asyncentity.orm.query import query
from asyncentity.orm.schema import association as md_association, column as md_column
from asyncentity.orm.schema.attribute import Attribute
from asyncentity.orm.schema.types import Integer
from asyncentity.utils import group_data

logger = logging.getLogger(__name__)


class ModelMeta(AsyncABCMeta):
    """
    The metaclass for a model object. This represents the "type" of a model class.

    Declaring a model registers its columns and associations in the base's
    :class:`.MetadataRegistry`, and the model itself in its :class:`.ModelRegistry`. This can be
    customized with class keywords:

    .. code-block:: python3

        class Student(Model, table_name="students", schema="school"):
            ...

    """

    def __new__(mcs, name: str, bases: tuple, namespace: dict,
                register: bool = True, table_name: str = None, schema: str = None):
        # the keywords are ours, they must not reach type.__new__
        return super().__new__(mcs, name, bases, namespace)

    def __init__(cls, name: str, bases: tuple, namespace: dict,
                 register: bool = True, table_name: str = None, schema: str = None):
        """
        :param register: Should this model be registered in the metadata?
        :param table_name: The name of the table. Defaults to the lower-cased class name.
        :param schema: The schema of the table. Defaults to ``public``.
        """
        super().__init__(name, bases, namespace)

        if register is False:
            return
        elif cls.metadata is None:
            raise TypeError("Model {} has been created but has no metadata - did you subclass "
                            "a class that was not created by model_base()?".format(name))

        metadata = cls.metadata  # type: md_metadata.MetadataRegistry
        for value in namespace.values():
            if isinstance(value, md_column.Column):
                metadata.add_column(cls, value)
            elif isinstance(value, md_column.DerivedColumn):
                metadata.add_derived_column(cls, value)
            elif isinstance(value, md_association.Association):
                metadata.add_association(value)

        if table_name is not None:
            metadata.set_table_name(cls, table_name)

        if schema is not None:
            metadata.set_schema(cls, schema)

        metadata.models.add_model(cls)
        logger.debug("Registered new model {}".format(name))


class _ModelBase(metaclass=ModelMeta, register=False):
    """
    The base class for all models. Use :func:`.model_base` to get a subclassable base.

    .. code-block:: python3

        class Student(BaseModel):
            name = Column(String(64), nullable=False)

        student = Student(name="ginger")
        await student.save()

    Unknown keys passed to the constructor are ignored. Every provided value is marked dirty, so it
    will be written by the next save.
    """

    #: The :class:`.MetadataRegistry` of this model.
    metadata = None  # type: md_metadata.MetadataRegistry

    #: The primary key of this model. Set by :func:`.model_base`.
    id = None  # type: int

    def __init__(self, data: typing.Mapping[str, typing.Any] = None, **kwargs):
        #: A mapping of property -> :class:`.Attribute` for this instance.
        self._attributes = OrderedDict()  # type: typing.Dict[str, Attribute]

        #: A mapping of association name -> model or list of models for this instance.
        self._associations = OrderedDict()

        values = dict(data or {})
        values.update(kwargs)
        self._map_data(values)

    def __repr__(self):
        return "<{} id={}>".format(type(self).__name__, self.id)

    def __str__(self):
        return "{} - {}".format(type(self).__name__, json.dumps(self.to_json(), default=str))

    @classmethod
    def get_entity_metadata(cls) -> 'md_metadata.EntityMetadata':
        return cls.metadata.get_entity_metadata(cls)

    def _map_data(self, data: typing.Mapping[str, typing.Any]):
        entity = self.get_entity_metadata()
        properties = {}
        for column in entity.columns.values():
            properties[column.name] = column.property
            properties[column.property] = column.property

        for key, value in data.items():
            if key in properties:
                setattr(self, properties[key], value)
            elif key in entity.associations:
                setattr(self, key, value)

    def set_attribute(self, name: str, value: typing.Any):
        """
        Sets the value of a column by its property name.
        """
        attribute = self._attributes.get(name)
        if attribute is None:
            self._attributes[name] = Attribute(name, value)
        else:
            attribute.value = value

    # dirty tracking

    def is_dirty(self) -> bool:
        """
        :return: If any column of this model has changed since it was saved or loaded.
        """
        return any(attribute.is_dirty for attribute in self._attributes.values())

    def get_dirty_data(self) -> typing.Dict[str, typing.Any]:
        """
        :return: A mapping of column name -> value of every changed column.
        """
        names = {c.property: c.name for c in self.get_entity_metadata().columns.values()}
        return OrderedDict((names.get(key, key), attribute.value)
                           for key, attribute in self._attributes.items() if attribute.is_dirty)

    def clean_model_only(self):
        """
        Marks every column of this model as not dirty.
        """
        for attribute in self._attributes.values():
            attribute.clean()

    def clean_associations(self):
        """
        Cleans every associated model, recursively.
        """
        for value in self._associations.values():
            if isinstance(value, list):
                for item in value:
                    item.clean()
            else:
                value.clean()

    def clean(self):
        self.clean_model_only()
        self.clean_associations()

    # saving

    async def save(self):
        """
        Saves the associations of this model, then this model.
        """
        await self.save_associations()
        await self.save_model_only()

    async def save_associations(self):
        # one statement at a time, since every save shares the same connection
        associations = self.get_entity_metadata().associations
        for name in list(self._associations):
            await associations[name].save(self)

    async def save_model_only(self):
        """
        Saves only the columns of this model, inserting it if it has no id and updating it
        otherwise. Nothing is written if no column is dirty.
        """
        await self.before_save()
        if not self.is_dirty():
            return

        model = type(self)
        if self.id:
            await self.before_update()
            # the id is the update predicate
            self._attributes["id"].is_dirty = True
            await query.modify(model, self.get_dirty_data())
            await self.after_update()
        else:
            await self.before_create()
            self.id = await query.insert(model, self.get_dirty_data())
            await self.after_create()

        self.clean_model_only()
        await self.after_save()

    @hybridmethod
    async def delete(cls, where: typing.Mapping[str, typing.Any] = None):
        """
        Deletes the rows of this model matching the predicates.

        Called on an instance, this deletes the row of that instance instead, and does nothing
        if the instance has not been saved.
        """
        await query.delete(cls, where)

    @delete.instancemethod
    async def delete(self):
        if self.id:
            await query.delete(type(self), {"id": self.id})

    def overwrite(self, other: '_ModelBase'):
        """
        Overwrites the data of this model with the data of another, including dirty flags.
        """
        for name, attribute in other._attributes.items():
            self.set_attribute(name, attribute.value)
            self._attributes[name].is_dirty = attribute.is_dirty

        self._associations.update(other._associations)

    def to_json(self) -> dict:
        """
        :return: A dict of every set column, derived column and association, by property name.
        """
        obb = OrderedDict((name, attribute.value) for name, attribute in self._attributes.items())
        for name in self.get_entity_metadata().derived:
            obb[name] = getattr(self, name)

        for name, value in self._associations.items():
            if isinstance(value, list):
                obb[name] = [item.to_json() for item in value]
            else:
                obb[name] = value.to_json()

        return obb

    # hooks

    async def before_save(self):
        pass

    async def after_save(self):
        pass

    async def before_create(self):
        pass

    async def after_create(self):
        pass

    async def before_update(self):
        pass

    async def after_update(self):
        pass

    # class methods

    @classmethod
    def build_clean_instance(cls, data: typing.Mapping[str, typing.Any]):
        """
        Creates an instance from data loaded from the database. The instance and its associated
        models are marked as not dirty.
        """
        model = cls(data)
        model.clean()
        return model

    @classmethod
    async def get(cls, id_: int, includes: typing.Iterable[str] = None):
        """
        Gets a model by its id.

        :raises RecordNotFoundError: If there is no row with this id.
        """
        return await cls.find_one({"id": id_}, includes=includes)

    @classmethod
    async def find_one(cls, key: typing.Mapping[str, typing.Any],
                       includes: typing.Iterable[str] = None):
        """
        Finds the only model matching the key.

        :raises RecordNotFoundError: If no row matches.
        :raises MultipleRecordsFoundError: If more than one row matches.
        """
        model = await cls.find_at_most_one(key, includes=includes)
        if model is None:
            raise RecordNotFoundError("Record Not Found on {} with Key {}"
                                      .format(cls.__name__, json.dumps(key, default=str)))

        return model

    @classmethod
    async def find_at_most_one(cls, key: typing.Mapping[str, typing.Any],
                               includes: typing.Iterable[str] = None):
        """
        Finds the model matching the key, or None.

        :raises MultipleRecordsFoundError: If more than one row matches.
        """
        models = await cls.find_all(key, includes=includes)
        if len(models) > 1:
            raise MultipleRecordsFoundError("Multiple Records Found on {} with Key {}"
                                            .format(cls.__name__, json.dumps(key, default=str)))

        return models[0] if models else None

    @classmethod
    async def find_all(cls, where: typing.Mapping[str, typing.Any] = None,
                       includes: typing.Iterable[str] = None) -> list:
        """
        Finds every model matching the predicates.

        :param where: A mapping of attribute -> value, ANDed together.
        :param includes: The names of associations to load along with the models.
        """
        rows = await query.select(cls, where, includes)
        return [cls.build_clean_instance(data) for data in group_data(rows)]

    @classmethod
    async def insert_all(cls, models: typing.Iterable['_ModelBase']) -> typing.List[int]:
        """
        Inserts every dirty model in a single statement. The new ids are set on the models.
        """
        dirty = [model for model in models if model.is_dirty()]
        ids = await query.insert_all(cls, [model.get_dirty_data() for model in dirty])
        for model, id_ in zip(dirty, ids):
            model.id = id_
            model.clean_model_only()

        return ids

    @classmethod
    async def count(cls, where: typing.Mapping[str, typing.Any] = None) -> int:
        return await query.count(cls, where)

    @classmethod
    async def sync(cls):
        """
        Creates the table of this model if it does not exist.
        """
        await query.create_table_if_not_exists(cls)

    @classmethod
    async def drop(cls):
        await query.drop_table_if_exists(cls)


def model_base(name: str = "Model", metadata: 'md_metadata.MetadataRegistry' = None):
    """
    Gets a new base object to use for models.

    Every model subclassing the base is registered in the base's metadata, which is separate from
    the metadata of every other base.

    .. code-block:: python3

        Model = model_base()

        class User(Model):
            ...

        await db.bind_models(Model)

    Every base declares an auto-incrementing integer ``id`` primary key.

    :param name: The name of the base class.
    :param metadata: The :class:`.MetadataRegistry` to use. A new one is created if not provided.
    """
    if metadata is None:
        metadata = md_metadata.MetadataRegistry()

    id_column = md_column.Column(Integer, primary_key=True, autoincrement=True, nullable=False)
    clone = ModelMeta(name, (_ModelBase,), {"metadata": metadata, "id": id_column,
                                            "__module__": __name__},
                      register=False)
    metadata.add_column(clone, id_column)
    metadata.base = clone
    return clone


#: The base model bound to the default metadata.
BaseModel = model_base("BaseModel")
