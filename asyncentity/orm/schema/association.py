"""
Associations between models.

.. code-block:: python3

    class Student(Model):
        name = Column(String(64))
        school = ManyToOne("School", eager=True)
        teachers = ManyToMany(lambda: Teacher)

Association targets are resolved lazily, when the metadata is built, so two models can reference
each other regardless of which one is declared first.
"""
import copy
import logging
import typing

from asyncentity.exc import SchemaError
from asyncentity.orm.schema import column as md_column, model as md_model, types as md_types

logger = logging.getLogger(__name__)

TargetResolver = typing.Union[str, type, typing.Callable[[], typing.Any]]


def _is_model(obb) -> bool:
    return isinstance(obb, md_model.ModelMeta)


class Association(object):
    """
    The base class for an association from a source model to a target model.
    """
    #: The type tag of this association.
    type = None  # type: str

    def __init__(self, target: TargetResolver, *,
                 eager: bool = False,
                 on_delete: str = "cascade"):
        """
        :param target: The target model, its name, or a zero-argument callable returning either.
        :param eager: Should this association be joined on every select?
        :param on_delete: The ON DELETE policy of the foreign key.
        """
        #: The name of this association on the source model.
        self.name = None  # type: str

        #: The model this association is declared on.
        self.source = None

        #: The model this association points to. This is set in :meth:`.set_target`.
        self.target = None

        self._target_resolver = target

        #: If this association is joined on every select.
        self.eager = eager

        #: The ON DELETE policy of the foreign key.
        self.on_delete = on_delete.lower()
        if self.on_delete not in md_column.ON_DELETE_POLICIES:
            raise ValueError("Invalid ON DELETE policy {!r}".format(on_delete))

    def __repr__(self):
        target = self.target.__name__ if self.target is not None else self._target_resolver
        return "<{} {}.{} -> {}>".format(type(self).__name__,
                                         getattr(self.source, "__name__", None), self.name, target)

    def __set_name__(self, owner, name: str):
        self.name = name
        self.source = owner

    def copy_to(self, model) -> 'Association':
        """
        Copies this association onto a model that inherits it. The copy is unbuilt and has the
        model as its source.
        """
        association = copy.copy(self)
        association.target = None
        association.__set_name__(model, self.name)
        return association

    @property
    def metadata(self):
        return self.source.metadata

    @property
    def target_id_name(self) -> str:
        return "{}_id".format(self.target.__name__.lower())

    # descriptor

    def __get__(self, instance, owner):
        if instance is None:
            return self

        return instance._associations.get(self.name)

    def __set__(self, instance, value):
        value = self.coerce(value)
        if value is not None:
            instance._associations[self.name] = value

    def coerce(self, value: typing.Any):
        """
        Normalizes a value into the form stored on the source instance.

        :return: The normalized value, or None if the value is ignored.
        """
        raise NotImplementedError

    def _coerce_one(self, value: typing.Any):
        if self.target is None:
            raise SchemaError("Association {}.{} has not been built yet"
                              .format(self.source.__name__, self.name))

        if isinstance(value, self.target):
            return value

        if isinstance(value, dict):
            return self.target(value)

        return None

    # building

    def build(self):
        """
        Resolves the target, defines the foreign key columns and the accessors of this association.
        """
        self.set_target()
        self.define_foreign_key()
        self.define_accessors()

    def _resolve(self, target):
        if isinstance(target, str):
            model = self.metadata.models.get_model(target)
            if model is None:
                raise SchemaError("Association {}.{} references unknown model {}"
                                  .format(self.source.__name__, self.name, target))
            return model

        if _is_model(target):
            return target

        if callable(target):
            return self._resolve(target())

        raise SchemaError("Cannot resolve the target {!r} of association {}.{}"
                          .format(target, self.source.__name__, self.name))

    def set_target(self):
        self.target = self._resolve(self._target_resolver)

    def add_foreign_key_column(self, model, target, column_name: str):
        """
        Adds a not null, indexed foreign key column referencing the target's id to a model.
        """
        fk = md_column.ForeignKey(self.metadata.get_entity_metadata(target).name, "id",
                                  self.on_delete, model=target,
                                  schema=self.metadata.get_entity_metadata(target).schema)
        column = md_column.Column(md_types.Integer, nullable=False, index=True, foreign_key=fk)
        column.__set_name__(model, column_name)
        setattr(model, column_name, column)
        self.metadata.add_column(model, column)

    def define_foreign_key(self):
        raise NotImplementedError

    def define_accessors(self):
        # associations declared programmatically are not on the class yet
        if self.source.__dict__.get(self.name) is not self:
            setattr(self.source, self.name, self)

    def join(self, from_):
        """
        Joins the target of this association onto a table or join.

        :param from_: The :class:`.SQLTable` or :class:`.Join` to join onto.
        :return: A new :class:`.Join`.
        """
        raise NotImplementedError

    async def save(self, source):
        """
        Saves the value of this association on a source instance.
        """
        raise NotImplementedError


class ManyToOne(Association):
    """
    An association where many source rows point to one target row, with the foreign key on the
    source table.
    """
    type = "ManyToOne"

    def coerce(self, value):
        # may be a list of rows coming from a joined select
        if isinstance(value, (list, tuple)):
            if not value:
                return None
            value = value[0]

        return self._coerce_one(value)

    def define_foreign_key(self):
        self.add_foreign_key_column(self.source, self.target, self.target_id_name)

    def join(self, from_):
        source = self.metadata.get_sql_entity(self.source)
        target = self.metadata.get_sql_entity(self.target)
        return from_.left_join(target, target["id"], source[self.target_id_name])

    async def save(self, source):
        target = source._associations.get(self.name)
        if target is None:
            return

        await target.save()
        setattr(source, self.target_id_name, target.id)


class OneToOne(ManyToOne):
    """
    An association where one source row points to one target row. This is stored the same way as
    a :class:`.ManyToOne`.
    """
    type = "OneToOne"


class ManyToMany(Association):
    """
    An association where many source rows point to many target rows, through a synthesized join
    model holding a foreign key to each side.
    """
    type = "ManyToMany"

    def __init__(self, target: TargetResolver, *, through_name: str = None, **kwargs):
        """
        :param through_name: The name of the join model. Defaults to both model names sorted and
            concatenated.
        """
        super().__init__(target, **kwargs)
        self.through_name = through_name

        #: The join model. This is set in :meth:`.build`.
        self.through = None

    def copy_to(self, model) -> 'ManyToMany':
        association = super().copy_to(model)
        # an inheriting model gets its own join model, named after itself
        association.through_name = None
        association.through = None
        return association

    @property
    def source_id_name(self) -> str:
        return "{}_id".format(self.source.__name__.lower())

    def coerce(self, value):
        if not isinstance(value, (list, tuple)):
            return None

        coerced = [self._coerce_one(v) for v in value]
        return [v for v in coerced if v is not None]

    def define_through_model(self):
        """
        Creates the join model, or reuses it if another association already declared it.
        """
        if self.through_name is None:
            self.through_name = "".join(sorted([self.source.__name__, self.target.__name__]))

        through = self.metadata.models.get_model(self.through_name)
        if through is not None:
            return through

        base = self.metadata.base
        if base is None:
            raise SchemaError("Metadata has no base model to create {} from"
                              .format(self.through_name))

        logger.debug("Creating join model {} for {}.{}".format(self.through_name,
                                                               self.source.__name__, self.name))
        return type(base)(self.through_name, (base,), {"__module__": self.source.__module__})

    def define_foreign_key(self):
        self.add_foreign_key_column(self.through, self.source, self.source_id_name)
        self.add_foreign_key_column(self.through, self.target, self.target_id_name)

    def build(self):
        self.set_target()
        self.through = self.define_through_model()
        super().build()

    def join(self, from_):
        source = self.metadata.get_sql_entity(self.source)
        target = self.metadata.get_sql_entity(self.target)
        through = self.metadata.get_sql_entity(self.through)
        return from_ \
            .left_join(through, through[self.source_id_name], source["id"]) \
            .left_join(target, through[self.target_id_name], target["id"])

    async def save(self, source):
        if not source.id:
            await source.save_model_only()

        # the link set is always rewritten in full
        await self.through.delete({self.source_id_name: source.id})

        throughs = []
        for target in source._associations.get(self.name) or []:
            await target.save_model_only()
            throughs.append(self.through({self.source_id_name: source.id,
                                          self.target_id_name: target.id}))

        await self.through.insert_all(throughs)


def _define(cls, model, name: str, target: TargetResolver, **options) -> Association:
    association = cls(target, **options)
    association.__set_name__(model, name)
    setattr(model, name, association)
    model.metadata.add_association(association)
    return association


def define_one_to_one(model, name: str, target: TargetResolver, **options) -> OneToOne:
    """
    Declares a :class:`.OneToOne` association on an existing model.
    """
    return _define(OneToOne, model, name, target, **options)


def define_many_to_one(model, name: str, target: TargetResolver, **options) -> ManyToOne:
    """
    Declares a :class:`.ManyToOne` association on an existing model.
    """
    return _define(ManyToOne, model, name, target, **options)


def define_many_to_many(model, name: str, target: TargetResolver, **options) -> ManyToMany:
    """
    Declares a :class:`.ManyToMany` association on an existing model.
    """
    return _define(ManyToMany, model, name, target, **options)
