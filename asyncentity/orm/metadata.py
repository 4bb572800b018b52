"""
Model metadata.

The :class:`.MetadataRegistry` is the single source of truth for each model's table name, schema,
columns and associations. Declaring a model fills it in; :meth:`.MetadataRegistry.build` then
resolves associations and renders the tables.
"""
import logging
import typing
from collections import OrderedDict

from asyncentity.exc import SchemaError
from asyncentity.orm import registry as md_registry, sql as md_sql
from asyncentity.orm.schema import column as md_column

logger = logging.getLogger(__name__)

DEFAULT_SCHEMA = "public"


class EntityMetadata(object):
    """
    The metadata of a single model.
    """

    def __init__(self, name: str, schema: str = DEFAULT_SCHEMA):
        #: The name of the table.
        self.name = name

        #: The schema of the table.
        self.schema = schema

        #: A mapping of column name -> :class:`.Column`, including inherited columns.
        self.columns = OrderedDict()  # type: typing.Dict[str, md_column.Column]

        #: A mapping of association name -> :class:`.Association`, including inherited ones.
        self.associations = OrderedDict()

        #: A mapping of name -> :class:`.DerivedColumn`, including inherited ones.
        self.derived = OrderedDict()

        # the columns and associations declared on this model itself
        self._own_columns = OrderedDict()  # type: typing.Dict[str, md_column.Column]
        self._own_associations = OrderedDict()
        self._own_derived = OrderedDict()

        # inherited association -> its copy bound to this model
        self._inherited = {}

    def __repr__(self):
        return "<EntityMetadata name={} schema={} columns={} associations={}>".format(
            self.name, self.schema, list(self.columns), list(self.associations)
        )


class MetadataRegistry(object):
    """
    The root class for model metadata.

    .. code-block:: python3

        metadata = MetadataRegistry()
        Model = model_base(metadata=metadata)

    """

    def __init__(self):
        #: The :class:`.ModelRegistry` of models declared with this metadata.
        self.models = md_registry.ModelRegistry(self)

        #: The base model class bound to this metadata.
        self.base = None

        #: If :meth:`.build` has been called.
        self.is_built = False

        self._entities = OrderedDict()  # type: typing.Dict[str, EntityMetadata]
        self._tables = {}  # type: typing.Dict[str, md_sql.SQLTable]

    @staticmethod
    def _key(model) -> str:
        return model.__name__.lower()

    def _get_entity(self, model) -> EntityMetadata:
        key = self._key(model)
        try:
            return self._entities[key]
        except KeyError:
            entity = self._entities[key] = EntityMetadata(key)
            return entity

    def add_column(self, model, column: 'md_column.Column'):
        """
        Adds the metadata for a column.

        :param model: The model the column is declared on.
        :param column: The :class:`.Column`.
        """
        # resolve the type now, so a bad declaration fails at class creation
        column.type
        if column.model is None:
            column.model = model

        self._get_entity(model)._own_columns[column.name] = column
        logger.debug("Registered column {} on {}".format(column.name, model.__name__))

    def add_derived_column(self, model, derived: 'md_column.DerivedColumn'):
        """
        Adds the metadata for a derived column. Derived columns are not part of the table.
        """
        self._get_entity(model)._own_derived[derived.name] = derived
        logger.debug("Registered derived column {} on {}".format(derived.name, model.__name__))

    def add_association(self, association):
        """
        Adds the metadata for an association, on its source model.
        """
        self._get_entity(association.source)._own_associations[association.name] = association
        logger.debug("Registered association {} on {}".format(association.name,
                                                              association.source.__name__))

    def get_entity_metadata(self, model) -> EntityMetadata:
        """
        Gets the metadata of a model, creating it on first access.

        The columns, derived columns and associations of every ancestor are merged in on each
        call, with descendants overriding ancestors on the same name. An inherited association is
        copied onto the model, so that its foreign key and joins use the model's own table.
        """
        entity = self._get_entity(model)

        columns = OrderedDict()
        associations = OrderedDict()
        derived = OrderedDict()
        for klass in reversed(model.__mro__):
            parent = self._entities.get(self._key(klass))
            if parent is None:
                continue

            columns.update(parent._own_columns)
            derived.update(parent._own_derived)
            for name, association in parent._own_associations.items():
                if parent is not entity:
                    association = self._inherit_association(entity, model, association)
                associations[name] = association

        entity.columns = columns
        entity.associations = associations
        entity.derived = derived
        return entity

    @staticmethod
    def _inherit_association(entity: EntityMetadata, model, association):
        try:
            return entity._inherited[association]
        except KeyError:
            copied = entity._inherited[association] = association.copy_to(model)
            logger.debug("Inherited association {} on {}".format(association.name,
                                                                  model.__name__))
            return copied

    def set_table_name(self, model, name: str):
        self._get_entity(model).name = name

    def set_schema(self, model, schema: str):
        self._get_entity(model).schema = schema

    def get_sql_entity(self, model) -> 'md_sql.SQLTable':
        """
        Gets the rendered table of a model.

        :raises SchemaError: If the metadata has not been built, or the model is not registered.
        """
        if not self.is_built:
            raise SchemaError("Metadata has not been built yet, call build() first")

        try:
            return self._tables[self._key(model)]
        except KeyError:
            raise SchemaError("Model {} has no table".format(model.__name__)) from None

    def build(self):
        """
        Builds every association, then renders the table of every model.

        This must be called after every model has been declared. Calling it again re-derives
        everything from the current metadata.
        """
        logger.debug("Building associations")
        for model in self.models.get_models():
            for association in list(self.get_entity_metadata(model).associations.values()):
                association.build()

        # through models created above are now registered too
        logger.debug("Building tables")
        tables = {}
        for model in self.models.get_models():
            entity = self.get_entity_metadata(model)
            tables[self._key(model)] = md_sql.SQLTable(entity.name, entity.schema,
                                                       entity.columns.values())

        self._tables = tables
        self.is_built = True
        logger.debug("Built {} tables".format(len(tables)))
