"""
The registry of declared models.
"""
import collections
import logging
import typing
from collections import OrderedDict

from asyncentity.exc import CyclicDependencyError

logger = logging.getLogger(__name__)


class ModelRegistry(object):
    """
    Keeps track of every model declared with a :class:`.MetadataRegistry`.
    """

    def __init__(self, metadata):
        #: The :class:`.MetadataRegistry` this registry belongs to.
        self.metadata = metadata

        self._models = OrderedDict()

    def __repr__(self):
        return "<ModelRegistry models={}>".format([m.__name__ for m in self._models.values()])

    def __len__(self):
        return len(self._models)

    def add_model(self, model):
        """
        Adds a model. A model with the same (case-insensitive) name is replaced.
        """
        self._models[model.__name__.lower()] = model
        logger.debug("Registered model {}".format(model.__name__))
        return model

    def get_model(self, name: str):
        """
        Gets a model by its case-insensitive name.

        :return: The model, or None if no model with that name has been registered.
        """
        return self._models.get(name.lower())

    def is_defined(self, name: str) -> bool:
        return self.get_model(name) is not None

    def _get_referenced_model(self, foreign_key):
        if foreign_key.model is not None:
            return foreign_key.model

        # fall back to matching the referenced table name
        for model in self._models.values():
            if self.metadata.get_entity_metadata(model).name == foreign_key.table:
                return model

        return self.get_model(foreign_key.table)

    def _get_dependencies(self) -> 'typing.Dict[typing.Any, typing.List[typing.Any]]':
        """
        Gets a mapping of model -> the models it references with a foreign key.
        """
        dependencies = OrderedDict()
        for model in self._models.values():
            for column in self.metadata.get_entity_metadata(model).columns.values():
                if column.foreign_key is None:
                    continue

                referenced = self._get_referenced_model(column.foreign_key)
                # self references and references outside the registry add no ordering
                if referenced is None or referenced is model:
                    continue

                dependencies.setdefault(referenced, [])
                dependencies.setdefault(model, [])
                if referenced not in dependencies[model]:
                    dependencies[model].append(referenced)

        return dependencies

    def get_models(self) -> list:
        """
        Gets every model, ordered so that a model referenced by a foreign key comes before the
        model holding the key. Models that take part in no foreign keys are appended at the end,
        in declaration order.

        :raises CyclicDependencyError: If the foreign keys form a cycle.
        """
        dependencies = self._get_dependencies()

        # Kahn's algorithm, taking ready models in declaration order
        in_degree = OrderedDict((model, len(deps)) for model, deps in dependencies.items())
        dependents = collections.defaultdict(list)
        for model, deps in dependencies.items():
            for dep in deps:
                dependents[dep].append(model)

        queue = collections.deque(model for model, degree in in_degree.items() if degree == 0)
        ordered = []
        while queue:
            model = queue.popleft()
            ordered.append(model)
            for dependent in dependents[model]:
                in_degree[dependent] -= 1
                if in_degree[dependent] == 0:
                    queue.append(dependent)

        if len(ordered) != len(in_degree):
            cycle = [model.__name__ for model, degree in in_degree.items() if degree > 0]
            raise CyclicDependencyError("Foreign keys between models form a cycle: {}"
                                        .format(", ".join(cycle)))

        for model in self._models.values():
            if model not in in_degree:
                ordered.append(model)

        return ordered
