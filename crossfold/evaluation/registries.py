# crossfold, Cross-Validation of Rating Predictors
# Copyright (C) 2020  Froomle N.V.
# License: GNU AGPLv3 - https://gitlab.com/recpack-maintainers/recpack/-/blob/master/LICENSE
# Author:
#   Lien Michiels
#   Robin Verachtert

import importlib
from typing import Any, Dict, Iterable, List, NamedTuple, Optional

import crossfold.algorithms
from crossfold.exceptions import ConfigurationError


class Registry:
    """
    A Registry is a wrapper for a dictionary that maps
    names to Python types (most often classes).

    Keys that are not registered are looked up as attributes of ``src``,
    and finally as a dotted ``package.module.Class`` path.
    """

    def __init__(self, src):
        self.registered: Dict[str, type] = {}
        self.src = src

    def __getitem__(self, key: str) -> type:
        """Retrieve the type for the given key.

        :param key: the key of the type to fetch
        :type key: str
        :returns: The class type associated with the key
        :rtype: type
        """
        return self.get(key)

    def __contains__(self, key: str) -> bool:
        """Check if the given key is known to the registry.

        :param key: The key to check.
        :type key: str
        :return: True if the key is known
        :rtype: bool
        """
        try:
            self.get(key)
            return True
        except ConfigurationError:
            return False

    def get(self, key: str) -> type:
        """Retrieve the value for this key. This value is a Python type (most often a class).

        :param key: The key to fetch
        :type key: str
        :raises ConfigurationError: If the key can't be resolved.
        :return: The class type associated with the key
        :rtype: type
        """
        if not isinstance(key, str):
            raise ConfigurationError(f"Names should be strings, got {key!r}.")

        if key in self.registered:
            return self.registered[key]

        if hasattr(self.src, key):
            return getattr(self.src, key)

        module_name, _, attr = key.rpartition(".")
        if module_name:
            try:
                return getattr(importlib.import_module(module_name), attr)
            except (ImportError, AttributeError) as e:
                raise ConfigurationError(f"{key} could not be resolved: {e}") from e

        raise ConfigurationError(f"{key} could not be resolved.")

    def register(self, key: str, c: type):
        """Register a new Python type (most often a class).

        After registration, the key can be used to fetch the Python type from the registry.

        :param key: key to register the type at. Needs to be unique to the registry.
        :type key: str
        :param c: class to register.
        :type c: type
        """
        if key in self:
            raise KeyError(f"key {key} already registered")
        self.registered[key] = c


class AlgorithmRegistry(Registry):
    """Registry for easy retrieval of algorithm types by name.

    The registry comes preregistered with all crossfold algorithms.
    """

    def __init__(self):
        super().__init__(crossfold.algorithms)


class AlgorithmEntry(NamedTuple):
    """Config class to represent an algorithm to evaluate.

    :param name: Name of the algorithm, a key of the ``ALGORITHM_REGISTRY``.
    :type name: str
    :param params: Parameters to construct the algorithm with as key-value pairs.
    :type params: Dict[str, Any], optional
    """

    name: str
    params: Optional[Dict[str, Any]] = None


ALGORITHM_REGISTRY = AlgorithmRegistry()
"""Registry for algorithms.

Contains the crossfold algorithms by default,
and allows registration of new algorithms via the `register` function.

Example::

    from crossfold.evaluation import ALGORITHM_REGISTRY

    # Construct an ItemMean object with parameter damping=5
    algo = ALGORITHM_REGISTRY.get('ItemMean')(damping=5)

    from crossfold.algorithms import ItemMean
    ALGORITHM_REGISTRY.register('HelloWorld', ItemMean)

    # Also construct an ItemMean object with parameter damping=5
    algo = ALGORITHM_REGISTRY.get('HelloWorld')(damping=5)

    # Classes outside crossfold are resolved by their dotted path
    algo = ALGORITHM_REGISTRY.get('mypackage.predictors.SVD')()
"""


def load_algorithm(entry: AlgorithmEntry, registry: Registry = ALGORITHM_REGISTRY):
    """Construct the algorithm described by ``entry``.

    :raises ConfigurationError: If the name can't be resolved, the parameters are
        not accepted, or the result can't be trained and used for prediction.
    """
    cls = registry.get(entry.name)
    try:
        algorithm = cls(**(entry.params or {}))
    except TypeError as e:
        raise ConfigurationError(f"Invalid parameters for algorithm {entry.name}: {e}") from e

    if not callable(getattr(algorithm, "train", None)):
        raise ConfigurationError(f"{entry.name} does not implement train.")
    return algorithm


def load_algorithms(entries: Iterable[AlgorithmEntry], registry: Registry = ALGORITHM_REGISTRY) -> List:
    """Construct an algorithm for each entry, in order."""
    return [load_algorithm(entry, registry) for entry in entries]
