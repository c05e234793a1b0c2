# crossfold, Cross-Validation of Rating Predictors
# Copyright (C) 2020  Froomle N.V.
# License: GNU AGPLv3 - https://gitlab.com/recpack-maintainers/recpack/-/blob/master/LICENSE
# Author:
#   Lien Michiels
#   Robin Verachtert

from typing import Any, Dict, List, Optional

import yaml

from crossfold.evaluation.registries import ALGORITHM_REGISTRY, AlgorithmEntry
from crossfold.exceptions import ConfigurationError
from crossfold.splitters import SPLIT_MODES

DEFAULTS = {
    "num_folds": 5,
    "holdout_fraction": 0.333333,
    "split_mode": "random",
    "seed": None,
    "n_jobs": 1,
}


class EvaluationConfig:
    """Settings of a cross-validation run, read from YAML.

    Example config::

        num_folds: 5
        holdout_fraction: 0.2
        split_mode: timestamp
        seed: 42
        algorithms:
          - name: ItemMean
          - name: UserItemBias
            params:
              damping: 5

    Settings that are missing take their value from :data:`DEFAULTS`.

    :param config_file: Open file or string with the YAML config.
    :param overrides: Settings that take precedence over the file, None values are ignored.
    :type overrides: Dict[str, Any], optional
    :raises ConfigurationError: If the config is not valid.
    """

    def __init__(self, config_file, overrides: Optional[Dict[str, Any]] = None):
        try:
            config = yaml.safe_load(config_file)
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Config is not valid YAML: {e}") from e

        if not isinstance(config, dict):
            raise ConfigurationError("Config should be a mapping of settings.")

        self.config = {**DEFAULTS, **config}
        for key, value in (overrides or {}).items():
            if value is not None:
                self.config[key] = value

        self.validate()

    def validate(self):
        unknown = set(self.config).difference(DEFAULTS).difference({"algorithms"})
        if unknown:
            raise ConfigurationError(f"Unknown settings {sorted(unknown)}.")

        num_folds = self.config["num_folds"]
        if isinstance(num_folds, bool) or not isinstance(num_folds, int) or num_folds < 1:
            raise ConfigurationError(f"num_folds should be a positive integer, got {num_folds}.")

        holdout_fraction = self.config["holdout_fraction"]
        if isinstance(holdout_fraction, bool) or not isinstance(holdout_fraction, (int, float)):
            raise ConfigurationError(f"holdout_fraction should be a number, got {holdout_fraction}.")
        if not 0 <= holdout_fraction < 1:
            raise ConfigurationError(f"holdout_fraction should be in [0, 1), got {holdout_fraction}.")

        if str(self.config["split_mode"]).lower() not in SPLIT_MODES:
            raise ConfigurationError(f"Invalid split mode: {self.config['split_mode']}")

        seed = self.config["seed"]
        if seed is not None and (isinstance(seed, bool) or not isinstance(seed, int) or seed < 0):
            raise ConfigurationError(f"seed should be a non-negative integer, got {seed}.")

        n_jobs = self.config["n_jobs"]
        if isinstance(n_jobs, bool) or not isinstance(n_jobs, int) or n_jobs == 0:
            raise ConfigurationError(f"n_jobs should be a non-zero integer, got {n_jobs}.")

        algorithms = self.config.get("algorithms")
        if not isinstance(algorithms, list) or not algorithms:
            raise ConfigurationError("algorithms should be a non-empty list.")

        for algo_c in algorithms:
            if not isinstance(algo_c, dict) or "name" not in algo_c:
                raise ConfigurationError(f"Every algorithm needs a name, got {algo_c}.")
            if algo_c["name"] not in ALGORITHM_REGISTRY:
                raise ConfigurationError(f"Algorithm {algo_c['name']} could not be resolved.")
            if not isinstance(algo_c.get("params", {}) or {}, dict):
                raise ConfigurationError(f"params of {algo_c['name']} should be a mapping.")

    @property
    def num_folds(self) -> int:
        return self.config["num_folds"]

    @property
    def holdout_fraction(self) -> float:
        return float(self.config["holdout_fraction"])

    @property
    def split_mode(self) -> str:
        return str(self.config["split_mode"]).lower()

    @property
    def seed(self) -> Optional[int]:
        return self.config["seed"]

    @property
    def n_jobs(self) -> int:
        return self.config["n_jobs"]

    def get_algorithms(self) -> List[AlgorithmEntry]:
        return [AlgorithmEntry(algo_c["name"], algo_c.get("params") or {}) for algo_c in self.config["algorithms"]]
