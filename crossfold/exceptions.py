# crossfold, Cross-Validation of Rating Predictors
# Copyright (C) 2020  Froomle N.V.
# License: GNU AGPLv3 - https://gitlab.com/recpack-maintainers/recpack/-/blob/master/LICENSE
# Author:
#   Lien Michiels
#   Robin Verachtert

"""Errors raised while configuring or running a crossfold evaluation.

Failures to read or write files are not wrapped,
they surface as the builtin :class:`OSError` and are always fatal to a run.
"""


class CrossfoldError(Exception):
    """Base class for all crossfold errors."""


class ConfigurationError(CrossfoldError, ValueError):
    """Invalid evaluation settings: fold count, holdout fraction, split mode or algorithms."""


class DataError(CrossfoldError, ValueError):
    """Malformed or insufficient rating data."""


class AlgorithmError(CrossfoldError, RuntimeError):
    """Training or prediction failed for a single (fold, algorithm) unit.

    :param message: Description of the failure.
    :type message: str
    :param fold_index: Fold the unit was evaluating, if known.
    :type fold_index: int, optional
    :param algorithm_id: Identifier of the failing algorithm, if known.
    :type algorithm_id: str, optional
    """

    def __init__(self, message: str, fold_index: int = None, algorithm_id: str = None):
        super().__init__(message)
        self.fold_index = fold_index
        self.algorithm_id = algorithm_id


class EvaluationAborted(CrossfoldError):
    """Raised when a run stops on a fatal error.

    The fatal error is available as ``__cause__``,
    the work completed before the failure as :attr:`summary`.
    """

    def __init__(self, message: str, summary=None):
        super().__init__(message)
        self.summary = summary
