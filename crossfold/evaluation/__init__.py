# crossfold, Cross-Validation of Rating Predictors
# Copyright (C) 2020  Froomle N.V.
# License: GNU AGPLv3 - https://gitlab.com/recpack-maintainers/recpack/-/blob/master/LICENSE
# Author:
#   Lien Michiels
#   Robin Verachtert

"""Cross-validation of rating predictors.

.. currentmodule:: crossfold.evaluation

.. autosummary::
    :toctree: generated/

    CrossfoldEvaluator
    EvaluationSummary
    RunState

    EvaluationUnit
    UnitResult

    ResultRow
    ResultSink
    CSVResultSink
    MemoryResultSink
    LockedResultSink

    ALGORITHM_REGISTRY
    AlgorithmEntry

Example
-------

::

    from crossfold.evaluation import CrossfoldEvaluator, MemoryResultSink, AlgorithmEntry, load_algorithms
    from crossfold.matrix import read_ratings
    from crossfold.splitters import get_profile_splitter

    ratings = read_ratings("ratings.tsv")
    algorithms = load_algorithms([AlgorithmEntry("ItemMean"), AlgorithmEntry("UserItemBias", {"damping": 5})])

    sink = MemoryResultSink()
    evaluator = CrossfoldEvaluator(
        ratings, algorithms, num_folds=5, splitter=get_profile_splitter("random", 0.2, seed=1), sink=sink, seed=1
    )
    summary = evaluator.run()

    # One row per (fold, algorithm, held-out rating)
    sink.to_dataframe()
"""

from crossfold.evaluation.results import (
    NO_PREDICTION,
    RESULT_COLUMNS,
    CSVResultSink,
    LockedResultSink,
    MemoryResultSink,
    ResultRow,
    ResultSink,
)
from crossfold.evaluation.unit import EvaluationUnit, UnitResult
from crossfold.evaluation.evaluator import (
    CrossfoldEvaluator,
    EvaluationSummary,
    RunState,
    expected_row_count,
)
from crossfold.evaluation.registries import (
    ALGORITHM_REGISTRY,
    AlgorithmEntry,
    AlgorithmRegistry,
    Registry,
    load_algorithm,
    load_algorithms,
)
