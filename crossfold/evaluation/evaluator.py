# crossfold, Cross-Validation of Rating Predictors
# Copyright (C) 2020  Froomle N.V.
# License: GNU AGPLv3 - https://gitlab.com/recpack-maintainers/recpack/-/blob/master/LICENSE
# Author:
#   Lien Michiels
#   Robin Verachtert

from collections import Counter
from dataclasses import dataclass, field
from enum import Enum
import logging
import threading
from typing import Any, Dict, List, Optional, Sequence

from joblib import Parallel, delayed
import pandas as pd
from tqdm.auto import tqdm

from crossfold.exceptions import ConfigurationError, EvaluationAborted
from crossfold.evaluation.results import LockedResultSink, ResultSink
from crossfold.evaluation.unit import EvaluationUnit, UnitResult
from crossfold.matrix import RatingMatrix
from crossfold.splitters import Fold, FoldGenerator, ProfileSplitter


class RunState(Enum):
    INITIALIZING = "initializing"
    GENERATING_FOLDS = "generating folds"
    EVALUATING = "evaluating"
    FINALIZING = "finalizing"
    DONE = "done"
    FAILED = "failed"


@dataclass
class EvaluationSummary:
    """What a cross-validation run did.

    :param num_folds: Number of folds in the run.
    :param units: Outcome of every unit that was started, in fold-major, algorithm-minor order.
    """

    num_folds: int
    units: List[UnitResult] = field(default_factory=list)

    @property
    def rows_written(self) -> int:
        return sum(unit.rows_written for unit in self.units)

    @property
    def units_attempted(self) -> int:
        return len(self.units)

    @property
    def failed_units(self) -> List[UnitResult]:
        return [unit for unit in self.units if not unit.succeeded]

    @property
    def units_succeeded(self) -> int:
        return self.units_attempted - len(self.failed_units)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "num_folds": self.num_folds,
            "rows_written": self.rows_written,
            "units_attempted": self.units_attempted,
            "units_succeeded": self.units_succeeded,
            "failed_units": [
                {"fold_index": unit.fold_index, "algorithm_id": unit.algorithm_id, "reason": unit.reason}
                for unit in self.failed_units
            ],
        }

    def to_dataframe(self) -> pd.DataFrame:
        """One row per unit with its fold, algorithm, row count and failure reason."""
        return pd.DataFrame.from_records(
            [
                {
                    "fold_index": unit.fold_index,
                    "algorithm_id": unit.algorithm_id,
                    "rows_written": unit.rows_written,
                    "succeeded": unit.succeeded,
                    "reason": unit.reason,
                }
                for unit in self.units
            ],
            columns=["fold_index", "algorithm_id", "rows_written", "succeeded", "reason"],
        )


def expected_row_count(folds: Sequence[Fold], num_algorithms: int) -> int:
    """Number of result rows a run produces when no unit fails."""
    return sum(fold.num_test_ratings for fold in folds) * num_algorithms


def unique_algorithm_ids(algorithms: Sequence) -> List[str]:
    """Identifiers for the algorithms, repeated identifiers get a ``#n`` suffix."""
    seen = Counter()
    ids = []
    for algorithm in algorithms:
        algorithm_id = getattr(algorithm, "identifier", type(algorithm).__name__)
        seen[algorithm_id] += 1
        if seen[algorithm_id] > 1:
            algorithm_id = f"{algorithm_id}#{seen[algorithm_id]}"
        ids.append(algorithm_id)
    return ids


class CrossfoldEvaluator:
    """Evaluates rating predictors with k-fold cross-validation over users.

    The users are divided into ``num_folds`` folds.
    Every algorithm is trained on the training data of every fold,
    and predicts the held-out ratings of the fold's test users.
    Each (fold, algorithm) pair is an :class:`EvaluationUnit`,
    units are run in fold-major, algorithm-minor order on a pool of ``n_jobs`` threads,
    and stream their result rows into ``sink``.

    A unit that fails to train or predict is recorded in the summary,
    the other units are still evaluated.
    Any other error during evaluation, e.g. a failing sink, stops the run:
    units that are running are allowed to finish, no new units are started,
    and :class:`EvaluationAborted` is raised.
    Rows that were written before the failure stay in the sink.

    Example::

        from crossfold.algorithms import ItemMean, UserItemBias
        from crossfold.evaluation import CrossfoldEvaluator, CSVResultSink
        from crossfold.splitters import RandomProfileSplitter

        evaluator = CrossfoldEvaluator(
            ratings,
            [ItemMean(), UserItemBias(damping=5)],
            num_folds=5,
            splitter=RandomProfileSplitter(0.2, seed=42),
            sink=CSVResultSink("results.csv"),
            seed=42,
        )
        summary = evaluator.run()

    :param data: All ratings.
    :type data: RatingMatrix
    :param algorithms: The algorithms to evaluate, in reporting order.
    :type algorithms: Sequence
    :param num_folds: Number of folds.
    :type num_folds: int
    :param splitter: Splits the profiles of test users.
    :type splitter: ProfileSplitter
    :param sink: Receives the result rows, closed at the end of the run.
        When the settings are invalid the sink is not used at all.
    :type sink: ResultSink
    :param seed: Seed for the assignment of users to folds.
        Defaults to None, so a random seed will be generated.
    :type seed: int, optional
    :param n_jobs: Number of units to evaluate concurrently, defaults to 1.
        -1 uses as many workers as there are CPUs.
    :type n_jobs: int, optional
    :param logger: Logger to report to, defaults to the crossfold logger.
    :type logger: logging.Logger, optional
    :param algorithm_ids: Identifier of each algorithm in result rows.
        Defaults to the algorithms' identifiers.
    :type algorithm_ids: Sequence[str], optional
    :param progress: Show a progress bar, defaults to True.
    :type progress: bool, optional
    """

    def __init__(
        self,
        data: RatingMatrix,
        algorithms: Sequence,
        num_folds: int,
        splitter: ProfileSplitter,
        sink: ResultSink,
        seed: Optional[int] = None,
        n_jobs: int = 1,
        logger: Optional[logging.Logger] = None,
        algorithm_ids: Optional[Sequence[str]] = None,
        progress: bool = True,
    ):
        self.data = data
        self.algorithms = list(algorithms)
        self.num_folds = num_folds
        self.splitter = splitter
        self.sink = sink
        self.seed = seed
        self.n_jobs = n_jobs
        self.logger = logger or logging.getLogger("crossfold")
        self.algorithm_ids = list(algorithm_ids) if algorithm_ids is not None else None
        self.progress = progress

        self.state = RunState.INITIALIZING
        self.folds: List[Fold] = []
        self.summary: Optional[EvaluationSummary] = None

    def _transition(self, state: RunState) -> None:
        self.logger.debug(f"Evaluation {self.state.value} -> {state.value}")
        self.state = state

    def _validate(self) -> None:
        if not self.algorithms:
            raise ConfigurationError("At least one algorithm is required.")

        if self.algorithm_ids is None:
            self.algorithm_ids = unique_algorithm_ids(self.algorithms)
        elif len(self.algorithm_ids) != len(self.algorithms):
            raise ConfigurationError(
                f"Got {len(self.algorithm_ids)} algorithm ids for {len(self.algorithms)} algorithms."
            )
        elif len(set(self.algorithm_ids)) != len(self.algorithm_ids):
            raise ConfigurationError("Algorithm ids should be unique.")

        if not isinstance(self.splitter, ProfileSplitter):
            raise ConfigurationError(f"Expected a ProfileSplitter, got {type(self.splitter)}.")
        if not 0 <= self.splitter.holdout_fraction < 1:
            raise ConfigurationError(
                f"holdout_fraction should be in [0, 1), got {self.splitter.holdout_fraction}."
            )

        if isinstance(self.n_jobs, bool) or not isinstance(self.n_jobs, int) or self.n_jobs == 0:
            raise ConfigurationError(f"n_jobs should be a non-zero integer, got {self.n_jobs}.")

        self.fold_generator = FoldGenerator(self.num_folds, self.splitter, seed=self.seed)

        num_users = self.data.num_users
        if self.num_folds > num_users:
            raise ConfigurationError(f"Can't create {self.num_folds} folds from {num_users} users.")

    def _units(self) -> List[EvaluationUnit]:
        return [
            EvaluationUnit(fold, algorithm, algorithm_id, logger=self.logger)
            for fold in self.folds
            for algorithm, algorithm_id in zip(self.algorithms, self.algorithm_ids)
        ]

    def run(self) -> EvaluationSummary:
        """Run the cross-validation.

        :raises ConfigurationError: If the settings are invalid, before any work is done.
        :raises DataError: If the ratings can't be split into folds.
        :raises EvaluationAborted: If a fatal error occurs while evaluating.
        :return: The summary of the run.
        :rtype: EvaluationSummary
        """
        try:
            self._validate()
        except Exception:
            # The sink is left untouched
            self._transition(RunState.FAILED)
            raise

        self._transition(RunState.GENERATING_FOLDS)
        try:
            self.folds = self.fold_generator.split(self.data)
        except Exception:
            self._transition(RunState.FAILED)
            self.sink.close()
            raise

        self._transition(RunState.EVALUATING)
        units = self._units()
        self.summary = EvaluationSummary(num_folds=len(self.folds))

        results: List[Optional[UnitResult]] = [None] * len(units)
        fatal: List[BaseException] = []
        stop = threading.Event()
        sink = LockedResultSink(self.sink)
        progress = tqdm(total=len(units), desc="Evaluating", disable=not self.progress)

        def evaluate(position: int, unit: EvaluationUnit) -> None:
            try:
                if stop.is_set():
                    self.logger.debug(f"{unit.identifier} - Skipped after fatal error")
                    return
                results[position] = unit.run(sink)
            except Exception as e:
                self.logger.error(f"{unit.identifier} - Fatal error: {e}")
                fatal.append(e)
                stop.set()
            finally:
                progress.update()

        try:
            Parallel(n_jobs=self.n_jobs, backend="threading")(
                delayed(evaluate)(position, unit) for position, unit in enumerate(units)
            )
        finally:
            progress.close()

        self.summary.units = [result for result in results if result is not None]

        self._transition(RunState.FINALIZING)
        try:
            sink.close()
        except OSError as e:
            fatal.append(e)

        if fatal:
            self._transition(RunState.FAILED)
            raise EvaluationAborted(
                f"Evaluation aborted after {self.summary.units_attempted} of {len(units)} units: {fatal[0]}",
                summary=self.summary,
            ) from fatal[0]

        self._transition(RunState.DONE)
        self._log_summary()
        return self.summary

    def _log_summary(self) -> None:
        summary = self.summary
        self.logger.info(
            f"Evaluation done - {summary.rows_written} rows written, "
            f"{summary.units_succeeded}/{summary.units_attempted} units succeeded"
        )
        for unit in summary.failed_units:
            self.logger.warning(f"Unit fold {unit.fold_index} / {unit.algorithm_id} failed: {unit.reason}")
