# crossfold, Cross-Validation of Rating Predictors
# Copyright (C) 2020  Froomle N.V.
# License: GNU AGPLv3 - https://gitlab.com/recpack-maintainers/recpack/-/blob/master/LICENSE
# Author:
#   Lien Michiels
#   Robin Verachtert

from unittest.mock import MagicMock, patch

import pytest

from crossfold.algorithms import GlobalMean, ItemMean, UserItemBias
from crossfold.evaluation import (
    CrossfoldEvaluator,
    MemoryResultSink,
    RunState,
    expected_row_count,
)
from crossfold.exceptions import ConfigurationError, DataError, EvaluationAborted
from crossfold.splitters import FoldGenerator, RandomProfileSplitter, TimestampProfileSplitter

SEED = 1234


class FailOnUsers:
    """Refuses to train when part of the ratings of ``users`` is missing."""

    identifier = "FailOnUsers"

    def __init__(self, users, data):
        self.users = list(users)
        self.expected = data.users_in(self.users).num_ratings

    def train(self, X):
        if X.users_in(self.users).num_ratings < self.expected:
            raise ValueError("insufficient data")
        return GlobalMean().train(X)


class FailingSink(MemoryResultSink):
    def __init__(self, fail_after):
        super().__init__()
        self.fail_after = fail_after

    def write(self, row):
        if len(self.rows) >= self.fail_after:
            raise OSError("disk full")
        super().write(row)


def make_evaluator(data, algorithms, sink, num_folds=5, holdout_fraction=0.5, **kwargs):
    return CrossfoldEvaluator(
        data,
        algorithms,
        num_folds,
        RandomProfileSplitter(holdout_fraction, seed=SEED),
        sink,
        seed=SEED,
        progress=False,
        **kwargs,
    )


def test_run(ratings):
    sink = MemoryResultSink()
    algorithms = [GlobalMean(), ItemMean(), UserItemBias(damping=2)]
    evaluator = make_evaluator(ratings, algorithms, sink)

    summary = evaluator.run()

    assert evaluator.state == RunState.DONE
    assert sink.closed
    assert len(evaluator.folds) == 5
    assert summary.num_folds == 5
    assert summary.units_attempted == 15
    assert summary.units_succeeded == 15
    assert summary.failed_units == []
    assert summary.rows_written == len(sink.rows) == expected_row_count(evaluator.folds, 3)


def test_each_fold_has_two_test_users(ratings):
    evaluator = make_evaluator(ratings, [GlobalMean()], MemoryResultSink())
    evaluator.run()

    assert [len(fold.test_users) for fold in evaluator.folds] == [2] * 5


def test_rows_in_fold_major_order(ratings):
    sink = MemoryResultSink()
    evaluator = make_evaluator(ratings, [GlobalMean(), ItemMean()], sink)

    evaluator.run()

    units = [(row.fold_index, row.algorithm_id) for row in sink.rows]
    # Remove consecutive duplicates
    blocks = [u for i, u in enumerate(units) if i == 0 or units[i - 1] != u]
    expected = [
        (fold.index, algorithm_id)
        for fold in evaluator.folds
        for algorithm_id in ["GlobalMean()", "ItemMean(damping=0.0,fallback=True)"]
        if fold.num_test_ratings > 0
    ]
    assert blocks == expected


def test_rows_match_test_data(ratings):
    sink = MemoryResultSink()
    evaluator = make_evaluator(ratings, [ItemMean()], sink)

    evaluator.run()

    for fold in evaluator.folds:
        fold_rows = [row for row in sink.rows if row.fold_index == fold.index]
        assert [(r.user_id, r.item_id, r.actual_value) for r in fold_rows] == [
            (r.user, r.item, r.value) for r in fold.test_data.ratings
        ]


def test_parallel_run_produces_same_rows(larger_ratings):
    algorithms = [GlobalMean(), ItemMean(), UserItemBias()]

    sequential = MemoryResultSink()
    make_evaluator(larger_ratings, algorithms, sequential, num_folds=4).run()

    parallel = MemoryResultSink()
    summary = make_evaluator(larger_ratings, algorithms, parallel, num_folds=4, n_jobs=3).run()

    assert summary.units_attempted == 12
    assert sorted(parallel.rows, key=repr) == sorted(sequential.rows, key=repr)


def test_runs_are_reproducible(larger_ratings):
    sinks = [MemoryResultSink(), MemoryResultSink()]
    for sink in sinks:
        make_evaluator(larger_ratings, [UserItemBias()], sink, num_folds=3).run()

    assert sinks[0].rows == sinks[1].rows


def test_failing_unit_does_not_stop_run(ratings):
    splitter = RandomProfileSplitter(0.5, seed=SEED)
    fold_2_users = FoldGenerator(5, splitter, seed=SEED).partition_users(ratings.users)[2]

    sink = MemoryResultSink()
    algorithms = [ItemMean(), FailOnUsers(fold_2_users, ratings)]
    evaluator = make_evaluator(ratings, algorithms, sink)

    summary = evaluator.run()

    assert evaluator.state == RunState.DONE
    assert summary.units_attempted == 10
    assert len(summary.failed_units) == 1

    failed = summary.failed_units[0]
    assert failed.fold_index == 2
    assert failed.algorithm_id == "FailOnUsers"
    assert "insufficient data" in failed.reason
    assert failed.rows_written == 0

    # All other units wrote their rows
    fold_2_test_ratings = evaluator.folds[2].num_test_ratings
    assert summary.rows_written == len(sink.rows) == expected_row_count(evaluator.folds, 2) - fold_2_test_ratings
    assert not [row for row in sink.rows if row.fold_index == 2 and row.algorithm_id == "FailOnUsers"]
    assert [row for row in sink.rows if row.fold_index == 2 and row.algorithm_id != "FailOnUsers"]

    report = summary.to_dict()
    assert report["failed_units"][0]["fold_index"] == 2

    df = summary.to_dataframe()
    assert df.shape == (10, 5)
    assert df.succeeded.sum() == 9


def test_sink_failure_aborts_run(ratings):
    sink = FailingSink(fail_after=3)
    evaluator = make_evaluator(ratings, [GlobalMean(), ItemMean()], sink)

    with pytest.raises(EvaluationAborted) as e:
        evaluator.run()

    assert isinstance(e.value.__cause__, OSError)
    assert evaluator.state == RunState.FAILED
    # Rows written before the failure are kept, and the sink is closed
    assert len(sink.rows) == 3
    assert sink.closed
    # No units are started after the failure
    assert e.value.summary.units_attempted < 10
    assert e.value.summary.rows_written <= 3


def test_progress_counts_every_unit(ratings):
    sink = FailingSink(fail_after=3)
    evaluator = make_evaluator(ratings, [GlobalMean(), ItemMean()], sink)

    with patch("crossfold.evaluation.evaluator.tqdm") as progress:
        with pytest.raises(EvaluationAborted):
            evaluator.run()

    # Units that ran, failed fatally or were skipped all count
    assert progress.return_value.update.call_count == 10
    progress.return_value.close.assert_called_once_with()


class NonNumericModel:
    def predict(self, user, item):
        return "n/a"


class NonNumericPredictor:
    identifier = "NonNumericPredictor"

    def train(self, X):
        return NonNumericModel()


def test_non_numeric_predictions_fail_only_their_units(ratings):
    sink = MemoryResultSink()
    evaluator = make_evaluator(ratings, [GlobalMean(), NonNumericPredictor()], sink)

    summary = evaluator.run()

    assert evaluator.state == RunState.DONE
    assert summary.units_attempted == 10
    assert len(summary.failed_units) == 5
    assert {unit.algorithm_id for unit in summary.failed_units} == {"NonNumericPredictor"}
    assert summary.rows_written == len(sink.rows) == expected_row_count(evaluator.folds, 1)


@pytest.mark.parametrize("num_folds", [0, -2])
def test_invalid_num_folds(ratings, num_folds):
    evaluator = make_evaluator(ratings, [GlobalMean()], MemoryResultSink(), num_folds=num_folds)

    with patch.object(FoldGenerator, "split") as split:
        with pytest.raises(ConfigurationError):
            evaluator.run()
        split.assert_not_called()

    assert evaluator.state == RunState.FAILED
    assert evaluator.folds == []
    assert not evaluator.sink.closed


def test_too_many_folds(ratings):
    evaluator = make_evaluator(ratings, [GlobalMean()], MemoryResultSink(), num_folds=11)

    with pytest.raises(ConfigurationError):
        evaluator.run()


def test_holdout_fraction_one():
    with pytest.raises(ConfigurationError):
        RandomProfileSplitter(1.0)


def test_invalid_holdout_fraction_on_splitter(ratings):
    splitter = RandomProfileSplitter(0.5, seed=SEED)
    splitter.holdout_fraction = 1.0
    evaluator = CrossfoldEvaluator(ratings, [GlobalMean()], 5, splitter, MemoryResultSink(), progress=False)

    with patch.object(FoldGenerator, "split") as split:
        with pytest.raises(ConfigurationError):
            evaluator.run()
        split.assert_not_called()


def test_no_algorithms(ratings):
    sink = MemoryResultSink()
    evaluator = make_evaluator(ratings, [], sink)

    with pytest.raises(ConfigurationError):
        evaluator.run()

    assert sink.rows == []


def test_algorithm_ids(ratings):
    sink = MemoryResultSink()
    evaluator = make_evaluator(ratings, [ItemMean(), ItemMean()], sink)

    evaluator.run()

    assert evaluator.algorithm_ids == [
        "ItemMean(damping=0.0,fallback=True)",
        "ItemMean(damping=0.0,fallback=True)#2",
    ]


def test_custom_algorithm_ids(ratings):
    sink = MemoryResultSink()
    evaluator = make_evaluator(ratings, [ItemMean(), GlobalMean()], sink, algorithm_ids=["item", "global"])

    evaluator.run()

    assert {row.algorithm_id for row in sink.rows} == {"item", "global"}


@pytest.mark.parametrize("algorithm_ids", [["a"], ["a", "a"]])
def test_invalid_algorithm_ids(ratings, algorithm_ids):
    evaluator = make_evaluator(
        ratings, [ItemMean(), GlobalMean()], MemoryResultSink(), algorithm_ids=algorithm_ids
    )

    with pytest.raises(ConfigurationError):
        evaluator.run()


def test_missing_timestamps(ratings_no_timestamps):
    evaluator = CrossfoldEvaluator(
        ratings_no_timestamps,
        [GlobalMean()],
        2,
        TimestampProfileSplitter(0.5),
        MemoryResultSink(),
        seed=SEED,
        progress=False,
    )

    with pytest.raises(DataError):
        evaluator.run()

    assert evaluator.state == RunState.FAILED
    assert evaluator.sink.closed


def test_timestamp_split_run(ratings):
    sink = MemoryResultSink()
    evaluator = CrossfoldEvaluator(
        ratings, [ItemMean()], 5, TimestampProfileSplitter(0.5), sink, seed=SEED, progress=False
    )

    summary = evaluator.run()

    # floor(n / 2) ratings of every user, users have 1 to 10 ratings
    assert summary.rows_written == sum(n // 2 for n in range(1, 11))
    # The most recent ratings are held out, later items have earlier timestamps
    assert all(row.item_id < (row.user_id + 1) // 2 for row in sink.rows)


def test_logger_is_used(ratings):
    logger = MagicMock()
    evaluator = make_evaluator(ratings, [GlobalMean()], MemoryResultSink(), logger=logger)

    evaluator.run()

    logger.info.assert_called()
