# crossfold, Cross-Validation of Rating Predictors
# Copyright (C) 2020  Froomle N.V.
# License: GNU AGPLv3 - https://gitlab.com/recpack-maintainers/recpack/-/blob/master/LICENSE
# Author:
#   Lien Michiels
#   Robin Verachtert

from dataclasses import dataclass
import logging
import math
import time
from typing import Iterator, Optional

from crossfold.exceptions import AlgorithmError, DataError
from crossfold.evaluation.results import NO_PREDICTION, ResultRow, ResultSink
from crossfold.splitters import Fold


@dataclass
class UnitResult:
    """Outcome of one evaluation unit.

    :param fold_index: The fold that was evaluated.
    :param algorithm_id: The algorithm that was evaluated.
    :param rows_written: Number of result rows passed to the sink.
    :param error: The error that stopped the unit, None if it completed.
    """

    fold_index: int
    algorithm_id: str
    rows_written: int = 0
    error: Optional[AlgorithmError] = None

    @property
    def succeeded(self) -> bool:
        return self.error is None

    @property
    def reason(self) -> Optional[str]:
        """Description of the failure, None for successful units."""
        if self.error is None:
            return None
        cause = self.error.__cause__
        if cause is not None:
            return f"{self.error} ({type(cause).__name__}: {cause})"
        return str(self.error)


class EvaluationUnit:
    """Trains one algorithm on the training data of one fold,
    and predicts every held-out rating of that fold.

    The model built by the unit exists only while its rows are produced.

    :param fold: The fold to evaluate on.
    :type fold: Fold
    :param algorithm: The algorithm to train, it is not modified.
    :param algorithm_id: Identifier of the algorithm in result rows.
    :type algorithm_id: str
    :param logger: Logger to report progress and failures to.
    :type logger: logging.Logger, optional
    """

    def __init__(self, fold: Fold, algorithm, algorithm_id: str, logger: Optional[logging.Logger] = None):
        self.fold = fold
        self.algorithm = algorithm
        self.algorithm_id = algorithm_id
        self.logger = logger or logging.getLogger("crossfold")
        self._started = False

    @property
    def identifier(self) -> str:
        return f"fold {self.fold.index} / {self.algorithm_id}"

    def _error(self, message: str) -> AlgorithmError:
        return AlgorithmError(message, fold_index=self.fold.index, algorithm_id=self.algorithm_id)

    def rows(self) -> Iterator[ResultRow]:
        """Train the algorithm, then yield a result row for each held-out rating, in test data order.

        Ratings the model can't predict get a row with :data:`NO_PREDICTION` as predicted value.
        A unit can only be iterated once, training is not repeated.

        :raises AlgorithmError: If training fails, or prediction fails for another reason
            than missing data, including predictions that are not numbers.
        :raises RuntimeError: If the rows were already produced.
        :yield: One row per held-out rating.
        :rtype: Iterator[ResultRow]
        """
        if self._started:
            raise RuntimeError(f"Unit {self.identifier} was already evaluated.")
        self._started = True

        start = time.time()
        try:
            model = self.algorithm.train(self.fold.train_data)
        except AlgorithmError as e:
            raise self._error(f"Training failed: {e}") from e
        except Exception as e:
            raise self._error("Training failed") from e
        self.logger.debug(f"{self.identifier} - Trained in {time.time() - start :.3}s")

        for rating in self.fold.test_data.ratings:
            try:
                predicted = model.predict(rating.user, rating.item)
                if predicted is not NO_PREDICTION:
                    predicted = float(predicted)
                    if math.isnan(predicted):
                        predicted = NO_PREDICTION
            except DataError as e:
                self.logger.debug(f"{self.identifier} - No prediction for ({rating.user}, {rating.item}): {e}")
                predicted = NO_PREDICTION
            except Exception as e:
                raise self._error(f"Prediction failed for user {rating.user}, item {rating.item}") from e

            yield ResultRow(
                fold_index=self.fold.index,
                algorithm_id=self.algorithm_id,
                user_id=rating.user,
                item_id=rating.item,
                actual_value=rating.value,
                predicted_value=predicted,
            )

    def run(self, sink: ResultSink) -> UnitResult:
        """Stream the rows of this unit into ``sink``.

        Rows written before a prediction failure stay in the sink.

        :raises OSError: If the sink fails, which is fatal to the run.
        :return: The outcome of the unit, failed if an AlgorithmError occurred.
        :rtype: UnitResult
        """
        result = UnitResult(self.fold.index, self.algorithm_id)
        try:
            for row in self.rows():
                sink.write(row)
                result.rows_written += 1
        except AlgorithmError as e:
            self.logger.warning(f"{self.identifier} - {e}, continuing with other units")
            result.error = e
        return result
