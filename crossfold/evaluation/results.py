# crossfold, Cross-Validation of Rating Predictors
# Copyright (C) 2020  Froomle N.V.
# License: GNU AGPLv3 - https://gitlab.com/recpack-maintainers/recpack/-/blob/master/LICENSE
# Author:
#   Lien Michiels
#   Robin Verachtert

from abc import ABC, abstractmethod
import logging
import os
import threading
from typing import Hashable, List, NamedTuple, Optional

import pandas as pd


logger = logging.getLogger("crossfold")

NO_PREDICTION = None
"""Value of :attr:`ResultRow.predicted_value` when the algorithm could not predict the rating."""


class ResultRow(NamedTuple):
    """The prediction of one algorithm for one held-out rating in one fold."""

    fold_index: int
    algorithm_id: str
    user_id: Hashable
    item_id: Hashable
    actual_value: float
    predicted_value: Optional[float]

    @property
    def has_prediction(self) -> bool:
        return self.predicted_value is not NO_PREDICTION


RESULT_COLUMNS = list(ResultRow._fields)


class ResultSink(ABC):
    """Receives result rows, one at a time.

    A sink is used as a context manager, or closed explicitly once all rows are written.
    Failures to store rows are raised as :class:`OSError`.
    """

    @abstractmethod
    def write(self, row: ResultRow) -> None:
        raise NotImplementedError()

    def flush(self) -> None:
        """Make sure all rows written so far are stored."""

    def close(self) -> None:
        self.flush()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_value, traceback):
        self.close()


class MemoryResultSink(ResultSink):
    """Keeps all result rows in memory."""

    def __init__(self):
        self.rows: List[ResultRow] = []
        self.closed = False

    def write(self, row):
        if self.closed:
            raise OSError("Can't write to a closed sink.")
        self.rows.append(row)

    def close(self):
        self.closed = True

    def to_dataframe(self) -> pd.DataFrame:
        return pd.DataFrame.from_records(self.rows, columns=RESULT_COLUMNS)


class CSVResultSink(ResultSink):
    """Writes result rows to a CSV file with a header of :data:`RESULT_COLUMNS`.

    Rows are buffered and appended to the file in chunks of ``chunk_size`` rows.
    The file is only created, or replaced, when the first chunk is stored or the sink is closed,
    so a sink that is never used leaves an existing file untouched.

    :param path: File to write to, replaced if it exists.
    :type path: str
    :param chunk_size: Number of rows to buffer before writing, defaults to 1000.
    :type chunk_size: int, optional
    :param na_rep: Representation of a missing prediction, defaults to "NA".
    :type na_rep: str, optional
    """

    def __init__(self, path: str, chunk_size: int = 1000, na_rep: str = "NA"):
        self.path = path
        self.chunk_size = max(1, chunk_size)
        self.na_rep = na_rep
        self.rows_written = 0
        self.closed = False
        self._opened = False
        self._buffer: List[ResultRow] = []

    def _open(self):
        """Create the file with only the header line."""
        directory = os.path.dirname(os.path.abspath(self.path))
        if not os.path.isdir(directory):
            os.makedirs(directory)

        pd.DataFrame(columns=RESULT_COLUMNS).to_csv(self.path, index=False)
        self._opened = True

    def write(self, row):
        if self.closed:
            raise OSError(f"Can't write to closed sink {self.path}.")
        self._buffer.append(row)
        if len(self._buffer) >= self.chunk_size:
            self.flush()

    def flush(self):
        if not self._buffer:
            return
        if not self._opened:
            self._open()
        df = pd.DataFrame.from_records(self._buffer, columns=RESULT_COLUMNS)
        df.to_csv(self.path, mode="a", header=False, index=False, na_rep=self.na_rep)

        self.rows_written += len(self._buffer)
        logger.debug(f"Wrote {len(self._buffer)} rows to {self.path}")
        self._buffer = []

    def close(self):
        if self.closed:
            return
        try:
            if not self._opened:
                self._open()
            self.flush()
        finally:
            self.closed = True


class LockedResultSink(ResultSink):
    """Serializes access to a sink that is shared between worker threads.

    :param sink: The sink to write to.
    :type sink: ResultSink
    """

    def __init__(self, sink: ResultSink):
        self.sink = sink
        self._lock = threading.Lock()

    def write(self, row):
        with self._lock:
            self.sink.write(row)

    def flush(self):
        with self._lock:
            self.sink.flush()

    def close(self):
        with self._lock:
            self.sink.close()
