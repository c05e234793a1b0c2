# crossfold, Cross-Validation of Rating Predictors
# Copyright (C) 2020  Froomle N.V.
# License: GNU AGPLv3 - https://gitlab.com/recpack-maintainers/recpack/-/blob/master/LICENSE
# Author:
#   Lien Michiels
#   Robin Verachtert

from dataclasses import dataclass, field
import logging

import pandas as pd

from crossfold.exceptions import DataError
from crossfold.matrix.rating_matrix import RatingMatrix

logger = logging.getLogger("crossfold")


@dataclass
class DelimitedRatingsLoader:
    """Loads ratings from a header-less delimited text file.

    Every line holds ``user, item, rating`` and optionally a ``timestamp``,
    separated by ``delimiter``.
    A file in which only some lines carry a timestamp is loaded without timestamps.
    """

    file_name: str
    delimiter: str = field(default="\t")

    def load(self) -> RatingMatrix:
        logger.info(f"loading ratings from {self.file_name}")
        try:
            df = pd.read_csv(self.file_name, sep=self.delimiter, header=None, engine="python")
        except pd.errors.EmptyDataError:
            raise DataError(f"{self.file_name} contains no ratings.")
        except pd.errors.ParserError as e:
            raise DataError(f"Could not parse {self.file_name}: {e}") from e

        if df.shape[1] not in (3, 4):
            raise DataError(f"Expected 3 or 4 columns per line in {self.file_name}, found {df.shape[1]}.")

        columns = ["user", "item", "rating", "timestamp"][: df.shape[1]]
        df.columns = columns

        timestamp_ix = None
        if "timestamp" in df and not df["timestamp"].isna().any():
            timestamp_ix = "timestamp"

        ratings = RatingMatrix(df, "item", "user", "rating", timestamp_ix=timestamp_ix)
        logger.info(f"Ratings loaded, {ratings.num_ratings} ratings of {ratings.num_users} users")
        return ratings


def read_ratings(file_name: str, delimiter: str = "\t") -> RatingMatrix:
    """Read the ratings in ``file_name``, see :class:`DelimitedRatingsLoader`.

    :raises OSError: If the file can't be read.
    :raises DataError: If the file content is not a valid list of ratings.
    """
    return DelimitedRatingsLoader(file_name, delimiter).load()
