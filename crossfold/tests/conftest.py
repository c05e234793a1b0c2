# crossfold, Cross-Validation of Rating Predictors
# Copyright (C) 2020  Froomle N.V.
# License: GNU AGPLv3 - https://gitlab.com/recpack-maintainers/recpack/-/blob/master/LICENSE
# Author:
#   Lien Michiels
#   Robin Verachtert

import numpy as np
import pandas as pd
import pytest

from crossfold.matrix import RatingMatrix

USER_IX = RatingMatrix.USER_IX
ITEM_IX = RatingMatrix.ITEM_IX
RATING_IX = RatingMatrix.RATING_IX
TIMESTAMP_IX = RatingMatrix.TIMESTAMP_IX


def create_ratings_df(num_users, ratings_per_user, seed=42):
    """User ``u`` rates items ``0 .. ratings_per_user(u) - 1``, later items at earlier times."""
    rng = np.random.default_rng(seed)
    rows = []
    for u in range(num_users):
        n = ratings_per_user(u)
        for i in range(n):
            rows.append(
                {
                    USER_IX: u,
                    ITEM_IX: i,
                    RATING_IX: float(rng.integers(1, 6)),
                    TIMESTAMP_IX: 1000 * u + (n - i),
                }
            )
    return pd.DataFrame.from_records(rows, columns=[USER_IX, ITEM_IX, RATING_IX, TIMESTAMP_IX])


@pytest.fixture(scope="function")
def ratings():
    # user u has u + 1 ratings, user 0 has a single rating
    df = create_ratings_df(10, lambda u: u + 1)
    return RatingMatrix(df, ITEM_IX, USER_IX, RATING_IX, timestamp_ix=TIMESTAMP_IX)


@pytest.fixture(scope="function")
def ratings_no_timestamps():
    df = create_ratings_df(10, lambda u: u + 1)
    return RatingMatrix(df, ITEM_IX, USER_IX, RATING_IX)


@pytest.fixture(scope="function")
def larger_ratings():
    df = create_ratings_df(50, lambda u: 2 + u % 9, seed=7)
    return RatingMatrix(df, ITEM_IX, USER_IX, RATING_IX, timestamp_ix=TIMESTAMP_IX)


@pytest.fixture(scope="function")
def small_ratings():
    data = {
        "user": [1, 1, 1, 2, 2, 3],
        "item": ["a", "b", "c", "a", "c", "b"],
        "score": [4.0, 2.0, 3.0, 5.0, 1.0, 3.0],
        "time": [30, 10, 20, 5, 5, 1],
    }
    df = pd.DataFrame.from_dict(data)
    return RatingMatrix(df, "item", "user", "score", timestamp_ix="time")
