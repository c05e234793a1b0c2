# crossfold, Cross-Validation of Rating Predictors
# Copyright (C) 2020  Froomle N.V.
# License: GNU AGPLv3 - https://gitlab.com/recpack-maintainers/recpack/-/blob/master/LICENSE
# Author:
#   Lien Michiels
#   Robin Verachtert

"""Rating storage.

.. currentmodule:: crossfold.matrix

.. autosummary::
    :toctree: generated/

    RatingMatrix
    UserProfile
    Rating
    read_ratings

A RatingMatrix object can be constructed from a pandas DataFrame
with a row for each rating::

    import pandas as pd

    from crossfold.matrix import RatingMatrix
    data = {
        "user": [3, 2, 1, 1],
        "item": [1, 1, 2, 3],
        "rating": [4.0, 3.5, 5.0, 1.0],
        "timestamp": [1613736000, 1613736300, 1613736600, 1613736900]
    }
    df = pd.DataFrame.from_dict(data)
    ratings = RatingMatrix(df, "item", "user", "rating", timestamp_ix="timestamp")

"""

from crossfold.matrix.rating_matrix import Rating, RatingMatrix, UserProfile
from crossfold.matrix.input_loaders import DelimitedRatingsLoader, read_ratings
