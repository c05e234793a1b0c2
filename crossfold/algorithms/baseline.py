# crossfold, Cross-Validation of Rating Predictors
# Copyright (C) 2020  Froomle N.V.
# License: GNU AGPLv3 - https://gitlab.com/recpack-maintainers/recpack/-/blob/master/LICENSE
# Author:
#   Lien Michiels
#   Robin Verachtert
from typing import Dict, Hashable

import pandas as pd

from crossfold.algorithms.base import Algorithm
from crossfold.matrix import RatingMatrix


def damped_offsets(residuals: pd.Series, keys: pd.Series, damping: float) -> Dict[Hashable, float]:
    """Mean residual per key, with ``damping`` extra zero residuals added to every key.

    Damping pulls the offsets of keys with few ratings towards zero.
    """
    grouped = residuals.groupby(keys).agg(["sum", "count"])
    return (grouped["sum"] / (grouped["count"] + damping)).to_dict()


class GlobalMean(Algorithm):
    """Baseline algorithm predicting the mean of all training ratings, for every user and item."""

    def _fit(self, X: RatingMatrix) -> "GlobalMean":
        self.mean_ = float(X.dataframe[RatingMatrix.RATING_IX].mean())
        return self

    def _predict(self, user, item):
        return self.mean_


class UserMean(Algorithm):
    """Baseline algorithm predicting the mean rating of the user.

    The user mean is computed as the global mean plus the user's damped mean offset.

    :param damping: Number of virtual ratings at the global mean added to each user, defaults to 0.
    :type damping: float, optional
    :param fallback: Predict the global mean for users without training ratings.
        If False no prediction is made for them. Defaults to True.
    :type fallback: bool, optional
    """

    def __init__(self, damping: float = 0.0, fallback: bool = True):
        super().__init__()
        self.damping = damping
        self.fallback = fallback

    def _fit(self, X: RatingMatrix) -> "UserMean":
        df = X.dataframe
        self.mean_ = float(df[RatingMatrix.RATING_IX].mean())
        self.user_offsets_ = damped_offsets(
            df[RatingMatrix.RATING_IX] - self.mean_, df[RatingMatrix.USER_IX], self.damping
        )
        return self

    def _predict(self, user, item):
        if user in self.user_offsets_:
            return self.mean_ + self.user_offsets_[user]
        return self.mean_ if self.fallback else None


class ItemMean(Algorithm):
    """Baseline algorithm predicting the mean rating of the item.

    The item mean is computed as the global mean plus the item's damped mean offset.

    :param damping: Number of virtual ratings at the global mean added to each item, defaults to 0.
    :type damping: float, optional
    :param fallback: Predict the global mean for items without training ratings.
        If False no prediction is made for them. Defaults to True.
    :type fallback: bool, optional
    """

    def __init__(self, damping: float = 0.0, fallback: bool = True):
        super().__init__()
        self.damping = damping
        self.fallback = fallback

    def _fit(self, X: RatingMatrix) -> "ItemMean":
        df = X.dataframe
        self.mean_ = float(df[RatingMatrix.RATING_IX].mean())
        self.item_offsets_ = damped_offsets(
            df[RatingMatrix.RATING_IX] - self.mean_, df[RatingMatrix.ITEM_IX], self.damping
        )
        return self

    def _predict(self, user, item):
        if item in self.item_offsets_:
            return self.mean_ + self.item_offsets_[item]
        return self.mean_ if self.fallback else None


class UserItemBias(Algorithm):
    """Baseline predicting the global mean plus an item bias and a user bias.

    Item biases are the damped mean offsets of an item's ratings from the global mean.
    User biases are the damped mean offsets of a user's ratings
    from the global mean plus the item bias.
    Unknown users and items have a bias of zero.

    :param damping: Number of virtual ratings at zero offset added
        to each user and item, defaults to 0.
    :type damping: float, optional
    """

    def __init__(self, damping: float = 0.0):
        super().__init__()
        self.damping = damping

    def _fit(self, X: RatingMatrix) -> "UserItemBias":
        df = X.dataframe
        ratings = df[RatingMatrix.RATING_IX]

        self.mean_ = float(ratings.mean())
        self.item_offsets_ = damped_offsets(ratings - self.mean_, df[RatingMatrix.ITEM_IX], self.damping)

        item_bias = df[RatingMatrix.ITEM_IX].map(self.item_offsets_)
        self.user_offsets_ = damped_offsets(
            ratings - self.mean_ - item_bias, df[RatingMatrix.USER_IX], self.damping
        )
        return self

    def _predict(self, user, item):
        return self.mean_ + self.item_offsets_.get(item, 0.0) + self.user_offsets_.get(user, 0.0)
