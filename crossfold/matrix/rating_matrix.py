# crossfold, Cross-Validation of Rating Predictors
# Copyright (C) 2020  Froomle N.V.
# License: GNU AGPLv3 - https://gitlab.com/recpack-maintainers/recpack/-/blob/master/LICENSE
# Author:
#   Lien Michiels
#   Robin Verachtert
from copy import deepcopy
import logging
from typing import Any, Dict, Hashable, Iterable, Iterator, List, NamedTuple, Optional, Tuple

import numpy as np
import pandas as pd
from scipy.sparse import csr_matrix

from crossfold.exceptions import DataError

logger = logging.getLogger("crossfold")


class Rating(NamedTuple):
    """A single rating of an item by a user.

    ``rating_id`` is the position at which the rating was ingested,
    so two ratings with identical fields remain distinct.
    """

    rating_id: int
    user: Hashable
    item: Hashable
    value: float
    timestamp: Optional[float] = None


class UserProfile:
    """The rating history of one user.

    Ratings are ordered by timestamp when all of them have one,
    ties keep their ingestion order. Otherwise ingestion order is used.

    :param user: The user the ratings belong to.
    :type user: Hashable
    :param ratings: The user's ratings.
    :type ratings: Iterable[Rating]
    :raises DataError: If a rating belongs to another user.
    """

    def __init__(self, user: Hashable, ratings: Iterable[Rating]):
        ratings = sorted(ratings, key=lambda r: r.rating_id)

        strangers = [r for r in ratings if r.user != user]
        if strangers:
            raise DataError(f"Profile of user {user} contains {len(strangers)} ratings of other users.")

        if ratings and all(r.timestamp is not None for r in ratings):
            # sorted is stable, equal timestamps keep ingestion order
            ratings = sorted(ratings, key=lambda r: r.timestamp)

        self.user = user
        self.ratings = tuple(ratings)

    @property
    def has_timestamps(self) -> bool:
        return all(r.timestamp is not None for r in self.ratings)

    def __len__(self):
        return len(self.ratings)

    def __iter__(self):
        return iter(self.ratings)

    def __repr__(self):
        return f"UserProfile(user={self.user!r}, ratings={len(self.ratings)})"


class RatingMatrix:
    """A read-only collection of ratings of items by users, optionally at a certain time.

    The ratings are stored in a DataFrame with a row for each rating.
    Selections never modify the matrix they are taken from, they return a new RatingMatrix.

    :param df: Dataframe containing the ratings.
        Must contain user ids, item ids and rating values.
    :type df: pd.DataFrame
    :param item_ix: Item ids column name.
    :type item_ix: str
    :param user_ix: User ids column name.
    :type user_ix: str
    :param rating_ix: Rating values column name.
    :type rating_ix: str
    :param timestamp_ix: Rating timestamps column name.
    :type timestamp_ix: str, optional
    :raises DataError: If one of the columns is missing, or rating values are not numeric.
    """

    ITEM_IX = "iid"
    USER_IX = "uid"
    RATING_IX = "rating"
    TIMESTAMP_IX = "ts"
    RATING_ID_IX = "ratingid"

    def __init__(
        self,
        df: pd.DataFrame,
        item_ix: str,
        user_ix: str,
        rating_ix: str,
        timestamp_ix: Optional[str] = None,
    ):
        col_mapper = {
            item_ix: RatingMatrix.ITEM_IX,
            user_ix: RatingMatrix.USER_IX,
            rating_ix: RatingMatrix.RATING_IX,
        }
        if timestamp_ix is not None:
            col_mapper[timestamp_ix] = RatingMatrix.TIMESTAMP_IX

        missing = [col for col in col_mapper if col not in df]
        if missing:
            raise DataError(f"Rating data is missing columns {missing}.")

        df = df.rename(columns=col_mapper)
        df = df[list(col_mapper.values())].copy()

        if not pd.api.types.is_numeric_dtype(df[RatingMatrix.RATING_IX]):
            raise DataError("Rating values should be numeric.")

        df = df.reset_index(drop=True).reset_index().rename(columns={"index": RatingMatrix.RATING_ID_IX})

        self._df = df

    @classmethod
    def _from_df(cls, df: pd.DataFrame) -> "RatingMatrix":
        """Wrap an already canonical DataFrame, keeping its rating ids."""
        rating_m = cls.__new__(cls)
        rating_m._df = df
        return rating_m

    def copy(self) -> "RatingMatrix":
        """Create a deep copy of this RatingMatrix.

        :return: Deep copy of this RatingMatrix.
        :rtype: RatingMatrix
        """
        return deepcopy(self)

    @property
    def has_timestamps(self) -> bool:
        """True if timestamps are available for every rating."""
        return self.TIMESTAMP_IX in self._df and not self._df[self.TIMESTAMP_IX].isna().any()

    @property
    def num_ratings(self) -> int:
        """The total number of ratings."""
        return len(self._df)

    @property
    def users(self) -> List[Hashable]:
        """The distinct users with at least one rating, sorted."""
        return sorted(self._df[self.USER_IX].unique().tolist())

    @property
    def num_users(self) -> int:
        return self._df[self.USER_IX].nunique()

    @property
    def active_items(self) -> set:
        """The set of items with at least one rating."""
        return set(self._df[self.ITEM_IX].unique().tolist())

    @property
    def rating_ids(self) -> List[int]:
        return self._df[self.RATING_ID_IX].tolist()

    @property
    def dataframe(self) -> pd.DataFrame:
        """A copy of the ratings with the canonical column names."""
        return self._df.copy()

    def _to_rating(self, row: Dict[str, Any]) -> Rating:
        timestamp = row.get(self.TIMESTAMP_IX)
        if timestamp is not None and pd.isna(timestamp):
            timestamp = None
        return Rating(
            rating_id=int(row[self.RATING_ID_IX]),
            user=row[self.USER_IX],
            item=row[self.ITEM_IX],
            value=float(row[self.RATING_IX]),
            timestamp=timestamp,
        )

    @property
    def ratings(self) -> Iterator[Rating]:
        """The ratings in storage order.

        :yield: Each rating as a :class:`Rating`.
        :rtype: Iterator[Rating]
        """
        for row in self._df.to_dict("records"):
            yield self._to_rating(row)

    def profile(self, user: Hashable) -> UserProfile:
        """The rating history of a single user.

        :param user: The user to fetch.
        :type user: Hashable
        :raises DataError: If the user has no ratings.
        :return: Profile of the user.
        :rtype: UserProfile
        """
        user_df = self._df[self._df[self.USER_IX] == user]
        if user_df.empty:
            raise DataError(f"Unknown user {user}.")
        return UserProfile(user, (self._to_rating(row) for row in user_df.to_dict("records")))

    @property
    def profiles(self) -> Iterator[Tuple[Hashable, UserProfile]]:
        """The rating history of every user.

        :yield: Tuples of user ID, profile of that user.
        :rtype: Iterator[Tuple[Hashable, UserProfile]]
        """
        for uid, user_df in self._df.groupby(self.USER_IX, sort=True):
            yield uid, UserProfile(uid, (self._to_rating(row) for row in user_df.to_dict("records")))

    def _apply_mask(self, mask) -> "RatingMatrix":
        return RatingMatrix._from_df(self._df[mask].copy())

    def users_in(self, U: Iterable[Hashable]) -> "RatingMatrix":
        """Keep only ratings by one of the specified users.

        :param U: The users to select the ratings from.
        :type U: Iterable[Hashable]
        :return: A new RatingMatrix with the selected ratings.
        :rtype: RatingMatrix
        """
        logger.debug("Performing users_in comparison")

        mask = self._df[self.USER_IX].isin(list(U))
        return self._apply_mask(mask)

    def ratings_in(self, rating_ids: Iterable[int]) -> "RatingMatrix":
        """Select ratings by their rating ids.

        :param rating_ids: The ids of the ratings to keep.
        :type rating_ids: Iterable[int]
        :raises DataError: If some ids are not present in this matrix.
        :return: A new RatingMatrix with the selected ratings, in storage order.
        :rtype: RatingMatrix
        """
        logger.debug("Performing ratings_in comparison")

        rating_ids = list(rating_ids)
        unknown = set(rating_ids).difference(self._df[self.RATING_ID_IX])
        if unknown:
            raise DataError(f"Rating IDs {sorted(unknown)} not present in data")

        mask = self._df[self.RATING_ID_IX].isin(rating_ids)
        return self._apply_mask(mask)

    @property
    def user_index(self) -> Dict[Hashable, int]:
        """Row of each user in :attr:`values`."""
        return {u: ix for ix, u in enumerate(self.users)}

    @property
    def item_index(self) -> Dict[Hashable, int]:
        """Column of each item in :attr:`values`."""
        return {i: ix for ix, i in enumerate(sorted(self.active_items))}

    @property
    def values(self) -> csr_matrix:
        """All ratings as a sparse matrix of size ``(|users|, |items|)``.

        Rows and columns follow :attr:`user_index` and :attr:`item_index`.
        If a user rated an item more than once, the values are summed.

        :return: Ratings of users for items as a csr_matrix.
        :rtype: csr_matrix
        """
        user_index = self.user_index
        item_index = self.item_index

        rows = self._df[self.USER_IX].map(user_index).values
        cols = self._df[self.ITEM_IX].map(item_index).values
        values = self._df[self.RATING_IX].values.astype(np.float64)

        return csr_matrix((values, (rows, cols)), shape=(len(user_index), len(item_index)))

    def __len__(self):
        return self.num_ratings

    def __repr__(self):
        return f"RatingMatrix(users={self.num_users}, ratings={self.num_ratings}, timestamps={self.has_timestamps})"
