# crossfold, Cross-Validation of Rating Predictors
# Copyright (C) 2020  Froomle N.V.
# License: GNU AGPLv3 - https://gitlab.com/recpack-maintainers/recpack/-/blob/master/LICENSE
# Author:
#   Lien Michiels
#   Robin Verachtert

import logging
from abc import ABC, abstractmethod
import math
from typing import Hashable, Optional, Tuple
import zlib

import numpy as np

from crossfold.exceptions import ConfigurationError, DataError
from crossfold.matrix import Rating, UserProfile


logger = logging.getLogger("crossfold")


class ProfileSplitter(ABC):
    """Base class for splitting a user's profile into a training and a test part.

    ``floor(holdout_fraction * n)`` of the ``n`` ratings in a profile are held out.
    Profiles with fewer than two ratings are never split,
    all of their ratings are used for training.

    :param holdout_fraction: Fraction of each profile to hold out, in ``[0, 1)``.
    :type holdout_fraction: float
    :raises ConfigurationError: If ``holdout_fraction`` is outside ``[0, 1)``.
    """

    def __init__(self, holdout_fraction: float):
        if not 0 <= holdout_fraction < 1:
            raise ConfigurationError(f"holdout_fraction should be in [0, 1), got {holdout_fraction}.")
        self.holdout_fraction = holdout_fraction

    @property
    def name(self):
        """The name of the splitter."""
        return self.__class__.__name__

    @property
    def identifier(self):
        """String identifier of the splitter object,
        contains name and parameter values."""
        paramstring = ",".join((f"{k}={v}" for k, v in self.__dict__.items()))
        return self.name + f"({paramstring})"

    def test_size(self, n: int) -> int:
        """Number of ratings held out from a profile of ``n`` ratings."""
        if n < 2:
            return 0
        return int(math.floor(self.holdout_fraction * n))

    def split(self, profile: UserProfile) -> Tuple[Tuple[Rating, ...], Tuple[Rating, ...]]:
        """Split the profile into training and test ratings.

        :param profile: Ratings of one user.
        :type profile: UserProfile
        :return: A 2-tuple: the ratings to train on and the ratings to hold out.
            Together they contain every rating of the profile exactly once.
        :rtype: Tuple[Tuple[Rating, ...], Tuple[Rating, ...]]
        """
        ratings = profile.ratings
        n_test = self.test_size(len(ratings))
        if n_test == 0:
            return tuple(ratings), ()

        train, test = self._split(profile, n_test)

        logger.debug(f"{self.identifier} - Split user {profile.user} into {len(train)} train, {len(test)} test")
        return tuple(train), tuple(test)

    @abstractmethod
    def _split(self, profile: UserProfile, n_test: int) -> Tuple[Tuple[Rating, ...], Tuple[Rating, ...]]:
        """Split a profile of at least two ratings, holding out ``n_test`` of them."""
        raise NotImplementedError()


def _user_key(user: Hashable) -> int:
    """A key for the user that does not depend on the interpreter's hash seed."""
    return zlib.crc32(repr(user).encode("utf-8"))


class RandomProfileSplitter(ProfileSplitter):
    """Holds out a random selection of each profile.

    The ratings of a user are shuffled with a generator seeded from
    ``seed`` and the user id, so the same user gets the same split
    on every run with the same seed, independently of the order in which
    profiles are split.

    :param holdout_fraction: Fraction of each profile to hold out, in ``[0, 1)``.
    :type holdout_fraction: float
    :param seed: Seed the random generator. Set this value
        if you require reproducible results.
        Defaults to None, which results in a random seed.
    :type seed: int, optional
    """

    def __init__(self, holdout_fraction: float, seed: Optional[int] = None):
        super().__init__(holdout_fraction)

        if seed is None:
            # Set seed if it was not set before.
            seed = np.random.get_state()[1][0]

        self.seed = int(seed)

    def _split(self, profile, n_test):
        rstate = np.random.default_rng([self.seed, _user_key(profile.user)])
        order = rstate.permutation(len(profile.ratings))

        shuffled = [profile.ratings[ix] for ix in order]
        return shuffled[n_test:], shuffled[:n_test]


class TimestampProfileSplitter(ProfileSplitter):
    """Holds out the most recent ratings of each profile.

    Ratings are sorted by timestamp, ratings with equal timestamps keep their original order.
    The last ``floor(holdout_fraction * n)`` ratings are held out.

    :param holdout_fraction: Fraction of each profile to hold out, in ``[0, 1)``.
    :type holdout_fraction: float
    """

    def split(self, profile):
        """Split the profile into earlier ratings to train on and most recent ratings to hold out.

        :raises DataError: If a rating in the profile has no timestamp.
        """
        if not profile.has_timestamps:
            raise DataError(f"{self.name} requires timestamps, user {profile.user} has ratings without one.")
        return super().split(profile)

    def _split(self, profile, n_test):
        ordered = sorted(profile.ratings, key=lambda r: r.timestamp)
        return ordered[:-n_test], ordered[-n_test:]


SPLIT_MODES = {
    "random": RandomProfileSplitter,
    "timestamp": TimestampProfileSplitter,
}


def get_profile_splitter(split_mode: str, holdout_fraction: float, seed: Optional[int] = None) -> ProfileSplitter:
    """Construct the profile splitter for a split mode.

    :param split_mode: ``random`` or ``timestamp``, case insensitive.
    :type split_mode: str
    :param holdout_fraction: Fraction of each profile to hold out.
    :type holdout_fraction: float
    :param seed: Seed for the random split mode, ignored by the timestamp mode.
    :type seed: int, optional
    :raises ConfigurationError: If the split mode is unknown or the fraction is invalid.
    :rtype: ProfileSplitter
    """
    mode = str(split_mode).lower()
    if mode not in SPLIT_MODES:
        raise ConfigurationError(f"Invalid split mode: {split_mode}")

    if mode == "random":
        return RandomProfileSplitter(holdout_fraction, seed=seed)
    return SPLIT_MODES[mode](holdout_fraction)
