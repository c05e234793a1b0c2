# crossfold, Cross-Validation of Rating Predictors
# Copyright (C) 2020  Froomle N.V.
# License: GNU AGPLv3 - https://gitlab.com/recpack-maintainers/recpack/-/blob/master/LICENSE
# Author:
#   Lien Michiels
#   Robin Verachtert

from dataclasses import dataclass, field
import logging
from typing import Hashable, Iterable, List, Optional

import numpy as np

from crossfold.exceptions import ConfigurationError
from crossfold.matrix import RatingMatrix
from crossfold.splitters.profile import ProfileSplitter


logger = logging.getLogger("crossfold")


@dataclass
class Fold:
    """One partition of a cross-validation run.

    :param index: Position of the fold, starting at 0.
    :type index: int
    :param train_data: Ratings to train algorithms on.
    :type train_data: RatingMatrix
    :param test_data: Held-out ratings of the fold's test users.
    :type test_data: RatingMatrix
    :param test_users: The users whose profiles were split in this fold.
    :type test_users: List[Hashable]
    """

    index: int
    train_data: RatingMatrix
    test_data: RatingMatrix
    test_users: List[Hashable] = field(default_factory=list)

    @property
    def num_test_ratings(self) -> int:
        return self.test_data.num_ratings


class FoldGenerator:
    """Partitions users into ``num_folds`` groups and builds a :class:`Fold` for each group.

    Users are sorted, shuffled with a seeded generator and dealt out over the groups
    one at a time, so the sizes of two groups never differ by more than one,
    and the same users and seed always give the same partition.

    In fold ``i`` the users of group ``i`` are test users: their profiles are split with
    ``splitter`` into a part used for training and a held-out part.
    All ratings of the other users are used for training.

    **Example**

    With ``num_folds = 3`` and six users, every fold has two test users::

        fold 0   test users: Alice, Dave    train: all other users + rest of Alice and Dave
        fold 1   test users: Bob, Erin      train: all other users + rest of Bob and Erin
        fold 2   test users: Carol, Frank   train: all other users + rest of Carol and Frank

    :param num_folds: Number of folds to create, at least 1.
    :type num_folds: int
    :param splitter: Splits the profile of each test user.
    :type splitter: ProfileSplitter
    :param seed: Seed for the assignment of users to folds.
        Defaults to None, so a random seed will be generated.
    :type seed: int, optional
    :raises ConfigurationError: If ``num_folds`` is smaller than 1.
    """

    def __init__(self, num_folds: int, splitter: ProfileSplitter, seed: Optional[int] = None):
        if isinstance(num_folds, bool) or not isinstance(num_folds, (int, np.integer)) or num_folds < 1:
            raise ConfigurationError(f"num_folds should be a positive integer, got {num_folds}.")

        if seed is None:
            # Set seed if it was not set before.
            seed = np.random.get_state()[1][0]

        self.num_folds = int(num_folds)
        self.splitter = splitter
        self.seed = int(seed)

    @property
    def identifier(self):
        return f"{self.__class__.__name__}(num_folds={self.num_folds},seed={self.seed},splitter={self.splitter.identifier})"

    def partition_users(self, users: Iterable[Hashable]) -> List[List[Hashable]]:
        """Assign every user to exactly one of ``num_folds`` groups.

        :param users: The users to partition, order does not matter.
        :type users: Iterable[Hashable]
        :raises ConfigurationError: If there are fewer users than folds.
        :return: ``num_folds`` disjoint lists of users.
        :rtype: List[List[Hashable]]
        """
        users = sorted(set(users))
        if self.num_folds > len(users):
            raise ConfigurationError(f"Can't create {self.num_folds} folds from {len(users)} users.")

        rstate = np.random.default_rng(self.seed)
        order = rstate.permutation(len(users))

        groups = [[] for _ in range(self.num_folds)]
        for position, ix in enumerate(order):
            groups[position % self.num_folds].append(users[ix])

        return groups

    def split(self, data: RatingMatrix) -> List[Fold]:
        """Create the folds for ``data``.

        :param data: All ratings to cross-validate on.
        :type data: RatingMatrix
        :raises ConfigurationError: If there are fewer users than folds.
        :raises DataError: If a test user's profile can't be split.
        :return: Exactly ``num_folds`` folds, ordered by index.
        :rtype: List[Fold]
        """
        groups = self.partition_users(data.users)

        folds = []
        for fold_ix, test_users in enumerate(groups):
            test_data = data.users_in(test_users)

            train_ids = set(data.users_in(set(data.users).difference(test_users)).rating_ids)
            test_ids = set()
            for _, profile in test_data.profiles:
                train, test = self.splitter.split(profile)
                train_ids.update(r.rating_id for r in train)
                test_ids.update(r.rating_id for r in test)

            fold = Fold(
                index=fold_ix,
                train_data=data.ratings_in(train_ids),
                test_data=data.ratings_in(test_ids),
                test_users=list(test_users),
            )
            logger.debug(
                f"{self.identifier} - Fold {fold_ix}: {len(test_users)} test users, "
                f"{fold.train_data.num_ratings} train ratings, {fold.test_data.num_ratings} test ratings"
            )
            folds.append(fold)

        logger.info(f"Generated {len(folds)} folds over {sum(len(g) for g in groups)} users")
        return folds
