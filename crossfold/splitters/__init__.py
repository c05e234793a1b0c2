# crossfold, Cross-Validation of Rating Predictors
# Copyright (C) 2020  Froomle N.V.
# License: GNU AGPLv3 - https://gitlab.com/recpack-maintainers/recpack/-/blob/master/LICENSE
# Author:
#   Lien Michiels
#   Robin Verachtert

"""

The splitters module partitions ratings for cross-validation.

A profile splitter divides the ratings of a single user into a part to train on
and a part to hold out.
The fold generator divides the users into groups, and uses a profile splitter
to create the train and test data of each fold.

.. currentmodule:: crossfold.splitters

.. autosummary::
    :toctree: generated/

    ProfileSplitter
    RandomProfileSplitter
    TimestampProfileSplitter
    get_profile_splitter

    Fold
    FoldGenerator

"""

from crossfold.splitters.profile import (
    SPLIT_MODES,
    ProfileSplitter,
    RandomProfileSplitter,
    TimestampProfileSplitter,
    get_profile_splitter,
)
from crossfold.splitters.folds import Fold, FoldGenerator
