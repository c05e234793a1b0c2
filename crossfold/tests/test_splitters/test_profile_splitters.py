# crossfold, Cross-Validation of Rating Predictors
# Copyright (C) 2020  Froomle N.V.
# License: GNU AGPLv3 - https://gitlab.com/recpack-maintainers/recpack/-/blob/master/LICENSE
# Author:
#   Lien Michiels
#   Robin Verachtert

import math

import pytest

from crossfold.exceptions import ConfigurationError, DataError
from crossfold.matrix import Rating, UserProfile
import crossfold.splitters as splitters


def make_profile(n, user=7, timestamps=None):
    if timestamps is None:
        timestamps = [None] * n
    return UserProfile(user, [Rating(i, user, 100 + i, float(i % 5 + 1), timestamps[i]) for i in range(n)])


SPLITTER_CLASSES = [
    lambda f: splitters.RandomProfileSplitter(f, seed=42),
    splitters.TimestampProfileSplitter,
]


@pytest.mark.parametrize("make_splitter", SPLITTER_CLASSES)
@pytest.mark.parametrize("n", [2, 3, 9, 10, 57])
@pytest.mark.parametrize("holdout_fraction", [0.0, 0.1, 0.2, 0.333333, 0.5, 0.9])
def test_split_sizes(make_splitter, n, holdout_fraction):
    splitter = make_splitter(holdout_fraction)
    profile = make_profile(n, timestamps=list(range(n)))

    train, test = splitter.split(profile)

    assert len(test) == math.floor(holdout_fraction * n)
    assert len(train) == n - len(test)

    train_ids = {r.rating_id for r in train}
    test_ids = {r.rating_id for r in test}
    assert not train_ids.intersection(test_ids)
    assert train_ids.union(test_ids) == {r.rating_id for r in profile}


@pytest.mark.parametrize("make_splitter", SPLITTER_CLASSES)
@pytest.mark.parametrize("holdout_fraction", [0.0, 0.5, 0.99])
def test_single_rating_is_never_held_out(make_splitter, holdout_fraction):
    splitter = make_splitter(holdout_fraction)
    profile = make_profile(1, timestamps=[5])

    train, test = splitter.split(profile)

    assert len(train) == 1
    assert test == ()


def test_empty_profile():
    train, test = splitters.RandomProfileSplitter(0.5, seed=1).split(make_profile(0))

    assert train == ()
    assert test == ()


def test_nine_ratings_one_third():
    splitter = splitters.RandomProfileSplitter(0.333333, seed=3)

    train, test = splitter.split(make_profile(9))

    assert len(test) == 2
    assert len(train) == 7


@pytest.mark.parametrize("holdout_fraction", [-0.1, 1.0, 1.5])
@pytest.mark.parametrize(
    "splitter_cls", [splitters.RandomProfileSplitter, splitters.TimestampProfileSplitter]
)
def test_invalid_holdout_fraction(splitter_cls, holdout_fraction):
    with pytest.raises(ConfigurationError):
        splitter_cls(holdout_fraction)


def test_random_split_seed():
    profile = make_profile(20)

    s1 = splitters.RandomProfileSplitter(0.3, seed=1234)
    s2 = splitters.RandomProfileSplitter(0.3, seed=1234)

    assert s1.split(profile) == s2.split(profile)
    # Splitting twice gives the same result
    assert s1.split(profile) == s1.split(profile)


def test_random_split_default_seed_is_kept():
    profile = make_profile(20)

    s1 = splitters.RandomProfileSplitter(0.3)
    s2 = splitters.RandomProfileSplitter(0.3, seed=s1.seed)

    assert s1.split(profile) == s2.split(profile)


def test_random_split_differs_between_seeds():
    profile = make_profile(50)

    tests = {
        tuple(sorted(r.rating_id for r in splitters.RandomProfileSplitter(0.5, seed=seed).split(profile)[1]))
        for seed in range(5)
    }

    assert len(tests) > 1


def test_random_split_depends_on_user():
    s = splitters.RandomProfileSplitter(0.5, seed=0)

    held_out = {
        tuple(r.item for r in s.split(make_profile(50, user=user))[1]) for user in ["alice", "bob", 1, 2, 3]
    }

    assert len(held_out) > 1


def test_timestamp_split_holds_out_most_recent():
    timestamps = [50, 10, 40, 20, 30, 60, 0, 70, 80]
    profile = make_profile(9, timestamps=timestamps)

    train, test = splitters.TimestampProfileSplitter(0.333333).split(profile)

    assert sorted(r.timestamp for r in test) == [70, 80]
    assert max(r.timestamp for r in train) < min(r.timestamp for r in test)
    assert [r.timestamp for r in train] == [0, 10, 20, 30, 40, 50, 60]


def test_timestamp_split_ties_keep_original_order():
    timestamps = [1, 5, 5, 5]
    profile = make_profile(4, timestamps=timestamps)

    train, test = splitters.TimestampProfileSplitter(0.5).split(profile)

    # The two last of the tied ratings, in their original order, are the most recent
    assert [r.rating_id for r in test] == [2, 3]
    assert [r.rating_id for r in train] == [0, 1]


def test_timestamp_split_requires_timestamps():
    profile = make_profile(4)

    with pytest.raises(DataError):
        splitters.TimestampProfileSplitter(0.5).split(profile)


@pytest.mark.parametrize(
    "mode, cls",
    [
        ("random", splitters.RandomProfileSplitter),
        ("RANDOM", splitters.RandomProfileSplitter),
        ("timestamp", splitters.TimestampProfileSplitter),
        ("Timestamp", splitters.TimestampProfileSplitter),
    ],
)
def test_get_profile_splitter(mode, cls):
    splitter = splitters.get_profile_splitter(mode, 0.2, seed=5)

    assert type(splitter) == cls
    assert splitter.holdout_fraction == 0.2


def test_get_profile_splitter_seed():
    splitter = splitters.get_profile_splitter("random", 0.2, seed=5)

    assert splitter.seed == 5


def test_get_profile_splitter_unknown_mode():
    with pytest.raises(ConfigurationError):
        splitters.get_profile_splitter("alphabetical", 0.2)


def test_identifier():
    splitter = splitters.RandomProfileSplitter(0.2, seed=5)

    assert splitter.identifier == "RandomProfileSplitter(holdout_fraction=0.2,seed=5)"
