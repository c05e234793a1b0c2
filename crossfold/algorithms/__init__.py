# crossfold, Cross-Validation of Rating Predictors
# Copyright (C) 2020  Froomle N.V.
# License: GNU AGPLv3 - https://gitlab.com/recpack-maintainers/recpack/-/blob/master/LICENSE
# Author:
#   Lien Michiels
#   Robin Verachtert

"""Rating predictors.

Any object with a ``train(X)`` method returning a model,
and a model with a ``predict(user, item)`` method can be evaluated.
:class:`Algorithm` implements this contract on top of scikit-learn's BaseEstimator.

.. currentmodule:: crossfold.algorithms

.. autosummary::
    :toctree: generated/

    Algorithm

    GlobalMean
    UserMean
    ItemMean
    UserItemBias

Creating your own algorithm
---------------------------

Implement ``_fit`` and ``_predict``::

    from crossfold.algorithms import Algorithm

    class Constant(Algorithm):
        def __init__(self, value=3.0):
            super().__init__()
            self.value = value

        def _fit(self, X):
            self.value_ = self.value
            return self

        def _predict(self, user, item):
            return self.value_

"""

from crossfold.algorithms.base import Algorithm
from crossfold.algorithms.baseline import GlobalMean, UserMean, ItemMean, UserItemBias
