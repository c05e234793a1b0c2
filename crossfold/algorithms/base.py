# crossfold, Cross-Validation of Rating Predictors
# Copyright (C) 2020  Froomle N.V.
# License: GNU AGPLv3 - https://gitlab.com/recpack-maintainers/recpack/-/blob/master/LICENSE
# Author:
#   Lien Michiels
#   Robin Verachtert

import logging
import math
import time
from typing import Hashable, Optional

from sklearn.base import BaseEstimator, clone
from sklearn.utils.validation import check_is_fitted

from crossfold.exceptions import AlgorithmError
from crossfold.matrix import RatingMatrix


logger = logging.getLogger("crossfold")


class Algorithm(BaseEstimator):
    """Base class for all crossfold rating predictors.

    An Algorithm object holds only configuration.
    :meth:`train` never modifies it, but returns a trained copy: the model.
    Models are scoped to the training data they were built from,
    so one configured algorithm can be trained on every fold without leaking state between folds.

    Usually a new algorithm will have to
    implement just the :meth:`_fit` and :meth:`_predict` methods.
    Attributes learned by :meth:`_fit` should end in an underscore.
    """

    def __init__(self):
        super().__init__()

    @property
    def name(self):
        """Name of the object's class."""
        return self.__class__.__name__

    @property
    def identifier(self):
        """Name of the object.

        Name is made by combining the class name with the parameters
        passed at construction time.

        Constructed by recreating the initialisation call.
        Example: ``Algorithm(param_1=value)``
        """
        paramstring = ",".join((f"{k}={v}" for k, v in self.get_params().items()))
        return self.name + "(" + paramstring + ")"

    def __str__(self):
        return self.name

    def _fit(self, X: RatingMatrix):
        """Stub implementation for fitting an algorithm.

        Will be called by the :meth:`train` wrapper, on a fresh copy of the algorithm.
        Child classes should implement this function.

        :param X: Ratings to fit the model to
        :type X: RatingMatrix
        :raises NotImplementedError: Implement this method in the child class
        """
        raise NotImplementedError("Please implement _fit")

    def _predict(self, user: Hashable, item: Hashable) -> Optional[float]:
        """Stub for predicting the rating of a user for an item.

        Will be called by the :meth:`predict` wrapper.
        Child classes should implement this function.

        :return: The predicted rating, or None if it can't be predicted.
        :rtype: Optional[float]
        :raises NotImplementedError: Implement this method in the child class
        """
        raise NotImplementedError("Please implement _predict")

    def _check_fit_complete(self):
        """Helper function to check if model was correctly fitted

        Uses the sklearn check_is_fitted function,
        https://scikit-learn.org/stable/modules/generated/sklearn.utils.validation.check_is_fitted.html
        """
        check_is_fitted(self)

    def fit(self, X: RatingMatrix) -> "Algorithm":
        """Fit this object to the ratings in X, in place.

        This function will handle some generic bookkeeping
        for each of the child classes,

        - The fit function gets timed, and this will get logged
        - The model is trained using the :meth:`_fit` method
        - :meth:`_check_fit_complete` is called to check fitting was successful

        :param X: The ratings to fit the model on.
        :type X: RatingMatrix
        :raises AlgorithmError: If there are no ratings to train on.
        :return: **self**, fitted algorithm
        :rtype: Algorithm
        """
        if X.num_ratings == 0:
            raise AlgorithmError(f"{self.name} can't be trained without ratings.")

        start = time.time()
        self._fit(X)

        self._check_fit_complete()
        end = time.time()
        logger.debug(f"Fitting {self.name} complete - Took {end - start :.3}s")
        return self

    def train(self, X: RatingMatrix) -> "Algorithm":
        """Build a model from the ratings in X.

        An untrained copy of this algorithm is created with the same parameters,
        and fitted with :meth:`fit`. This object itself is left untouched.

        :param X: The ratings to fit the model on.
        :type X: RatingMatrix
        :raises AlgorithmError: If there are no ratings to train on.
        :return: The trained model.
        :rtype: Algorithm
        """
        return clone(self).fit(X)

    def predict(self, user: Hashable, item: Hashable) -> Optional[float]:
        """Predict the rating ``user`` would give ``item``.

        Can only be called on a model returned by :meth:`train`.

        :param user: The user to predict for.
        :type user: Hashable
        :param item: The item to predict the rating of.
        :type item: Hashable
        :return: The predicted rating, None if the model can't predict it.
        :rtype: Optional[float]
        """
        self._check_fit_complete()

        value = self._predict(user, item)
        if value is None or math.isnan(value):
            return None
        return float(value)
