"""Model families and estimator construction.

The fitting algorithms themselves (least squares, tree induction, boosting)
are scikit-learn's; this module only maps a family tag and hyperparameters to
an estimator instance.
"""

from __future__ import annotations

from typing import Any

from sklearn.ensemble import GradientBoostingRegressor, RandomForestRegressor
from sklearn.linear_model import LinearRegression

from src.volatility_core.config.constants import ModelFamily
from src.volatility_core.errors import ConfigurationError

_ESTIMATORS = {
    ModelFamily.LINEAR: LinearRegression,
    ModelFamily.RANDOM_FOREST: RandomForestRegressor,
    ModelFamily.GRADIENT_BOOSTING: GradientBoostingRegressor,
}


def as_model_family(family: ModelFamily | str) -> ModelFamily:
    """Convert a family tag to ModelFamily.

    Raises:
        ConfigurationError: If the tag is not a known family
    """
    try:
        return ModelFamily(family)
    except ValueError as e:
        raise ConfigurationError(
            f"Unsupported model family: {family}. "
            f"Must be one of: {[f.value for f in ModelFamily]}"
        ) from e


def create_estimator(
    family: ModelFamily | str,
    params: dict[str, Any] | None = None,
    seed: int | None = None,
):
    """Create an unfitted sklearn estimator.

    Args:
        family: Model family
        params: Hyperparameters passed to the estimator constructor
        seed: random_state for tree families (unless given in params)

    Returns:
        sklearn estimator instance

    Raises:
        ConfigurationError: If the family or a hyperparameter name is unknown
    """
    family = as_model_family(family)
    params = dict(params or {})
    if family is not ModelFamily.LINEAR and seed is not None:
        params.setdefault("random_state", seed)

    try:
        return _ESTIMATORS[family](**params)
    except TypeError as e:
        raise ConfigurationError(f"Invalid hyperparameters for {family.value}: {e}") from e


def min_train_samples(family: ModelFamily | str, n_features: int) -> int:
    """Minimum number of records needed to fit a family.

    Linear regression needs one record per coefficient plus the intercept;
    the tree ensembles need at least two records to split.
    """
    family = as_model_family(family)
    if family is ModelFamily.LINEAR:
        return n_features + 1
    return 2
