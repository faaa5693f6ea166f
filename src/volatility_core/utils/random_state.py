"""Global random state utilities for reproducible pipeline runs.

Every stochastic step of the pipeline (splitting, fold assignment, tree
ensembles) also receives ``RunConfig.seed`` explicitly. set_global_seed()
covers the remaining process-wide generators (Python ``random`` and NumPy's
legacy global RNG) used by third-party code.

Note:
    set_global_seed() modifies global process-wide RNG state.
"""

from __future__ import annotations

import logging
import os
import random

import numpy as np

logger = logging.getLogger(__name__)


def set_global_seed(seed: int) -> None:
    """Set global RNG state for Python and NumPy.

    Args:
        seed: Integer seed value to set.

    Sets PYTHONHASHSEED in the environment, then seeds Python's random module
    and NumPy's global RNG. Later calls simply overwrite the state.
    """
    os.environ["PYTHONHASHSEED"] = str(seed)
    random.seed(seed)
    np.random.seed(seed)
    logger.debug("Global random seed set to %d", seed)
