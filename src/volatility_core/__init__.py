"""Volatility Core - S&P 500 volatility forecasting package.

This package provides the cross-sectional volatility modeling pipeline:
- Dataset loading and missing-value handling
- Feature screening (target correlation, variance inflation factors)
- Reproducible train/test and k-fold splitting
- Model training (linear, random forest, gradient boosting) with grid search
- Ensemble and stacked predictors
- Evaluation metrics and diagnostic reports

Main modules:
- data: Schema, loader, cleaning, synthetic sample data
- screening: Correlation and VIF feature screening
- ml: Splitting, trainer, grid search, predictors, explainability
- qa: Regression metrics and prediction-set evaluation
- pipeline: Staged pipeline orchestration
- reports: Plots and metrics export
- config: Run configuration and settings
"""

__version__ = "0.1.0"
