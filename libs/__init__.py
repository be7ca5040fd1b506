# =============================================================================
# AutoML Training Pipeline Shared Libraries
# =============================================================================
# This package contains shared libraries for the training pipeline.
# See individual sub-packages for detailed documentation.
# =============================================================================

"""
AutoML training pipeline shared libraries.

Sub-packages:
- models: Pydantic data models and settings
- automl: ML provider gateway
"""

__version__ = "0.1.0"
