"""
AI Cost Router.

Cost-aware model selection and usage cost tracking.
"""

__version__ = "0.1.0"
