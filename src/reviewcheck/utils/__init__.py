"""Utility modules for ReviewCheck."""

from .data_prep import coerce_reviews, export_to_json, load_analysis_input, prepare_export

__all__ = [
    "coerce_reviews",
    "export_to_json",
    "load_analysis_input",
    "prepare_export",
]
