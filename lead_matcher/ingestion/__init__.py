"""Spreadsheet import and export for leads, professionals, and match results."""

from .exporters import export_lead_index, export_match_results, lead_index_to_dataframe, match_results_to_dataframe
from .loaders import UnsupportedFileTypeError, load_lead_requests, load_professionals, load_zip_table

__all__ = [
    "UnsupportedFileTypeError",
    "export_lead_index",
    "export_match_results",
    "lead_index_to_dataframe",
    "load_lead_requests",
    "load_professionals",
    "load_zip_table",
    "match_results_to_dataframe",
]
