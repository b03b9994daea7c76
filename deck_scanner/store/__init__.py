"""Storage package for the local deck store, catalog import and export."""

from .catalog import load_initial_data
from .db import DeckStore
from .export import export_csv, export_json, export_results, write_export

__all__ = [
    "DeckStore",
    "load_initial_data",
    "export_csv",
    "export_json",
    "export_results",
    "write_export",
]
