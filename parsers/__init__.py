"""
File parsers module.
"""

from parsers.tabular_parser import extract_table

__all__ = [
    "extract_table",
]
