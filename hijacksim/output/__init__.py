# hijacksim/output/__init__.py
from .report import format_lines, summary_rows, to_dict, write_json

__all__ = [
    "format_lines",
    "summary_rows",
    "to_dict",
    "write_json",
]
