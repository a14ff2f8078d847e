from .coverage import coverage_map, coverage_by_gateway, coverage_stats
from .report import summary_lines, format_report, SUMMARY_HEADER

__all__ = [
    "coverage_map", "coverage_by_gateway", "coverage_stats",
    "summary_lines", "format_report", "SUMMARY_HEADER",
]
