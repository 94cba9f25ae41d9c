"""
Report aggregation and rendering
"""

from .aggregator import (
    ClusterReport,
    IssueSection,
    OverallVerdict,
    SummaryRow,
    aggregate,
    endpoint_domain_result,
)
from .renderer import ReportRenderer, render_report

__all__ = [
    "ClusterReport",
    "IssueSection",
    "OverallVerdict",
    "SummaryRow",
    "aggregate",
    "endpoint_domain_result",
    "ReportRenderer",
    "render_report",
]
