"""
Report rendering - rich console output of a ClusterReport

Layout:
1. CLUSTER DELIVERY TEMPLATE header
2. cluster information
3. service endpoints (every role, placeholders for missing ones)
4. validation summary table (five fixed rows)
5. overall status line
6. detailed issues breakdown (only when issues were found)
7. endpoint probe details (verbose only)
"""

from typing import List, Optional

from rich import box
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from ..models import EndpointStatus, HealthStatus, SERVICE_LABELS
from .aggregator import ClusterReport, IssueSection, endpoint_issue_reason

MAX_ISSUE_WIDTH = 77

_STATUS_STYLE = {
    HealthStatus.FAILED: "red",
    HealthStatus.DEGRADED: "yellow",
}

_ENDPOINT_STYLE = {
    EndpointStatus.HEALTHY: "green",
    EndpointStatus.DNS_FAILED: "red",
    EndpointStatus.HTTP_FAILED: "red",
}


def truncate(text: str, width: int = MAX_ISSUE_WIDTH) -> str:
    if len(text) > width:
        return text[:width - 3] + "..."
    return text


def section_heading(section: IssueSection) -> str:
    if section.title == "POD ISSUES":
        return f"⚠️  POD ISSUES ({section.count} pods with problems):"
    return f"❌ {section.title} ({section.count} issues):"


def overall_status_line(report: ClusterReport) -> str:
    if report.all_healthy and report.unavailable:
        return (
            f"⚠️  OVERALL STATUS: NO ISSUES FOUND - "
            f"{len(report.unavailable)} DOMAINS NOT CHECKED ⚠️"
        )
    if report.all_healthy:
        return "🎉 OVERALL STATUS: ALL SYSTEMS HEALTHY - CLUSTER READY FOR DELIVERY! 🎉"
    return f"⚠️  OVERALL STATUS: {report.total_issues} ISSUES FOUND - REVIEW REQUIRED ⚠️"


class ReportRenderer:
    """Render a ClusterReport to a rich Console

    Example:
        renderer = ReportRenderer(Console(), verbose=True)
        renderer.render(report)
    """

    def __init__(self, console: Optional[Console] = None, verbose: bool = False):
        self.console = console or Console()
        self.verbose = verbose

    def render(self, report: ClusterReport):
        self.print_header("CLUSTER DELIVERY TEMPLATE")
        self.print_cluster_info(report)
        self.print_service_endpoints(report)
        self.print_summary(report)
        self.print_overall_status(report)
        if not report.all_healthy:
            self.print_issues(report)
        if report.unavailable:
            self.print_unavailable(report)
        if self.verbose and report.endpoint_results:
            self.print_endpoint_details(report)

    def print_header(self, title: str):
        self.console.print()
        self.console.print(Panel(f"[bold cyan]{title}[/bold cyan]", expand=False))
        self.console.print()

    def _key_value_table(self, title: str) -> Table:
        table = Table(title=title, box=box.ROUNDED, show_header=False, title_style="bold")
        table.add_column("Field", style="bold", min_width=20)
        table.add_column("Value", overflow="fold")
        return table

    def print_cluster_info(self, report: ClusterReport):
        table = self._key_value_table("CLUSTER INFORMATION")
        table.add_row("Cluster Name", report.cluster_name)
        table.add_row("Cluster Version", report.cluster_version)
        table.add_row("Istio Version", report.mesh_version)
        table.add_row("Namespaces", report.namespace or "(Product team namespaces only)")

        nodes = report.nodes
        table.add_row("Nodes", f"{nodes.healthy}/{nodes.total} ready")
        pods = report.pods
        table.add_row(
            "Pods",
            f"{pods.total} (running {pods.running}, failed {pods.failed}, pending {pods.pending})",
        )
        self.console.print(table)
        self.console.print()

    def print_service_endpoints(self, report: ClusterReport):
        table = self._key_value_table("SERVICE ENDPOINTS")
        for role, url in report.service_endpoints.items():
            table.add_row(SERVICE_LABELS[role], url)
        self.console.print(table)
        self.console.print()

    def print_summary(self, report: ClusterReport):
        table = Table(title="VALIDATION SUMMARY", box=box.ROUNDED, title_style="bold")
        table.add_column("Component", min_width=20)
        table.add_column("Status", min_width=10)
        table.add_column("Healthy", justify="right")
        table.add_column("Total", justify="right")
        table.add_column("Issues", justify="right")

        for row in report.summary:
            issues_style = "red" if row.issues else "green"
            table.add_row(
                row.component,
                row.status,
                str(row.healthy),
                str(row.total),
                f"[{issues_style}]{row.issues}[/{issues_style}]",
            )
        self.console.print(table)
        self.console.print()

    def print_overall_status(self, report: ClusterReport):
        style = "bold green" if report.all_healthy and not report.unavailable else "bold yellow"
        self.console.print(f"[{style}]{overall_status_line(report)}[/{style}]")
        self.console.print()

    def issue_lines(self, report: ClusterReport) -> List[str]:
        lines = []
        for section in report.sections:
            lines.append(f"[bold]{section_heading(section)}[/bold]")
            for issue in section.issues:
                style = _STATUS_STYLE.get(issue.status, "white")
                text = escape(truncate(f"   • {issue.describe()}"))
                lines.append(f"[{style}]{text}[/{style}]")
            lines.append("")
        if not lines:
            # issues come only from unavailable domains
            lines.append("No specific issues to report.")
        return lines

    def print_issues(self, report: ClusterReport):
        body = "\n".join(self.issue_lines(report)).rstrip()
        self.console.print(Panel(body, title="🔍 DETAILED ISSUES BREAKDOWN", box=box.ROUNDED))
        self.console.print()

    def print_unavailable(self, report: ClusterReport):
        self.console.print("[yellow]⚠️  Domains that could not be checked:[/yellow]")
        for domain, error in report.unavailable:
            self.console.print(f"   • {domain.value}: {error}", markup=False)
        self.console.print()

    def print_endpoint_details(self, report: ClusterReport):
        table = Table(title="INGRESS ENDPOINTS", box=box.SIMPLE, title_style="bold")
        table.add_column("#", justify="right")
        table.add_column("URL", overflow="fold")
        table.add_column("Namespace / Ingress")
        table.add_column("Result")

        for i, result in enumerate(report.endpoint_results, 1):
            source = ""
            if result.candidate is not None:
                source = f"{result.candidate.namespace} / {result.candidate.ingress_name}"
            if result.status is EndpointStatus.HEALTHY:
                outcome = f"HTTP {result.status_code}"
            else:
                outcome = endpoint_issue_reason(result)
            style = _ENDPOINT_STYLE[result.status]
            table.add_row(str(i), result.url, source, f"[{style}]{outcome}[/{style}]")
        self.console.print(table)
        self.console.print()


def render_report(report: ClusterReport, console: Optional[Console] = None, verbose: bool = False):
    ReportRenderer(console, verbose=verbose).render(report)
