"""Real-time CLI dashboard for proxy monitoring."""

from datetime import datetime
from threading import Lock

from rich.console import Console
from rich.layout import Layout
from rich.live import Live
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from core.config import Config
from ui.log_utils import write_cli_log

console = Console()


class RequestInfo:
    """Info about a single forwarded request."""

    def __init__(self, method: str, path: str, status: int, duration_ms: float, timestamp: datetime):
        self.method = method
        self.path = path[:60] + "..." if len(path) > 60 else path
        self.status = status
        self.duration_ms = duration_ms
        self.timestamp = timestamp


class Dashboard:
    """Real-time dashboard showing recent proxied requests."""

    def __init__(self, config: Config):
        self.config = config
        self._lock = Lock()
        self._recent: list[RequestInfo] = []
        self._max_recent = 12
        self._request_count = {"forwarded": 0, "rejected": 0, "failed": 0}
        self._errors: list[str] = []
        self._live: Live | None = None

    def start(self) -> "Dashboard":
        """Start the live dashboard."""
        self._live = Live(
            self._build_layout(),
            console=console,
            refresh_per_second=4,
            screen=False,
        )
        self._live.start()
        return self

    def stop(self) -> None:
        """Stop the live dashboard."""
        if self._live:
            self._live.stop()

    @property
    def counts(self) -> dict[str, int]:
        return dict(self._request_count)

    def log_forward(
        self,
        method: str,
        path: str,
        target_url: str,
        status: int,
        *,
        duration_ms: float,
    ) -> None:
        """Log a request relayed from the backend."""
        with self._lock:
            self._request_count["forwarded"] += 1
            info = RequestInfo(method, path, status, duration_ms, datetime.now())
            self._recent.insert(0, info)
            self._recent = self._recent[: self._max_recent]
            self._refresh()
            write_cli_log(
                "FORWARD",
                f"{method} {path}",
                target=target_url,
                status=status,
                ms=f"{duration_ms:.0f}",
            )

    def log_rejected(self, method: str, path: str, reason: str) -> None:
        """Log a request refused before forwarding."""
        with self._lock:
            self._request_count["rejected"] += 1
            self._errors.insert(0, f"{method} {path}: {reason}")
            self._errors = self._errors[:3]
            self._refresh()
            write_cli_log("REJECTED", f"{method} {path}", reason=reason)

    def log_error(self, route: str, status: int, message: str) -> None:
        """Log an error."""
        with self._lock:
            self._request_count["failed"] += 1
            truncated = message[:50] + "..." if len(message) > 50 else message
            self._errors.insert(0, f"{route} {status}: {truncated}")
            self._errors = self._errors[:3]
            self._refresh()
            write_cli_log("ERROR", message[:200], route=route, status=status)

    def _refresh(self) -> None:
        """Refresh the display."""
        if self._live:
            self._live.update(self._build_layout())

    def _build_layout(self) -> Layout:
        """Build the dashboard layout."""
        layout = Layout()

        layout.split_column(
            Layout(name="header", size=3),
            Layout(name="body"),
            Layout(name="footer", size=5),
        )

        layout["header"].update(self._build_header())
        layout["body"].update(self._build_requests_panel())
        layout["footer"].update(self._build_footer())

        return layout

    def _build_header(self) -> Panel:
        """Build header with stats."""
        stats = Text()
        stats.append("Shopify App Proxy", style="bold cyan")
        stats.append("  |  ")
        stats.append(f"Forwarded: {self._request_count['forwarded']}", style="green")
        stats.append("  |  ")
        stats.append(f"Rejected: {self._request_count['rejected']}", style="yellow")
        stats.append("  |  ")
        stats.append(f"Failed: {self._request_count['failed']}", style="red")
        stats.append("  |  ")
        stats.append(f"Port: {self.config.proxy.port}", style="dim")

        return Panel(stats, style="cyan")

    def _build_requests_panel(self) -> Panel:
        """Build recent requests panel."""
        if self._recent:
            table = Table(show_header=True, header_style="bold", expand=True, box=None)
            table.add_column("Time", style="dim", width=8)
            table.add_column("Method", width=7)
            table.add_column("Path", ratio=3)
            table.add_column("Status", width=6)
            table.add_column("ms", width=6, justify="right")

            for req in self._recent:
                style = "red" if req.status >= 500 else "yellow" if req.status >= 400 else "green"
                table.add_row(
                    req.timestamp.strftime("%H:%M:%S"),
                    req.method,
                    req.path,
                    Text(str(req.status), style=style),
                    f"{req.duration_ms:.0f}",
                )

            content = table
        else:
            content = Text("Waiting for requests...", style="dim")

        title = f"[blue]{self.config.external_path} -> {self.config.target.base_url}[/blue]"
        return Panel(content, title=title, border_style="blue")

    def _build_footer(self) -> Panel:
        """Build footer with errors and help."""
        if self._errors:
            error_text = Text()
            for err in self._errors:
                error_text.append("! ", style="red bold")
                error_text.append(err + "\n", style="red")
            content = error_text
        else:
            verification = "enforced" if self.config.enforce_signature else "skipped"
            content = Text(
                f"Mode: {self.config.proxy.mode}  |  Signature verification: {verification}",
                style="dim",
            )

        return Panel(content, title="[dim]Status[/dim]", border_style="dim")
