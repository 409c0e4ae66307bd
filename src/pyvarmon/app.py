"""pyvarmon - Main Textual application."""

import logging
import time
from queue import Empty, Queue

from rich.markup import escape
from textual.app import App, ComposeResult
from textual.containers import Container
from textual.widgets import DataTable, Footer, Sparkline, Static

from pyvarmon.config import MonitorConfig, parse_args, setup_logging
from pyvarmon.models import ServiceReport
from pyvarmon.monitor import ServiceMonitor
from pyvarmon.service import Services, format_bytes

logger = logging.getLogger(__name__)


class ServicesTable(Container):
    """Container for the per-service status table."""

    DEFAULT_CSS = """
    ServicesTable {
        height: auto;
        max-height: 50%;
        border: solid $primary;
    }
    """

    def __init__(self, *args, **kwargs) -> None:
        """Initialize ServicesTable."""
        super().__init__(*args, **kwargs)
        self._row_keys: set[str] = set()

    def compose(self) -> ComposeResult:
        """Compose the services table."""
        yield DataTable(id="services-table")

    def on_mount(self) -> None:
        """Initialize the data table when mounted."""
        table = self.query_one("#services-table", DataTable)
        table.cursor_type = "row"

        table.add_column("Port", key="port", width=7)
        table.add_column("Status", key="status", width=30)
        table.add_column("Memory", key="memory", width=30)
        table.add_column("Samples", key="samples", width=8)

    def update_services(self, reports: list[ServiceReport]) -> None:
        """
        Update the table with new reports.

        Rows are keyed by position, so the configured order is kept and
        duplicate ports get rows of their own.
        """
        table = self.query_one("#services-table", DataTable)
        for index, report in enumerate(reports):
            row_key = str(index)
            cells = (
                report.port,
                report.status_line,
                report.meminfo,
                str(len(report.memory)),
            )
            if row_key in self._row_keys:
                for column, value in zip(("port", "status", "memory", "samples"), cells):
                    table.update_cell(row_key, column, value)
            else:
                table.add_row(*cells, key=row_key)
                self._row_keys.add(row_key)


class MemoryGraph(Container):
    """Memory history of the highlighted service."""

    DEFAULT_CSS = """
    MemoryGraph {
        height: 1fr;
        padding: 0 1;
    }

    #graph-title {
        text-style: bold;
    }

    #memory-sparkline {
        height: 1fr;
        margin: 1 0;
    }
    """

    def compose(self) -> ComposeResult:
        """Compose the graph layout."""
        yield Static("No service selected", id="graph-title")
        yield Sparkline([], summary_function=max, id="memory-sparkline")
        yield Static("", id="graph-info")

    def show(self, report: ServiceReport | None) -> None:
        """Render the memory history and details of a single service."""
        title = self.query_one("#graph-title", Static)
        sparkline = self.query_one("#memory-sparkline", Sparkline)
        info = self.query_one("#graph-info", Static)

        if report is None:
            title.update("No service selected")
            sparkline.data = []
            info.update("")
            return

        sparkline.data = list(report.memory)
        if report.memory_last is not None:
            last = format_bytes(report.memory_last * 1024)
            peak = format_bytes(report.memory_max * 1024)
            title.update(f"{report.name} memory: {last} (max {peak})")
        else:
            title.update(f"{report.name} memory: no samples")

        lines = [report.addr]
        if report.cmdline:
            lines.append(escape(report.cmdline))
        if report.memstats is not None:
            stats = report.memstats
            lines.append(
                f"Heap: {format_bytes(stats.heap_alloc)} / {format_bytes(stats.heap_sys)}"
                f"  GC runs: {stats.num_gc}"
            )
        if report.error:
            lines.append(f"[red]{escape(report.error)}[/red]")
        info.update("\n".join(lines))


class PyvarmonApp(App):
    """Main pyvarmon application."""

    TITLE = "pyvarmon"
    SUB_TITLE = "Expvar Memory Monitor"

    CSS = """
    Screen {
        layout: vertical;
    }
    """

    BINDINGS = [
        ("q", "quit", "Quit"),
    ]

    def __init__(self, config: MonitorConfig | None = None) -> None:
        """Initialize the PyvarmonApp."""
        super().__init__()
        self._config = config if config is not None else MonitorConfig()
        services = Services.from_ports(
            self._config.ports,
            endpoint=self._config.endpoint,
            timeout=self._config.timeout,
            capacity=self._config.capacity,
        )
        self._update_queue: Queue[list[ServiceReport]] = Queue()
        self._monitor = ServiceMonitor(services, self._update_queue, poll_rate=self._config.interval)
        self._reports: list[ServiceReport] = []
        self._selected: int = 0

    def compose(self) -> ComposeResult:
        """Compose the application layout."""
        yield ServicesTable()
        yield MemoryGraph()
        yield Footer()

    def on_mount(self) -> None:
        """Start the service monitor when the app is mounted."""
        self._monitor.start()
        # Set up a timer to poll the queue for updates
        self.set_interval(0.5, self._check_for_updates)

    def _check_for_updates(self) -> None:
        """Check the queue for service reports and refresh the UI."""
        # Drain the queue to get the most recent reports
        reports = None
        while True:
            try:
                reports = self._update_queue.get_nowait()
            except Empty:
                break

        if reports is not None:
            self.update_reports(reports)

    def update_reports(self, reports: list[ServiceReport]) -> None:
        """Update the UI with a new set of service reports."""
        self._reports = reports
        self.query_one(ServicesTable).update_services(reports)
        self._show_selected()

    def on_data_table_row_highlighted(self, event: DataTable.RowHighlighted) -> None:
        """Follow the table cursor with the memory graph."""
        self._selected = event.cursor_row
        self._show_selected()

    def _show_selected(self) -> None:
        report = None
        if 0 <= self._selected < len(self._reports):
            report = self._reports[self._selected]
        self.query_one(MemoryGraph).show(report)

    def action_quit(self) -> None:
        """Handle quit action with graceful cleanup."""
        self._monitor.stop()
        self.exit()


def run_dummy(config: MonitorConfig, iterations: int | None = None) -> None:
    """Poll without a UI, printing one status block per interval."""
    services = Services.from_ports(
        config.ports,
        endpoint=config.endpoint,
        timeout=config.timeout,
        capacity=config.capacity,
    )
    monitor = ServiceMonitor(services, Queue(), poll_rate=config.interval)
    count = 0
    while iterations is None or count < iterations:
        for report in monitor.poll_once():
            print(f"{report.status_line}: {report.meminfo}", flush=True)
            if report.error:
                print(f"    {report.error}", flush=True)
        count += 1
        if iterations is None or count < iterations:
            time.sleep(config.interval)


def main(argv: list[str] | None = None) -> None:
    """Entry point for pyvarmon application."""
    config = parse_args(argv)
    setup_logging(config)
    logger.info("monitoring ports %s", ", ".join(config.ports))
    if config.dummy:
        try:
            run_dummy(config)
        except KeyboardInterrupt:
            pass
        return
    app = PyvarmonApp(config)
    app.run()


if __name__ == "__main__":
    main()
