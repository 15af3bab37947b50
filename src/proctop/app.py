"""proctop - Main Textual application."""

import logging
import sys
from collections.abc import Sequence

from textual import events
from textual.app import App, ComposeResult
from textual.containers import Container
from textual.widgets import DataTable, Static

from proctop.config import MonitorConfig, configure_logging
from proctop.errors import MonitorError, TerminalInitError, TerminalIOError
from proctop.metrics import format_bytes
from proctop.models import ProcessRow
from proctop.monitor import SnapshotCollector
from proctop.session import KeyEvent, KeyKind, MonitorSession, ViewModel

logger = logging.getLogger(__name__)

COMMAND_HINT = "cpu | memory | ppid | state | start_time | priority | none | /R,Z | all | PID"

KEY_KINDS: dict[str, KeyKind] = {
    "up": KeyKind.UP,
    "down": KeyKind.DOWN,
    "enter": KeyKind.ENTER,
    "backspace": KeyKind.BACKSPACE,
}


def to_key_event(key: str, character: str | None) -> KeyEvent:
    """Translate a Textual key name and character into a KeyEvent."""
    if key in KEY_KINDS:
        return KeyEvent(KEY_KINDS[key])
    if character is not None and len(character) == 1 and character.isprintable():
        return KeyEvent.of_char(character)
    return KeyEvent(KeyKind.OTHER)


class HeaderStats(Static):
    """Header widget showing the snapshot summary."""

    DEFAULT_CSS = """
    HeaderStats {
        height: auto;
        padding: 0 1;
        background: $surface;
    }
    """

    def show(self, text: str) -> None:
        self.update(text)


class ProcessGrid(DataTable, can_focus=False):
    """Process table that never takes focus, so every key reaches the app."""


class ProcessTable(Container):
    """Container for the process data table."""

    DEFAULT_CSS = """
    ProcessTable {
        height: 1fr;
        border: solid $primary;
    }

    ProcessTable > ProcessGrid {
        height: 1fr;
    }
    """

    def compose(self) -> ComposeResult:
        """Compose the process table."""
        yield ProcessGrid(id="process-table", cursor_type="none", show_cursor=False)

    def on_mount(self) -> None:
        """Initialize the data table when mounted."""
        table = self.query_one("#process-table", ProcessGrid)

        # Add columns
        table.add_column("PID", key="pid", width=8)
        table.add_column("PPID", key="ppid", width=8)
        table.add_column("S", key="state", width=3)
        table.add_column("PRI", key="priority", width=4)
        table.add_column("CLASS", key="bucket", width=7)
        table.add_column("CPU%", key="cpu", width=8)
        table.add_column("MEM%", key="mem", width=8)
        table.add_column("VIRT", key="virt", width=8)
        table.add_column("RES", key="res", width=8)
        table.add_column("START", key="start", width=10)
        table.add_column("Command", key="command")

    @property
    def viewport_height(self) -> int:
        """Rows that fit below the column header."""
        return max(1, self.content_region.height - 1)

    def show_rows(self, rows: Sequence[ProcessRow]) -> None:
        """Replace the visible rows with the given slice of the view."""
        table = self.query_one("#process-table", ProcessGrid)
        table.clear()
        for row in rows:
            record = row.record
            table.add_row(
                str(record.pid),
                str(record.ppid),
                record.state.code,
                str(record.priority),
                row.priority_bucket.value,
                f"{row.cpu_percent:5.1f}",
                f"{row.memory_percent:5.1f}",
                format_bytes(record.virtual_memory_bytes),
                format_bytes(record.resident_memory_bytes),
                str(record.start_ticks),
                record.name[:50],
                key=str(record.pid),
            )


class CommandLine(Static):
    """The line the user types commands into."""

    DEFAULT_CSS = """
    CommandLine {
        height: 1;
        padding: 0 1;
    }
    """

    def show(self, buffer: str) -> None:
        self.update(f"> {buffer}" if buffer else f"> {COMMAND_HINT}")


class OutputPane(Static):
    """Result or error text from the most recent command."""

    DEFAULT_CSS = """
    OutputPane {
        height: auto;
        max-height: 10;
        padding: 0 1;
        border-top: solid $primary;
    }
    """

    def show(self, text: str) -> None:
        self.update(text)


class ProctopApp(App):
    """Main proctop application."""

    TITLE = "proctop"
    SUB_TITLE = "Python Process Monitor"

    CSS = """
    Screen {
        layout: vertical;
    }
    """

    def __init__(self, session: MonitorSession, config: MonitorConfig | None = None) -> None:
        """Initialize the ProctopApp."""
        super().__init__()
        self._session = session
        self._config = config if config is not None else MonitorConfig()
        self.last_frame: ViewModel | None = None
        self.started = False

    @property
    def session(self) -> MonitorSession:
        return self._session

    def compose(self) -> ComposeResult:
        """Compose the application layout."""
        yield HeaderStats(id="header-stats", markup=False)
        yield ProcessTable()
        yield OutputPane(id="last-output", markup=False)
        yield CommandLine(id="command-line", markup=False)

    def on_mount(self) -> None:
        """Draw the first frame and start the refresh timer."""
        self.started = True
        self.call_after_refresh(self._run_iteration)
        # The timer is both the input-poll bound and the data refresh period
        self.set_interval(self._config.poll_interval, self._run_iteration)

    def on_key(self, event: events.Key) -> None:
        """Feed a key press to the state machine, then run an iteration."""
        event.stop()
        self._session.handle(to_key_event(event.key, event.character))
        if self._session.terminated:
            self.exit()
            return
        self._run_iteration()

    def _run_iteration(self) -> None:
        """Refresh the snapshot and draw it; a collection failure ends the app."""
        try:
            self._session.refresh()
        except MonitorError as err:
            logger.error("Snapshot collection failed: %s", err)
            self.exit(result=err, return_code=1)
            return
        self._draw()

    def _draw(self) -> None:
        table = self.query_one(ProcessTable)
        frame = self._session.frame(table.viewport_height)
        self.query_one("#header-stats", HeaderStats).show(frame.header)
        table.show_rows(frame.rows)
        self.query_one("#last-output", OutputPane).show(frame.last_output)
        self.query_one("#command-line", CommandLine).show(frame.input_buffer)
        self.last_frame = frame


def run(config: MonitorConfig) -> int:
    """
    Run the monitor until the user quits.

    The first snapshot is collected before the terminal is touched, so an
    unreadable process table is reported on a normal screen. ``App.run``
    restores the terminal on every exit path before errors propagate.
    """
    collector = SnapshotCollector(
        memory_basis=config.memory_basis,
        skip_unreadable_records=config.skip_unreadable_records,
    )
    session = MonitorSession(collector, config)
    session.refresh()

    app = ProctopApp(session, config)
    try:
        result = app.run()
    except OSError as err:
        if app.started:
            raise TerminalIOError(f"terminal failure: {err}") from err
        raise TerminalInitError(f"cannot initialize terminal: {err}") from err

    if isinstance(result, MonitorError):
        raise result
    return app.return_code or 0


def main(argv: Sequence[str] | None = None) -> None:
    """Entry point for proctop application."""
    config = MonitorConfig.from_args(argv)
    configure_logging(config)
    try:
        code = run(config)
    except MonitorError as err:
        logger.error("proctop stopped (%s): %s", err.kind.value, err)
        sys.exit(f"proctop: {err}")
    sys.exit(code)


if __name__ == "__main__":
    main()
