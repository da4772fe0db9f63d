"""Textual editor for JSON documents with nested encoded strings."""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path

from rich.text import Text
from textual.app import App, ComposeResult
from textual.binding import Binding
from textual.containers import Horizontal, Vertical
from textual.timer import Timer
from textual.widgets import Button, Header, Input, Static, TextArea

from ._value import Path as JsonPath
from ._value import dump_json, format_path, loads_container
from .config import EditorConfig
from .diff import DiffRange, DiffType, summarize
from .logging_config import setup_logging
from .scheme import SchemeDecodeResult, SchemeType, find_schemes, reencode
from .session import DocumentSession
from .transforms import TransformMode

logger = logging.getLogger(__name__)

# diff 종류별 상태줄 색
_DIFF_STYLE = {
    DiffType.ADD: "bold green",
    DiffType.DELETE: "bold red",
    DiffType.MODIFY: "bold yellow",
}
_DIFF_MARK = {DiffType.ADD: "+", DiffType.DELETE: "-", DiffType.MODIFY: "~"}


def find_string_at(line: str, col: int | None = None) -> tuple[int, int, str] | None:
    """Find a string value on ``line``.

    Returns (col_start, col_end, string_content) or None if no string value
    found. col_start and col_end include the quotes. When ``col`` falls inside
    a value string that one wins, otherwise the first value on the line.
    """
    # Parse all strings on this line with their positions
    strings: list[tuple[int, int, str]] = []  # (start, end, content)
    i = 0
    while i < len(line):
        if line[i] == '"':
            start = i
            i += 1
            while i < len(line):
                if line[i] == "\\":
                    i += 2
                    continue
                if line[i] == '"':
                    try:
                        content = json.loads(line[start : i + 1])
                        strings.append((start, i + 1, content))
                    except json.JSONDecodeError:
                        pass
                    break
                i += 1
        i += 1

    # key가 아닌 값 문자열만 (':' 뒤 또는 배열 원소)
    values = [
        (start, end, content)
        for start, end, content in strings
        if line[:start].rstrip().endswith((":", "[", ",")) or not line[:start].strip()
    ]
    values = [
        (start, end, content)
        for start, end, content in values
        if not line[end:].lstrip().startswith(":")
    ]
    if not values:
        return None
    if col is not None:
        for start, end, content in values:
            if start <= col < end:
                return (start, end, content)
    return values[0]


def mode_label(mode: TransformMode) -> str:
    if mode is TransformMode.NONE:
        return "RAW"
    if mode is TransformMode.DEEP_FORMAT:
        return "EXPANDED"
    return mode.name.replace("_", " ")


def render_diff_summary(
    ranges: list[DiffRange], mode: TransformMode = TransformMode.NONE, dirty: bool = False
) -> Text:
    """Status line: view mode, modified flag and per-type changed line counts."""
    text = Text()
    text.append(f" {mode_label(mode)} ", style="reverse")
    if dirty:
        text.append(" [+]", style="bold")
    counts = summarize(ranges)
    if not any(counts.values()):
        text.append("  no changes", style="dim")
        return text
    for diff_type in (DiffType.ADD, DiffType.MODIFY, DiffType.DELETE):
        if counts[diff_type]:
            text.append(f"  {_DIFF_MARK[diff_type]}{counts[diff_type]}", style=_DIFF_STYLE[diff_type])
    return text


def describe_layers(result: SchemeDecodeResult) -> str:
    if not result.layers:
        return "no encoding"
    return " → ".join(layer.description for layer in result.layers)


def commit_inspection(edited: str, result: SchemeDecodeResult) -> str:
    """Compact an edited JSON payload and wrap it back in its layers."""
    if result.is_json:
        parsed = loads_container(edited)
        if parsed is not None:
            edited = dump_json(parsed)
    return reencode(edited, result.layers)


class JdeepApp(App):
    """TUI that edits the decoded view of a JSON document and saves its source form."""

    CSS = """
    #editor { height: 1fr; }
    #status { height: 1; background: $panel; }
    #inspect-panel { display: none; height: 50%; border-top: solid $accent; }
    #inspect-panel.visible { display: block; }
    #inspect-header { height: 1; }
    #inspect-title { width: 1fr; }
    #inspect-close { min-width: 5; height: 1; border: none; }
    #query { display: none; }
    #query.visible { display: block; }
    """
    TITLE = "jdeep"
    BINDINGS = [
        Binding("f2", "toggle_expand", "Expand/Collapse"),
        Binding("f3", "inspect", "Inspect"),
        Binding("f4", "query", "Query"),
        Binding("f5", "next_scheme", "Next encoded"),
        Binding("f6", "cycle_mode", "Mode"),
        Binding("ctrl+s", "save", "Save", priority=True),
        Binding("escape", "close_panel", "Close", show=False),
    ]
    ENABLE_COMMAND_PALETTE = False

    def __init__(
        self,
        file_path: str = "",
        initial_content: str = "",
        read_only: bool = False,
        expand: bool = False,
        config: EditorConfig | None = None,
        expanded_view: str | None = None,
        **kwargs,
    ) -> None:
        super().__init__(**kwargs)
        self.file_path = file_path
        self.read_only = read_only
        self.config = config or EditorConfig()
        self.session = DocumentSession(
            initial_content,
            max_depth=self.config.max_depth,
            scheme_max_depth=self.config.scheme_max_depth,
        )
        self._expand_on_mount = expand
        self._adopt_on_mount = expanded_view
        self._pending: Timer | None = None
        # Inspector target - (row, col_start, col_end, decode result)
        self._inspect_target: tuple[int, int, int, SchemeDecodeResult] | None = None
        # 단일 쿼리 결과 편집 대상 경로
        self._query_target: JsonPath | None = None

    def compose(self) -> ComposeResult:
        yield Header(show_clock=True)
        yield TextArea(
            self.session.view,
            read_only=self.read_only,
            show_line_numbers=True,
            id="editor",
        )
        yield Input(placeholder="$.path or $.path=value", id="query")
        with Vertical(id="inspect-panel"):
            with Horizontal(id="inspect-header"):
                yield Static("[b]Inspect[/b]", id="inspect-title")
                yield Button("✕", id="inspect-close", variant="error")
            yield TextArea("", id="inspect-editor")
        yield Static("", id="status")

    def on_mount(self) -> None:
        if self._adopt_on_mount is not None:
            # 이미 펼쳐 둔 파일: 편집은 구조 병합으로 원본에 반영
            self.session.adopt_view(self._adopt_on_mount)
            self._show(self._adopt_on_mount)
        elif self._expand_on_mount:
            self._show(self.session.expand())
        self._update_title()
        self._refresh_status()
        self.query_one("#editor").focus()

    def _update_title(self) -> None:
        ro = " [RO]" if self.read_only else ""
        self.sub_title = (self.file_path or "[new]") + ro

    def _show(self, text: str) -> None:
        self.query_one("#editor", TextArea).load_text(text)

    def _refresh_status(self) -> None:
        editor = self.query_one("#editor", TextArea)
        ranges = self.session.gutter(editor.text)
        self.query_one("#status", Static).update(
            render_diff_summary(ranges, self.session.mode, self.session.is_dirty)
        )

    # -- Editing -----------------------------------------------------------

    def on_text_area_changed(self, event: TextArea.Changed) -> None:
        if event.text_area.id != "editor":
            return
        # 프로그램이 넣은 텍스트의 Changed 이벤트는 무시
        if event.text_area.text == self.session.view:
            return
        if self._pending is not None:
            self._pending.stop()
        self._pending = self.set_timer(self.config.debounce, self._flush_edit)

    def _flush_edit(self) -> None:
        if self._pending is not None:
            self._pending.stop()
            self._pending = None
        text = self.query_one("#editor", TextArea).text
        if text == self.session.view:
            return
        self.session.apply_edit(text)
        self._refresh_status()

    def action_toggle_expand(self) -> None:
        self._flush_edit()
        if self.session.expanded:
            self._show(self.session.collapse())
        else:
            self._show(self.session.expand())
            records = len(self.session.context.records) if self.session.context else 0
            if not records:
                self.notify("No nested JSON strings found", severity="information")
        self._refresh_status()

    def action_cycle_mode(self) -> None:
        self._flush_edit()
        modes = list(TransformMode)
        mode = modes[(modes.index(self.session.mode) + 1) % len(modes)]
        self._show(self.session.set_mode(mode))
        self.notify(f"View: {mode_label(mode)}", severity="information")
        self._refresh_status()

    # -- Inspector ---------------------------------------------------------

    def _is_inspector_focused(self) -> bool:
        focused = self.focused
        return focused is not None and focused.id == "inspect-editor"

    def _open_panel(self, title: str, content: str, read_only: bool) -> None:
        self.query_one("#inspect-title", Static).update(title)
        inspector = self.query_one("#inspect-editor", TextArea)
        inspector.load_text(content)
        inspector.read_only = read_only
        self.query_one("#inspect-panel").add_class("visible")
        inspector.focus()

    def action_inspect(self) -> None:
        editor = self.query_one("#editor", TextArea)
        row, col = editor.cursor_location
        found = find_string_at(editor.document.get_line(row), col)
        if found is None:
            self.notify("Cursor not on a string value", severity="warning")
            return
        col_start, col_end, content = found
        result = self.session.inspect(content)
        self._inspect_target = (row, col_start, col_end, result)
        self._query_target = None
        title = f"[b]Inspect[/b] [dim]{describe_layers(result)}[/dim]"
        if result.scheme_info is not None and result.scheme_info.host:
            title += f" [dim]({result.scheme_info.host})[/dim]"
        self._open_panel(title, result.pretty, self.read_only)

    def _commit_inspector(self) -> None:
        if self._query_target is not None:
            self._commit_query_value(self._query_target)
            return
        if self._inspect_target is None:
            self.notify("Query results are read-only", severity="warning")
            return
        row, col_start, col_end, result = self._inspect_target
        edited = self.query_one("#inspect-editor", TextArea).text
        if edited == result.pretty:
            self.action_close_panel()
            return
        value = commit_inspection(edited, result)
        editor = self.query_one("#editor", TextArea)
        editor.replace(
            json.dumps(value, ensure_ascii=False), (row, col_start), (row, col_end)
        )
        if any(layer.type is SchemeType.JWT for layer in result.layers):
            self.notify("JWT left unchanged: it cannot be re-signed", severity="warning")
        else:
            self.notify("Encoded value updated", severity="information")
        self.action_close_panel()

    def action_close_panel(self) -> None:
        self.query_one("#inspect-panel").remove_class("visible")
        self.query_one("#query").remove_class("visible")
        self._inspect_target = None
        self._query_target = None
        self.query_one("#editor").focus()

    def on_button_pressed(self, event: Button.Pressed) -> None:
        if event.button.id == "inspect-close":
            self.action_close_panel()

    # -- Query -------------------------------------------------------------

    def action_query(self) -> None:
        query_input = self.query_one("#query", Input)
        query_input.add_class("visible")
        query_input.focus()

    def on_input_submitted(self, event: Input.Submitted) -> None:
        if event.input.id != "query" or not event.value.strip():
            return
        self._flush_edit()
        try:
            matches = self.session.query(event.value)
        except ValueError as exc:
            self.notify(f"Query failed: {exc}", severity="error", timeout=6)
            return
        self.query_one("#query").remove_class("visible")
        if not matches:
            self.notify("No matches", severity="warning")
            return
        self._inspect_target = None
        if len(matches) == 1 and not self.read_only:
            path, value = matches[0]
            self._query_target = path
            self._open_panel(
                f"[b]Query[/b] [dim]{format_path(path)} (Ctrl+S to apply)[/dim]",
                dump_json(value, 2),
                read_only=False,
            )
            return
        lines = [
            f"{format_path(path)} = {json.dumps(value, ensure_ascii=False)}"
            for path, value in matches
        ]
        self._query_target = None
        self._open_panel(
            f"[b]Query[/b] [dim]{event.value} ({len(matches)} matches)[/dim]",
            "\n".join(lines),
            read_only=True,
        )

    def _commit_query_value(self, path: JsonPath) -> None:
        edited = self.query_one("#inspect-editor", TextArea).text
        try:
            value = json.loads(edited)
        except json.JSONDecodeError as exc:
            self.notify(f"Invalid JSON: {exc.msg} (line {exc.lineno})", severity="error", timeout=6)
            return
        self._flush_edit()
        try:
            new_view = self.session.replace_value(self.session.view, path, value)
        except ValueError as exc:
            self.notify(f"Update failed: {exc}", severity="error", timeout=6)
            return
        self._show(new_view)
        self._refresh_status()
        self.notify(f"Updated {format_path(path)}", severity="information")
        self.action_close_panel()

    def action_next_scheme(self) -> None:
        editor = self.query_one("#editor", TextArea)
        locations = find_schemes(editor.text)
        if not locations:
            self.notify("No encoded strings", severity="information")
            return
        row = editor.cursor_location[0]
        # 현재 행 다음의 첫 위치, 없으면 처음으로
        target = next((loc for loc in locations if loc.line - 1 > row), locations[0])
        editor.move_cursor((target.line - 1, 0))
        self.notify(f"{target.path_text}: {target.scheme_type.value}", severity="information")

    # -- Save --------------------------------------------------------------

    def action_save(self) -> None:
        if self._is_inspector_focused():
            self._commit_inspector()
            return
        self._flush_edit()
        if self.read_only:
            self.notify("Read-only", severity="warning")
            return
        if not self.file_path:
            self.notify("No file name", severity="warning")
            return
        try:
            path = Path(self.file_path)
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(self.session.source, encoding="utf-8", newline="")
        except OSError as exc:
            self.notify(f"Save failed: {exc}", severity="error", timeout=6)
            return
        logger.info("saved %s (%d chars)", self.file_path, len(self.session.source))
        self.session.mark_saved()
        self._refresh_status()
        self.notify(f"Saved: {self.file_path}", severity="information")


def _read_document(path: Path) -> str:
    with path.open(encoding="utf-8", newline="") as f:
        return f.read()


def main() -> None:
    parser = argparse.ArgumentParser(
        prog="jdeep",
        description="Edit JSON with nested JSON strings expanded in place",
    )
    parser.add_argument(
        "file",
        nargs="?",
        default="",
        help="JSON file to open",
    )
    parser.add_argument("--max-depth", type=int, default=None, help="nested decode depth limit")
    parser.add_argument("--scheme-depth", type=int, default=None, help="inspector decode depth limit")
    parser.add_argument(
        "--expand",
        action="store_true",
        help="start with nested strings expanded",
    )
    parser.add_argument(
        "--print",
        action="store_true",
        dest="print_only",
        help="print the expanded document and exit",
    )
    parser.add_argument(
        "-R", "--read-only",
        action="store_true",
        default=False,
        help="open in read-only mode",
    )
    parser.add_argument(
        "--view",
        metavar="FILE",
        default=None,
        help="edit FILE, an already expanded copy of the document; saves go to the document",
    )
    parser.add_argument("--log-level", default=None, help="DEBUG, INFO, WARNING or ERROR")
    args = parser.parse_args()

    try:
        config = EditorConfig().with_overrides(
            max_depth=args.max_depth,
            scheme_max_depth=args.scheme_depth,
            log_level=args.log_level,
        )
        config.validate()
    except ValueError as exc:
        print(f"jdeep: {exc}", file=sys.stderr)
        sys.exit(2)
    setup_logging(config.log_level)

    file_path: str = args.file
    content = "{}"
    expanded_view = None
    try:
        if file_path:
            path = Path(file_path)
            if path.exists():
                content = _read_document(path)
        elif args.print_only and not sys.stdin.isatty():
            content = sys.stdin.read()
        if args.view:
            expanded_view = _read_document(Path(args.view))
    except (OSError, UnicodeDecodeError) as exc:
        print(f"jdeep: {exc}", file=sys.stderr)
        sys.exit(1)

    if args.print_only:
        session = DocumentSession(content, max_depth=config.max_depth)
        sys.stdout.write(session.expand())
        sys.stdout.write("\n")
        return

    app = JdeepApp(
        file_path=file_path,
        initial_content=content,
        read_only=args.read_only,
        expand=args.expand,
        config=config,
        expanded_view=expanded_view,
    )
    app.run()


if __name__ == "__main__":
    main()
