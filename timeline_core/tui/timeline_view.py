"""Widget that renders the timeline graph in the TUI."""

from rich.console import RenderableType
from rich.text import Text
from textual.widget import Widget

from timeline_core.service import Timeline
from timeline_core.render import render_timeline


class TimelineView(Widget):
    """Scrollable git-log-style view of the timeline rows."""

    can_focus = True

    def __init__(self, timeline: Timeline | None = None, **kwargs):
        super().__init__(**kwargs)
        self._lines: list[Text] = []
        if timeline is not None:
            self._lines = render_timeline(timeline.graph, timeline.layout)

    @property
    def lines(self) -> list[Text]:
        return self._lines

    def update_timeline(self, timeline: Timeline) -> None:
        self._lines = render_timeline(timeline.graph, timeline.layout)
        self.refresh(layout=True)

    def get_content_width(self, container, viewport):
        if not self._lines:
            return 40
        return max(line.cell_len for line in self._lines) + 2

    def get_content_height(self, container, viewport, width):
        return max(len(self._lines), 1)

    def render(self) -> RenderableType:
        if not self._lines:
            return Text("No timeline loaded.", style="dim")
        return Text("\n").join(self._lines)
