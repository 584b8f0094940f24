"""Terminal rendering of gallery pages using rich."""
# Created: 2026-10-19

from typing import List, Optional

from rich.console import Console
from rich.table import Table

from .engine import GallerySink
from .models import PlaylistInfo, VideoItem


class ConsoleSink(GallerySink):
    """Prints pages and search results as tables.

    Keeps the last thing it was asked to show so callers can inspect it.
    """

    def __init__(self, console: Optional[Console] = None, show_urls: bool = False):
        self.console = console or Console()
        self.show_urls = show_urls
        self.last_items: List[VideoItem] = []
        self.last_page: Optional[int] = None
        self.page_count = 0
        self.error: Optional[str] = None
        self._status = None

    def _table(self, items: List[VideoItem], title: str) -> Table:
        table = Table(title=title, show_lines=False)
        table.add_column("Title", overflow="fold")
        table.add_column("Duration", justify="right")
        table.add_column("Date")
        table.add_column("Views", justify="right")
        if self.show_urls:
            table.add_column("URL", style="blue")

        for item in items:
            row = [item.title, item.duration, item.date, item.views_display]
            if self.show_urls:
                row.append(item.url)
            table.add_row(*row)
        return table

    def on_page_ready(self, items: List[VideoItem], page_number: int, page_count: int):
        self.last_items = list(items)
        self.last_page = page_number
        self.page_count = page_count

    def on_search_results(self, items: List[VideoItem]):
        self.last_items = list(items)
        self.last_page = None

    def on_error(self, code: str, message: str):
        self.error = f"{code}: {message}"
        self.last_items = []
        self.last_page = None

    def on_loading_start(self):
        self._status = self.console.status("Loading playlist...")
        self._status.start()

    def on_loading_end(self):
        if self._status is not None:
            self._status.stop()
            self._status = None

    def on_clear(self):
        self.last_items = []
        self.last_page = None
        self.error = None

    def render(self, playlist_info: Optional[PlaylistInfo] = None) -> None:
        """Print whatever is currently shown, titled with the playlist if given."""
        if self.error:
            self.console.print(f"[red]Error:[/red] {self.error}")
            self.console.print("Run again with --refresh to retry.")
            return

        if self.last_page is None:
            title = f"Search results ({len(self.last_items)})"
        elif self.page_count == 0:
            self.console.print("[yellow]This playlist has no videos.[/yellow]")
            return
        else:
            title = f"Page {self.last_page} of {self.page_count}"

        if playlist_info is not None:
            title = f"{playlist_info.title} - {title}"
        self.console.print(self._table(self.last_items, title))
