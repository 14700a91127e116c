"""
Page geometry shared by the PDF compositor.

All units are PDF points with the origin at the bottom-left of the page.
"""

from dataclasses import dataclass

PAGE_WIDTH = 595
PAGE_HEIGHT = 842
MARGIN = 50
FONT_SIZE = 12
LINE_HEIGHT = FONT_SIZE * 1.2


@dataclass(frozen=True)
class PlacedLine:
    page: int
    x: float
    y: float
    text: str


def fit_to_page(width: int | None, height: int | None) -> tuple[float, float]:
    """Size at which an image is drawn: natural size, shrunk uniformly if it overflows the page."""
    w = float(width or PAGE_WIDTH)
    h = float(height or PAGE_HEIGHT)
    if w > PAGE_WIDTH or h > PAGE_HEIGHT:
        scale = min(PAGE_WIDTH / w, PAGE_HEIGHT / h)
        w *= scale
        h *= scale
    return w, h


def split_lines(text: str) -> list[str]:
    return text.replace("\r\n", "\n").replace("\r", "\n").split("\n")


class TextCursor:
    """Vertical write position over a growing sequence of pages."""

    def __init__(self) -> None:
        self.page = 0
        self.y = PAGE_HEIGHT - MARGIN

    @property
    def page_count(self) -> int:
        return self.page + 1

    def place(self) -> tuple[int, float]:
        """Reserve one line and return (page index, baseline y) for it."""
        if self.y < MARGIN + LINE_HEIGHT:
            self.page += 1
            self.y = PAGE_HEIGHT - MARGIN
        placed = (self.page, self.y)
        self.y -= LINE_HEIGHT
        return placed


def layout_lines(text: str) -> list[list[PlacedLine]]:
    """Place every line of `text` and group the placements by page.

    Long lines are not wrapped. Empty lines become a single space so the
    vertical gap survives in the output. At least one page is returned.
    """
    cursor = TextCursor()
    pages: list[list[PlacedLine]] = [[]]
    for line in split_lines(text):
        page, y = cursor.place()
        while len(pages) <= page:
            pages.append([])
        pages[page].append(PlacedLine(page=page, x=MARGIN, y=y, text=line or " "))
    return pages
