import sys
from pathlib import Path
from typing import Dict, List, Union

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT / "src") not in sys.path:
    sys.path.insert(0, str(ROOT / "src"))

import pytest

from backlink_checker.models import FetchedPage, FetchFailure


class FakeFetcher:
    """Serves canned fetch outcomes keyed by URL and records every request."""

    def __init__(self, pages: Dict[str, Union[FetchedPage, FetchFailure]]):
        self.pages = pages
        self.calls: List[str] = []
        self.closed = False

    def fetch(self, url: str):
        self.calls.append(url)
        return self.pages[url]

    def close(self) -> None:
        self.closed = True


def html_page(url: str, body: str, status_code: int = 200, reason: str = "OK") -> FetchedPage:
    return FetchedPage(url=url, status_code=status_code, body=body, reason=reason)


@pytest.fixture()
def blog_post_html() -> str:
    """A small article page linking out to a few sites."""

    return """
    <html>
      <head><title>Weekly roundup</title></head>
      <body>
        <nav><a href="/">Home</a><a href="/about">About</a></nav>
        <article>
          <p>This week we tried out <a href="https://www.example.com/">My Site</a> and liked it.</p>
          <p>Also see <a href="mailto:editor@example.com">our editor</a>.</p>
          <p><a href="https://other.org/page">Other page</a></p>
        </article>
      </body>
    </html>
    """
