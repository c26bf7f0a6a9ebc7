"""site-mirror core library.

Mirrors a website into a local directory tree: a depth-bounded crawl over
same-site pages and assets, followed by a rewrite pass that turns intra-site
references into relative file paths so the copy browses offline.
"""

from __future__ import annotations

__all__ = ["__version__"]

__version__ = "0.1.0"
