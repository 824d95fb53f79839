from typing import TypedDict, List

# Records passed between extraction, aggregation and rendering
class ExtractionResult(TypedDict):
    """Tags found in a page plus its content with front matter removed."""
    tags: List[str]
    content: str

class TaggedPage(TypedDict):
    """One page listed under a tag in the aggregated index."""
    title: str
    path: str                 # page identity as given by the host

class PageLink(TypedDict):
    """A listing entry ready for rendering on a per-tag page."""
    title: str
    href: str                 # relative to the per-tag page, or "#"
