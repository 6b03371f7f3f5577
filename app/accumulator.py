from typing import Optional

from .models import ProcessingResult


def merge_page(
    previous: Optional[ProcessingResult],
    next_page: ProcessingResult,
    *,
    metadata_policy: str = "replace",
) -> ProcessingResult:
    """
    Append the newly fetched page onto what has been read so far.

    - previous is None: the first page is returned as is.
    - content: previous pages first, each page keeps its own order.
    - currentPage / hasMore: always from the newest page.
    - title / author: "replace" takes the newest page's values even when they are missing;
      "keep_first" keeps the first value that was ever present.
    """
    if previous is None:
        return next_page

    title, author = next_page.title, next_page.author
    if metadata_policy == "keep_first":
        title = previous.title if previous.title is not None else title
        author = previous.author if previous.author is not None else author
    elif metadata_policy != "replace":
        raise ValueError(f"unknown metadata policy: {metadata_policy}")

    return ProcessingResult(
        title=title,
        author=author,
        content=previous.content + next_page.content,
        current_page=next_page.current_page,
        has_more=next_page.has_more,
    )
