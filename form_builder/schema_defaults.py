"""Default values shared between the form builder and the preview."""

from __future__ import annotations

from typing import List

DEFAULT_FORM_TITLE = "New form"
DEFAULT_FIELD_LABEL = "New question"
DEFAULT_PLACEHOLDER = "Type your answer here..."
IMPORTED_PAGE_TITLE = "Imported page"
DEFAULT_SUBMIT_LABEL = "Submit form"
DEFAULT_PREVIEW_INTRO: tuple[str, ...] = (
    "The preview shows the last saved version of each form.",
    "Questions appear or disappear as their visibility rules are met.",
)
MIN_CHOICE_OPTIONS = 1
DEFAULT_CHOICE_OPTION_COUNT = 2


def default_page_title(position: int) -> str:
    """Return the title for a new page at 0-based ``position``."""

    return f"Page {position + 1}"


def preview_intro_list() -> List[str]:
    return list(DEFAULT_PREVIEW_INTRO)
