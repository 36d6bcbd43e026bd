"""Shared page configuration and styling for the admin console pages."""

from __future__ import annotations

from contextlib import contextmanager
from html import escape
from typing import Any, Iterator, Optional

import streamlit as st


_THEME_CSS = """
<style>
:root {
    --fb-accent: #0F766E;
    --fb-accent-soft: #E6F4F1;
    --fb-surface: #FFFFFF;
    --fb-border: rgba(15, 118, 110, 0.18);
    --fb-shadow: 0 12px 30px rgba(15, 23, 42, 0.07);
    --fb-text: #1F2933;
    --fb-muted: #52606D;
}

[data-testid="stAppViewContainer"] {
    background: linear-gradient(180deg, #F3FAF8 0%, #FFFFFF 60%);
}

.block-container {
    padding-top: 2rem;
    padding-bottom: 3rem;
}

.fb-header {
    display: flex;
    align-items: center;
    gap: 1.25rem;
    padding: 1.5rem 1.75rem;
    background: var(--fb-surface);
    border: 1px solid var(--fb-border);
    border-radius: 1.25rem;
    box-shadow: var(--fb-shadow);
    margin-bottom: 1.5rem;
}

.fb-header__icon {
    font-size: 2.5rem;
    line-height: 1;
}

.fb-header__title {
    margin: 0;
    font-size: 2rem;
    font-weight: 700;
    color: var(--fb-text);
}

.fb-header__subtitle {
    margin: 0.25rem 0 0 0;
    color: var(--fb-muted);
}

.fb-card {
    background: var(--fb-surface);
    border: 1px solid var(--fb-border);
    border-radius: 1.25rem;
    box-shadow: var(--fb-shadow);
    padding: 1.5rem 1.75rem;
    margin-bottom: 1.25rem;
}

.fb-card__title {
    margin: 0 0 0.75rem 0;
    font-size: 1.2rem;
    font-weight: 600;
}

.fb-card__description {
    margin-top: -0.25rem;
    color: var(--fb-muted);
}

.fb-shortcode {
    font-family: "JetBrains Mono", "Fira Code", monospace;
    background: var(--fb-accent-soft);
    border-radius: 0.5rem;
    padding: 0.15rem 0.45rem;
}

.fb-field-guide {
    color: var(--fb-muted);
    font-size: 0.92rem;
    margin-top: -0.35rem;
}
</style>
"""


def apply_app_theme(page_title: str, page_icon: Optional[str] = None) -> None:
    """Set up consistent page configuration and inject the shared CSS theme."""

    st.set_page_config(
        page_title=page_title,
        page_icon=page_icon,
        layout="wide",
        initial_sidebar_state="expanded",
    )
    st.markdown(_THEME_CSS, unsafe_allow_html=True)


def page_header(
    title: str,
    subtitle: Optional[str] = None,
    icon: Optional[str] = None,
    *,
    container: Optional[Any] = None,
) -> None:
    icon_markup = f"<span class='fb-header__icon'>{icon}</span>" if icon else ""
    subtitle_markup = (
        f"<p class='fb-header__subtitle'>{escape(subtitle)}</p>" if subtitle else ""
    )
    target = container.markdown if container is not None else st.markdown
    target(
        f"""
        <div class="fb-header">
            {icon_markup}
            <div>
                <h1 class="fb-header__title">{escape(title)}</h1>
                {subtitle_markup}
            </div>
        </div>
        """,
        unsafe_allow_html=True,
    )


@contextmanager
def section_card(title: Optional[str] = None, description: Optional[str] = None) -> Iterator[Any]:
    """Render a styled container with optional title and description."""

    container = st.container()
    container.markdown("<div class='fb-card'>", unsafe_allow_html=True)
    if title:
        container.markdown(f"<h3 class='fb-card__title'>{escape(title)}</h3>", unsafe_allow_html=True)
    if description:
        container.markdown(
            f"<p class='fb-card__description'>{escape(description)}</p>",
            unsafe_allow_html=True,
        )
    try:
        yield container
    finally:
        container.markdown("</div>", unsafe_allow_html=True)


def shortcode_markup(shortcode: str) -> str:
    return f"<code class='fb-shortcode'>{escape(shortcode)}</code>"


__all__ = ["apply_app_theme", "page_header", "section_card", "shortcode_markup"]
