"""Streamlit entrypoint; ``streamlit run streamlit_app.py`` opens the forms dashboard."""

from importlib import import_module

import streamlit as st

HOME_MODULE = "Home"


def main() -> None:
    try:
        home = import_module(HOME_MODULE)
    except ModuleNotFoundError:
        st.error(f"{HOME_MODULE}.py could not be imported.")
        return

    render = getattr(home, "main", None)
    if not callable(render):
        st.error(f"{HOME_MODULE}.py does not define main().")
        return
    render()


if __name__ == "__main__":
    main()
