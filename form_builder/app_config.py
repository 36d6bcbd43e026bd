"""Streamlit secrets access and the editor password gate."""

from __future__ import annotations

import hashlib
import hmac
from typing import Any, Dict, Optional

import streamlit as st

from form_builder.rest_backend import RestBackend, backend_from_secrets

AUTH_STATE_KEY = "auth"
PASSWORD_HASH_KEY = "editor_password_hash"


def _all_secrets() -> Dict[str, Any]:
    try:
        return {key: st.secrets[key] for key in st.secrets.keys()}
    except FileNotFoundError:
        return {}


def get_backend() -> Optional[RestBackend]:
    """Return the configured backend, or ``None`` to use local form files."""

    return backend_from_secrets(_all_secrets())


def verify_password(password: str) -> bool:
    """Validate a plaintext password against the configured hash."""

    stored_hash = _all_secrets().get(PASSWORD_HASH_KEY, "")
    if not stored_hash:
        return False

    digest = hashlib.sha256(password.encode("utf-8")).hexdigest()
    return hmac.compare_digest(digest, str(stored_hash))


def require_authentication() -> None:
    """Stop the script run until the editor password has been entered."""

    if st.session_state.get(AUTH_STATE_KEY):
        return

    if not _all_secrets().get(PASSWORD_HASH_KEY):
        st.error("Editor password is not configured.")
        st.stop()

    password = st.text_input("Password", type="password")
    if not password:
        st.stop()

    if verify_password(password):
        st.session_state[AUTH_STATE_KEY] = True
        return

    st.error("Incorrect password.")
    st.stop()


__all__ = ["get_backend", "require_authentication", "verify_password"]
