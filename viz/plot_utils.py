"""Shared Plotly output helpers resilient to transient browser disconnects."""

from __future__ import annotations

import errno
from typing import Callable

import plotly.graph_objs as go
from plotly.offline import plot


_ECONNRESET_CODES = {errno.ECONNRESET}
if hasattr(errno, "WSAECONNRESET"):
    _ECONNRESET_CODES.add(getattr(errno, "WSAECONNRESET"))


def _is_connection_reset(err: OSError) -> bool:
    err_no = getattr(err, "errno", None)
    win_err = getattr(err, "winerror", None)
    return (
        isinstance(err, ConnectionResetError)
        or err_no in _ECONNRESET_CODES
        or win_err in _ECONNRESET_CODES
    )


def guard_connection_reset(action: Callable[[], None], *, context: str) -> None:
    """Execute ``action``, ignoring only connection resets from Plotly's viewer."""
    try:
        action()
    except OSError as err:
        if _is_connection_reset(err):
            print(f"[viz] Ignore connection reset during {context}: {err}")
            return
        raise


def handle_save_or_show(
    fig: go.Figure,
    *,
    save_html: bool,
    auto_open: bool,
    filepath: str,
) -> None:
    """Persist or display ``fig`` according to the configured I/O policy."""
    if save_html:
        guard_connection_reset(
            lambda: plot(fig, filename=filepath, auto_open=auto_open, include_plotlyjs=True),
            context=f"saving Plotly HTML to {filepath}",
        )
    elif auto_open:
        guard_connection_reset(fig.show, context="opening Plotly viewer")
