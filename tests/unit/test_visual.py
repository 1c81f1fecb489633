"""Importing the chart module leaves the caller's matplotlib backend alone."""

from __future__ import annotations

import importlib

import matplotlib


def test_import_keeps_selected_backend():
    import tokenbucketsim.visual

    previous = matplotlib.get_backend()
    try:
        matplotlib.use("svg")
        importlib.reload(tokenbucketsim.visual)
        assert matplotlib.get_backend().lower() == "svg"
    finally:
        matplotlib.use(previous)
