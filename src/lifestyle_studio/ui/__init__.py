"""Gradio web UI for Lifestyle Studio.

Modules
-------
app
    Page layout, event wiring and the ``lifestyle-studio-ui`` entry point.
handlers
    Event handlers operating on the per-tab ``StudioSession``.
state
    Lazy creation of the per-tab session.
"""
