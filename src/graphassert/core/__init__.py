"""graphassert core: structural equivalence, assertion scopes and failure rendering.

Nothing in this package depends on typer or on the settings file; the CLI and
configuration layers sit on top of it.
"""
from __future__ import annotations
