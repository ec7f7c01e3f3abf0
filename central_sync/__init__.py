"""
central-sync - keep a central monorepo and its module repositories in step.

This package splits a central repository into per-module repositories,
propagates central changes into them, and replays module commits back onto
the central repository for review, preserving commit authorship and messages.
"""

__version__ = "1.0.0"
