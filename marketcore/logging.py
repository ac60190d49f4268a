"""
Structured logging setup.

Modules log through ``structlog.get_logger(__name__)``; applications call
``configure()`` once at startup to pick a renderer.
"""

from __future__ import annotations

import logging

import structlog


def configure(level: int = logging.INFO, *, json: bool = False) -> None:
    """
    Install the structlog processor chain.

    Example:
        from marketcore import logging as mlog
        mlog.configure(json=True)
    """
    renderer = (
        structlog.processors.JSONRenderer()
        if json
        else structlog.dev.ConsoleRenderer()
    )
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level),
    )


__all__ = ("configure",)
