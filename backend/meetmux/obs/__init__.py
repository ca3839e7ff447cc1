"""Observability bootstrap: structured logging, request metrics, request ids."""

from __future__ import annotations

from fastapi import FastAPI

from meetmux.obs import logging as obs_logging
from meetmux.obs import middleware
from meetmux.settings import settings

_initialised = False


def init(app: FastAPI) -> None:
	"""Install logging and middleware once.

	Request ids are bound even with observability off; error bodies carry them.
	"""
	global _initialised
	if _initialised:
		return
	if settings.obs_enabled:
		obs_logging.configure_logging()
	middleware.install(app, enabled=settings.obs_enabled)
	_initialised = True


__all__ = ["init"]
