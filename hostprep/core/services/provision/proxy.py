"""
Proxy scope — outbound proxy variables for the duration of one call.

``http_proxy`` / ``https_proxy`` are set on entry and unset on exit,
whether the body returns, fails or raises.  The variables live in the
process environment, which every runner copies per command, so a scope
must never be shared by two bodies at once: nesting is refused.
"""

from __future__ import annotations

import logging
import os
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Callable, Iterator, TypeVar

from hostprep.core.models.config import ProvisionConfig

logger = logging.getLogger(__name__)

T = TypeVar("T")

PROXY_VARS = ("http_proxy", "https_proxy")

_active = False


@dataclass(frozen=True)
class ProxySettings:
    """The proxy endpoints for one run, and whether to use them."""

    enabled: bool = False
    http_url: str = ""
    https_url: str = ""

    @classmethod
    def from_config(cls, config: ProvisionConfig) -> ProxySettings:
        return cls(
            enabled=config.use_proxy,
            http_url=config.http_proxy,
            https_url=config.https_proxy,
        )


@contextmanager
def proxy_scope(settings: ProxySettings) -> Iterator[None]:
    """Set the proxy variables for the body of the ``with`` block.

    Disabled settings leave the environment untouched.

    Raises:
        RuntimeError: If another proxy scope is already active.
    """
    global _active

    if not settings.enabled:
        yield
        return

    if _active:
        raise RuntimeError("proxy scope is not reentrant")

    _active = True
    os.environ["http_proxy"] = settings.http_url
    os.environ["https_proxy"] = settings.https_url
    logger.debug("Proxy set (http=%s, https=%s)", settings.http_url, settings.https_url)
    try:
        yield
    finally:
        for var in PROXY_VARS:
            os.environ.pop(var, None)
        _active = False
        logger.debug("Proxy cleared")


def with_proxy(
    enabled: bool,
    http_url: str,
    https_url: str,
    body: Callable[[], T],
) -> T:
    """Run ``body`` inside a proxy scope and return (or raise) what it does."""
    with proxy_scope(ProxySettings(enabled=enabled, http_url=http_url, https_url=https_url)):
        return body()
