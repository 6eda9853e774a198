"""Factory choosing the fetch strategy for a run."""

import os
import shutil
from dataclasses import replace
from typing import Dict, Optional, Type

import structlog

from rentfinder.config import PipelineConfig
from rentfinder.scrapers.adapters import BrowserSessionAdapter, DirectHTTPAdapter
from rentfinder.scrapers.base import BaseFetchStrategy

logger = structlog.get_logger(__name__)

STRATEGIES: Dict[str, Type[BaseFetchStrategy]] = {
    BrowserSessionAdapter.strategy_name: BrowserSessionAdapter,
    DirectHTTPAdapter.strategy_name: DirectHTTPAdapter,
}

# Executable names searched on PATH in "auto" mode
BROWSER_BINARIES = (
    "google-chrome",
    "google-chrome-stable",
    "chrome",
    "chromium",
    "chromium-browser",
)


def find_browser_executable(configured_path: Optional[str] = None) -> Optional[str]:
    """Locate a controllable browser.

    Args:
        configured_path: Explicit executable path, preferred when it exists;
            otherwise Chrome/Chromium is looked up on PATH

    Returns:
        Path of the executable, or None if none is available
    """
    if configured_path and os.path.exists(configured_path):
        return configured_path
    for name in BROWSER_BINARIES:
        path = shutil.which(name)
        if path:
            return path
    return None


def resolve_strategy(config: PipelineConfig) -> PipelineConfig:
    """Turn "auto" into a concrete strategy name on a copy of the config.

    When "auto" picks the browser, the executable found is recorded so the
    browser session launches that exact binary.
    """
    name = (config.fetch_strategy or "auto").lower().strip()
    if name == "auto":
        executable = find_browser_executable(config.browser_executable_path)
        if executable:
            return replace(config, fetch_strategy="browser", browser_executable_path=executable)
        return replace(config, fetch_strategy="http")
    if name not in STRATEGIES:
        raise ValueError(f"Unknown fetch strategy: {config.fetch_strategy}")
    return replace(config, fetch_strategy=name)


def create_fetch_strategy(config: PipelineConfig) -> BaseFetchStrategy:
    """Create the fetch strategy for one run.

    Raises:
        ValueError: If the configured strategy name is unknown
    """
    resolved = resolve_strategy(config)
    strategy = STRATEGIES[resolved.fetch_strategy](resolved)
    logger.info(
        "fetch_strategy_selected",
        strategy=resolved.fetch_strategy,
        configured=config.fetch_strategy,
    )
    return strategy
