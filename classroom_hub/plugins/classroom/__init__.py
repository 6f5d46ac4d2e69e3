"""
Google Classroom plugin: account linking and the aggregated assignment view.
"""
import logging
from collections import namedtuple
from typing import Any, Dict, Optional

from .aggregator import AssignmentAggregator
from .backends import get_backend
from .token_provider import GoogleTokenProvider

ClassroomServices = namedtuple("ClassroomServices", ["backend", "token_provider", "aggregator", "config"])


def build_services(
    config: Dict[str, Any],
    backend=None,
    token_provider=None,
    logger: Optional[logging.Logger] = None,
) -> ClassroomServices:
    """Wire backend, token provider and aggregator from the classroom config section."""
    logger = logger or logging.getLogger("classroom")
    if backend is None:
        backend = get_backend(config.get("backend", "google"), config, logger=logger)
        if backend is None:
            raise ValueError(f"Unknown classroom backend: {config.get('backend')}")
    if token_provider is None:
        token_provider = GoogleTokenProvider.from_config(config, logger=logger)
    aggregator = AssignmentAggregator(
        token_provider,
        backend,
        max_workers=config.get("max_workers", 4),
        logger=logger,
    )
    return ClassroomServices(backend, token_provider, aggregator, config)
