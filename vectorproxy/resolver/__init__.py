"""Datasource configuration resolvers."""

from .base import (
    RECORD_COUNT_FAILURE,
    RECORD_COUNT_SUCCESS,
    ConfigResolver,
    SourceConfig,
    SourceCounters,
)
from .sql import SqlConfigResolver
from .static import StaticConfigResolver

__all__ = [
    "RECORD_COUNT_FAILURE",
    "RECORD_COUNT_SUCCESS",
    "ConfigResolver",
    "SourceConfig",
    "SourceCounters",
    "SqlConfigResolver",
    "StaticConfigResolver",
]
