"""Cascade / restriction resolution."""

from fkgraph.resolver.decoder import ResultDecoder, split_aggregate
from fkgraph.resolver.plan import DELIMITER, PlanBuilder, ResolutionPlan
from fkgraph.resolver.resolver import ForeignKeyResolver

__all__ = [
    "ForeignKeyResolver",
    "PlanBuilder",
    "ResolutionPlan",
    "ResultDecoder",
    "split_aggregate",
    "DELIMITER",
]
