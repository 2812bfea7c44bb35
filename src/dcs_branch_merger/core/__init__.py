"""Context effect core: environment record, results and combinators."""

from .effects import (
    ContextEffect,
    chain,
    empty,
    extend_config,
    for_every_first,
    leaf,
    map_,
    or_,
    pure,
    run,
    then,
    when,
)
from .environment import DEFAULT_API_PATH, Environment
from .result import FAILURE, Failure, Result, Success, is_success

__all__ = [
    "ContextEffect",
    "Environment",
    "DEFAULT_API_PATH",
    # Results
    "Result",
    "Success",
    "Failure",
    "FAILURE",
    "is_success",
    # Combinators
    "pure",
    "empty",
    "map_",
    "then",
    "chain",
    "or_",
    "when",
    "for_every_first",
    "extend_config",
    # Running
    "leaf",
    "run",
]
