"""Context effects: composable DCS requests that share read-only configuration.

Every DCS request needs the same read-only configuration (server, owner, repo,
token, ...). Instead of passing those values through every call and every
callback, a request is written once as a *context effect*: a callable that takes
an environment record and asynchronously produces a :class:`Result`.

    async def get_pr(env) -> Result[dict]: ...

Any callable of that shape is a context effect, however it was defined
(``async def``, a closure, an object with ``__call__``). The combinators in this
module build new effects out of existing ones:

    pure(value)                  succeed with ``value``
    empty()                      fail
    map_(fn, effect)             transform the success value
    then(effect, f, g, ...)      sequence continuations left to right
    chain(f, g)                  compose two continuations
    or_(first, second)           fall back to ``second`` when ``first`` fails
    when(predicate, value)       succeed only if the environment satisfies ``predicate``
    extend_config(fields, eff)   run ``eff`` with an overlaid environment
    for_every_first(f, items)    first non-``None`` success across ``items``

Example: get a PR by id, otherwise the next one, otherwise ``None``:

    get_pr_or_next = lambda pr_id: or_(
        repo_get_json(f"pulls/{pr_id}"),
        or_(repo_get_json(f"pulls/{pr_id + 1}"), pure(None)),
    )

Everything runs sequentially: a continuation never starts before the previous
effect has settled, and no combinator runs alternatives concurrently.

Failure carries no payload. Exceptions raised by functions handed to the
combinators (``map_`` functions, ``then`` continuations, ``when`` predicates)
are not failures; they propagate to whoever awaits the effect. Use :func:`leaf`
to turn raising I/O code into an effect that fails instead.
"""

import functools
import logging
from collections.abc import Mapping
from types import MappingProxyType
from typing import Any, Awaitable, Callable, Iterable, Protocol, TypeVar

from pydantic import BaseModel

from ..error_handling import EffectFailed, classify_error, record_error_metric
from ..metrics import global_metrics_collector
from .result import FAILURE, Failure, Result, Success

logger = logging.getLogger(__name__)

A = TypeVar("A")
B = TypeVar("B")
R_contra = TypeVar("R_contra", contravariant=True)
A_co = TypeVar("A_co", covariant=True)


class ContextEffect(Protocol[R_contra, A_co]):
    """Anything callable as ``env -> Awaitable[Result[A]]``."""

    def __call__(self, env: R_contra) -> Awaitable["Result[A_co]"]: ...


Continuation = Callable[[Any], ContextEffect[Any, Any]]


def pure(value: A) -> ContextEffect[Any, A]:
    """Effect that ignores the environment and succeeds with ``value``."""

    async def _pure(env: Any) -> Result[A]:
        return Success(value)

    return _pure


def empty() -> ContextEffect[Any, Any]:
    """Effect that ignores the environment and fails."""

    async def _empty(env: Any) -> Result[Any]:
        return FAILURE

    return _empty


def map_(fn: Callable[[A], B], effect: ContextEffect[Any, A]) -> ContextEffect[Any, B]:
    """Transform the success value of ``effect`` with ``fn``.

    Failure passes through unchanged. ``fn`` is expected to be total; if it
    raises, the exception escapes the resulting effect.
    """

    async def _mapped(env: Any) -> Result[B]:
        result = await effect(env)
        if isinstance(result, Failure):
            return result
        return Success(fn(result.value))

    return _mapped


def then(effect: ContextEffect[Any, Any], *fns: Continuation) -> ContextEffect[Any, Any]:
    """Run ``effect``, then feed each success value into the next continuation.

    ``then(x, f, g)`` is the same as ``then(x, lambda y: then(f(y), g))`` and
    ``then(x, chain(f, g))``. The first failure short-circuits the rest.
    """

    async def _sequenced(env: Any) -> Result[Any]:
        result = await effect(env)
        for fn in fns:
            if isinstance(result, Failure):
                return result
            result = await fn(result.value)(env)
        return result

    return _sequenced


def chain(f: Continuation, g: Continuation) -> Continuation:
    """Compose two effect-returning functions: ``a -> then(f(a), g)``."""

    def _chained(a: Any) -> ContextEffect[Any, Any]:
        return then(f(a), g)

    return _chained


def or_(first: ContextEffect[Any, A], second: ContextEffect[Any, A]) -> ContextEffect[Any, A]:
    """Run ``first``; only if it fails, run ``second`` with the same environment.

    A success holding ``None`` or another falsy value is still a success.
    """

    async def _fallback(env: Any) -> Result[A]:
        result = await first(env)
        if isinstance(result, Success):
            return result
        return await second(env)

    return _fallback


def when(predicate: Callable[[Any], bool], value: A) -> ContextEffect[Any, A]:
    """Succeed with ``value`` if ``predicate(env)`` holds, fail otherwise."""

    async def _gated(env: Any) -> Result[A]:
        if predicate(env):
            return Success(value)
        return FAILURE

    return _gated


def for_every_first(
    f: Callable[[Any], ContextEffect[Any, Any]], items: Iterable[Any]
) -> ContextEffect[Any, Any]:
    """Try ``f(item)`` for each item in order; succeed with the first non-``None`` value.

    A candidate that fails or succeeds with ``None`` moves the search on to the
    next item. ``f(item)`` is only built once every earlier candidate has
    settled, so items after the first hit are never touched. An empty or
    exhausted list fails.
    """
    items = tuple(items)

    async def _search(env: Any) -> Result[Any]:
        for item in items:
            result = await f(item)(env)
            if isinstance(result, Success) and result.value is not None:
                return result
        return FAILURE

    return _search


def _overlay(env: Any, fields: Mapping) -> Any:
    if isinstance(env, BaseModel):
        return env.model_copy(update=dict(fields))
    if isinstance(env, Mapping):
        return MappingProxyType({**env, **fields})
    raise TypeError(f"Cannot extend environment of type {type(env).__name__}")


def extend_config(fields: Mapping, effect: ContextEffect[Any, A]) -> ContextEffect[Any, A]:
    """Run ``effect`` with the caller's environment overlaid by ``fields``.

    ``fields`` win on key collision. The caller's environment is not modified:

        get_pr_two = extend_config({"pr_id": 2}, get_pr_json)
    """
    fields = dict(fields)

    async def _extended(env: Any) -> Result[A]:
        return await effect(_overlay(env, fields))

    return _extended


def leaf(fn: Callable[[Any], Awaitable[A]]) -> ContextEffect[Any, A]:
    """Turn ``async def fn(env) -> value`` into a context effect.

    The returned value becomes a success. Any exception raised by ``fn`` is
    logged and turned into a failure.
    """
    operation = getattr(fn, "__qualname__", repr(fn))

    @functools.wraps(fn)
    async def _leaf(env: Any) -> Result[A]:
        try:
            value = await fn(env)
        except Exception as e:
            context = classify_error(e, operation)
            record_error_metric(context)
            logger.log(
                context.severity.log_level,
                f"Leaf effect {operation} failed: {e}",
                extra={"operation": operation},
            )
            return FAILURE
        return Success(value)

    return _leaf


async def run(effect: ContextEffect[Any, A], env: Any) -> A:
    """Run ``effect`` against ``env`` and return its value.

    Raises:
        EffectFailed: if the effect settles with a failure.
    """
    result = await effect(env)
    if isinstance(result, Failure):
        operation = getattr(effect, "__qualname__", repr(effect))
        await global_metrics_collector.record_effect_failure(operation)
        raise EffectFailed(operation)
    return result.value
