"""
Pipeline executor.

Applies an ordered list of filter names to an image buffer. Stages run one
after another; each stage's output is the next stage's input. Every executed
stage adds a StageRecord (name, elapsed seconds, output size) to the trace.
Unknown names are skipped or rejected depending on the configured policy.
"""

import re
import threading
import time
from collections.abc import Callable, Iterable, Mapping, Sequence
from concurrent import futures
from dataclasses import dataclass, field
from typing import Any, NoReturn

from pixelpipe.core.assets import AssetCache, get_asset_cache
from pixelpipe.core.config import Config, get_config
from pixelpipe.core.filters import FilterContext
from pixelpipe.core.registry import FilterDefinition, FilterRegistry, get_registry
from pixelpipe.logging_config import get_logger, log_stages
from pixelpipe.utils.exceptions import (
    CancellationError,
    PixelpipeError,
    StageTimeoutError,
    TransformError,
    UnknownFilterError,
    ValidationError,
)

logger = get_logger(__name__)

# How often a running stage is checked for its deadline and for cancellation
_POLL_INTERVAL = 0.05

_PARAM_RE = re.compile(r"^\s*([a-z_]+)\.([a-z_]+)\s*=\s*(\S+)\s*$", re.IGNORECASE)

# Stage pools keyed by worker count; timed-out stages keep their worker until they return
_executors: dict[int, futures.ThreadPoolExecutor] = {}
_executors_lock = threading.Lock()


@dataclass(frozen=True)
class StageRecord:
    """Timing and size of one executed stage."""

    name: str
    elapsed: float  # seconds
    output_size: int  # bytes


@dataclass
class PipelineResult:
    """Final buffer of a successful run and its trace."""

    buffer: bytes
    trace: list[StageRecord] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)  # unknown names passed through

    @property
    def total_elapsed(self) -> float:
        """Sum of stage times in seconds."""
        return sum(record.elapsed for record in self.trace)


@dataclass(frozen=True)
class _Stage:
    name: str
    definition: FilterDefinition | None
    kwargs: Mapping[str, float] = field(default_factory=dict)


def _stage_executor(workers: int) -> futures.ThreadPoolExecutor:
    with _executors_lock:
        executor = _executors.get(workers)
        if executor is None:
            executor = futures.ThreadPoolExecutor(
                max_workers=workers, thread_name_prefix=f"pixelpipe-stage-{workers}"
            )
            _executors[workers] = executor
        return executor


def _cancelled(cancel_check: Callable[[], bool] | None) -> bool:
    if cancel_check is None:
        return False
    try:
        return bool(cancel_check())
    except Exception as e:
        # Don't let a buggy cancel_check break the run
        logger.debug("cancel_check raised %r; ignoring", e)
        return False


def _raise_stage_error(stage: str, exc: BaseException) -> NoReturn:
    """Re-raise a filter failure with the stage name attached, wrapping unexpected exceptions."""
    if isinstance(exc, TransformError):
        if not exc.stage:
            exc.stage = stage
        raise exc
    if isinstance(exc, PixelpipeError) or not isinstance(exc, Exception):
        raise exc
    raise TransformError(
        f"Filter {stage!r} failed: {exc}", stage=stage, original_error=exc
    ) from exc


class Pipeline:
    """
    An ordered, validated list of filter stages.

    Construction resolves every name and binds parameters, so bad parameters
    (and unknown names under the "error" policy) are reported before any
    stage runs.
    """

    def __init__(
        self,
        names: Sequence[str],
        params: Mapping[str, Mapping[str, Any]] | None = None,
        *,
        registry: FilterRegistry | None = None,
        config: Config | None = None,
    ) -> None:
        """
        Build a pipeline.

        Args:
            names: Filter names in application order
            params: Optional per-filter parameter overrides, e.g. {"stretch": {"factor": 2}}
            registry: Filter registry; defaults to the built-in one
            config: Optional config; if None, uses get_config()

        Raises:
            ValidationError: If names is not a sequence of strings or a parameter is invalid
            UnknownFilterError: If a name is unknown and the policy is "error"
            ConfigurationError: If the config is invalid
        """
        if isinstance(names, (str, bytes)):
            raise ValidationError(
                "Filter names must be a sequence of names, not a single string; "
                "use parse_pipeline() to split a pipeline string",
                field="names",
            )
        self.config = config or get_config()
        self.config.validate()
        self.registry = registry or get_registry()
        params = params or {}

        for filter_name in params:
            if filter_name not in self.registry and self.config.strict:
                raise UnknownFilterError(
                    f"Parameters given for unknown filter: {filter_name!r}", field=filter_name
                )

        stages: list[_Stage] = []
        for name in names:
            if not isinstance(name, str):
                raise ValidationError(f"Filter name must be a string, got {name!r}", field="names")
            definition = self.registry.resolve(name)
            if definition is None:
                if self.config.strict:
                    raise UnknownFilterError(
                        f"Unknown filter: {name!r}. "
                        f"Known filters: {', '.join(self.registry.names())}",
                        field=name,
                    )
                stages.append(_Stage(name, None))
                continue
            stages.append(_Stage(name, definition, definition.bind(params.get(name))))
        self._stages = tuple(stages)

    @property
    def names(self) -> list[str]:
        """Filter names in application order, including ones that will be skipped."""
        return [stage.name for stage in self._stages]

    @property
    def uses_assets(self) -> bool:
        """True if any resolved stage needs template assets."""
        return any(s.definition is not None and s.definition.uses_assets for s in self._stages)

    def run(
        self,
        buffer: bytes,
        *,
        assets: AssetCache | None = None,
        cancel_check: Callable[[], bool] | None = None,
    ) -> PipelineResult:
        """
        Apply the stages to buffer in order.

        Args:
            buffer: Encoded input image; its validity is checked by the first stage
            assets: Asset cache for compositing filters; defaults to the global one
            cancel_check: Optional callable returning True to cancel; polled during stages.
                Should return quickly; exceptions from it are ignored.

        Returns:
            PipelineResult with the final buffer, the trace and skipped names

        Raises:
            ValidationError: If buffer is not bytes
            DecodeError: If a stage cannot decode its input (stage attribute names it)
            TransformError: If a stage fails for another reason
            StageTimeoutError: If a stage exceeds config.stage_timeout
            AssetNotReadyError: If template assets are not loaded in time
            AssetMissingError: If a template a stage needs is missing
            CancellationError: If cancel_check returned True
        """
        if not isinstance(buffer, (bytes, bytearray)):
            raise ValidationError(
                f"Image buffer must be bytes, got {type(buffer).__name__}", field="buffer"
            )

        trace: list[StageRecord] = []
        skipped: list[str] = []
        current = buffer
        assets_ready = False

        for stage in self._stages:
            if stage.definition is None:
                skipped.append(stage.name)
                logger.info("Skipping unknown filter %r", stage.name)
                continue
            if _cancelled(cancel_check):
                raise CancellationError(f"Pipeline cancelled before stage {stage.name!r}")

            stage_assets = None
            if stage.definition.uses_assets:
                if not assets_ready:
                    assets = assets or get_asset_cache(self.config)
                    assets.ensure_loaded(self.config.asset_load_timeout)
                    assets_ready = True
                stage_assets = assets

            context = FilterContext(stage=stage.name, config=self.config, assets=stage_assets)
            start_time = time.perf_counter()
            current = self._run_stage(stage, current, context, cancel_check)
            elapsed = time.perf_counter() - start_time

            trace.append(StageRecord(stage.name, elapsed, len(current)))
            if log_stages():
                logger.info(
                    "Processed stage %s - Buffer: %.2f KB in %.3fs",
                    stage.name,
                    len(current) / 1000,
                    elapsed,
                )

        result = PipelineResult(buffer=current, trace=trace, skipped=skipped)
        if trace:
            logger.info(
                "Pipeline finished stages=%d skipped=%d in %.3fs size=%d",
                len(trace),
                len(skipped),
                result.total_elapsed,
                len(current),
            )
        return result

    def _run_stage(
        self,
        stage: _Stage,
        buffer: bytes,
        context: FilterContext,
        cancel_check: Callable[[], bool] | None,
    ) -> bytes:
        assert stage.definition is not None
        func = stage.definition.func
        timeout = self.config.stage_timeout or None

        if timeout is None and cancel_check is None:
            try:
                return self._check_output(stage.name, func(buffer, context=context, **stage.kwargs))
            except Exception as e:
                _raise_stage_error(stage.name, e)

        # Run with a deadline and cancellation: stage on the shared pool, caller polls
        future = _stage_executor(self.config.stage_workers).submit(
            func, buffer, context=context, **stage.kwargs
        )
        deadline = time.monotonic() + timeout if timeout is not None else None
        while True:
            wait = _POLL_INTERVAL
            if deadline is not None:
                wait = max(0.0, min(wait, deadline - time.monotonic()))
            done, _ = futures.wait([future], timeout=wait)
            if done:
                break
            if deadline is not None and time.monotonic() >= deadline:
                # A running stage cannot be interrupted; its result is discarded
                future.cancel()
                raise StageTimeoutError(
                    f"Stage {stage.name!r} exceeded its {timeout}s budget",
                    stage=stage.name,
                    timeout=timeout,
                )
            if _cancelled(cancel_check):
                future.cancel()
                raise CancellationError(f"Pipeline cancelled during stage {stage.name!r}")

        exc = future.exception()
        if exc is not None:
            _raise_stage_error(stage.name, exc)
        return self._check_output(stage.name, future.result())

    @staticmethod
    def _check_output(stage: str, output: object) -> bytes:
        if not isinstance(output, (bytes, bytearray)):
            raise TransformError(
                f"Filter {stage!r} returned {type(output).__name__} instead of bytes", stage=stage
            )
        return bytes(output)


def run_pipeline(
    names: Sequence[str],
    buffer: bytes,
    params: Mapping[str, Mapping[str, Any]] | None = None,
    *,
    config: Config | None = None,
    registry: FilterRegistry | None = None,
    assets: AssetCache | None = None,
    cancel_check: Callable[[], bool] | None = None,
) -> PipelineResult:
    """
    Build a Pipeline from names and params and run it on buffer.

    An empty names list returns buffer unchanged with an empty trace.
    See Pipeline and Pipeline.run for arguments and errors.
    """
    pipeline = Pipeline(names, params, registry=registry, config=config)
    return pipeline.run(buffer, assets=assets, cancel_check=cancel_check)


def parse_pipeline(text: str) -> list[str]:
    """Split 'invert, stretch squish' into ['invert', 'stretch', 'squish']."""
    return [part.lower() for part in re.split(r"[,\s]+", text.strip()) if part]


def parse_param_overrides(items: Iterable[str]) -> dict[str, dict[str, float]]:
    """
    Parse 'filter.param=value' strings into a params mapping.

    Raises:
        ValidationError: If an item is malformed or its value is not a number
    """
    params: dict[str, dict[str, float]] = {}
    for item in items:
        match = _PARAM_RE.match(item)
        if not match:
            raise ValidationError(
                f"Invalid parameter {item!r}; expected filter.param=value", field="param"
            )
        filter_name, key, raw = match.group(1).lower(), match.group(2).lower(), match.group(3)
        try:
            value = float(raw)
        except ValueError as e:
            raise ValidationError(
                f"Parameter {filter_name}.{key} must be a number, got {raw!r}", field="param"
            ) from e
        params.setdefault(filter_name, {})[key] = value
    return params
