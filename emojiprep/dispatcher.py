"""Fixed-width worker pool that converts a directory of images in parallel.

Each worker repeatedly claims the next pending :class:`WorkItem`, runs the
conversion routine on it and records the outcome, until the queue is empty.
Per-item failures are recorded and never stop the run; an exception escaping
a worker loop aborts the run with :class:`DispatchError`.
"""

from __future__ import annotations

import logging
import os
import threading
import time
from collections import deque
from concurrent.futures import FIRST_EXCEPTION, Future, ThreadPoolExecutor, wait
from concurrent.futures import TimeoutError as FutureTimeoutError
from pathlib import Path
from typing import Callable, Iterable, Optional

from .errors import ConfigError, DispatchError
from .models import (
    Aggregate,
    ConversionResult,
    ConvertConfig,
    OutputInfo,
    ProgressSnapshot,
    WorkItem,
)
from .sources import discover_inputs
from .utils import RECENT_ERROR_LIMIT, prepare_output_dir, validate_config

log = logging.getLogger(__name__)

ConvertFn = Callable[[WorkItem], OutputInfo]
ProgressFn = Callable[[ProgressSnapshot], None]


# ---------------------------------------------------------------------------
# Pending queue & aggregator
# ---------------------------------------------------------------------------


class PendingQueue:
    """Work items not yet claimed by any worker (FIFO)."""

    def __init__(self, items: Iterable[WorkItem] = ()) -> None:
        self._items: deque[WorkItem] = deque(items)
        self._lock = threading.Lock()

    def claim_next(self) -> Optional[WorkItem]:
        """Remove and return the next item, or ``None`` once exhausted."""
        with self._lock:
            if not self._items:
                return None
            return self._items.popleft()

    def __len__(self) -> int:
        with self._lock:
            return len(self._items)


class Aggregator:
    """Collects results from all workers and reports progress after each one."""

    def __init__(self, total: int, on_progress: ProgressFn | None = None) -> None:
        self.aggregate = Aggregate(total=total)
        self._on_progress = on_progress
        self._lock = threading.Lock()
        self._t0 = time.perf_counter()

    def record(self, result: ConversionResult) -> ProgressSnapshot:
        with self._lock:
            agg = self.aggregate
            if result.ok:
                agg.success += 1
            else:
                agg.failed += 1
                agg.errors.append(result.error or "unknown error")
            agg.results.append(result)
            agg.elapsed_s = time.perf_counter() - self._t0
            snapshot = self._snapshot_locked(last=result)

        if self._on_progress is not None:
            self._on_progress(snapshot)
        return snapshot

    def snapshot(self) -> ProgressSnapshot:
        with self._lock:
            return self._snapshot_locked()

    def finish(self) -> Aggregate:
        with self._lock:
            self.aggregate.elapsed_s = time.perf_counter() - self._t0
            return self.aggregate

    def _snapshot_locked(self, last: ConversionResult | None = None) -> ProgressSnapshot:
        agg = self.aggregate
        return ProgressSnapshot(
            total=agg.total,
            success=agg.success,
            failed=agg.failed,
            remaining=agg.remaining,
            elapsed_s=time.perf_counter() - self._t0,
            recent_errors=tuple(agg.errors[-RECENT_ERROR_LIMIT:]),
            last=last,
        )


# ---------------------------------------------------------------------------
# Worker
# ---------------------------------------------------------------------------


class _TimedRunner:
    """Runs each conversion on a daemon helper thread so a hung call can be abandoned.

    Daemon threads do not block interpreter exit. A call that finishes after
    being abandoned has its output file removed, since the item is already
    recorded as failed.
    """

    def __init__(self, name: str) -> None:
        self._name = name
        self._calls = 0

    def run(self, convert: ConvertFn, item: WorkItem, timeout: float) -> OutputInfo:
        future: Future[OutputInfo] = Future()
        abandoned = False
        lock = threading.Lock()

        def _call() -> None:
            try:
                info = convert(item)
            except BaseException as exc:
                future.set_exception(exc)
                return
            with lock:
                if abandoned:
                    item.output_path.unlink(missing_ok=True)
                    log.debug("_TimedRunner: discarded late output %s", item.output_path)
                    return
                future.set_result(info)

        self._calls += 1
        thread = threading.Thread(
            target=_call,
            name=f"{self._name}-call-{self._calls}",
            daemon=True,
        )
        thread.start()
        try:
            return future.result(timeout=timeout)
        except FutureTimeoutError:
            with lock:
                if future.done():
                    return future.result()
                abandoned = True
            raise TimeoutError(
                f"{item.input_path}: conversion timed out after {timeout:g}s"
            ) from None


def process_item(
    item: WorkItem,
    convert: ConvertFn,
    *,
    timeout: float | None = None,
    runner: _TimedRunner | None = None,
) -> ConversionResult:
    """Convert one item; conversion errors are captured in the result."""
    t0 = time.perf_counter()
    try:
        if timeout is not None and runner is not None:
            info = runner.run(convert, item, timeout)
        else:
            info = convert(item)
    except Exception as exc:
        message = str(exc) or exc.__class__.__name__
        if str(item.input_path) not in message:
            message = f"{item.input_path.name}: {message}"
        log.debug("process_item: FAILED %s", message)
        return ConversionResult(
            item=item,
            ok=False,
            error=message,
            duration_s=time.perf_counter() - t0,
        )
    return ConversionResult(item=item, ok=True, info=info, duration_s=time.perf_counter() - t0)


def worker_loop(
    queue: PendingQueue,
    aggregator: Aggregator,
    convert: ConvertFn,
    *,
    cancel_event: threading.Event | None = None,
    timeout: float | None = None,
) -> int:
    """Claim, convert and record items until the queue runs dry.

    Returns the number of items this worker processed.
    """
    name = threading.current_thread().name
    runner = _TimedRunner(name) if timeout is not None else None
    processed = 0
    while cancel_event is None or not cancel_event.is_set():
        item = queue.claim_next()
        if item is None:
            break
        result = process_item(item, convert, timeout=timeout, runner=runner)
        aggregator.record(result)
        processed += 1
    log.debug("worker_loop: %s exiting after %s items", name, processed)
    return processed


# ---------------------------------------------------------------------------
# Pool supervisor
# ---------------------------------------------------------------------------


def default_worker_count() -> int:
    """One worker per available CPU, never fewer than one."""
    return max(1, os.cpu_count() or 1)


def run_pool(
    items: Iterable[WorkItem],
    convert: ConvertFn,
    *,
    workers: int | None = None,
    on_progress: ProgressFn | None = None,
    timeout: float | None = None,
    cancel_event: threading.Event | None = None,
) -> Aggregate:
    """Convert *items* with a fixed number of worker threads.

    Returns the final :class:`Aggregate`. Raises :class:`DispatchError` when a
    worker dies from something other than a per-item conversion error.
    """
    queue = PendingQueue(items)
    total = len(queue)
    aggregator = Aggregator(total, on_progress=on_progress)
    if total == 0:
        log.info("run_pool: nothing to convert")
        return aggregator.finish()

    width = min(workers if workers is not None else default_worker_count(), total)
    width = max(1, width)
    cancel = cancel_event if cancel_event is not None else threading.Event()
    log.info("run_pool: %s items across %s workers", total, width)

    with ThreadPoolExecutor(max_workers=width, thread_name_prefix="convert") as executor:
        futures = [
            executor.submit(
                worker_loop,
                queue,
                aggregator,
                convert,
                cancel_event=cancel,
                timeout=timeout,
            )
            for _ in range(width)
        ]
        done, _pending = wait(futures, return_when=FIRST_EXCEPTION)
        failures = [f for f in done if f.exception() is not None]
        if failures:
            cancel.set()
            exc = failures[0].exception()
            log.error("run_pool: worker crashed (%s); aborting run", exc)
            raise DispatchError(f"Worker crashed: {exc!r}") from exc

    aggregate = aggregator.finish()
    log.info(
        "run_pool: %s succeeded, %s failed of %s (%.2fs)",
        aggregate.success,
        aggregate.failed,
        aggregate.total,
        aggregate.elapsed_s,
    )
    return aggregate


# ---------------------------------------------------------------------------
# Directory entry point
# ---------------------------------------------------------------------------


def build_work_items(
    input_dir: Path,
    output_dir: Path,
    output_ext: str,
    input_ext: str = ".svg",
) -> list[WorkItem]:
    """Pair every matching file in *input_dir* with its output path."""
    ext = output_ext.lstrip(".")
    return [
        WorkItem(input_path=path, output_path=output_dir / f"{path.stem}.{ext}")
        for path in discover_inputs(input_dir, input_ext)
    ]


def convert_directory(
    config: ConvertConfig,
    convert: ConvertFn | None = None,
    *,
    workers: int | None = None,
    on_progress: ProgressFn | None = None,
    timeout: float | None = None,
    cancel_event: threading.Event | None = None,
    clean: bool = True,
) -> Aggregate:
    """Validate *config*, reset the output directory and run the pool."""
    from .conversion import create_converter

    validate_config(config)
    if convert is None:
        convert = create_converter(
            config.output_size,
            config.output_format,
            config.output_options,
        )
    if workers is not None and workers < 1:
        raise ConfigError(f"Worker count must be >= 1, got {workers}")

    if clean:
        prepare_output_dir(config.output_dir)
    else:
        config.output_dir.mkdir(parents=True, exist_ok=True)

    items = build_work_items(
        config.input_dir,
        config.output_dir,
        config.output_ext,
        config.input_ext,
    )
    log.info(
        "convert_directory: %s -> %s [format: %s] [size: %sx%s] (%s files)",
        config.input_dir,
        config.output_dir,
        config.output_format,
        config.output_size,
        config.output_size,
        len(items),
    )
    return run_pool(
        items,
        convert,
        workers=workers,
        on_progress=on_progress,
        timeout=timeout,
        cancel_event=cancel_event,
    )
