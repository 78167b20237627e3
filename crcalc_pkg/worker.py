"""Process-isolated evaluation.

Some constructive real computations never terminate (comparing two values
that are equal but not provably so) and others can take arbitrarily long.
The only reliable way to cancel them is to kill the process doing the work,
so expressions live in a child process that owns them by integer id:

    create               {id, expr, degree_mode} -> {ok, digits_required, exactly_displayable}
    copy                 {id, from_id}            -> {ok}
    remove               {id}                     -> {ok}
    to_string_truncated  {id, prec}               -> {ok, result}
    nice_string          {id}                     -> {ok, result}
    evaluate             {expr, digits, degree_mode} -> result dict (one shot)

A request that does not complete within the timeout kills the child. A new
child is started in its place and every expression the old one held is gone.
"""

from __future__ import annotations

import itertools
import queue
import uuid
from typing import Any

from .config import (
    DEFAULT_DIGITS,
    ENABLE_PERSISTENT_WORKER,
    MAX_DIGITS,
    WORKER_AS_MB,
    WORKER_CPU_SECONDS,
    WORKER_TIMEOUT,
)
from .logging_config import get_logger
from .parser import get_evaluator, validate_input
from .render import format_exact, format_result
from .types import ExpressionError, ValidationError
from .unified_real import UnifiedReal

logger = get_logger("worker")

HAS_RESOURCE = False
try:
    import resource  # noqa: F401 - check if available

    HAS_RESOURCE = True
except (ImportError, OSError):
    HAS_RESOURCE = False

try:
    from multiprocessing import Event, Process, Queue
except Exception:
    Process = None  # type: ignore
    Queue = None  # type: ignore
    Event = None  # type: ignore


def _limit_resources(cpu_seconds: int, as_mb: int) -> None:
    """Apply CPU time and address space limits (Unix only)."""
    if not HAS_RESOURCE:
        return
    try:
        import resource as _resource

        _resource.setrlimit(_resource.RLIMIT_CPU, (cpu_seconds, cpu_seconds + 1))
        _resource.setrlimit(
            _resource.RLIMIT_AS,
            (as_mb * 1024 * 1024, as_mb * 1024 * 1024 + 1),
        )
    except (ImportError, OSError, ValueError):
        # Limits may be unsupported or already lower than requested
        pass


def _check_digits(digits: int | None) -> int:
    if digits is None:
        return DEFAULT_DIGITS
    if not isinstance(digits, int) or digits < 0 or digits > MAX_DIGITS:
        raise ValidationError(
            f"Digits must be an integer between 0 and {MAX_DIGITS}", "INVALID_DIGITS"
        )
    return digits


def result_dict(value: UnifiedReal, digits: int) -> dict[str, Any]:
    """Display fields for an evaluated expression."""
    text, exact = format_result(value, digits)
    out: dict[str, Any] = {"ok": True, "approx": text}
    if value.exactly_displayable():
        out["result"] = format_exact(value)
        out["exact"] = True
    else:
        out["result"] = text
        out["exact"] = exact
    required = value.digits_required()
    if required <= MAX_DIGITS:
        out["digits_required"] = required
    return out


def _error_dict(e: Exception) -> dict[str, Any]:
    if isinstance(e, ZeroDivisionError):
        return {"ok": False, "error": "Division by zero", "error_code": "DIVISION_BY_ZERO"}
    return {
        "ok": False,
        "error": str(e) or type(e).__name__,
        "error_code": getattr(e, "code", None) or "EVAL_ERROR",
    }


class ExpressionStore:
    """Live expressions keyed by id, and the handlers for each request type."""

    def __init__(self) -> None:
        self.expressions: dict[Any, UnifiedReal] = {}

    def handle(self, msg: dict[str, Any]) -> dict[str, Any]:
        kind = msg.get("type")
        handler = getattr(self, f"_handle_{kind}", None)
        if handler is None:
            return {"ok": False, "error": "Unknown request type", "error_code": "BAD_REQUEST"}
        try:
            return handler(msg)
        except (ExpressionError, ValidationError, ArithmeticError, ValueError) as e:
            return _error_dict(e)
        except RecursionError:
            return {
                "ok": False,
                "error": "Expression too deeply nested",
                "error_code": "TOO_DEEP",
            }
        except MemoryError:
            return {"ok": False, "error": "Out of memory", "error_code": "MEMORY_LIMIT"}
        except (KeyError, TypeError) as e:
            logger.debug("Malformed %s request: %r", kind, e)
            return {"ok": False, "error": f"Malformed request: {e}", "error_code": "BAD_REQUEST"}

    def _lookup(self, expr_id: Any) -> UnifiedReal:
        try:
            return self.expressions[expr_id]
        except KeyError:
            raise ValidationError(f"Unknown expression id {expr_id!r}", "UNKNOWN_ID") from None

    def _handle_create(self, msg: dict[str, Any]) -> dict[str, Any]:
        expr_id = msg["id"]
        expr = validate_input(msg.get("expr") or "")
        value = get_evaluator(bool(msg.get("degree_mode"))).evaluate(expr)
        self.expressions[expr_id] = value
        return {
            "ok": True,
            "digits_required": value.digits_required(),
            "exactly_displayable": value.exactly_displayable(),
        }

    def _handle_copy(self, msg: dict[str, Any]) -> dict[str, Any]:
        self.expressions[msg["id"]] = self._lookup(msg["from_id"])
        return {"ok": True}

    def _handle_remove(self, msg: dict[str, Any]) -> dict[str, Any]:
        self.expressions.pop(msg["id"], None)
        return {"ok": True}

    def _handle_to_string_truncated(self, msg: dict[str, Any]) -> dict[str, Any]:
        prec = _check_digits(msg["prec"])
        return {"ok": True, "result": self._lookup(msg["id"]).to_string_truncated(prec)}

    def _handle_nice_string(self, msg: dict[str, Any]) -> dict[str, Any]:
        return {"ok": True, "result": format_exact(self._lookup(msg["id"]))}

    def _handle_evaluate(self, msg: dict[str, Any]) -> dict[str, Any]:
        digits = _check_digits(msg.get("digits"))
        expr = validate_input(msg.get("expr") or "")
        value = get_evaluator(bool(msg.get("degree_mode"))).evaluate(expr)
        return result_dict(value, digits)


def _worker_daemon_main(
    req_q: Any, res_q: Any, stop_event: Any, cpu_seconds: int, as_mb: int
) -> None:
    """Worker daemon main loop that processes requests from queue."""
    _limit_resources(cpu_seconds, as_mb)
    store = ExpressionStore()
    while not stop_event.is_set():
        try:
            msg = req_q.get(timeout=0.1)
        except queue.Empty:
            continue
        except (KeyboardInterrupt, SystemExit):
            # The parent owns shutdown; just leave quietly
            break
        out = store.handle(msg)
        out["req_id"] = msg.get("req_id")
        res_q.put(out)


class ExpressionWorker:
    """Client side of one worker process.

    With ``persistent=False`` (or where multiprocessing is unavailable) the
    same handlers run in the calling process and timeouts are not enforced.
    """

    def __init__(
        self,
        persistent: bool | None = None,
        cpu_seconds: int | None = None,
        as_mb: int | None = None,
    ) -> None:
        if persistent is None:
            persistent = ENABLE_PERSISTENT_WORKER
        self.persistent = persistent and Process is not None
        self.cpu_seconds = cpu_seconds or WORKER_CPU_SECONDS
        self.as_mb = as_mb or WORKER_AS_MB
        self.proc = None
        self.req_q = None
        self.res_q = None
        self.stop_event = None
        self.restarts = 0
        self._local = ExpressionStore()
        self._ids = itertools.count(1)

    def start(self) -> None:
        if not self.persistent or self.is_alive():
            return
        self.req_q = Queue()
        self.res_q = Queue()
        self.stop_event = Event()
        self.proc = Process(
            target=_worker_daemon_main,
            args=(self.req_q, self.res_q, self.stop_event, self.cpu_seconds, self.as_mb),
            daemon=True,
        )
        self.proc.start()
        logger.debug("Started worker process pid=%s", self.proc.pid)

    def is_alive(self) -> bool:
        return self.proc is not None and self.proc.is_alive()

    def stop(self) -> None:
        """Stop the worker process, killing it if it does not exit promptly."""
        try:
            if self.stop_event is not None:
                self.stop_event.set()
            if self.proc is not None:
                self.proc.join(timeout=1.0)
                if self.proc.is_alive():
                    self.kill()
        finally:
            self.proc = None
            self.req_q = None
            self.res_q = None
            self.stop_event = None

    def kill(self) -> None:
        if self.proc is None:
            return
        self.proc.terminate()
        self.proc.join(timeout=1.0)
        if self.proc.is_alive():
            self.proc.kill()
            self.proc.join(timeout=1.0)

    def restart(self) -> None:
        self.kill()
        self.stop()
        self.restarts += 1
        self.start()

    def request(self, payload: dict[str, Any], timeout: float | None = None) -> dict[str, Any]:
        """Send one request and wait for its response."""
        if not self.persistent:
            return self._local.handle(payload)
        if timeout is None:
            timeout = WORKER_TIMEOUT
        self.start()
        req_id = str(uuid.uuid4())
        self.req_q.put({**payload, "req_id": req_id})
        waited = 0.0
        while waited < timeout:
            step = min(0.5, timeout - waited)
            try:
                msg = self.res_q.get(timeout=step)
            except queue.Empty:
                waited += step
                if not self.is_alive():
                    logger.warning("Worker process died while handling %r", payload.get("type"))
                    self.restart()
                    return {
                        "ok": False,
                        "error": "Worker process died (resource limit exceeded?)",
                        "error_code": "WORKER_DIED",
                    }
                continue
            if msg.pop("req_id", None) == req_id:
                return msg
            # Stale answer to a request that already timed out
        logger.warning(
            "Request %r timed out after %ss; restarting worker", payload.get("type"), timeout
        )
        self.restart()
        return {"ok": False, "error": "Evaluation timed out.", "error_code": "TIMEOUT"}

    # Protocol helpers

    def create(self, expr: str, degree_mode: bool = False, expr_id: Any = None, timeout=None):
        if expr_id is None:
            expr_id = next(self._ids)
        out = self.request(
            {"type": "create", "id": expr_id, "expr": expr, "degree_mode": degree_mode}, timeout
        )
        out["id"] = expr_id
        return out

    def copy(self, expr_id: Any, from_id: Any, timeout=None) -> dict[str, Any]:
        return self.request({"type": "copy", "id": expr_id, "from_id": from_id}, timeout)

    def remove(self, expr_id: Any, timeout=None) -> dict[str, Any]:
        return self.request({"type": "remove", "id": expr_id}, timeout)

    def to_string_truncated(self, expr_id: Any, prec: int, timeout=None) -> dict[str, Any]:
        return self.request(
            {"type": "to_string_truncated", "id": expr_id, "prec": prec}, timeout
        )

    def nice_string(self, expr_id: Any, timeout=None) -> dict[str, Any]:
        return self.request({"type": "nice_string", "id": expr_id}, timeout)

    def evaluate(
        self, expr: str, digits: int | None = None, degree_mode: bool = False, timeout=None
    ) -> dict[str, Any]:
        return self.request(
            {"type": "evaluate", "expr": expr, "digits": digits, "degree_mode": degree_mode},
            timeout,
        )


_WORKER: ExpressionWorker | None = None


def get_worker() -> ExpressionWorker:
    """The shared worker used by ``evaluate_safely``."""
    global _WORKER
    if _WORKER is None:
        _WORKER = ExpressionWorker()
    return _WORKER


def shutdown_worker() -> None:
    global _WORKER
    if _WORKER is not None:
        _WORKER.stop()
        _WORKER = None


def evaluate_safely(
    expr: str,
    digits: int | None = None,
    degree_mode: bool = False,
    timeout: float | None = None,
) -> dict[str, Any]:
    """Evaluate ``expr`` in the worker and return a result dict.

    Input is validated in the calling process so that oversized input never
    reaches the worker.
    """
    try:
        validate_input(expr)
        digits = _check_digits(digits)
    except ValidationError as e:
        return {"ok": False, "error": str(e), "error_code": e.code}
    if timeout is None:
        timeout = WORKER_TIMEOUT
    logger.debug("Evaluating %r in worker (digits=%s)", expr, digits)
    return get_worker().evaluate(expr, digits, degree_mode, timeout)
