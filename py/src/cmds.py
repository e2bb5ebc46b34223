# Subprocess evaluation infrastructure.
# Evaluations run in pebble worker processes so a runaway expression can be
# abandoned once it exceeds its wall-clock budget.
import asyncio
import concurrent.futures
import functools
import logging

import config
import dice
from dice_errors import EvalError, EvalTypeError, EvaluationHalted
from dice_values import display, sort_values
from pebble import ProcessPool
from utils import codeblock, escape, truncate

log = logging.getLogger(__name__)


# Wrapper for ProcessPool to allow use with asyncio run_in_executor
class PebbleExecutor(concurrent.futures.Executor):
    def __init__(self, max_workers, timeout=None):
        self.pool = ProcessPool(max_workers=max_workers)
        self.timeout = timeout

    def submit(self, fn, *args, **kwargs):
        return self.pool.submit(fn, self.timeout, *args, **kwargs)

    def map(self, func, *iterables, timeout=None, chunksize=1):
        raise NotImplementedError("This wrapper does not support `map`.")

    def shutdown(self, wait=True, *, cancel_futures=False):
        if wait:
            log.info("Closing workers...")
            self.pool.close()
        else:
            log.info("Stopping workers...")
            self.pool.stop()
        self.pool.join()
        log.info("Workers joined.")


# Runs in the worker. Errors are flattened to text so they cross the
# process boundary intact.
def _evaluate_displayed(text: str, seed: int | None = None, sort: bool = False):
    rng = None if seed is None else dice.seeded_rng(seed)
    try:
        value = dice.evaluate(text, rng=rng)
        if sort:
            if not isinstance(value, list):
                raise EvalTypeError("sort given not-array")
            value = sort_values(value)
        return True, display(value)
    except EvalError as err:
        return False, str(err)


# Races evaluations against a fixed budget. On timeout the worker is
# abandoned and EvaluationHalted is raised instead of an EvalError.
class EvalSupervisor:
    def __init__(self, max_workers=config.MAX_EVAL_WORKERS, timeout=None):
        self.timeout = config.get_eval_timeout() if timeout is None else timeout
        self.executor = PebbleExecutor(max_workers, self.timeout)

    def __enter__(self):
        return self

    def __exit__(self, *exc_info):
        self.shutdown()

    def shutdown(self, wait=False):
        self.executor.shutdown(wait)

    @staticmethod
    def _unpack(outcome) -> str:
        ok, text = outcome
        if not ok:
            raise EvalError(text)
        return text

    def evaluate(self, text: str, seed: int | None = None, sort: bool = False) -> str:
        log.info(f"Executing evaluation: {text!r}...")
        future = self.executor.submit(_evaluate_displayed, text, seed, sort)
        try:
            outcome = future.result()
        except concurrent.futures.TimeoutError as err:
            log.info(f"Evaluation of {text!r} halted after {self.timeout}s.")
            raise EvaluationHalted(self.timeout) from err
        return self._unpack(outcome)

    async def evaluate_async(self, text: str, seed: int | None = None) -> str:
        loop = asyncio.get_running_loop()
        cmd_future = loop.run_in_executor(
            self.executor, functools.partial(_evaluate_displayed, text, seed)
        )
        log.info(f"Executing evaluation: {text!r}...")
        try:
            outcome = await cmd_future
        except concurrent.futures.TimeoutError as err:
            log.info(f"Evaluation of {text!r} halted after {self.timeout}s.")
            raise EvaluationHalted(self.timeout) from err
        return self._unpack(outcome)

    # Reply text for a chat transport, never raising for user input.
    def roll(self, text: str, seed: int | None = None) -> str:
        try:
            value_text = self.evaluate(text, seed=seed)
        except EvaluationHalted as err:
            return str(err)
        except EvalError as err:
            log.info(f"Roll error. {err}")
            return f"evaluation error:\n{codeblock(err, big=True)}"
        reply = f"{codeblock(dice.describe(text))} ⇒ **{escape(value_text)}**"
        return truncate(reply)


# One-shot evaluation in a fresh single-worker pool.
def evaluate_with_timeout(
    text: str, timeout: float | None = None, seed: int | None = None
) -> str:
    with EvalSupervisor(max_workers=1, timeout=timeout) as supervisor:
        return supervisor.evaluate(text, seed=seed)
