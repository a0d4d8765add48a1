# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
Helpers for calling user code that may be sync or async.

Test files hand us plain functions, coroutine functions, lambdas that return
coroutines, functools.partial wrappers and the occasional callable object.
The engine needs to know up front which ones belong on the event loop and
which ones should go to a worker thread.

Sync user code never goes to the loop's default executor. That pool is
shared by every file in the process and has a fixed number of workers, so a
handful of hung bodies in one file would starve every other file. Instead
each call gets its own daemon thread, which starts running immediately and
is simply left behind if nobody waits for it any more.
"""

import asyncio
import contextvars
import functools
import inspect
import threading
from typing import Any, Callable, Optional


def is_async_callable(fn: Callable[..., Any]) -> bool:
    """True if calling fn returns a coroutine we should await on the loop."""
    while isinstance(fn, functools.partial):
        fn = fn.func
    if inspect.iscoroutinefunction(fn):
        return True
    call = getattr(fn, "__call__", None)
    return call is not None and inspect.iscoroutinefunction(call)


async def run_in_thread(fn: Callable[..., Any], *args: Any, name: Optional[str] = None) -> Any:
    """
    Run fn(*args) in a fresh daemon thread and await its result.

    Cancelling the awaiting task does not stop the thread; its eventual
    result is dropped. A BaseException raised by fn (SystemExit included) is
    re-raised to the awaiting coroutine.
    """
    loop = asyncio.get_running_loop()
    future: asyncio.Future[Any] = loop.create_future()
    context = contextvars.copy_context()

    def settle(result: Any, error: Optional[BaseException]) -> None:
        if future.done():
            return
        if error is not None:
            future.set_exception(error)
        else:
            future.set_result(result)

    def target() -> None:
        result: Any = None
        error: Optional[BaseException] = None
        try:
            result = context.run(fn, *args)
        except BaseException as exc:
            error = exc
        try:
            loop.call_soon_threadsafe(settle, result, error)
        except RuntimeError:
            # the loop closed while this thread was abandoned
            pass

    thread = threading.Thread(
        target=target,
        name=name or f"veve-{getattr(fn, '__name__', 'call')}",
        daemon=True,
    )
    thread.start()
    return await future


async def call_maybe_async(fn: Callable[..., Any], *args: Any) -> Any:
    """
    Call fn and return its result.

    Coroutine functions are awaited on the running loop. Everything else runs
    in its own thread so a blocking body can't stall every other test in the
    process; if that call hands back an awaitable anyway (a lambda wrapping a
    coroutine), it gets awaited here.
    """
    if is_async_callable(fn):
        return await fn(*args)

    result = await run_in_thread(fn, *args)
    if inspect.isawaitable(result):
        return await result
    return result
