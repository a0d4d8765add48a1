# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
Tracking mocks injected into every sandbox as Fn and spy_on.

A mock is an ordinary object with explicit fields (calls, return_values,
exceptions) and a fixed set of behaviour methods (returns, raises, use,
reset, clear). No attribute magic: asking a mock for a method it doesn't
have is an AttributeError like anywhere else.
"""

import threading
import time
from dataclasses import dataclass
from typing import Any, Callable, Optional


@dataclass(frozen=True)
class FunctionCall:
    args: tuple[Any, ...]
    kwargs: dict[str, Any]
    result: Any
    timestamp: float


@dataclass(frozen=True)
class FunctionException:
    error: BaseException
    timestamp: float


class Fn:
    """
    A callable that records every call.

    Behaviour precedence on each call: a configured exception, then a
    configured return value, then the implementation from use() (or the
    wrapped function), then None.
    """

    _UNSET = object()

    def __init__(self, implementation: Optional[Callable[..., Any]] = None) -> None:
        self._implementation = implementation
        self._return_value: Any = self._UNSET
        self._raises: Optional[BaseException] = None
        self._lock = threading.Lock()
        self.calls: list[FunctionCall] = []
        self.return_values: list[Any] = []
        self.exceptions: list[FunctionException] = []

    def __call__(self, *args: Any, **kwargs: Any) -> Any:
        try:
            result = self._invoke(args, kwargs)
        except Exception as exc:
            with self._lock:
                self.exceptions.append(FunctionException(error=exc, timestamp=time.time()))
                self.calls.append(FunctionCall(args, dict(kwargs), None, time.time()))
            raise
        with self._lock:
            self.calls.append(FunctionCall(args, dict(kwargs), result, time.time()))
            self.return_values.append(result)
        return result

    def _invoke(self, args: tuple[Any, ...], kwargs: dict[str, Any]) -> Any:
        if self._raises is not None:
            raise self._raises
        if self._return_value is not self._UNSET:
            return self._return_value
        if self._implementation is not None:
            return self._implementation(*args, **kwargs)
        return None

    # -- behaviour ---------------------------------------------------------

    def returns(self, value: Any) -> "Fn":
        self._return_value = value
        return self

    def raises(self, error: BaseException) -> "Fn":
        self._raises = error
        return self

    def use(self, implementation: Callable[..., Any]) -> "Fn":
        self._implementation = implementation
        self._return_value = self._UNSET
        return self

    def clear(self) -> "Fn":
        """Forget recorded calls, keep configured behaviour."""
        with self._lock:
            self.calls.clear()
            self.return_values.clear()
            self.exceptions.clear()
        return self

    def reset(self) -> "Fn":
        """Forget recorded calls and configured behaviour."""
        self.clear()
        self._return_value = self._UNSET
        self._raises = None
        return self

    # -- inspection --------------------------------------------------------

    @property
    def call_count(self) -> int:
        return len(self.calls)

    @property
    def called(self) -> bool:
        return bool(self.calls)

    def called_with(self, *args: Any, **kwargs: Any) -> bool:
        return any(call.args == args and call.kwargs == kwargs for call in self.calls)

    def called_times(self, count: int) -> bool:
        return len(self.calls) == count


class Spy(Fn):
    """An Fn installed over an attribute of an existing object; restore() puts the original back."""

    def __init__(self, target: Any, name: str) -> None:
        original = getattr(target, name)
        if not callable(original):
            raise TypeError(f"{name!r} on {target!r} is not callable")
        super().__init__(original)
        self._target = target
        self._name = name
        self._original = original
        setattr(target, name, self)

    def restore(self) -> None:
        setattr(self._target, self._name, self._original)


def spy_on(target: Any, name: str) -> Spy:
    """Replace target.name with a recording Spy that still calls through to the original."""
    return Spy(target, name)
