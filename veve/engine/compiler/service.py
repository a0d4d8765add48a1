# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
The compile service: test file path in, runnable code plus source map out.

The engine only depends on the Compiler protocol. Whatever produces the code
(plain byte-compilation, a transpiler, an instrumenting rewriter) hands its
result back explicitly; nobody patches the import machinery to intercept
source on the way in.

The default PythonCompiler reads the file and byte-compiles it. Its source
map is trivial: the file, its line count and a content hash, which is enough
for reporters to tell whether the results they hold still match the source
on disk.
"""

import asyncio
from dataclasses import dataclass
from pathlib import Path
from types import CodeType
from typing import Any, Optional, Protocol

from veve.engine.exceptions import CompileError
from veve.logging.logger import get_logger
from veve.utils.hashing import sha256_text

logger = get_logger(__name__)


@dataclass(frozen=True)
class CompiledFile:
    """What a compile service returns. source_map is opaque to the engine."""

    code: CodeType
    source_map: Optional[dict[str, Any]] = None


class Compiler(Protocol):
    """Anything that can turn a test file into runnable code."""

    async def compile(self, file_path: str) -> CompiledFile:
        """
        Raises:
            CompileError: the file can't be read or doesn't compile.
        """
        ...


class PythonCompiler:
    """Byte-compiles a Python test file with the built-in compile()."""

    def __init__(self, optimize: int = -1) -> None:
        self._optimize = optimize

    def compile_sync(self, file_path: str) -> CompiledFile:
        path = Path(file_path)
        try:
            source = path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as err:
            raise CompileError(file_path, f"cannot read source: {err}") from err

        try:
            code = compile(source, str(path), "exec", dont_inherit=True, optimize=self._optimize)
        except (SyntaxError, ValueError) as err:
            raise CompileError(file_path, f"{type(err).__name__}: {err}") from err

        source_map = {
            "file": str(path),
            "lines": source.count("\n") + (0 if source.endswith("\n") or not source else 1),
            "sha256": sha256_text(source),
        }
        return CompiledFile(code=code, source_map=source_map)

    async def compile(self, file_path: str) -> CompiledFile:
        # file I/O and compile() both block; keep them off the loop
        compiled = await asyncio.to_thread(self.compile_sync, file_path)
        logger.debug(
            "Compiled test file",
            extra={"file": file_path, "lines": compiled.source_map["lines"] if compiled.source_map else None},
        )
        return compiled
