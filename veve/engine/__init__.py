# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
veve execution engine.

Takes a list of test files and turns each one into exactly one PoolResult,
no matter what the file does.

Subsystems:
  - pool: schedules files concurrently and owns the results map
  - runner: the per-file execution unit (compile, sandbox, file timeout)
  - compiler: the compile service protocol and the default Python compiler
  - sandbox: injected globals, the capturing console, mocks
  - runtime: test registration and the per-file execution plan
  - bench: benchmark loop and latency statistics
  - reporting: run summaries and the JSON results writer
"""
