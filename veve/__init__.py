# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
veve: a native test framework with an isolated, concurrent execution engine.

Test files are plain Python modules that register tests through injected
globals (it, bench, each, before_all, ...) and finish with run(). The engine
compiles each file, evaluates it inside its own sandbox namespace, runs the
registered tests and hands back one structured result per file.
"""

__version__ = "0.4.0"
