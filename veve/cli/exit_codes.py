# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
CLI exit codes.

These are the only exit codes `veve` uses. A run whose tests fail exits 1;
anything that stopped the run from happening at all gets its own code.
"""

SUCCESS: int = 0
TEST_FAILURE: int = 1
CONFIG_ERROR: int = 2
RUNTIME_ERROR: int = 3
USAGE_ERROR: int = 4
