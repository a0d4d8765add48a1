# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
Hashing helpers.

Source maps carry a SHA256 of the compiled source so a reporter holding an
old PoolResult (watch mode keeps them around for the whole session) can tell
whether the file on disk has changed since the result was produced.
"""

import hashlib


def sha256_text(text: str, encoding: str = "utf-8") -> str:
    """Lowercase hex SHA256 of `text` encoded with `encoding`."""
    return hashlib.sha256(text.encode(encoding)).hexdigest()
