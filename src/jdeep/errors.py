"""Internal error categories.

None of these cross a public engine function: each boundary catches them and
degrades to a pass-through result.
"""

from __future__ import annotations


class TransformError(Exception):
    """Base class for decode/encode failures."""


class ParseFailure(TransformError):
    """Text is not valid for the expected grammar."""


class InversionMismatch(TransformError):
    """Edited value no longer has the shape a recorded step expects."""


class IrreversibleLayer(TransformError):
    """A layer that cannot be re-encoded, e.g. a signed JWT."""
