"""Exceptions raised to callers of lp_blocks."""


class LPBlocksError(Exception):
    """Base class for lp_blocks errors."""


class InvalidInputError(LPBlocksError, ValueError):
    """Caller supplied a malformed config, an out-of-range block index or a bad selector."""
