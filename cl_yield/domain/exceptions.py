from __future__ import annotations


class DomainError(Exception):
    """Base for domain errors."""


class InvalidPositionError(DomainError):
    """Position range or liquidity cannot be converted into token amounts."""
