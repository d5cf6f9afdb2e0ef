"""tradeledger exception hierarchy.

All application-specific exceptions inherit from :class:`TradeLedgerError`.
Using typed exceptions allows callers to handle specific failure modes
rather than catching bare ``Exception``.
"""

from __future__ import annotations


class TradeLedgerError(Exception):
    """Base exception for all tradeledger errors."""


# -- Configuration ----------------------------------------------------------


class ConfigError(TradeLedgerError):
    """Invalid or missing configuration."""


# -- Ingestion boundary -----------------------------------------------------


class LegValidationError(TradeLedgerError):
    """A raw leg event is structurally unusable (unknown side, no product)."""


# -- Collaborators ----------------------------------------------------------


class PriceLookupError(TradeLedgerError):
    """Native-currency price could not be obtained from a price source."""


# -- Persistence ------------------------------------------------------------


class PersistenceError(TradeLedgerError):
    """Ledger state could not be durably written."""


class DataCorruptionError(TradeLedgerError):
    """File data is corrupted or in an unexpected format."""


# -- Internal invariants ----------------------------------------------------


class DoubleConsumptionError(TradeLedgerError):
    """A leg was about to be consumed into more than one completed trade.

    Non-recoverable: the pass is aborted before anything is written.
    """
