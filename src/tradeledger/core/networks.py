"""Network context resolution.

Maps the free-form network label carried by an upstream event to a
canonical :class:`NetworkDescriptor`.  Resolution is total: anything that
cannot be recognised resolves to the default network, because every leg
must carry a network for matching to work.

>>> resolve_network("avax-c").key
'AVALANCHE'
>>> resolve_network("Arbitrum One").chain_id
42161
>>> resolve_network(None).key
'AVALANCHE'
"""

from __future__ import annotations

from dataclasses import dataclass

from tradeledger.core.constants import DEFAULT_NETWORK, NETWORK_ALIASES, SUPPORTED_NETWORKS


@dataclass(frozen=True, slots=True)
class NetworkDescriptor:
    """Canonical description of a supported network."""

    key: str
    name: str
    chain_id: int
    native_currency: str
    explorer_url: str
    is_layer2: bool = False

    @property
    def gas_strategy(self) -> str:
        return "L2_OPTIMIZED" if self.is_layer2 else "L1_STANDARD"

    def tx_url(self, tx_hash: str) -> str:
        """Block-explorer URL for a transaction hash."""
        return f"{self.explorer_url}/tx/{tx_hash}"


def get_network(key: str) -> NetworkDescriptor:
    """Descriptor for a canonical key.  Raises ``KeyError`` for unknown keys."""
    entry = SUPPORTED_NETWORKS[key]
    return NetworkDescriptor(
        key=key,
        name=str(entry["name"]),
        chain_id=int(entry["chain_id"]),  # type: ignore[call-overload]
        native_currency=str(entry["native_currency"]),
        explorer_url=str(entry["explorer_url"]),
        is_layer2=bool(entry.get("is_layer2", False)),
    )


def resolve_network(label: object = None, default: str = DEFAULT_NETWORK) -> NetworkDescriptor:
    """Resolve a loosely-specified network label.

    Accepts canonical keys, known aliases (case-insensitive) and numeric
    chain ids.  Unrecognised or absent labels resolve to *default*; an
    invalid *default* resolves to :data:`DEFAULT_NETWORK`.
    """
    key = _match_label(label)
    if key is None:
        key = default.strip().upper() if isinstance(default, str) else DEFAULT_NETWORK
        if key not in SUPPORTED_NETWORKS:
            key = DEFAULT_NETWORK
    return get_network(key)


def _match_label(label: object) -> str | None:
    if label is None or isinstance(label, bool):
        return None
    if isinstance(label, int):
        return _key_for_chain_id(label)
    text = str(label).strip()
    if not text:
        return None
    upper = text.upper()
    if upper in SUPPORTED_NETWORKS:
        return upper
    alias = NETWORK_ALIASES.get(text.lower())
    if alias is not None:
        return alias
    if text.isdigit():
        return _key_for_chain_id(int(text))
    return None


def _key_for_chain_id(chain_id: int) -> str | None:
    for key, entry in SUPPORTED_NETWORKS.items():
        if entry["chain_id"] == chain_id:
            return key
    return None
