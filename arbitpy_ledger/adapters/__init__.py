"""
Port adapters for the ledger engine.

Paper adapters keep custody and venues in memory for tests, scenarios and
dry runs; web3 adapters talk to a real (or dev) chain.
"""

from .paper import InMemoryCallPort, InMemoryCustody, PaperBorrower, PaperVenue, encode_amount
from .web3_ports import Web3BlockClock, Web3ExternalCallPort, Web3ValueTransferPort

__all__ = [
    "InMemoryCustody",
    "InMemoryCallPort",
    "PaperVenue",
    "PaperBorrower",
    "encode_amount",
    "Web3ValueTransferPort",
    "Web3ExternalCallPort",
    "Web3BlockClock",
]
