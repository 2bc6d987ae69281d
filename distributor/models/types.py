from typing import Any

import eth_utils as eth

from distributor.errors import RewardValidationError

# type aliases for clarity
EthereumAddress = str
BigNumber = str
HexHash = str
RewardKey = tuple[EthereumAddress, EthereumAddress]


def normalize_address(address: Any) -> EthereumAddress:
    """
    Addresses are compared case-insensitively at the boundary but always stored lower-cased.
    Anything other than `0x` followed by exactly 40 hex digits is rejected.
    """
    if (
        not isinstance(address, str)
        or not address.startswith("0x")
        or not eth.is_hex_address(address)
    ):
        raise RewardValidationError(f"Invalid Ethereum address: {address!r}")
    return address.lower()
