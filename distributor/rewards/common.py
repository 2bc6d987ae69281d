from decimal import ROUND_FLOOR, Decimal, InvalidOperation, localcontext
from typing import Union

from distributor.errors import RewardValidationError
from distributor.models import EthereumAddress, RewardKey, normalize_address

# all incentive tokens are 18 decimal ERC20s
TOKEN_DECIMALS = 18

RewardMap = dict[RewardKey, int]


def to_base_units(display: Union[Decimal, int, float, str], decimals: int = TOKEN_DECIMALS) -> int:
    """
    Convert a display amount (eg: 1.5 MGV) into integer base units (1500000000000000000).
    Always rounds down so we never allocate more than the source reported.
    """
    try:
        # str() first, so floats convert from their shortest repr rather than their binary expansion
        value = display if isinstance(display, Decimal) else Decimal(str(display))
    except InvalidOperation as e:
        raise RewardValidationError(f"Invalid reward amount: {display!r}") from e

    if not value.is_finite():
        raise RewardValidationError(f"Invalid reward amount: {display!r}")

    with localcontext() as ctx:
        ctx.prec = 96
        scaled = value * (Decimal(10) ** decimals)
        return int(scaled.to_integral_value(rounding=ROUND_FLOOR))


def add_reward(rewards: RewardMap, key: RewardKey, amount: int) -> RewardMap:
    rewards[key] = rewards.get(key, 0) + amount
    return rewards


def merge_rewards(into: RewardMap, other: RewardMap) -> RewardMap:
    """Sum `other` into `into`. Integer addition, so merge order never changes the result"""
    for key, amount in other.items():
        add_reward(into, key, amount)
    return into


def resolve_token(
    token_addresses: dict[int, dict[str, EthereumAddress]], chain_id: int, symbol: str
) -> EthereumAddress:
    chain_tokens = token_addresses.get(chain_id)
    if chain_tokens is None:
        raise RewardValidationError(f"No token addresses configured for chain {chain_id}")

    address = chain_tokens.get(symbol)
    if address is None:
        raise RewardValidationError(f"Unknown token symbol '{symbol}' for chain {chain_id}")

    return normalize_address(address)
