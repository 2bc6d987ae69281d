from __future__ import annotations

from pydantic import BaseModel, field_validator, model_validator

from distributor.errors import BadConfigException
from distributor.models.types import EthereumAddress, normalize_address

MGV = "0x177e14e8ec24baba77b08d96053c08bf7f37ab49"

DEFAULT_TOKEN_ADDRESSES: dict[int, dict[str, EthereumAddress]] = {
    1: {"MGV": MGV},  # Ethereum Mainnet
    8453: {"MGV": MGV},  # Base
    137: {"MGV": MGV},  # Polygon
    42161: {"MGV": MGV},  # Arbitrum
}


class MockConfig(BaseModel):
    """
    Settings for the synthetic leaderboard generator
    :param `user_count`: number of leaderboard rows generated per incentive
    :param `reward_multiplier`: scales the base reward of every row
    :param `use_fixed_addresses`: use the fixed test address pool before falling back to random addresses
    """

    enabled: bool = False
    user_count: int = 5
    reward_multiplier: float = 1.0
    use_fixed_addresses: bool = True

    @field_validator("user_count")
    @classmethod
    def validate_user_count(cls, count: int):
        if count < 1 or count > 1000:
            raise BadConfigException("Mock user count out of range, must be between 1 and 1000")
        return count

    @field_validator("reward_multiplier")
    @classmethod
    def validate_multiplier(cls, multiplier: float):
        if multiplier < 0:
            raise BadConfigException("Mock reward multiplier cannot be negative")
        return multiplier


MOCK_PRESETS: dict[str, MockConfig] = {
    "small": MockConfig(
        enabled=True, user_count=5, reward_multiplier=1.0, use_fixed_addresses=True
    ),
    "medium": MockConfig(
        enabled=True, user_count=25, reward_multiplier=0.8, use_fixed_addresses=False
    ),
    "large": MockConfig(
        enabled=True, user_count=100, reward_multiplier=0.6, use_fixed_addresses=False
    ),
    "highRewards": MockConfig(
        enabled=True, user_count=10, reward_multiplier=2.0, use_fixed_addresses=True
    ),
    "lowRewards": MockConfig(
        enabled=True, user_count=50, reward_multiplier=0.1, use_fixed_addresses=False
    ),
}


class Config(BaseModel):
    """
    Settings for a single tree generation run
    :param `min_rewards`: entries below this many base units are left out of the tree
    :param `request_timeout`: seconds before a request to the indexer is abandoned
    :param `page_delay`: seconds to wait between leaderboard pages, to stay under rate limits
    :param `token_addresses`: reward token symbol to address, per chain id
    """

    chain_id: int = 8453
    include_deprecated: bool = False
    page_size: int = 100
    min_rewards: int = 0
    request_timeout: float = 30.0
    page_delay: float = 0.1
    max_pages: int = 1000
    mock: MockConfig = MockConfig()
    token_addresses: dict[int, dict[str, EthereumAddress]] = DEFAULT_TOKEN_ADDRESSES

    @field_validator("page_size")
    @classmethod
    def validate_page_size(cls, size: int):
        if size < 1 or size > 1000:
            raise BadConfigException("Page size out of range, must be between 1 and 1000")
        return size

    @field_validator("min_rewards")
    @classmethod
    def validate_min_rewards(cls, minimum: int):
        if minimum < 0:
            raise BadConfigException("Minimum rewards cannot be negative")
        return minimum

    @field_validator("request_timeout")
    @classmethod
    def validate_timeout(cls, timeout: float):
        if timeout <= 0:
            raise BadConfigException("Request timeout must be positive")
        return timeout

    @field_validator("token_addresses")
    @classmethod
    def lowercase_tokens(cls, chains: dict[int, dict[str, str]]):
        return {
            chain: {symbol: normalize_address(addr) for symbol, addr in tokens.items()}
            for chain, tokens in chains.items()
        }

    @model_validator(mode="after")
    def validate_delays(self) -> Config:
        if self.page_delay < 0 or self.page_delay >= self.request_timeout:
            raise BadConfigException("Page delay must be between 0 and the request timeout")
        if self.max_pages < 1:
            raise BadConfigException("Max pages must be at least 1")
        return self
