import json
from dataclasses import dataclass, field
from decimal import Decimal
from pathlib import Path
from typing import Any, Optional

import pytest

from distributor.models import (
    Config,
    Incentive,
    LeaderboardPage,
    LeaderboardRecord,
    RootStore,
    Vault,
)
from distributor.queries import LeaderboardSource

STUBS = Path(__file__).parent / "stubs"

TOKEN = "0x177e14e8ec24baba77b08d96053c08bf7f37ab49"
OTHER_TOKEN = "0x4200000000000000000000000000000000000006"
CHAIN_ID = 8453
NOW = 1_700_000_000

_addresses = [
    "0x9bc33f6155efacc290c3c50e9b5b24b668562732",
    "0xfde38ad4bbbec867e6cb4bb31fbfb2074c959a83",
    "0x8bb4c0b502f869af3b25166930507a6e8c3038d4",
    "0x7ac54a0406fa2b465e0d57c66597be83a4b149fc",
    "0xdea708968f8dd520f5e2f0ab6785f28c98521ca8",
]

_vaults = [
    "0x1111111111111111111111111111111111111111",
    "0x2222222222222222222222222222222222222222",
    "0x3333333333333333333333333333333333333333",
]


def load_stub(name: str) -> Any:
    with open(STUBS / name) as j:
        return json.load(j, parse_float=Decimal)


@pytest.fixture()
def ADDRESSES() -> list[str]:
    return list(_addresses)


@pytest.fixture()
def VAULTS() -> list[str]:
    return list(_vaults)


@pytest.fixture
def config() -> Config:
    return Config(
        chain_id=CHAIN_ID,
        page_size=2,
        page_delay=0,
        token_addresses={CHAIN_ID: {"MGV": TOKEN, "WETH": OTHER_TOKEN}},
    )


@pytest.fixture
def store(tmp_path) -> RootStore:
    db = RootStore(str(tmp_path / "merkle-db.json"))
    yield db
    db.close()


@dataclass
class MockResponse:
    res: Any
    status_code: int = 200
    reason: str = "OK"

    @property
    def ok(self) -> bool:
        return self.status_code < 400

    def json(self, **kwargs):
        if isinstance(self.res, str):
            return json.loads(self.res, **kwargs)
        return self.res


def incentive(
    start: int = NOW - 1000,
    end: int = NOW + 1000,
    token: str = "MGV",
    vault: Optional[str] = None,
) -> Incentive:
    return Incentive(
        vault=vault,
        startTimestamp=start,
        endTimestamp=end,
        maxRewards=Decimal(1000),
        rewardRate=Decimal(1),
        token=token,
    )


def vault(address: str, incentives: list[Incentive], deprecated: bool = False) -> Vault:
    return Vault(address=address, isDeprecated=deprecated, incentives=incentives)


def record(user: str, vault: str, rewards: str, position: int = 1) -> LeaderboardRecord:
    return LeaderboardRecord(position=position, user=user, vault=vault, rewards=Decimal(rewards))


@dataclass
class StaticSource(LeaderboardSource):
    """
    Serves canned leaderboards keyed by (vault, startTimestamp).
    Each leaderboard is a list of pages; a page that is an Exception is raised instead of returned.
    """

    boards: dict[tuple[str, int], list[Any]] = field(default_factory=dict)
    calls: list[tuple[str, int, int]] = field(default_factory=list)

    def fetch_page(self, vault, start_timestamp, end_timestamp, reward_rate, max_rewards, page, page_size):
        self.calls.append((vault, start_timestamp, page))
        pages = self.boards.get((vault, start_timestamp), [[]])
        current = pages[page]
        if isinstance(current, Exception):
            raise current
        return LeaderboardPage(
            leaderboard=current,
            nPages=len(pages),
            nElements=len(current),
            isOver=page == len(pages) - 1,
        )

