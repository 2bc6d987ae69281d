import time
from abc import ABC, abstractmethod
from decimal import Decimal

from pydantic import ValidationError

from distributor.env import URLS
from distributor.errors import SourceUnavailableError, TooManyLoopsError
from distributor.models import (
    EthereumAddress,
    Incentive,
    LeaderboardPage,
    LeaderboardRecord,
)
from distributor.queries.common import get_json


class LeaderboardSource(ABC):
    """
    Anything that can serve incentive leaderboards page by page.
    Subclasses implement `fetch_page`, the aggregator only ever calls `fetch_leaderboard`.
    """

    page_delay: float = 0.0
    max_pages: int = 1000

    @abstractmethod
    def fetch_page(
        self,
        vault: EthereumAddress,
        start_timestamp: int,
        end_timestamp: int,
        reward_rate: Decimal,
        max_rewards: Decimal,
        page: int,
        page_size: int,
    ) -> LeaderboardPage:
        ...

    def has_more_pages(self, page: int, response: LeaderboardPage) -> bool:
        return page + 1 < response.nPages

    def fetch_leaderboard(
        self, incentive: Incentive, vault: EthereumAddress, page_size: int
    ) -> tuple[list[LeaderboardRecord], bool]:
        """
        Walk the pages in order until the source runs out.
        A failed page ends the walk: records already fetched are returned and `complete` is False.
        """
        records: list[LeaderboardRecord] = []
        page = 0

        print(f"  📊 Fetching leaderboard for vault {vault}...")
        while True:
            try:
                if page >= self.max_pages:
                    raise TooManyLoopsError(f"leaderboard for {vault} exceeded {self.max_pages} pages")
                response = self.fetch_page(
                    vault,
                    incentive.startTimestamp,
                    incentive.endTimestamp,
                    incentive.rewardRate,
                    incentive.maxRewards,
                    page,
                    page_size,
                )
            except (SourceUnavailableError, TooManyLoopsError) as e:
                print(f"    ⚠️  Failed to fetch page {page + 1}: {e}")
                return records, False

            records += response.leaderboard
            print(f"    ✅ Page {page + 1}/{response.nPages}: {len(response.leaderboard)} entries")

            if not self.has_more_pages(page, response):
                break
            page += 1
            if self.page_delay > 0:
                time.sleep(self.page_delay)

        print(f"  🎯 Total entries fetched: {len(records)}")
        return records, True


class IndexerSource(LeaderboardSource):
    """Reads leaderboards from the live incentives indexer, one request per page"""

    def __init__(
        self,
        chain_id: int,
        base_url: str = URLS.INDEXER,
        timeout: float = 30.0,
        page_delay: float = 0.1,
        max_pages: int = 1000,
    ):
        self.chain_id = chain_id
        self.base_url = base_url
        self.timeout = timeout
        self.page_delay = page_delay
        self.max_pages = max_pages

    def url(self, vault: EthereumAddress) -> str:
        return f"{self.base_url.rstrip('/')}/incentives/vaults/{self.chain_id}/{vault}"

    def fetch_page(
        self,
        vault: EthereumAddress,
        start_timestamp: int,
        end_timestamp: int,
        reward_rate: Decimal,
        max_rewards: Decimal,
        page: int,
        page_size: int,
    ) -> LeaderboardPage:
        data = get_json(
            self.url(vault),
            params={
                "startTimestamp": start_timestamp,
                "endTimestamp": end_timestamp,
                "rewardRate": str(reward_rate),
                "maxRewards": str(max_rewards),
                "page": page,
                "pageSize": page_size,
            },
            timeout=self.timeout,
        )
        try:
            return LeaderboardPage.model_validate(data)
        except ValidationError as e:
            raise SourceUnavailableError(f"Malformed leaderboard page {page + 1}: {e}") from e
