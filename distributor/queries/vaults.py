from pydantic import TypeAdapter, ValidationError

from distributor.env import URLS
from distributor.errors import SourceUnavailableError
from distributor.models import Config, Vault
from distributor.queries.common import get_json


def get_vaults(conf: Config) -> list[Vault]:
    """
    Fetch every whitelisted vault for the chain, along with its incentives.
    This is a single read, the registry does not paginate
    """
    data = get_json(
        URLS.REWARDS,
        params={
            "chainId": conf.chain_id,
            "includeDeprecated": str(conf.include_deprecated).lower(),
        },
        timeout=conf.request_timeout,
    )

    if not isinstance(data, list):
        raise SourceUnavailableError("Vault registry response is not a list of vaults")

    try:
        return TypeAdapter(list[Vault]).validate_python(data)
    except ValidationError as e:
        raise SourceUnavailableError(f"Malformed vault data: {e}") from e
