import os
from typing import Optional

from dotenv import load_dotenv
from distributor.errors import MissingEnvironmentVariableException

load_dotenv()


def env_var(accessor: str, default: Optional[str] = None) -> str:
    """
    Attempt to fetch an environment variable and throw
    an error if not found and no default is given
    """
    var = os.environ.get(accessor, default)
    if not var:
        raise MissingEnvironmentVariableException(accessor)
    return var


class URLS:
    REWARDS = env_var("REWARDS_URL", "https://api.mgvinfra.com/registry/whitelist")
    INDEXER = env_var("INDEXER_URL", "https://indexer.mgvinfra.com/")


DATA_DIR = env_var("DATA_DIR", "data")
