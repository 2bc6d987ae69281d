from distributor.queries.common import *
from distributor.queries.vaults import *
from distributor.queries.leaderboard import *
from distributor.queries.mock import *
