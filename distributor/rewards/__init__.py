from distributor.rewards.common import *
from distributor.rewards.aggregator import *
