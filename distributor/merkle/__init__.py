from distributor.merkle.tree import *
from distributor.merkle.builder import *
