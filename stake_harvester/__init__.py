"""harvest hemi stake and unstake operations from the staking subgraph into csv"""

__version__ = "0.1.0"
