"""ldstake core: chain substrate, configuration, logging, contracts and staking."""
