"""Deploy smart contracts, wait for block confirmations and verify them on a block explorer."""
