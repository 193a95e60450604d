"""Etherscan API key pre-flight check.

Catch a missing or bad API key before we spend gas on a deployment
we cannot verify.
"""

import logging

import requests

logger = logging.getLogger(__name__)


#: Etherscan v2 multichain endpoint
ETHERSCAN_V2_API_URL = "https://api.etherscan.io/v2/api"


class ExplorerConfigurationError(Exception):
    """Etherscan API key is not valid or does not cover the chain."""


def check_etherscan_api_key(
    chain_id: int,
    api_key: str,
    timeout: float = 10.0,
):
    """Check if Etherscan API key should work.

    - Check using Etherscan v2 multichain support

    :raise ExplorerConfigurationError:
        If the API key is not valid or chain mismatch.
    """

    if not api_key:
        raise ExplorerConfigurationError("Etherscan API key is empty")

    assert type(chain_id) is int, f"Chain ID must be an integer, got {type(chain_id)}"

    logger.info("Checking Etherscan API key for chain ID %s", chain_id)

    # https://docs.etherscan.io/etherscan-v2/api-endpoints/stats-1
    params = {
        "chainid": chain_id,
        "module": "getapilimit",
        "action": "getapilimit",
        "apikey": api_key,
    }
    resp = requests.get(ETHERSCAN_V2_API_URL, params=params, timeout=timeout)

    if resp.status_code != 200:
        raise ExplorerConfigurationError(f"Failed to validate Etherscan API key for chain ID {chain_id}: {resp.status_code} - {resp.text}")

    data = resp.json()
    if data.get("status") != "1":
        raise ExplorerConfigurationError(f"Invalid Etherscan API key for chain ID {chain_id}: {data.get('message')} {data.get('result')}")
