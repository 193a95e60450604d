"""Networks we deploy to.

Each network has a JSON-RPC URL environment variable and an Etherscan-like block explorer.
"""

import os
from dataclasses import dataclass
from typing import Mapping, Optional

from eth_deployer.exceptions import ConfigurationError


@dataclass(frozen=True)
class NetworkConfig:
    """Deployment target network."""

    #: Network name as given on the command line, e.g. ``opSepolia``
    name: str

    chain_id: int

    #: Environment variable holding the JSON-RPC URL
    rpc_env: str

    #: Etherscan compatible API endpoint used for the verification.
    #:
    #: ``None`` means Etherscan v2 multichain API resolves the chain by its id.
    api_url: Optional[str] = None

    #: Human browsable explorer
    browser_url: Optional[str] = None

    def get_address_link(self, address: str) -> str:
        assert self.browser_url, f"No block explorer configured for {self.name}"
        return f"{self.browser_url.rstrip('/')}/address/{address}"

    def get_tx_link(self, tx_hash: str) -> str:
        assert self.browser_url, f"No block explorer configured for {self.name}"
        return f"{self.browser_url.rstrip('/')}/tx/{tx_hash}"


#: Network name -> config
NETWORKS = {
    "opSepolia": NetworkConfig(
        name="opSepolia",
        chain_id=11155420,
        rpc_env="OP_SEPOLIA_RPC",
        api_url="https://api.sepolia-optimism.etherscan.io",
        browser_url="https://sepolia-optimism.etherscan.io",
    ),
    "ethSepolia": NetworkConfig(
        name="ethSepolia",
        chain_id=11155111,
        rpc_env="ETH_SEPOLIA_RPC",
        browser_url="https://sepolia.etherscan.io",
    ),
    "worldchainTestnet": NetworkConfig(
        name="worldchainTestnet",
        chain_id=4801,
        rpc_env="WLD_SEPOLIA_RPC",
        browser_url="https://sepolia.worldscan.org",
    ),
    "worldchain": NetworkConfig(
        name="worldchain",
        chain_id=480,
        rpc_env="WLD_MAINNET_RPC",
        api_url="https://api.worldscan.org",
        browser_url="https://worldscan.org",
    ),
    "optimism": NetworkConfig(
        name="optimism",
        chain_id=10,
        rpc_env="OPTIMISM_RPC",
        api_url="https://api.optimistic.etherscan.io/",
        browser_url="https://optimistic.etherscan.io/",
    ),
}


def get_network(name: str) -> NetworkConfig:
    """Look up a network by its name.

    :raise ConfigurationError:
        Unknown network
    """
    network = NETWORKS.get(name)
    if network is None:
        raise ConfigurationError(f"Unknown network {name}, we know: {', '.join(NETWORKS)}")
    return network


def read_json_rpc_url(network: NetworkConfig, env: Mapping[str, str] = None) -> str:
    """Read the JSON-RPC URL of a network from its environment variable.

    :param env:
        Defaults to ``os.environ``

    :raise ConfigurationError:
        If the environment variable is not set
    """
    if env is None:
        env = os.environ

    json_rpc_url = env.get(network.rpc_env, "").strip()
    if not json_rpc_url:
        raise ConfigurationError(f"Environment variable {network.rpc_env} is not set for network {network.name}")
    return json_rpc_url
