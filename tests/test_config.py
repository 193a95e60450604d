"""Environment variable configuration and networks."""

import datetime

import pytest

from eth_deployer.config import DeployConfig
from eth_deployer.exceptions import ConfigurationError
from eth_deployer.main import read_request
from eth_deployer.networks import NETWORKS, get_network, read_json_rpc_url


def test_defaults():
    config = DeployConfig.from_env({})
    assert config.confirmation_policy.target_confirmations == 5
    assert config.confirmation_policy.poll_interval == datetime.timedelta(seconds=15)
    assert config.confirmation_policy.max_polls is None
    assert config.retry_policy.max_attempts == 5
    assert config.retry_policy.base_delay == datetime.timedelta(seconds=10)
    assert config.etherscan_api_key is None


def test_from_env():
    config = DeployConfig.from_env(
        {
            "CONFIRMATIONS": "2",
            "CONFIRMATION_POLL_INTERVAL_MS": "500",
            "CONFIRMATION_MAX_POLLS": "100",
            "VERIFY_MAX_ATTEMPTS": "3",
            "VERIFY_RETRY_BASE_DELAY_MS": "2500",
            "ETHERSCAN_API_KEY": " ABC123 ",
        }
    )
    assert config.confirmation_policy.target_confirmations == 2
    assert config.confirmation_policy.poll_interval == datetime.timedelta(milliseconds=500)
    assert config.confirmation_policy.max_polls == 100
    assert config.retry_policy.max_attempts == 3
    assert config.retry_policy.get_delay(2) == datetime.timedelta(seconds=5)
    assert config.etherscan_api_key == "ABC123"
    assert "ABC123" not in repr(config)


@pytest.mark.parametrize("value", ["five", "0", "-1", "1.5"])
def test_bad_values(value):
    with pytest.raises(ConfigurationError):
        DeployConfig.from_env({"CONFIRMATIONS": value})


def test_networks():
    assert get_network("optimism").chain_id == 10
    assert get_network("worldchain").chain_id == 480
    assert NETWORKS["opSepolia"].get_address_link("0x1") == "https://sepolia-optimism.etherscan.io/address/0x1"
    assert NETWORKS["optimism"].get_tx_link("0x2") == "https://optimistic.etherscan.io/tx/0x2"

    with pytest.raises(ConfigurationError):
        get_network("mainnet")


def test_read_json_rpc_url(monkeypatch):
    network = get_network("opSepolia")
    monkeypatch.delenv("OP_SEPOLIA_RPC", raising=False)
    with pytest.raises(ConfigurationError):
        read_json_rpc_url(network)

    monkeypatch.setenv("OP_SEPOLIA_RPC", "https://sepolia.optimism.io")
    assert read_json_rpc_url(network) == "https://sepolia.optimism.io"


def test_read_json_rpc_url_from_given_env(monkeypatch):
    """Explicit environment mapping wins over the process environment."""
    network = get_network("opSepolia")
    monkeypatch.delenv("OP_SEPOLIA_RPC", raising=False)
    assert read_json_rpc_url(network, {"OP_SEPOLIA_RPC": " http://localhost:8545 "}) == "http://localhost:8545"

    monkeypatch.setenv("OP_SEPOLIA_RPC", "https://sepolia.optimism.io")
    with pytest.raises(ConfigurationError):
        read_json_rpc_url(network, {})


def test_read_request():
    request = read_request(
        {
            "CONTRACT_NAME": "Escrow",
            "NETWORK": "worldchain",
            "CONSTRUCTOR_ARGS": '[[["0x01", "0x02", "0x03"]]]',
        }
    )
    assert request.contract_name == "Escrow"
    assert request.network == "worldchain"
    assert request.constructor_args == ([["0x01", "0x02", "0x03"]],)
    assert request.get_contract_file() == "Escrow.sol"


def test_read_request_no_constructor_args():
    request = read_request({"CONTRACT_NAME": "PaymentRegistry", "NETWORK": "opSepolia", "CONTRACT_FILE": "payments/PaymentRegistry.sol"})
    assert request.constructor_args == ()
    assert request.get_contract_file() == "payments/PaymentRegistry.sol"


@pytest.mark.parametrize(
    "env",
    [
        {"NETWORK": "opSepolia"},
        {"CONTRACT_NAME": "Escrow"},
        {"CONTRACT_NAME": "Escrow", "NETWORK": "opSepolia", "CONSTRUCTOR_ARGS": "[1, 2"},
        {"CONTRACT_NAME": "Escrow", "NETWORK": "opSepolia", "CONSTRUCTOR_ARGS": '{"a": 1}'},
    ],
)
def test_read_request_bad(env):
    with pytest.raises(ConfigurationError):
        read_request(env)
