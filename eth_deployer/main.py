"""Deploy a contract from environment variable configuration.

Used by ``scripts/deploy-contract.py``. Reads:

- ``NETWORK``: target network name, see :py:data:`eth_deployer.networks.NETWORKS`
- ``CONTRACT_NAME``: e.g. ``Escrow``
- ``CONTRACT_FILE``: source file under ``src``, defaults to ``<CONTRACT_NAME>.sol``
- ``CONSTRUCTOR_ARGS``: JSON list of constructor arguments, defaults to none
- ``PROJECT_FOLDER``: Foundry or Hardhat project root, defaults to the current directory
- ``DEPLOY_PRIVATE_KEY``: deployer private key
- ``SUBMITTER``: ``web3`` (default) or ``forge``

plus the confirmation and verification settings of :py:mod:`eth_deployer.config`.
"""

import asyncio
import json
import logging
import os
from pathlib import Path
from typing import Mapping

from eth_account import Account
from web3 import AsyncHTTPProvider, AsyncWeb3

from eth_deployer.chain import Web3ChainClient
from eth_deployer.config import DeployConfig
from eth_deployer.deploy import Web3DeploymentSubmitter
from eth_deployer.exceptions import ConfigurationError
from eth_deployer.explorer import check_etherscan_api_key
from eth_deployer.forge import ForgeDeploymentSubmitter, ForgeVerificationService
from eth_deployer.networks import get_network, read_json_rpc_url
from eth_deployer.orchestrator import DeploymentOrchestrator, DeploymentRequest, DeploymentResult
from eth_deployer.reporting import LoggingReporter
from eth_deployer.utils import setup_console_logging

logger = logging.getLogger(__name__)


def read_request(env: Mapping[str, str]) -> DeploymentRequest:
    """Build a deployment request from environment variables.

    :raise ConfigurationError:
        Missing contract name or network, or malformed constructor arguments
    """
    contract_name = env.get("CONTRACT_NAME", "").strip()
    network = env.get("NETWORK", "").strip()
    if not contract_name:
        raise ConfigurationError("CONTRACT_NAME environment variable missing")
    if not network:
        raise ConfigurationError("NETWORK environment variable missing")

    raw_args = env.get("CONSTRUCTOR_ARGS", "").strip() or "[]"
    try:
        constructor_args = json.loads(raw_args)
    except json.JSONDecodeError as e:
        raise ConfigurationError(f"CONSTRUCTOR_ARGS is not valid JSON: {raw_args}") from e

    if not isinstance(constructor_args, list):
        raise ConfigurationError(f"CONSTRUCTOR_ARGS must be a JSON list, got {raw_args}")

    return DeploymentRequest(
        contract_name=contract_name,
        constructor_args=tuple(constructor_args),
        network=network,
        contract_file=env.get("CONTRACT_FILE", "").strip() or None,
    )


async def run_deployment(env: Mapping[str, str]) -> DeploymentResult:
    """Deploy, confirm and verify a contract described by environment variables."""

    config = DeployConfig.from_env(env)
    request = read_request(env)
    network = get_network(request.network)
    json_rpc_url = read_json_rpc_url(network, env)
    project_folder = Path(env.get("PROJECT_FOLDER", ".")).absolute()

    private_key = env.get("DEPLOY_PRIVATE_KEY", "").strip()
    if not private_key:
        raise ConfigurationError("DEPLOY_PRIVATE_KEY environment variable missing")
    deployer = Account.from_key(private_key)

    if config.etherscan_api_key:
        await asyncio.to_thread(check_etherscan_api_key, network.chain_id, config.etherscan_api_key)
        verification_service = ForgeVerificationService.for_request(
            request,
            project_folder=project_folder,
            network=network,
            etherscan_api_key=config.etherscan_api_key,
            json_rpc_url=json_rpc_url,
        )
    else:
        logger.warning("ETHERSCAN_API_KEY not set, the contract will not be verified")
        verification_service = None

    submitter_name = env.get("SUBMITTER", "web3").strip()
    match submitter_name:
        case "web3":
            web3 = AsyncWeb3(AsyncHTTPProvider(json_rpc_url))
            submitter = Web3DeploymentSubmitter(web3, deployer, project_folder)
            chain_client = Web3ChainClient(web3)
        case "forge":
            submitter = ForgeDeploymentSubmitter(project_folder, json_rpc_url, deployer)
            chain_client = Web3ChainClient.from_json_rpc_url(json_rpc_url)
        case _:
            raise ConfigurationError(f"Unknown SUBMITTER {submitter_name}, use web3 or forge")

    logger.info("-" * 80)
    logger.info("Network: %s (chain %d)", network.name, network.chain_id)
    logger.info("Deployer: %s", deployer.address)
    logger.info("Contract: %s:%s", request.get_contract_file(), request.contract_name)
    logger.info("Confirmations: %d, poll delay %s", config.confirmation_policy.target_confirmations, config.confirmation_policy.poll_interval)
    logger.info("Verification attempts: %d, backoff unit %s", config.retry_policy.max_attempts, config.retry_policy.base_delay)
    logger.info("-" * 80)

    orchestrator = DeploymentOrchestrator(
        chain_client=chain_client,
        submitter=submitter,
        verification_service=verification_service,
        confirmation_policy=config.confirmation_policy,
        retry_policy=config.retry_policy,
        reporter=LoggingReporter(network),
    )
    return await orchestrator.deploy(request)


def main(env: Mapping[str, str] = None) -> int:
    """Console entry point.

    :return:
        Process exit code: 0 if the contract got deployed, 1 otherwise
    """
    if env is None:
        env = os.environ

    setup_console_logging()

    try:
        result = asyncio.run(run_deployment(env))
    except Exception as e:
        logger.exception("Deployment failed: %s", e)
        return 1

    logger.info("Deployment complete: %s at %s, verified: %s", result.request.contract_name, result.address, result.is_verified())
    return 0
