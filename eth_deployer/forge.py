"""Forge smart contract toolchain integration.

- Broadcast contract deployments with ``forge create``

- Verify deployed contracts on Etherscan and its clones with ``forge verify-contract``

- See `Foundry book <https://book.getfoundry.sh/>`__ for more information.

Forge is a blocking subprocess, so we run it in a worker thread to keep
the event loop free while waiting.
"""

import asyncio
import logging
import re
from pathlib import Path
from shutil import which
from subprocess import DEVNULL, PIPE, TimeoutExpired
from typing import Sequence, Tuple

import psutil
from eth_account.signers.local import LocalAccount

from eth_deployer.exceptions import ForgeFailed, SubmissionFailed, VerificationFailed
from eth_deployer.networks import NetworkConfig
from eth_deployer.orchestrator import DeploymentRequest, TransactionHandle

logger = logging.getLogger(__name__)


#: Crash unless forge completes in 4 minutes
#:
DEFAULT_TIMEOUT = 4 * 60


def get_forge_path() -> str:
    forge = which("forge")
    assert forge is not None, "No forge command in path, needed for the contract deployment"
    return forge


def run_forge(
    cmd_line: list[str],
    censored_command: str,
    project_folder: Path,
    timeout=DEFAULT_TIMEOUT,
) -> str:
    """Execute a forge command line in a Foundry project.

    :param censored_command:
        Command line without secrets, used in logs and errors

    :param timeout:
        Timeout in seconds

    :raise ForgeFailed:
        Non-zero exit code or timeout. The message carries forge output.

    :return:
        Combined stdout and stderr
    """

    for x in cmd_line:
        assert type(x) == str, f"Got non-string in command line: {x} in {censored_command}"

    assert (project_folder / "foundry.toml").exists(), f"foundry.toml missing: {project_folder}"

    logger.info("Running forge in %s: %s", project_folder.resolve(), censored_command)

    proc = psutil.Popen(cmd_line, stdin=DEVNULL, stdout=PIPE, stderr=PIPE, cwd=project_folder)
    try:
        stdout, stderr = proc.communicate(timeout=timeout)
    except TimeoutExpired as e:
        proc.kill()
        raise ForgeFailed(f"forge did not complete in {timeout} seconds: {censored_command}", output=f"forge did not complete in {timeout} seconds") from e

    output = stdout.decode("utf-8") + stderr.decode("utf-8")

    if proc.returncode != 0:
        raise ForgeFailed(f"forge return code {proc.returncode} when running: {censored_command}\nOutput is:\n{output}", output=output)

    logger.debug("forge result:\n%s", output)
    return output


def parse_forge_create_output(output: str) -> Tuple[str, str]:
    """Read the deployed address and the transaction hash from ``forge create`` output.

    :return:
        Tuple(deployed contract address, tx hash)
    """

    address = tx_hash = None

    for line in output.split("\n"):
        # Deployed to: 0x604Da6680Cb97A87403600B9AafBE60eeda97CA4
        if line.startswith("Deployed to: "):
            address = line.split(":")[1].strip()

        if line.startswith("Transaction hash: "):
            tx_hash = line.split(":")[1].strip()

    if not (address and tx_hash):
        raise ForgeFailed(f"Could not parse forge output:\n{output}")

    return address, tx_hash


def _contract_path(request_file: str, contract_name: str) -> str:
    src_contract_file = Path("src") / request_file
    assert src_contract_file.suffix == ".sol", f"Not Solidity source file: {request_file}"
    return f"{src_contract_file}:{contract_name}"


class ForgeDeploymentSubmitter:
    """Broadcast deployments with ``forge create``.

    Constructor arguments must be strings forge can parse,
    e.g. ``"[(0x00..01,0x00..02,0x00..03)]"`` for an array of structs.

    :param project_folder:
        Foundry project with `foundry.toml` in the root.
    """

    def __init__(
        self,
        project_folder: Path,
        json_rpc_url: str,
        deployer: LocalAccount,
        timeout=DEFAULT_TIMEOUT,
    ):
        assert isinstance(project_folder, Path), f"Got non-Path project folder: {type(project_folder)} {project_folder}"
        self.project_folder = project_folder
        self.json_rpc_url = json_rpc_url
        self.deployer = deployer
        self.timeout = timeout

    def build_command(self, request: DeploymentRequest) -> list[str]:
        """Build forge create command line without the private key."""
        cmd_line = [
            get_forge_path(),
            "create",
            "--broadcast",
            "--rpc-url",
            self.json_rpc_url,
            _contract_path(request.get_contract_file(), request.contract_name),
        ]

        if request.constructor_args:
            assert all(type(a) == str for a in request.constructor_args), f"forge needs stringified constructor arguments, got {request.constructor_args}"
            cmd_line += ["--constructor-args", *request.constructor_args]

        return cmd_line

    async def submit(self, request: DeploymentRequest) -> TransactionHandle:
        cmd_line = self.build_command(request)
        censored_command = " ".join(cmd_line)

        # Inject private key after logging
        cmd_line = cmd_line[0:2] + ["--private-key", self.deployer.key.hex()] + cmd_line[2:]

        try:
            output = await asyncio.to_thread(run_forge, cmd_line, censored_command, self.project_folder, self.timeout)
            address, tx_hash = parse_forge_create_output(output)
        except ForgeFailed as e:
            raise SubmissionFailed(f"Could not deploy {request.contract_name}: {e}") from e

        return TransactionHandle(tx_hash=tx_hash, contract_address=address)


class ForgeVerificationService:
    """Verify a contract with ``forge verify-contract``.

    Failures are raised as :py:class:`VerificationFailed` carrying only forge output,
    so explorer errors like ``Already Verified`` or ``429 Too Many Requests``
    are visible to :py:func:`eth_deployer.verification.classify_verification_error`.
    The contract address and the RPC URL are redacted from the output,
    as they may contain any digits.

    We do not encode constructor arguments ourselves: if the contract has any,
    forge reads them back from the deployment transaction through ``json_rpc_url``.
    """

    def __init__(
        self,
        project_folder: Path,
        contract_file: str,
        contract_name: str,
        network: NetworkConfig,
        etherscan_api_key: str,
        json_rpc_url: str | None = None,
        timeout=DEFAULT_TIMEOUT,
    ):
        assert isinstance(project_folder, Path), f"Got non-Path project folder: {type(project_folder)} {project_folder}"
        assert etherscan_api_key, "Etherscan API key needed for the verification"
        self.project_folder = project_folder
        self.contract_file = contract_file
        self.contract_name = contract_name
        self.network = network
        self.etherscan_api_key = etherscan_api_key
        self.json_rpc_url = json_rpc_url
        self.timeout = timeout

    @classmethod
    def for_request(cls, request: DeploymentRequest, **kwargs) -> "ForgeVerificationService":
        return cls(contract_file=request.get_contract_file(), contract_name=request.contract_name, **kwargs)

    def build_command(self, address: str, constructor_args: Sequence) -> list[str]:
        """Build forge verify-contract command line without the API key."""
        cmd_line = [
            get_forge_path(),
            "verify-contract",
            "--chain",
            str(self.network.chain_id),
            "--watch",
        ]

        if self.network.api_url:
            cmd_line += ["--verifier-url", self.network.api_url]

        if constructor_args:
            assert self.json_rpc_url, "Contract has constructor arguments, need json_rpc_url for forge to read them back"
            cmd_line += ["--guess-constructor-args", "--rpc-url", self.json_rpc_url]

        cmd_line += [address, _contract_path(self.contract_file, self.contract_name)]
        return cmd_line

    def redact(self, output: str, address: str) -> str:
        """Remove the contract address and the RPC URL from forge output."""
        output = re.sub(re.escape(address), "<address>", output, flags=re.IGNORECASE)
        if self.json_rpc_url:
            output = output.replace(self.json_rpc_url, "<rpc-url>")
        return output

    async def verify(self, address: str, constructor_args: Sequence) -> None:
        cmd_line = self.build_command(address, constructor_args)
        censored_command = " ".join(cmd_line)
        cmd_line = cmd_line[0:2] + ["--etherscan-api-key", self.etherscan_api_key] + cmd_line[2:]
        try:
            await asyncio.to_thread(run_forge, cmd_line, censored_command, self.project_folder, self.timeout)
        except ForgeFailed as e:
            raise VerificationFailed(self.redact(e.output, address)) from e
