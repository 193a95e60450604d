"""Deployment settings read from environment variables.

=================================  =========  ==========================================
Variable                           Default    Meaning
=================================  =========  ==========================================
``CONFIRMATIONS``                  5          Blocks to wait before verification
``CONFIRMATION_POLL_INTERVAL_MS``  15000      Delay between confirmation polls
``CONFIRMATION_MAX_POLLS``         unset      Give up confirming after this many polls
``VERIFY_MAX_ATTEMPTS``            5          Verification attempt cap
``VERIFY_RETRY_BASE_DELAY_MS``     10000      Linear backoff unit for rate limits
``ETHERSCAN_API_KEY``              unset      Verification is skipped without a key
=================================  =========  ==========================================
"""

import datetime
import logging
import os
from dataclasses import dataclass, field
from typing import Mapping, Optional

from eth_deployer.confirmation import ConfirmationPolicy
from eth_deployer.exceptions import ConfigurationError
from eth_deployer.verification import RetryPolicy

logger = logging.getLogger(__name__)


def _read_positive_int(env: Mapping[str, str], name: str, default: Optional[int]) -> Optional[int]:
    raw = env.get(name, "").strip()
    if not raw:
        return default
    try:
        value = int(raw)
    except ValueError as e:
        raise ConfigurationError(f"Environment variable {name} must be an integer, got {raw!r}") from e
    if value <= 0:
        raise ConfigurationError(f"Environment variable {name} must be positive, got {value}")
    return value


@dataclass
class DeployConfig:
    """Confirmation and verification knobs for a deployment run."""

    confirmation_policy: ConfirmationPolicy = field(default_factory=ConfirmationPolicy)

    retry_policy: RetryPolicy = field(default_factory=RetryPolicy)

    #: Needed for the source code verification on Etherscan and related services
    etherscan_api_key: Optional[str] = field(default=None, repr=False)

    @classmethod
    def from_env(cls, env: Mapping[str, str] = None) -> "DeployConfig":
        """Read the config from environment variables.

        :param env:
            Defaults to ``os.environ``

        :raise ConfigurationError:
            On non-integer or non-positive values
        """
        if env is None:
            env = os.environ

        confirmation_policy = ConfirmationPolicy(
            target_confirmations=_read_positive_int(env, "CONFIRMATIONS", 5),
            poll_interval=datetime.timedelta(milliseconds=_read_positive_int(env, "CONFIRMATION_POLL_INTERVAL_MS", 15_000)),
            max_polls=_read_positive_int(env, "CONFIRMATION_MAX_POLLS", None),
        )

        retry_policy = RetryPolicy(
            max_attempts=_read_positive_int(env, "VERIFY_MAX_ATTEMPTS", 5),
            base_delay=datetime.timedelta(milliseconds=_read_positive_int(env, "VERIFY_RETRY_BASE_DELAY_MS", 10_000)),
        )

        etherscan_api_key = env.get("ETHERSCAN_API_KEY", "").strip() or None

        config = cls(
            confirmation_policy=confirmation_policy,
            retry_policy=retry_policy,
            etherscan_api_key=etherscan_api_key,
        )
        logger.debug("Loaded deploy config %s", config)
        return config
