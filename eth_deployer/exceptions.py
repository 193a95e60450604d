"""Exception classes for contract deployment and verification."""


class DeploymentError(Exception):
    """Base exception for deployment related errors."""


class ConfigurationError(DeploymentError, ValueError):
    """Environment or network configuration is missing or malformed."""


class SubmissionFailed(DeploymentError):
    """Could not broadcast the contract deployment transaction."""


class ConfirmationTimedOut(DeploymentError):
    """We exceeded the configured number of confirmation polls."""


class ForgeFailed(DeploymentError):
    """Forge command failed.

    :py:attr:`output` holds forge stdout and stderr without the command line.
    """

    def __init__(self, msg: str, output: str = ""):
        super().__init__(msg)
        self.output = output


class VerificationFailed(DeploymentError):
    """Block explorer rejected the verification.

    The message is the explorer or tool output only, so it can be classified.
    """


class ArtifactNotFound(DeploymentError, FileNotFoundError):
    """Compiled contract artifact is missing."""
