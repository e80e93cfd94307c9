"""
Wallet signing capability.

The migration core never talks to a wallet. It asks a Signer for
(signature, address) over a message and uses the signature as the
passphrase for that wallet side. The reported address is trusted as-is.
"""

import getpass
import logging
from dataclasses import dataclass
from typing import Callable, Protocol

from migrator.errors import SigningError, short_address

logger = logging.getLogger("signing")

DEFAULT_SIGNING_MESSAGE = "insidor_dapp"


class Signer(Protocol):
    def request_signature(self, message: str) -> tuple[str, str]:
        """Return (signature, address) for the connected account."""
        ...


@dataclass(frozen=True)
class WalletSide:
    """Signature and address captured for one side (old or new) of a run."""
    signature: str
    address: str

    @property
    def passphrase(self) -> str:
        return self.signature

    def __repr__(self) -> str:
        return f"WalletSide(address={self.address!r}, signature=<hidden>)"


class StaticSigner:
    """Returns a fixed signature and address. Used by scripts and tests."""

    def __init__(self, signature: str, address: str):
        self._signature = signature
        self._address = address

    def request_signature(self, message: str) -> tuple[str, str]:
        return self._signature, self._address


class PromptSigner:
    """
    Operator signs the message in their wallet and pastes the result.

    The signature prompt is hidden, like any other secret input.
    """

    def __init__(self, label: str, input_func: Callable = input, secret_func: Callable = getpass.getpass):
        self.label = label
        self._input = input_func
        self._secret = secret_func

    def request_signature(self, message: str) -> tuple[str, str]:
        print(f"Sign this message with the {self.label}:")
        print(f"  {message}")
        address = self._input(f"{self.label} address: ").strip()
        signature = self._secret(f"{self.label} signature (input hidden): ").strip()
        return signature, address


def capture_side(signer: Signer, message: str = DEFAULT_SIGNING_MESSAGE) -> WalletSide:
    """Ask the signer once and validate what comes back."""
    if not message or not message.strip():
        raise SigningError("Please enter a signing message")

    signature, address = signer.request_signature(message)
    if not signature:
        raise SigningError("Failed to sign message. Please try again.")
    if not address:
        raise SigningError("Signer did not report a wallet address")

    logger.info(f"Signature obtained for {short_address(address)}")
    return WalletSide(signature=signature, address=address)
