"""
Tests for the signing capability adapters

Run with: pytest tests/test_signing.py -v
"""

import pytest

from migrator.errors import SigningError
from migrator.signing import PromptSigner, StaticSigner, WalletSide, capture_side


class TestCaptureSide:

    def test_static_signer(self):
        side = capture_side(StaticSigner("0xsig", "0xAddr"), "insidor_dapp")
        assert side == WalletSide(signature="0xsig", address="0xAddr")
        assert side.passphrase == "0xsig"

    def test_signature_hidden_in_repr(self):
        side = WalletSide(signature="0xsupersecret", address="0xAddr")
        assert "0xsupersecret" not in repr(side)

    @pytest.mark.parametrize("message", ["", "   "])
    def test_empty_message(self, message):
        with pytest.raises(SigningError):
            capture_side(StaticSigner("0xsig", "0xAddr"), message)

    def test_empty_signature(self):
        with pytest.raises(SigningError):
            capture_side(StaticSigner("", "0xAddr"))

    def test_missing_address(self):
        with pytest.raises(SigningError):
            capture_side(StaticSigner("0xsig", None))

    def test_message_passed_to_signer(self):
        seen = []

        class RecordingSigner:
            def request_signature(self, message):
                seen.append(message)
                return "0xsig", "0xAddr"

        capture_side(RecordingSigner(), "custom message")
        assert seen == ["custom message"]


class TestPromptSigner:

    def test_reads_address_and_hidden_signature(self, capsys):
        signer = PromptSigner(
            "Old Wallet",
            input_func=lambda prompt: " 0xAddr ",
            secret_func=lambda prompt: " 0xsig\n",
        )
        assert signer.request_signature("insidor_dapp") == ("0xsig", "0xAddr")
        assert "insidor_dapp" in capsys.readouterr().out
